from .font_resources import resolve_standard_font, standard_font_for
from .metrics import AverageGlyphMetrics, GlyphTableMetrics, MetricsProvider, get_metrics_provider
from .text_extractor import TextLayoutExtractor, extract_page, extract_text_runs

__all__ = [
    "AverageGlyphMetrics",
    "GlyphTableMetrics",
    "MetricsProvider",
    "TextLayoutExtractor",
    "extract_page",
    "extract_text_runs",
    "get_metrics_provider",
    "resolve_standard_font",
    "standard_font_for",
]
