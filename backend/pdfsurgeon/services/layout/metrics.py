"""Text width estimation.

Widths are approximations: no embedded font programs are parsed. The
average-glyph provider is the default; the glyph-table provider uses the
base-14 width tables shipped with PyMuPDF and falls back to the average for
fonts outside that set.
"""

from __future__ import annotations

from typing import Any, Optional

import fitz

from ...utils.logging import get_logger
from .font_resources import STANDARD_FONTS, standard_font_for

logger = get_logger(__name__)

MONOSPACE_RATIO = 0.6
SERIF_RATIO = 0.45
DEFAULT_RATIO = 0.5


class MetricsProvider:
    name = "base"

    def width(self, text: str, font_name: Optional[str], font_size: float) -> float:
        raise NotImplementedError


class AverageGlyphMetrics(MetricsProvider):
    name = "average"

    def width(self, text: str, font_name: Optional[str], font_size: float) -> float:
        if not text or font_size <= 0:
            return 0.0
        return len(text) * self.ratio_for(font_name) * font_size

    @staticmethod
    def ratio_for(font_name: Optional[str]) -> float:
        name = (font_name or "").lower()
        if "courier" in name or "mono" in name:
            return MONOSPACE_RATIO
        if "times" in name or ("serif" in name and "sans" not in name):
            return SERIF_RATIO
        return DEFAULT_RATIO


class GlyphTableMetrics(MetricsProvider):
    name = "glyph_table"

    def __init__(self) -> None:
        self.fallback = AverageGlyphMetrics()

    def width(self, text: str, font_name: Optional[str], font_size: float) -> float:
        if not text or font_size <= 0:
            return 0.0
        standard = standard_font_for(font_name)
        if standard is None:
            return self.fallback.width(text, font_name, font_size)
        try:
            return float(fitz.get_text_length(text, fontname=STANDARD_FONTS[standard], fontsize=float(font_size)))
        except Exception:
            logger.debug("Glyph table lookup failed", font=font_name, exc_info=True)
            return self.fallback.width(text, font_name, font_size)


_PROVIDERS = {
    AverageGlyphMetrics.name: AverageGlyphMetrics,
    GlyphTableMetrics.name: GlyphTableMetrics,
}


def get_metrics_provider(config: Any = None) -> MetricsProvider:
    name = getattr(config, "METRICS_PROVIDER", None) or AverageGlyphMetrics.name
    provider_cls = _PROVIDERS.get(str(name).lower())
    if provider_cls is None:
        logger.warning("Unknown metrics provider, using average", provider=name)
        provider_cls = AverageGlyphMetrics
    return provider_cls()
