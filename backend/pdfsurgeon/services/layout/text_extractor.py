from __future__ import annotations

import math
from typing import Any, Dict, List, Optional, Set

from PyPDF2.generic import ContentStream

from ...config import get_config
from ...models.document import RawDocument
from ...models.results import MutationWarning, PageLayout
from ...models.text import FontRef, TextRun
from ...utils.exceptions import UnsupportedEncoding
from ...utils.logging import get_logger
from .content_state_tracker import (
    ContentStateTracker,
    FillRecord,
    OperatorRecord,
    TextGraphicsState,
    apply_matrix,
)
from .font_resources import FontDecoder, load_page_fonts
from .metrics import MetricsProvider, get_metrics_provider

# Fill alpha at or above which a rectangle hides what is beneath it
OPAQUE_ALPHA = 0.99
OCCLUSION_TOLERANCE = 0.5
# Glyph box height used for occlusion, as a fraction of the font size
GLYPH_BOX_HEIGHT = 0.7


class TextLayoutExtractor:
    """Walks page content streams and reports positioned text runs."""

    def __init__(self, metrics: Optional[MetricsProvider] = None, config: Any = None) -> None:
        self.config = config or get_config()
        self.metrics = metrics or get_metrics_provider(self.config)
        self.logger = get_logger(self.__class__.__name__)

    def extract_page(self, document: RawDocument, page: int, *, include_occluded: bool = False) -> PageLayout:
        width, height = document.page_size(page)
        layout = PageLayout(page=page, width=width, height=height)

        reader = document.open_reader()
        pdf_page = reader.pages[page]
        fonts = load_page_fonts(pdf_page)
        tracker = self._walk(reader, pdf_page, self._make_resolver(fonts))

        runs: List[TextRun] = []
        for record in tracker.text_records():
            if record.decode_error is not None:
                self.logger.warning(
                    "Skipping text run with unsupported encoding",
                    page=page,
                    operator_index=record.index,
                    font=record.font_resource,
                    error=str(record.decode_error),
                )
                layout.warnings.append(
                    MutationWarning.from_exception(f"page-{page}-op-{record.index}", record.decode_error)
                )
                continue
            if not record.text or not record.text.strip():
                continue
            run = self._build_run(record, page, tracker.fills, fonts)
            if run.occluded and not include_occluded:
                continue
            runs.append(run)

        layout.runs = runs
        self.logger.debug(
            "Extracted page layout",
            page=page,
            runs=len(runs),
            skipped=len(layout.warnings),
        )
        return layout

    def extract_text_runs(
        self,
        document: RawDocument,
        page: int,
        *,
        include_occluded: bool = False,
    ) -> List[TextRun]:
        return self.extract_page(document, page, include_occluded=include_occluded).runs

    def annotation_ids(self, document: RawDocument, page: Optional[int] = None) -> Set[str]:
        """Ids of annotations already baked into ``page``, or into any page when ``page`` is None."""
        if page is None:
            pages = range(document.page_count)
        else:
            document.check_page(page)
            pages = range(page, page + 1)
        reader = document.open_reader()
        ids: Set[str] = set()
        for index in pages:
            ids.update(self._walk(reader, reader.pages[index], None).marked_ids)
        return ids

    def _walk(self, reader: Any, pdf_page: Any, resolver: Any) -> ContentStateTracker:
        tracker = ContentStateTracker(advance_resolver=resolver, ext_gstate_alpha=_ext_gstate_alpha(pdf_page))
        contents = pdf_page.get_contents()
        if contents is None:
            return tracker
        content = ContentStream(contents, reader)
        tracker.walk(content.operations)
        return tracker

    def _make_resolver(self, fonts: Dict[str, FontDecoder]):
        def resolve(record: OperatorRecord, state: TextGraphicsState) -> Optional[float]:
            decoder = fonts.get(record.font_resource or "")
            if decoder is None:
                decoder = FontDecoder(ref=FontRef(resource=record.font_resource))
            scale = state.horizontal_scaling / 100.0 if state.horizontal_scaling else 1.0
            single_byte = decoder.ref.subtype != "Type0"
            family = decoder.ref.family

            pieces: List[str] = []
            width = 0.0
            try:
                for item in record.text_items or []:
                    if isinstance(item, bytes):
                        piece = decoder.decode(item)
                        pieces.append(piece)
                        width += self.metrics.width(piece, family, state.font_size) * scale
                        width += state.char_spacing * len(piece) * scale
                        if single_byte:
                            width += state.word_spacing * item.count(b" ") * scale
                    else:
                        width -= (item / 1000.0) * state.font_size * scale
            except UnsupportedEncoding as exc:
                record.decode_error = exc
                return None

            record.text = "".join(pieces)
            return width

        return resolve

    def _build_run(
        self,
        record: OperatorRecord,
        page: int,
        fills: List[FillRecord],
        fonts: Dict[str, FontDecoder],
    ) -> TextRun:
        matrix = record.rendering_matrix
        origin_x, origin_y = apply_matrix(matrix, 0.0, record.text_rise)
        horizontal = math.hypot(matrix[0], matrix[1]) or 1.0
        vertical = math.hypot(matrix[2], matrix[3]) or 1.0
        font_size = record.font_size * vertical
        width = max((record.advance or 0.0) * horizontal, 0.0)

        return TextRun(
            text=record.text or "",
            page=page,
            origin_x=origin_x,
            origin_y=origin_y,
            font_size=font_size,
            estimated_width=width,
            font_ref=_font_ref(record, fonts),
            operator_index=record.index,
            occluded=_is_occluded(record.index, origin_x, origin_y, width, font_size, fills),
        )


def _font_ref(record: OperatorRecord, fonts: Dict[str, FontDecoder]) -> FontRef:
    decoder = fonts.get(record.font_resource or "")
    return decoder.ref if decoder is not None else FontRef(resource=record.font_resource)


def _is_occluded(
    index: int,
    x: float,
    y: float,
    width: float,
    font_size: float,
    fills: List[FillRecord],
) -> bool:
    box = (x, y, x + width, y + GLYPH_BOX_HEIGHT * font_size)
    for fill in fills:
        if fill.index <= index or fill.alpha < OPAQUE_ALPHA:
            continue
        fx0, fy0, fx1, fy1 = fill.rect
        if (
            box[0] >= fx0 - OCCLUSION_TOLERANCE
            and box[1] >= fy0 - OCCLUSION_TOLERANCE
            and box[2] <= fx1 + OCCLUSION_TOLERANCE
            and box[3] <= fy1 + OCCLUSION_TOLERANCE
        ):
            return True
    return False


def _ext_gstate_alpha(pdf_page: Any) -> Dict[str, float]:
    alphas: Dict[str, float] = {}
    resources = pdf_page.get("/Resources")
    if hasattr(resources, "get_object"):
        resources = resources.get_object()
    if not resources:
        return alphas
    states = resources.get("/ExtGState")
    if hasattr(states, "get_object"):
        states = states.get_object()
    if not states:
        return alphas
    for name, state in states.items():
        if hasattr(state, "get_object"):
            state = state.get_object()
        value = state.get("/ca") if hasattr(state, "get") else None
        if value is not None:
            alphas[str(name)] = float(value)
    return alphas


_default_extractor: Optional[TextLayoutExtractor] = None


def get_extractor() -> TextLayoutExtractor:
    global _default_extractor
    if _default_extractor is None:
        _default_extractor = TextLayoutExtractor()
    return _default_extractor


def extract_page(document: RawDocument, page: int, *, include_occluded: bool = False) -> PageLayout:
    return get_extractor().extract_page(document, page, include_occluded=include_occluded)


def extract_text_runs(document: RawDocument, page: int, *, include_occluded: bool = False) -> List[TextRun]:
    return get_extractor().extract_text_runs(document, page, include_occluded=include_occluded)
