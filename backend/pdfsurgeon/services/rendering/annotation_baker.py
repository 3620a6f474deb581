from __future__ import annotations

import math
from typing import Any, Callable, Dict, List, Optional, Sequence, Set

from PyPDF2.generic import NameObject

from ...config import get_config
from ...models.annotations import (
    Annotation,
    AnnotationKind,
    ArrowAnnotation,
    CircleAnnotation,
    HighlightAnnotation,
    InkAnnotation,
    NoteAnnotation,
    RectangleAnnotation,
)
from ...models.document import RawDocument
from ...models.results import MutationWarning, RenderResult
from ...models.text import DESCENT_FACTOR
from ...utils.exceptions import FontResolutionFailure, InvalidAnnotation, PageOutOfRange, UnsupportedEncoding
from ...utils.logging import get_logger
from ..layout.font_resources import resolve_standard_font
from ..layout.metrics import MetricsProvider, get_metrics_provider
from ..layout.text_extractor import TextLayoutExtractor
from .content_writer import (
    DocumentEditor,
    Operation,
    PageEditor,
    fill_color_op,
    line_style_ops,
    line_width_op,
    marked_ops,
    pdf_number,
    rect_fill_ops,
    stroke_color_op,
    text_ops,
)

ARROW_HEAD_LENGTH = 10.0
ARROW_HEAD_ANGLE = math.pi / 6
# Control-point distance for a quarter-circle Bezier
KAPPA = 0.5523
NOTE_PADDING = 4.0

Lowering = Callable[[Any, PageEditor], List[Operation]]


class AnnotationBaker:
    """Draws annotation records permanently into page content.

    Every annotation is wrapped in an ``/EditorAnnotation`` marked-content
    sequence carrying its id, so ids baked by an earlier call are detected from
    the document bytes and never drawn twice.
    """

    def __init__(
        self,
        config: Any = None,
        metrics: Optional[MetricsProvider] = None,
        extractor: Optional[TextLayoutExtractor] = None,
    ) -> None:
        self.config = config or get_config()
        self.metrics = metrics or get_metrics_provider(self.config)
        self.extractor = extractor or TextLayoutExtractor(self.metrics, self.config)
        self.logger = get_logger(self.__class__.__name__)
        self._lowerings: Dict[AnnotationKind, Lowering] = {
            AnnotationKind.HIGHLIGHT: self._lower_highlight,
            AnnotationKind.NOTE: self._lower_note,
            AnnotationKind.RECTANGLE: self._lower_rectangle,
            AnnotationKind.CIRCLE: self._lower_circle,
            AnnotationKind.ARROW: self._lower_arrow,
            AnnotationKind.INK: self._lower_ink,
        }

    def bake(self, document: RawDocument, annotations: Sequence[Annotation]) -> RenderResult:
        editor = DocumentEditor(document)
        warnings: List[MutationWarning] = []
        applied: List[str] = []
        seen: Set[str] = set()
        baked: Optional[Set[str]] = None

        for annotation in annotations:
            if annotation.hidden:
                self.logger.debug("Skipping hidden annotation", annotation_id=annotation.id)
                continue
            if annotation.id in seen:
                warnings.append(self._duplicate(annotation, "repeated in this batch"))
                continue
            seen.add(annotation.id)

            try:
                document.check_page(annotation.page)
                if baked is None:
                    baked = self.extractor.annotation_ids(document)
                if annotation.id in baked:
                    warnings.append(self._duplicate(annotation, "already baked into the document"))
                    continue

                page_editor = editor.page(annotation.page)
                body = self._lowerings[annotation.kind](annotation, page_editor)
            except (PageOutOfRange, FontResolutionFailure, UnsupportedEncoding, InvalidAnnotation) as exc:
                self.logger.warning(
                    "Skipping annotation",
                    annotation_id=annotation.id,
                    page=annotation.page,
                    error=str(exc),
                )
                warnings.append(MutationWarning.from_exception(annotation.id, exc))
                continue

            page_editor.extend(marked_ops(annotation.id, body))
            applied.append(annotation.id)

        result = RenderResult(document=editor.serialize(), warnings=tuple(warnings), applied=tuple(applied))
        self.logger.info(
            "Annotations baked",
            requested=len(annotations),
            baked=len(applied),
            skipped=len(warnings),
        )
        return result

    def _duplicate(self, annotation: Annotation, reason: str) -> MutationWarning:
        self.logger.warning("Skipping duplicate annotation", annotation_id=annotation.id, reason=reason)
        return MutationWarning(
            item_id=annotation.id,
            message=f"Annotation {annotation.id} {reason}",
            error="DuplicateAnnotation",
        )

    def _lower_highlight(self, annotation: HighlightAnnotation, page: PageEditor) -> List[Operation]:
        color = annotation.color if annotation.color is not None else self.config.HIGHLIGHT_COLOR
        opacity = annotation.opacity if annotation.opacity is not None else self.config.HIGHLIGHT_OPACITY
        state = page.ensure_alpha(opacity, "/Multiply")
        return [([NameObject(state)], b"gs"), *rect_fill_ops(annotation.bounds, color)]

    def _lower_note(self, annotation: NoteAnnotation, page: PageEditor) -> List[Operation]:
        base_font = resolve_standard_font(self.config.DEFAULT_FONT)
        text = text_ops(
            page.ensure_font(base_font),
            annotation.font_size,
            annotation.x,
            annotation.y,
            annotation.text,
            annotation.color,
            base_font,
        )
        width = self.metrics.width(annotation.text, base_font, annotation.font_size)
        x0 = annotation.x - NOTE_PADDING / 2.0
        y0 = annotation.y - DESCENT_FACTOR * annotation.font_size
        x1 = x0 + width + NOTE_PADDING
        y1 = y0 + annotation.font_size * float(self.config.LINE_HEIGHT_FACTOR)
        return [
            *rect_fill_ops((x0, y0, x1, y1), annotation.background),
            stroke_color_op(annotation.border),
            line_width_op(0.5),
            ([pdf_number(x0), pdf_number(y0), pdf_number(x1 - x0), pdf_number(y1 - y0)], b"re"),
            ([], b"S"),
            *text,
        ]

    def _lower_rectangle(self, annotation: RectangleAnnotation, page: PageEditor) -> List[Operation]:
        x0, y0, x1, y1 = annotation.bounds
        path = [([pdf_number(x0), pdf_number(y0), pdf_number(x1 - x0), pdf_number(y1 - y0)], b"re")]
        return self._shape(annotation, page, path)

    def _lower_circle(self, annotation: CircleAnnotation, page: PageEditor) -> List[Operation]:
        x0, y0, x1, y1 = annotation.bounds
        cx, cy = (x0 + x1) / 2.0, (y0 + y1) / 2.0
        rx, ry = (x1 - x0) / 2.0, (y1 - y0) / 2.0
        ox, oy = rx * KAPPA, ry * KAPPA
        path: List[Operation] = [
            ([pdf_number(cx + rx), pdf_number(cy)], b"m"),
            _curve(cx + rx, cy + oy, cx + ox, cy + ry, cx, cy + ry),
            _curve(cx - ox, cy + ry, cx - rx, cy + oy, cx - rx, cy),
            _curve(cx - rx, cy - oy, cx - ox, cy - ry, cx, cy - ry),
            _curve(cx + ox, cy - ry, cx + rx, cy - oy, cx + rx, cy),
            ([], b"h"),
        ]
        return self._shape(annotation, page, path)

    def _shape(self, annotation: Any, page: PageEditor, path: List[Operation]) -> List[Operation]:
        operations: List[Operation] = []
        if annotation.fill is not None:
            state = page.ensure_alpha(annotation.opacity * 0.5)
            operations.extend([([NameObject(state)], b"gs"), fill_color_op(annotation.fill), *path, ([], b"f")])
        if annotation.opacity < 1.0:
            operations.append(([NameObject(page.ensure_alpha(annotation.opacity))], b"gs"))
        operations.extend(
            [stroke_color_op(annotation.color), line_width_op(annotation.border_width), *path, ([], b"S")]
        )
        return operations

    def _lower_arrow(self, annotation: ArrowAnnotation, page: PageEditor) -> List[Operation]:
        (sx, sy), (ex, ey) = annotation.start, annotation.end
        angle = math.atan2(ey - sy, ex - sx)
        heads = [
            (
                ex - ARROW_HEAD_LENGTH * math.cos(angle + offset),
                ey - ARROW_HEAD_LENGTH * math.sin(angle + offset),
            )
            for offset in (ARROW_HEAD_ANGLE, -ARROW_HEAD_ANGLE)
        ]
        operations = self._stroke_prefix(annotation, page)
        operations.extend(
            [
                ([pdf_number(sx), pdf_number(sy)], b"m"),
                ([pdf_number(ex), pdf_number(ey)], b"l"),
                ([], b"S"),
            ]
        )
        for hx, hy in heads:
            operations.extend(
                [
                    ([pdf_number(ex), pdf_number(ey)], b"m"),
                    ([pdf_number(hx), pdf_number(hy)], b"l"),
                    ([], b"S"),
                ]
            )
        return operations

    def _lower_ink(self, annotation: InkAnnotation, page: PageEditor) -> List[Operation]:
        if len(annotation.points) < 2:
            raise InvalidAnnotation(annotation.id, "ink needs at least two points")
        operations = self._stroke_prefix(annotation, page)
        operations.extend(line_style_ops(1, 1))
        first, *rest = annotation.points
        operations.append(([pdf_number(first[0]), pdf_number(first[1])], b"m"))
        for x, y in rest:
            operations.append(([pdf_number(x), pdf_number(y)], b"l"))
        operations.append(([], b"S"))
        return operations

    def _stroke_prefix(self, annotation: Any, page: PageEditor) -> List[Operation]:
        operations: List[Operation] = []
        if annotation.opacity < 1.0:
            operations.append(([NameObject(page.ensure_alpha(annotation.opacity))], b"gs"))
        operations.extend([stroke_color_op(annotation.color), line_width_op(annotation.border_width)])
        return operations


def _curve(*coords: float) -> Operation:
    return ([pdf_number(value) for value in coords], b"c")
