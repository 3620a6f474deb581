from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

from ...config import get_config
from ...models.document import RawDocument
from ...models.results import MutationWarning, RenderResult
from ...models.text import DESCENT_FACTOR, Rect, Replacement, TextBox, TextMove, TextRun
from ...utils.exceptions import FontResolutionFailure, PageOutOfRange, UnsupportedEncoding
from ...utils.logging import get_logger
from ..geometry.coordinate_transform import Point
from ..layout.font_resources import resolve_standard_font
from ..layout.metrics import MetricsProvider, get_metrics_provider
from ..layout.text_extractor import TextLayoutExtractor
from .background_sampler import BackgroundSampler
from .content_writer import DocumentEditor, Operation, rect_fill_ops, text_ops

# Origin tolerance when matching a replacement to an extracted run
ORIGIN_TOLERANCE = 0.5

ITEM_ERRORS = (FontResolutionFailure, UnsupportedEncoding, PageOutOfRange)


class ReplacementEngine:
    """Substitutes text by covering the old run and drawing the new text over it.

    Original operators are never rewritten. Each replacement appends a covering
    rectangle painted with the sampled page background followed by a fresh
    text-showing operator in one of the standard fonts. Items fail individually:
    a replacement whose font or text cannot be written is reported as a warning
    and the rest of the batch is still applied.
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

    def apply(self, document: RawDocument, replacements: Sequence[Replacement]) -> RenderResult:
        result = self._cover_and_redraw(document, [(item, None) for item in replacements])
        self.logger.info(
            "Replacements applied",
            requested=len(replacements),
            applied=len(result.applied),
            skipped=len(result.warnings),
        )
        return result

    def move(self, document: RawDocument, moves: Sequence[TextMove]) -> RenderResult:
        """Cover each text at its current origin and redraw it at the moved origin."""
        result = self._cover_and_redraw(
            document,
            [(item.as_replacement(), None if item.is_noop else item.target) for item in moves],
        )
        self.logger.info("Text moved", requested=len(moves), applied=len(result.applied), skipped=len(result.warnings))
        return result

    def insert(self, document: RawDocument, text_boxes: Sequence[TextBox]) -> RenderResult:
        """Draw new text boxes without covering anything."""
        editor = DocumentEditor(document)
        warnings: List[MutationWarning] = []
        applied: List[str] = []

        for box in text_boxes:
            try:
                page_editor = editor.page(box.page)
                base_font = self._resolve_font(box.font_name)
                operations = text_ops(
                    page_editor.ensure_font(base_font),
                    box.font_size,
                    box.x,
                    box.y,
                    box.text,
                    box.color,
                    base_font,
                )
            except ITEM_ERRORS as exc:
                warnings.append(self._skip(box.id, box.page, exc))
                continue
            page_editor.extend([([], b"q"), *operations, ([], b"Q")])
            applied.append(box.id)

        return RenderResult(document=editor.serialize(), warnings=tuple(warnings), applied=tuple(applied))

    def replace_all(self, document: RawDocument, search: str, replacement: str) -> RenderResult:
        return self.apply(document, self.plan_replace_all(document, search, replacement))

    def plan_replace_all(self, document: RawDocument, search: str, replacement: str) -> List[Replacement]:
        """One replacement per visible run containing ``search``, across all pages."""
        if not search:
            return []
        planned: List[Replacement] = []
        for page in range(document.page_count):
            for run in self.extractor.extract_text_runs(document, page):
                if search in run.text:
                    planned.append(Replacement.from_run(run, run.text.replace(search, replacement)))
        self.logger.debug("Planned replace-all", search=search, matches=len(planned))
        return planned

    def _cover_and_redraw(
        self,
        document: RawDocument,
        items: Sequence[Tuple[Replacement, Optional[Point]]],
    ) -> RenderResult:
        editor = DocumentEditor(document)
        warnings: List[MutationWarning] = []
        applied: List[str] = []
        runs_by_page: Dict[int, List[TextRun]] = {}

        with BackgroundSampler(document, enabled=self.config.SAMPLE_BACKGROUND) as sampler:
            for item, target in items:
                try:
                    operations = self._replacement_ops(document, editor, sampler, item, runs_by_page, target)
                except ITEM_ERRORS as exc:
                    warnings.append(self._skip(item.id, item.page, exc))
                    continue
                if operations:
                    editor.page(item.page).extend(operations)
                applied.append(item.id)

        return RenderResult(document=editor.serialize(), warnings=tuple(warnings), applied=tuple(applied))

    def cover_rect(self, item: Replacement, old_width: float, new_width: float) -> Rect:
        margin = float(self.config.COVER_MARGIN)
        x0 = item.x - margin / 2.0
        y0 = item.y - DESCENT_FACTOR * item.font_size
        return (
            x0,
            y0,
            x0 + max(old_width, new_width) + margin,
            y0 + item.font_size * float(self.config.LINE_HEIGHT_FACTOR),
        )

    def _replacement_ops(
        self,
        document: RawDocument,
        editor: DocumentEditor,
        sampler: BackgroundSampler,
        item: Replacement,
        runs_by_page: Dict[int, List[TextRun]],
        target: Optional[Point] = None,
    ) -> List[Operation]:
        """Cover the old text at its origin and draw the new text at ``target`` (default: the same origin)."""
        page_editor = editor.page(item.page)
        base_font = self._resolve_font(item.font_name)
        if item.is_noop and target is None:
            self.logger.debug("Skipping no-op replacement", replacement_id=item.id)
            return []

        text_operations = text_ops(
            page_editor.ensure_font(base_font),
            item.font_size,
            *(target or (item.x, item.y)),
            item.new_text,
            item.color,
            base_font,
        )

        old_width = self.metrics.width(item.old_text, base_font, item.font_size)
        run = self._matching_run(document, item, runs_by_page)
        if run is not None:
            old_width = max(old_width, run.estimated_width)
        new_width = 0.0 if target is not None else self.metrics.width(item.new_text, base_font, item.font_size)

        rect = self.cover_rect(item, old_width, new_width)
        background = sampler.sample(item.page, rect)
        return [([], b"q"), *rect_fill_ops(rect, background), *text_operations, ([], b"Q")]

    def _matching_run(
        self,
        document: RawDocument,
        item: Replacement,
        runs_by_page: Dict[int, List[TextRun]],
    ) -> Optional[TextRun]:
        if item.page not in runs_by_page:
            runs_by_page[item.page] = self.extractor.extract_text_runs(document, item.page)
        candidates = [
            run
            for run in runs_by_page[item.page]
            if abs(run.origin_x - item.x) <= ORIGIN_TOLERANCE and abs(run.origin_y - item.y) <= ORIGIN_TOLERANCE
        ]
        for run in candidates:
            if run.text == item.old_text:
                return run
        return candidates[0] if candidates else None

    def _resolve_font(self, font_name: Optional[str]) -> str:
        return resolve_standard_font(font_name or self.config.DEFAULT_FONT)

    def _skip(self, item_id: str, page: int, exc: Exception) -> MutationWarning:
        self.logger.warning("Skipping item", item_id=item_id, page=page, error=str(exc))
        return MutationWarning.from_exception(item_id, exc)
