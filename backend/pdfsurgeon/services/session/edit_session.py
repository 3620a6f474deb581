from __future__ import annotations

from collections import Counter
from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ...config import get_config
from ...models.annotations import Annotation, AnnotationReply, annotation_from_dict
from ...models.document import RawDocument
from ...models.operations import (
    AnnotationChange,
    BakeAnnotations,
    EditOperation,
    InsertText,
    MoveText,
    ReplaceAll,
    ReplaceText,
)
from ...models.results import MutationResult, MutationWarning
from ...models.session import HistoryEntry, SessionSnapshot, SessionState
from ...models.text import BLACK, Color, Replacement, TextBox, TextMove, TextRun
from ...utils.exceptions import AnnotationLocked, SessionStateError
from ...utils.json import dumps, loads
from ...utils.logging import get_logger
from ...utils.time import utc_now
from ..buffers.buffer_guard import BufferLike, load_document
from ..geometry.coordinate_transform import Point
from ..geometry.hit_mapper import find_run_at_viewer_point
from ..layout.text_extractor import TextLayoutExtractor
from ..mutation.document_mutator import DocumentMutator

_OPEN_STATES = (SessionState.LOADED, SessionState.DIRTY)


class EditSession:
    """Undoable editing of one open document.

    Every successful change pushes a history entry holding the snapshots before
    and after it. A snapshot pairs the document with the annotation list, so
    undo and redo always restore the baked bytes and the pending annotations
    together. Undo and redo are no-ops at the ends of history; they never raise.
    """

    def __init__(
        self,
        config: Any = None,
        mutator: Optional[DocumentMutator] = None,
        extractor: Optional[TextLayoutExtractor] = None,
    ) -> None:
        self.config = config or get_config()
        self.mutator = mutator or DocumentMutator(self.config)
        self.extractor = extractor or self.mutator.replacement_engine.extractor
        self.history_limit = max(int(self.config.HISTORY_LIMIT), 1)
        self.logger = get_logger(self.__class__.__name__)
        self.state = SessionState.EMPTY
        self._release()

    def _release(self) -> None:
        self._current: Optional[SessionSnapshot] = None
        self.history: List[HistoryEntry] = []
        self.cursor = 0
        self._saved_cursor: Optional[int] = 0
        self._runs: Dict[Tuple[str, int], List[TextRun]] = {}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @property
    def current_document(self) -> Optional[RawDocument]:
        return self._current.document if self._current else None

    @property
    def annotations(self) -> Tuple[Annotation, ...]:
        return self._current.annotations if self._current else ()

    @property
    def baked_ids(self) -> frozenset:
        return self._current.baked_ids if self._current else frozenset()

    @property
    def is_dirty(self) -> bool:
        return self.state is SessionState.DIRTY

    def open(self, buffer: BufferLike) -> RawDocument:
        if self.state is not SessionState.EMPTY:
            raise SessionStateError(f"Cannot open a document in state {self.state.value}")
        document = load_document(buffer)
        self._current = SessionSnapshot(document=document)
        self.state = SessionState.LOADED
        self.logger.info("Document opened", pages=document.page_count, size_bytes=len(document.buffer))
        return document

    def save(self) -> bytes:
        """Mark the current document as saved and return its bytes."""
        snapshot = self._require_open()
        self._saved_cursor = self.cursor
        self.state = SessionState.LOADED
        return snapshot.document.data

    def close(self) -> None:
        self._release()
        self.state = SessionState.CLOSED
        self.logger.info("Session closed")

    # ------------------------------------------------------------------
    # Document mutations
    # ------------------------------------------------------------------
    def apply(self, operation: EditOperation) -> MutationResult:
        snapshot = self._require_open()
        result = self.mutator.mutate(snapshot.document.buffer, operation)
        if not result.ok:
            self.logger.warning("Mutation failed; session unchanged", operation=operation.label, error=str(result.error))
            return result

        document = result.document or snapshot.document
        if document.fingerprint == snapshot.document.fingerprint:
            return result

        baked_ids = snapshot.baked_ids
        if isinstance(operation, BakeAnnotations):
            baked_ids = baked_ids | frozenset(result.applied)
        after = SessionSnapshot(document=document, annotations=snapshot.annotations, baked_ids=baked_ids)
        self._push(operation, after, result.warnings)
        return result

    def replace_text(self, replacements: Iterable[Replacement]) -> MutationResult:
        return self.apply(ReplaceText(replacements=tuple(replacements)))

    def edit_run(
        self,
        run: TextRun,
        new_text: str,
        *,
        color: Color = BLACK,
        font_name: Optional[str] = None,
    ) -> MutationResult:
        return self.replace_text([Replacement.from_run(run, new_text, color=color, font_name=font_name)])

    def move_text(self, moves: Iterable[TextMove]) -> MutationResult:
        return self.apply(MoveText(moves=tuple(moves)))

    def move_run(self, run: TextRun, dx: float, dy: float) -> MutationResult:
        return self.move_text([TextMove.from_run(run, dx, dy)])

    def insert_text(self, text_boxes: Iterable[TextBox]) -> MutationResult:
        return self.apply(InsertText(text_boxes=tuple(text_boxes)))

    def replace_all(self, search: str, replacement: str) -> MutationResult:
        return self.apply(ReplaceAll(search=search, replacement=replacement))

    def bake_annotations(self) -> MutationResult:
        """Bake every visible annotation that is not yet part of the document."""
        snapshot = self._require_open()
        pending = tuple(
            annotation
            for annotation in snapshot.annotations
            if not annotation.hidden and annotation.id not in snapshot.baked_ids
        )
        if not pending:
            return MutationResult(buffer=snapshot.document.buffer, document=snapshot.document)
        return self.apply(BakeAnnotations(annotations=pending))

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------
    def can_undo(self) -> bool:
        return self.state in _OPEN_STATES and self.cursor > 0

    def can_redo(self) -> bool:
        return self.state in _OPEN_STATES and self.cursor < len(self.history)

    def undo(self) -> bool:
        if not self.can_undo():
            return False
        self.cursor -= 1
        self._current = self.history[self.cursor].before
        self._after_move()
        return True

    def redo(self) -> bool:
        if not self.can_redo():
            return False
        self._current = self.history[self.cursor].after
        self.cursor += 1
        self._after_move()
        return True

    def export_history(self) -> str:
        return dumps([entry.to_dict() for entry in self.history[: self.cursor]])

    def _after_move(self) -> None:
        self._runs.clear()
        self.state = SessionState.LOADED if self.cursor == self._saved_cursor else SessionState.DIRTY

    def _push(
        self,
        operation: EditOperation,
        after: SessionSnapshot,
        warnings: Sequence[MutationWarning] = (),
    ) -> None:
        before = self._current
        assert before is not None

        del self.history[self.cursor :]
        if self._saved_cursor is not None and self._saved_cursor > self.cursor:
            self._saved_cursor = None

        self.history.append(HistoryEntry(operation=operation, before=before, after=after, warnings=tuple(warnings)))
        self.cursor += 1

        overflow = len(self.history) - self.history_limit
        if overflow > 0:
            del self.history[:overflow]
            self.cursor -= overflow
            if self._saved_cursor is not None:
                self._saved_cursor -= overflow
                if self._saved_cursor < 0:
                    self._saved_cursor = None

        self._current = after
        self._runs.clear()
        self.state = SessionState.DIRTY
        self.logger.debug("History entry pushed", operation=operation.label, cursor=self.cursor, depth=len(self.history))

    # ------------------------------------------------------------------
    # Annotations
    # ------------------------------------------------------------------
    def add_annotation(self, annotation: Annotation) -> Annotation:
        snapshot = self._require_open()
        snapshot.document.check_page(annotation.page)
        if any(existing.id == annotation.id for existing in snapshot.annotations):
            raise ValueError(f"Annotation {annotation.id} already exists")
        self._change_annotations("add", (annotation.id,), snapshot.annotations + (annotation,))
        return annotation

    def update_annotation(self, annotation_id: str, **changes: Any) -> Annotation:
        snapshot = self._require_open()
        if "id" in changes or "kind" in changes:
            raise ValueError("Annotation id and kind cannot be changed")
        current = self._editable(annotation_id)
        if "page" in changes:
            snapshot.document.check_page(changes["page"])
        changes.setdefault("modified_at", utc_now())
        updated = replace(current, **changes)
        annotations = tuple(updated if item.id == annotation_id else item for item in snapshot.annotations)
        self._change_annotations("update", (annotation_id,), annotations)
        return updated

    def remove_annotation(self, annotation_id: str) -> bool:
        snapshot = self._require_open()
        if self.get_annotation(annotation_id) is None:
            return False
        self._editable(annotation_id)
        annotations = tuple(item for item in snapshot.annotations if item.id != annotation_id)
        self._change_annotations("remove", (annotation_id,), annotations)
        return True

    def remove_annotations(self, annotation_ids: Iterable[str]) -> int:
        """Remove several annotations in one undoable step.

        Missing, locked and baked ids are left alone; returns how many were removed.
        """
        wanted = set(annotation_ids)
        return self._remove_where("remove", lambda item: item.id in wanted)

    def clear_page_annotations(self, page: int) -> int:
        """Remove the unlocked, unbaked annotations on ``page``."""
        return self._remove_where("clear page", lambda item: item.page == page)

    def clear_all_annotations(self) -> int:
        return self._remove_where("clear all", lambda item: True)

    def add_reply(self, annotation_id: str, text: str, author: Optional[str] = None) -> AnnotationReply:
        """Attach a reply; replies are never drawn, so baked annotations accept them too."""
        snapshot = self._require_open()
        current = self.get_annotation(annotation_id)
        if current is None:
            raise KeyError(annotation_id)
        reply = AnnotationReply(text=text, author=author)
        updated = replace(current, replies=current.replies + (reply,), modified_at=utc_now())
        annotations = tuple(updated if item.id == annotation_id else item for item in snapshot.annotations)
        self._change_annotations("reply", (annotation_id,), annotations)
        return reply

    def set_locked(self, annotation_id: str, locked: bool) -> Annotation:
        return self._set_flag(annotation_id, locked=locked)

    def set_hidden(self, annotation_id: str, hidden: bool) -> Annotation:
        if annotation_id in self.baked_ids:
            raise AnnotationLocked(annotation_id, "already baked into the document")
        return self._set_flag(annotation_id, hidden=hidden)

    def get_annotation(self, annotation_id: str) -> Optional[Annotation]:
        for item in self.annotations:
            if item.id == annotation_id:
                return item
        return None

    def page_annotations(self, page: int) -> List[Annotation]:
        return [item for item in self.annotations if item.page == page]

    def search_annotations(self, query: str) -> List[Annotation]:
        needle = query.lower()
        return [
            item
            for item in self.annotations
            if needle in item.searchable_text.lower()
            or (item.author and needle in item.author.lower())
            or any(needle in reply.text.lower() for reply in item.replies)
        ]

    def annotation_statistics(self) -> Dict[str, Any]:
        annotations = self.annotations
        return {
            "total": len(annotations),
            "by_kind": dict(Counter(item.kind.value for item in annotations)),
            "by_page": dict(Counter(item.page for item in annotations)),
            "baked": sum(1 for item in annotations if item.id in self.baked_ids),
            "pending": sum(1 for item in annotations if item.id not in self.baked_ids and not item.hidden),
        }

    def export_annotations(self) -> str:
        payload = []
        for item in self.annotations:
            entry = item.to_dict()
            entry["baked"] = item.id in self.baked_ids
            payload.append(entry)
        return dumps(payload)

    def import_annotations(self, payload: str) -> int:
        """Replace the pending annotations with exported JSON; returns the number imported.

        Annotations already baked into the document are kept as they are, and
        records carrying a baked id are ignored.
        """
        snapshot = self._require_open()
        try:
            records = loads(payload)
            if not isinstance(records, list):
                raise ValueError("expected a list of annotations")
            parsed = [annotation_from_dict(record) for record in records]
        except (ValueError, TypeError, KeyError) as exc:
            raise ValueError(f"Invalid annotation data: {exc}") from exc

        counts = Counter(item.id for item in parsed)
        repeated = sorted(annotation_id for annotation_id, count in counts.items() if count > 1)
        if repeated:
            raise ValueError(f"Invalid annotation data: repeated ids {', '.join(repeated)}")
        for item in parsed:
            snapshot.document.check_page(item.page)

        kept = tuple(item for item in snapshot.annotations if item.id in snapshot.baked_ids)
        imported = tuple(item for item in parsed if item.id not in snapshot.baked_ids)
        if len(imported) < len(parsed):
            self.logger.warning("Ignoring imported annotations that are already baked", count=len(parsed) - len(imported))
        self._change_annotations("import", tuple(item.id for item in imported), kept + imported)
        return len(imported)

    def _set_flag(self, annotation_id: str, **flags: bool) -> Annotation:
        snapshot = self._require_open()
        current = self.get_annotation(annotation_id)
        if current is None:
            raise KeyError(annotation_id)
        updated = replace(current, modified_at=utc_now(), **flags)
        annotations = tuple(updated if item.id == annotation_id else item for item in snapshot.annotations)
        self._change_annotations("set " + ",".join(flags), (annotation_id,), annotations)
        return updated

    def _remove_where(self, action: str, predicate: Callable[[Annotation], bool]) -> int:
        snapshot = self._require_open()
        removed = tuple(
            item.id
            for item in snapshot.annotations
            if predicate(item) and not item.locked and item.id not in snapshot.baked_ids
        )
        if removed:
            annotations = tuple(item for item in snapshot.annotations if item.id not in removed)
            self._change_annotations(action, removed, annotations)
        return len(removed)

    def _editable(self, annotation_id: str) -> Annotation:
        current = self.get_annotation(annotation_id)
        if current is None:
            raise KeyError(annotation_id)
        if current.locked:
            raise AnnotationLocked(annotation_id, "annotation is locked")
        if annotation_id in self.baked_ids:
            raise AnnotationLocked(annotation_id, "already baked into the document")
        return current

    def _change_annotations(self, action: str, ids: Tuple[str, ...], annotations: Tuple[Annotation, ...]) -> None:
        snapshot = self._current
        assert snapshot is not None
        after = SessionSnapshot(document=snapshot.document, annotations=annotations, baked_ids=snapshot.baked_ids)
        self._push(AnnotationChange(action=action, annotation_ids=ids, label=f"{action} annotation"), after)

    # ------------------------------------------------------------------
    # Viewer helpers
    # ------------------------------------------------------------------
    def text_runs(self, page: int) -> List[TextRun]:
        snapshot = self._require_open()
        key = (snapshot.document.fingerprint, page)
        if key not in self._runs:
            self._runs[key] = self.extractor.extract_text_runs(snapshot.document, page)
        return self._runs[key]

    def find_run_at(self, viewer_point: Point, page: int, zoom: float) -> Optional[TextRun]:
        snapshot = self._require_open()
        height = snapshot.document.page_height(page)
        return find_run_at_viewer_point(viewer_point, height, zoom, self.text_runs(page))

    def _require_open(self) -> SessionSnapshot:
        if self.state not in _OPEN_STATES or self._current is None:
            raise SessionStateError(f"No open document (state {self.state.value})")
        return self._current
