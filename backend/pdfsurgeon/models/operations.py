from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Tuple

from .annotations import Annotation
from .text import Replacement, TextBox, TextMove


@dataclass(frozen=True, kw_only=True)
class EditOperation:
    """Base of the closed set of mutations the document mutator accepts."""

    label: str = "edit"

    def describe(self) -> Dict[str, Any]:
        return {"type": self.__class__.__name__, "label": self.label}


@dataclass(frozen=True, kw_only=True)
class ReplaceText(EditOperation):
    replacements: Tuple[Replacement, ...] = ()
    label: str = "replace text"

    def describe(self) -> Dict[str, Any]:
        summary = super().describe()
        summary["replacements"] = [
            {"id": item.id, "page": item.page, "old_text": item.old_text, "new_text": item.new_text}
            for item in self.replacements
        ]
        return summary


@dataclass(frozen=True, kw_only=True)
class BakeAnnotations(EditOperation):
    annotations: Tuple[Annotation, ...] = ()
    label: str = "bake annotations"

    def describe(self) -> Dict[str, Any]:
        summary = super().describe()
        summary["annotations"] = [
            {"id": item.id, "kind": item.kind.value, "page": item.page} for item in self.annotations
        ]
        return summary


@dataclass(frozen=True, kw_only=True)
class InsertText(EditOperation):
    text_boxes: Tuple[TextBox, ...] = ()
    label: str = "insert text"

    def describe(self) -> Dict[str, Any]:
        summary = super().describe()
        summary["text_boxes"] = [
            {"id": box.id, "page": box.page, "text": box.text} for box in self.text_boxes
        ]
        return summary


@dataclass(frozen=True, kw_only=True)
class ReplaceAll(EditOperation):
    search: str = ""
    replacement: str = ""
    label: str = "replace all"

    def describe(self) -> Dict[str, Any]:
        summary = super().describe()
        summary.update({"search": self.search, "replacement": self.replacement})
        return summary


@dataclass(frozen=True, kw_only=True)
class MoveText(EditOperation):
    moves: Tuple[TextMove, ...] = ()
    label: str = "move text"

    def describe(self) -> Dict[str, Any]:
        summary = super().describe()
        summary["moves"] = [
            {"id": item.id, "page": item.page, "text": item.text, "dx": item.dx, "dy": item.dy}
            for item in self.moves
        ]
        return summary


@dataclass(frozen=True, kw_only=True)
class AnnotationChange(EditOperation):
    """Session-side change to the pending annotation list; never sent to the mutator."""

    action: str = "update"
    annotation_ids: Tuple[str, ...] = ()
    label: str = "annotation change"

    def describe(self) -> Dict[str, Any]:
        summary = super().describe()
        summary.update({"action": self.action, "annotation_ids": list(self.annotation_ids)})
        return summary
