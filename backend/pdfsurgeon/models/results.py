from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..utils.exceptions import MutationError
from .document import OwnedBuffer, RawDocument


@dataclass(frozen=True)
class MutationWarning:
    """A per-item failure reported alongside a best-effort result."""

    item_id: str
    message: str
    error: str

    @classmethod
    def from_exception(cls, item_id: str, exc: Exception) -> "MutationWarning":
        return cls(item_id=item_id, message=str(exc), error=exc.__class__.__name__)


@dataclass(frozen=True)
class RenderResult:
    document: RawDocument
    warnings: Tuple[MutationWarning, ...] = ()
    applied: Tuple[str, ...] = ()


@dataclass(frozen=True)
class MutationResult:
    buffer: OwnedBuffer
    document: Optional[RawDocument] = None
    warnings: Tuple[MutationWarning, ...] = ()
    applied: Tuple[str, ...] = ()
    error: Optional[MutationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def summary(self) -> Dict[str, Any]:
        """User-facing counts, e.g. for "2 of 5 replacements could not be applied"."""
        failed: List[str] = [warning.item_id for warning in self.warnings]
        return {
            "ok": self.ok,
            "applied": len(self.applied),
            "failed": len(failed),
            "failed_items": failed,
            "error": str(self.error) if self.error else None,
            "size_bytes": len(self.buffer),
        }


@dataclass
class PageLayout:
    page: int
    width: float
    height: float
    runs: List[Any] = field(default_factory=list)
    warnings: List[MutationWarning] = field(default_factory=list)
