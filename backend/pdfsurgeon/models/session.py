from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, FrozenSet, Tuple

from ..utils.time import isoformat, utc_now
from .annotations import Annotation
from .document import RawDocument
from .operations import EditOperation
from .results import MutationWarning


class SessionState(str, enum.Enum):
    EMPTY = "empty"
    LOADED = "loaded"
    DIRTY = "dirty"
    CLOSED = "closed"


@dataclass(frozen=True)
class SessionSnapshot:
    """Document bytes and annotation list captured together."""

    document: RawDocument
    annotations: Tuple[Annotation, ...] = ()
    baked_ids: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class HistoryEntry:
    operation: EditOperation
    before: SessionSnapshot
    after: SessionSnapshot
    warnings: Tuple[MutationWarning, ...] = ()
    created_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation": self.operation.describe(),
            "warnings": [warning.item_id for warning in self.warnings],
            "created_at": isoformat(self.created_at),
            "document_changed": self.before.document.fingerprint != self.after.document.fingerprint,
        }
