from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, ClassVar, Dict, Optional, Tuple, Type

from ..utils.time import isoformat, parse_isoformat, utc_now
from .text import BLACK, Color, Rect

Point = Tuple[float, float]


class AnnotationKind(str, enum.Enum):
    HIGHLIGHT = "highlight"
    NOTE = "note"
    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    ARROW = "arrow"
    INK = "ink"


@dataclass(frozen=True)
class AnnotationReply:
    text: str
    author: Optional[str] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "text": self.text, "author": self.author, "created_at": isoformat(self.created_at)}

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "AnnotationReply":
        return cls(
            id=payload["id"],
            text=payload["text"],
            author=payload.get("author"),
            created_at=parse_isoformat(payload["created_at"]),
        )


@dataclass(frozen=True, kw_only=True)
class Annotation:
    """Common fields shared by every annotation variant.

    Geometry is expressed in PDF content space (origin bottom-left).
    """

    kind: ClassVar[AnnotationKind]

    page: int
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    color: Color = BLACK
    opacity: float = 1.0
    author: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    modified_at: datetime = field(default_factory=utc_now)
    hidden: bool = False
    locked: bool = False
    replies: Tuple[AnnotationReply, ...] = ()

    @property
    def bounds(self) -> Rect:
        raise NotImplementedError

    @property
    def searchable_text(self) -> str:
        return ""

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"kind": self.kind.value}
        for item in fields(self):
            value = getattr(self, item.name)
            if item.name == "replies":
                value = [reply.to_dict() for reply in value]
            elif isinstance(value, datetime):
                value = isoformat(value)
            elif isinstance(value, tuple):
                value = [list(entry) if isinstance(entry, tuple) else entry for entry in value]
            payload[item.name] = value
        return payload


@dataclass(frozen=True, kw_only=True)
class HighlightAnnotation(Annotation):
    kind: ClassVar[AnnotationKind] = AnnotationKind.HIGHLIGHT

    rect: Rect
    color: Optional[Color] = None  # type: ignore[assignment]
    opacity: Optional[float] = None  # type: ignore[assignment]

    @property
    def bounds(self) -> Rect:
        return _normalize_rect(self.rect)


@dataclass(frozen=True, kw_only=True)
class NoteAnnotation(Annotation):
    kind: ClassVar[AnnotationKind] = AnnotationKind.NOTE

    x: float
    y: float
    text: str
    font_size: float = 12.0
    background: Color = (1.0, 1.0, 0.8)
    border: Color = (0.8, 0.8, 0.0)

    @property
    def bounds(self) -> Rect:
        # Approximate; the baker sizes the box from font metrics
        width = max(len(self.text), 1) * self.font_size * 0.5
        return (self.x, self.y - 0.25 * self.font_size, self.x + width, self.y + self.font_size)

    @property
    def searchable_text(self) -> str:
        return self.text


@dataclass(frozen=True, kw_only=True)
class RectangleAnnotation(Annotation):
    kind: ClassVar[AnnotationKind] = AnnotationKind.RECTANGLE

    rect: Rect
    border_width: float = 1.0
    fill: Optional[Color] = None

    @property
    def bounds(self) -> Rect:
        return _normalize_rect(self.rect)


@dataclass(frozen=True, kw_only=True)
class CircleAnnotation(Annotation):
    kind: ClassVar[AnnotationKind] = AnnotationKind.CIRCLE

    rect: Rect
    border_width: float = 1.0
    fill: Optional[Color] = None

    @property
    def bounds(self) -> Rect:
        return _normalize_rect(self.rect)


@dataclass(frozen=True, kw_only=True)
class ArrowAnnotation(Annotation):
    kind: ClassVar[AnnotationKind] = AnnotationKind.ARROW

    start: Point
    end: Point
    border_width: float = 2.0

    @property
    def bounds(self) -> Rect:
        return _normalize_rect((self.start[0], self.start[1], self.end[0], self.end[1]))


@dataclass(frozen=True, kw_only=True)
class InkAnnotation(Annotation):
    kind: ClassVar[AnnotationKind] = AnnotationKind.INK

    points: Tuple[Point, ...]
    border_width: float = 2.0

    @property
    def bounds(self) -> Rect:
        if not self.points:
            return (0.0, 0.0, 0.0, 0.0)
        xs = [p[0] for p in self.points]
        ys = [p[1] for p in self.points]
        return (min(xs), min(ys), max(xs), max(ys))


ANNOTATION_TYPES: Dict[AnnotationKind, Type[Annotation]] = {
    AnnotationKind.HIGHLIGHT: HighlightAnnotation,
    AnnotationKind.NOTE: NoteAnnotation,
    AnnotationKind.RECTANGLE: RectangleAnnotation,
    AnnotationKind.CIRCLE: CircleAnnotation,
    AnnotationKind.ARROW: ArrowAnnotation,
    AnnotationKind.INK: InkAnnotation,
}

_POINT_FIELDS = {"start", "end"}
_COLOR_FIELDS = {"color", "background", "border", "fill"}


def annotation_from_dict(payload: Dict[str, Any]) -> Annotation:
    """Rebuild an annotation from :meth:`Annotation.to_dict` output."""
    try:
        kind = AnnotationKind(payload["kind"])
    except (KeyError, ValueError) as exc:
        raise ValueError(f"Unknown annotation kind: {payload.get('kind')!r}") from exc

    cls = ANNOTATION_TYPES[kind]
    accepted = {item.name for item in fields(cls)}
    values: Dict[str, Any] = {}
    for name, value in payload.items():
        if name not in accepted:
            continue
        if name in {"created_at", "modified_at"}:
            value = parse_isoformat(value)
        elif name == "rect" or name in _POINT_FIELDS or (name in _COLOR_FIELDS and value is not None):
            value = tuple(float(v) for v in value)
        elif name == "replies":
            value = tuple(AnnotationReply.from_dict(reply) for reply in value)
        elif name == "points":
            value = tuple((float(p[0]), float(p[1])) for p in value)
        values[name] = value
    return cls(**values)


def _normalize_rect(rect: Rect) -> Rect:
    x0, y0, x1, y1 = rect
    return (min(x0, x1), min(y0, y1), max(x0, x1), max(y0, y1))
