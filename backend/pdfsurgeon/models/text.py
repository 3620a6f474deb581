from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Optional, Tuple

Color = Tuple[float, float, float]
Rect = Tuple[float, float, float, float]

BLACK: Color = (0.0, 0.0, 0.0)
WHITE: Color = (1.0, 1.0, 1.0)

# Vertical hit band around the baseline, in multiples of the font size
DESCENT_FACTOR = 0.25
ASCENT_FACTOR = 1.0


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class FontRef:
    resource: Optional[str]
    base_font: Optional[str] = None
    subtype: Optional[str] = None
    encoding: Optional[str] = None

    @property
    def family(self) -> str:
        """Base font name without a subset tag (``ABCDEF+Helvetica`` -> ``Helvetica``)."""
        name = (self.base_font or self.resource or "").lstrip("/")
        if len(name) > 7 and name[6] == "+":
            name = name[7:]
        return name


@dataclass(frozen=True)
class TextRun:
    """One text-showing operator, positioned in PDF content space."""

    text: str
    page: int
    origin_x: float
    origin_y: float
    font_size: float
    estimated_width: float
    font_ref: FontRef
    operator_index: int = -1
    occluded: bool = False

    @property
    def hit_rect(self) -> Rect:
        return (
            self.origin_x,
            self.origin_y - DESCENT_FACTOR * self.font_size,
            self.origin_x + self.estimated_width,
            self.origin_y + ASCENT_FACTOR * self.font_size,
        )

    @property
    def center(self) -> Tuple[float, float]:
        x0, y0, x1, y1 = self.hit_rect
        return ((x0 + x1) / 2.0, (y0 + y1) / 2.0)

    @property
    def area(self) -> float:
        x0, y0, x1, y1 = self.hit_rect
        return max(x1 - x0, 0.0) * max(y1 - y0, 0.0)


@dataclass(frozen=True)
class Replacement:
    page: int
    old_text: str
    new_text: str
    x: float
    y: float
    font_size: float
    color: Color = BLACK
    font_name: Optional[str] = None
    id: str = field(default_factory=_new_id)

    @classmethod
    def from_run(
        cls,
        run: TextRun,
        new_text: str,
        *,
        color: Color = BLACK,
        font_name: Optional[str] = None,
    ) -> "Replacement":
        from ..services.layout.font_resources import standard_font_for

        return cls(
            page=run.page,
            old_text=run.text,
            new_text=new_text,
            x=run.origin_x,
            y=run.origin_y,
            font_size=run.font_size,
            color=color,
            font_name=font_name or standard_font_for(run.font_ref.family),
        )

    @property
    def is_noop(self) -> bool:
        return self.old_text == self.new_text


@dataclass(frozen=True)
class TextBox:
    """New text drawn onto a page without covering anything."""

    page: int
    text: str
    x: float
    y: float
    font_size: float = 12.0
    color: Color = BLACK
    font_name: Optional[str] = None
    id: str = field(default_factory=_new_id)


@dataclass(frozen=True)
class TextMove:
    """Existing text covered at its origin and redrawn offset by ``(dx, dy)``."""

    page: int
    text: str
    x: float
    y: float
    font_size: float
    dx: float
    dy: float
    color: Color = BLACK
    font_name: Optional[str] = None
    id: str = field(default_factory=_new_id)

    @classmethod
    def from_run(
        cls,
        run: TextRun,
        dx: float,
        dy: float,
        *,
        color: Color = BLACK,
        font_name: Optional[str] = None,
    ) -> "TextMove":
        from ..services.layout.font_resources import standard_font_for

        return cls(
            page=run.page,
            text=run.text,
            x=run.origin_x,
            y=run.origin_y,
            font_size=run.font_size,
            dx=dx,
            dy=dy,
            color=color,
            font_name=font_name or standard_font_for(run.font_ref.family),
        )

    @property
    def target(self) -> Tuple[float, float]:
        return (self.x + self.dx, self.y + self.dy)

    @property
    def is_noop(self) -> bool:
        return self.dx == 0 and self.dy == 0

    def as_replacement(self) -> Replacement:
        return Replacement(
            page=self.page,
            old_text=self.text,
            new_text=self.text,
            x=self.x,
            y=self.y,
            font_size=self.font_size,
            color=self.color,
            font_name=self.font_name,
            id=self.id,
        )
