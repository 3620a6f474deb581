from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from PyPDF2.generic import (
    ArrayObject,
    ByteStringObject,
    DictionaryObject,
    NameObject,
    TextStringObject,
)

Matrix = Tuple[float, float, float, float, float, float]
Color = Tuple[float, float, float]
Rect = Tuple[float, float, float, float]

# Marked-content tag wrapped around every baked annotation
ANNOTATION_TAG = "/EditorAnnotation"


def _identity_matrix() -> Matrix:
    return (1.0, 0.0, 0.0, 1.0, 0.0, 0.0)


def _matrix_multiply(m1: Matrix, m2: Matrix) -> Matrix:
    a1, b1, c1, d1, e1, f1 = m1
    a2, b2, c2, d2, e2, f2 = m2
    return (
        a1 * a2 + c1 * b2,
        b1 * a2 + d1 * b2,
        a1 * c2 + c1 * d2,
        b1 * c2 + d1 * d2,
        a1 * e2 + c1 * f2 + e1,
        b1 * e2 + d1 * f2 + f1,
    )


def combine_with_ctm(ctm: Matrix, text_matrix: Matrix) -> Matrix:
    return _matrix_multiply(ctm, text_matrix)


def apply_matrix(matrix: Matrix, x: float, y: float) -> Tuple[float, float]:
    a, b, c, d, e, f = matrix
    return (a * x + c * y + e, b * x + d * y + f)


def _translation(dx: float, dy: float) -> Matrix:
    return (1.0, 0.0, 0.0, 1.0, dx, dy)


@dataclass
class TextGraphicsState:
    ctm: Matrix = field(default_factory=_identity_matrix)
    text_matrix: Matrix = field(default_factory=_identity_matrix)
    text_line_matrix: Matrix = field(default_factory=_identity_matrix)
    font_resource: Optional[str] = None
    font_size: float = 12.0
    char_spacing: float = 0.0
    word_spacing: float = 0.0
    horizontal_scaling: float = 100.0
    leading: float = 0.0
    text_rise: float = 0.0
    fill_color: Color = (0.0, 0.0, 0.0)
    fill_alpha: float = 1.0


TextItem = Union[bytes, float]


@dataclass
class OperatorRecord:
    index: int
    operator: bytes
    operands: Tuple[Any, ...]
    graphics_depth: int
    ctm: Matrix
    text_matrix: Matrix
    font_resource: Optional[str]
    font_size: float
    char_spacing: float
    word_spacing: float
    horizontal_scaling: float
    text_rise: float
    # Strings (raw bytes) and TJ adjustments in operand order
    text_items: Optional[List[TextItem]] = None
    text: Optional[str] = None
    decode_error: Optional[Exception] = None
    advance: Optional[float] = None

    @property
    def is_text_show(self) -> bool:
        return self.text_items is not None

    @property
    def rendering_matrix(self) -> Matrix:
        return combine_with_ctm(self.ctm, self.text_matrix)


@dataclass(frozen=True)
class FillRecord:
    """A filled rectangle in page space and the paint it was filled with."""

    index: int
    rect: Rect
    color: Color
    alpha: float


AdvanceResolver = Callable[[OperatorRecord, TextGraphicsState], Optional[float]]


class ContentStateTracker:
    """Capture operator-level text and fill state for a page content stream."""

    TEXT_SHOW_OPERATORS = {b"Tj", b"TJ", b"'", b'"'}
    FILL_OPERATORS = {b"f", b"F", b"f*", b"B", b"B*", b"b", b"b*"}
    PATH_END_OPERATORS = {b"n", b"S", b"s"}

    def __init__(
        self,
        advance_resolver: Optional[AdvanceResolver] = None,
        ext_gstate_alpha: Optional[Dict[str, float]] = None,
    ) -> None:
        self.records: List[OperatorRecord] = []
        self.fills: List[FillRecord] = []
        self.marked_ids: List[str] = []
        self.advance_resolver = advance_resolver
        self.ext_gstate_alpha = ext_gstate_alpha or {}

    def walk(self, content_operations: Sequence[Tuple[Sequence[Any], Union[bytes, str]]]) -> List[OperatorRecord]:
        state_stack: List[TextGraphicsState] = [TextGraphicsState()]
        graphics_depth = 0
        inside_text = False
        pending_rects: List[Rect] = []

        for index, (operands, operator) in enumerate(content_operations):
            op_bytes = operator if isinstance(operator, bytes) else operator.encode()
            current_state = state_stack[-1]

            # ' and " move to the next line before showing
            if op_bytes in {b"'", b'"'} and inside_text:
                if op_bytes == b'"' and len(operands) >= 3:
                    current_state.word_spacing = float(operands[0])
                    current_state.char_spacing = float(operands[1])
                self._next_line(current_state)

            record = OperatorRecord(
                index=index,
                operator=op_bytes,
                operands=tuple(operands),
                graphics_depth=graphics_depth,
                ctm=current_state.ctm,
                text_matrix=current_state.text_matrix,
                font_resource=current_state.font_resource,
                font_size=current_state.font_size,
                char_spacing=current_state.char_spacing,
                word_spacing=current_state.word_spacing,
                horizontal_scaling=current_state.horizontal_scaling,
                text_rise=current_state.text_rise,
            )

            if op_bytes in self.TEXT_SHOW_OPERATORS and inside_text:
                record.text_items = self._capture_text_items(operands, op_bytes)

            self.records.append(record)

            if op_bytes == b"q":
                graphics_depth += 1
                state_stack.append(replace(current_state))
            elif op_bytes == b"Q":
                if len(state_stack) > 1:
                    graphics_depth -= 1
                    state_stack.pop()
                    inside_text = False
            elif op_bytes == b"cm":
                current_state.ctm = _matrix_multiply(current_state.ctm, self._to_matrix(operands))
            elif op_bytes == b"BT":
                inside_text = True
                current_state.text_matrix = _identity_matrix()
                current_state.text_line_matrix = _identity_matrix()
            elif op_bytes == b"ET":
                inside_text = False
            elif op_bytes == b"Tf":
                if operands:
                    current_state.font_resource = str(operands[0])
                if len(operands) >= 2:
                    current_state.font_size = float(operands[1])
            elif op_bytes == b"Tc":
                current_state.char_spacing = float(operands[0]) if operands else 0.0
            elif op_bytes == b"Tw":
                current_state.word_spacing = float(operands[0]) if operands else 0.0
            elif op_bytes == b"Tz":
                current_state.horizontal_scaling = float(operands[0]) if operands else 100.0
            elif op_bytes == b"TL":
                current_state.leading = float(operands[0]) if operands else 0.0
            elif op_bytes == b"Ts":
                current_state.text_rise = float(operands[0]) if operands else 0.0
            elif op_bytes == b"Tm" and inside_text:
                matrix = self._to_matrix(operands)
                current_state.text_matrix = matrix
                current_state.text_line_matrix = matrix
            elif op_bytes in {b"Td", b"TD"} and inside_text:
                tx = float(operands[0]) if operands else 0.0
                ty = float(operands[1]) if len(operands) > 1 else 0.0
                current_state.text_matrix = _matrix_multiply(current_state.text_line_matrix, _translation(tx, ty))
                current_state.text_line_matrix = current_state.text_matrix
                if op_bytes == b"TD":
                    current_state.leading = -ty
            elif op_bytes == b"T*" and inside_text:
                self._next_line(current_state)
            elif op_bytes in {b"rg", b"g", b"k", b"sc", b"scn"}:
                color = self._to_rgb(operands)
                if color is not None:
                    current_state.fill_color = color
            elif op_bytes == b"gs" and operands:
                alpha = self.ext_gstate_alpha.get(str(operands[0]))
                if alpha is not None:
                    current_state.fill_alpha = alpha
            elif op_bytes == b"re" and len(operands) >= 4:
                pending_rects.append(self._transform_rect(current_state.ctm, operands))
            elif op_bytes in self.FILL_OPERATORS:
                for rect in pending_rects:
                    self.fills.append(
                        FillRecord(
                            index=index,
                            rect=rect,
                            color=current_state.fill_color,
                            alpha=current_state.fill_alpha,
                        )
                    )
                pending_rects = []
            elif op_bytes in self.PATH_END_OPERATORS:
                pending_rects = []
            elif op_bytes == b"BDC":
                marked = self._marked_annotation_id(operands)
                if marked:
                    self.marked_ids.append(marked)

            if record.is_text_show:
                advance = self._resolve_advance(record, current_state)
                record.advance = advance
                current_state.text_matrix = _matrix_multiply(current_state.text_matrix, _translation(advance, 0.0))

        return self.records

    def text_records(self) -> List[OperatorRecord]:
        return [record for record in self.records if record.is_text_show]

    def _next_line(self, state: TextGraphicsState) -> None:
        state.text_matrix = _matrix_multiply(state.text_line_matrix, _translation(0.0, -state.leading))
        state.text_line_matrix = state.text_matrix

    def _capture_text_items(self, operands: Sequence[Any], operator: bytes) -> List[TextItem]:
        items: List[TextItem] = []
        if not operands:
            return items
        if operator == b"TJ":
            array = operands[0] if isinstance(operands[0], ArrayObject) else ArrayObject()
            for entry in array:
                if isinstance(entry, (TextStringObject, ByteStringObject, bytes, str)):
                    items.append(self._raw_bytes(entry))
                else:
                    try:
                        items.append(float(entry))
                    except (TypeError, ValueError):
                        continue
        else:
            items.append(self._raw_bytes(operands[-1]))
        return items

    def _raw_bytes(self, operand: Any) -> bytes:
        if isinstance(operand, TextStringObject):
            # original_bytes raises unless the string was decoded from raw bytes
            if getattr(operand, "autodetect_pdfdocencoding", False) or getattr(operand, "autodetect_utf16", False):
                return bytes(operand.original_bytes)
            return str(operand).encode("latin-1", errors="replace")
        if isinstance(operand, (ByteStringObject, bytes)):
            return bytes(operand)
        return str(operand).encode("latin-1", errors="replace")

    def _to_matrix(self, operands: Sequence[Any]) -> Matrix:
        values = [float(op) for op in operands[:6]]
        if len(values) != 6:
            values = values + [0.0] * (6 - len(values))
        return tuple(values[:6])  # type: ignore[return-value]

    def _to_rgb(self, operands: Sequence[Any]) -> Optional[Color]:
        try:
            values = [float(op) for op in operands if not isinstance(op, NameObject)]
        except (TypeError, ValueError):
            return None
        if len(values) == 1:
            return (values[0], values[0], values[0])
        if len(values) == 3:
            return (values[0], values[1], values[2])
        if len(values) == 4:
            c, m, y, k = values
            return ((1 - c) * (1 - k), (1 - m) * (1 - k), (1 - y) * (1 - k))
        return None

    def _transform_rect(self, ctm: Matrix, operands: Sequence[Any]) -> Rect:
        x, y, w, h = (float(value) for value in operands[:4])
        corners = [apply_matrix(ctm, px, py) for px, py in ((x, y), (x + w, y), (x, y + h), (x + w, y + h))]
        xs = [point[0] for point in corners]
        ys = [point[1] for point in corners]
        return (min(xs), min(ys), max(xs), max(ys))

    def _marked_annotation_id(self, operands: Sequence[Any]) -> Optional[str]:
        if len(operands) < 2 or str(operands[0]) != ANNOTATION_TAG:
            return None
        properties = operands[1]
        if hasattr(properties, "get_object"):
            properties = properties.get_object()
        if not isinstance(properties, DictionaryObject):
            return None
        value = properties.get("/AnnotationId")
        return str(value) if value is not None else None

    def _resolve_advance(self, record: OperatorRecord, state: TextGraphicsState) -> float:
        if not record.text_items:
            return 0.0

        advance: Optional[float] = None
        if self.advance_resolver is not None:
            advance = self.advance_resolver(record, state)

        if advance is None:
            advance = self._naive_advance(record, state)
        return advance

    def _naive_advance(self, record: OperatorRecord, state: TextGraphicsState) -> float:
        scale = state.horizontal_scaling / 100.0 if state.horizontal_scaling else 1.0
        width = 0.0
        for item in record.text_items or []:
            if isinstance(item, bytes):
                width += len(item) * state.font_size * 0.5 * scale
                width += state.char_spacing * len(item) * scale
                width += state.word_spacing * item.count(b" ") * scale
            else:
                width -= (item / 1000.0) * state.font_size * scale
        return width
