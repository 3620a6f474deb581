from __future__ import annotations

import io
from typing import Any, Dict, List, Optional, Sequence, Tuple

from PyPDF2 import PdfWriter
from PyPDF2.generic import (
    ByteStringObject,
    ContentStream,
    DecodedStreamObject,
    DictionaryObject,
    FloatObject,
    NameObject,
    NumberObject,
    TextStringObject,
)

from ...models.document import RawDocument
from ...utils.exceptions import SerializationError
from ...utils.logging import get_logger
from ..buffers.buffer_guard import load_document
from ..layout.content_state_tracker import ANNOTATION_TAG
from ..layout.font_resources import encode_win_ansi

Operation = Tuple[List[Any], bytes]
Color = Tuple[float, float, float]


def pdf_number(value: float) -> FloatObject:
    return FloatObject(round(float(value), 4))


class PageEditor:
    """Collects operators to append to one page and the resources they need."""

    def __init__(self, writer: PdfWriter, page: Any, source_page: Any, source_reader: Any) -> None:
        self.writer = writer
        self.page = page
        self.source_page = source_page
        self.source_reader = source_reader
        self.appended: List[Operation] = []
        self._fonts: Dict[str, str] = {}
        self._states: Dict[Tuple[float, Optional[str]], str] = {}

    @property
    def modified(self) -> bool:
        return bool(self.appended)

    def extend(self, operations: Sequence[Operation]) -> None:
        self.appended.extend(operations)

    def ensure_font(self, base_font: str) -> str:
        """Return the resource name of a non-embedded WinAnsi ``base_font``, registering one if needed."""
        if base_font in self._fonts:
            return self._fonts[base_font]

        fonts = self._resource_dict("/Font")
        for name_obj, font_ref in list(fonts.items()):
            font_obj = font_ref.get_object() if hasattr(font_ref, "get_object") else font_ref
            if not hasattr(font_obj, "get"):
                continue
            if (
                str(font_obj.get("/Subtype", "")) == "/Type1"
                and str(font_obj.get("/BaseFont", "")).lstrip("/") == base_font
                and str(font_obj.get("/Encoding", "")) == "/WinAnsiEncoding"
                and "/FontDescriptor" not in font_obj
            ):
                self._fonts[base_font] = str(name_obj)
                return str(name_obj)

        candidate = self._free_name(fonts, "/PSF")
        font_dict = DictionaryObject()
        font_dict[NameObject("/Type")] = NameObject("/Font")
        font_dict[NameObject("/Subtype")] = NameObject("/Type1")
        font_dict[NameObject("/BaseFont")] = NameObject(f"/{base_font}")
        font_dict[NameObject("/Encoding")] = NameObject("/WinAnsiEncoding")
        fonts[NameObject(candidate)] = self.writer._add_object(font_dict)
        self._fonts[base_font] = candidate
        return candidate

    def ensure_alpha(self, opacity: float, blend_mode: Optional[str] = None) -> str:
        key = (round(float(opacity), 4), blend_mode)
        if key in self._states:
            return self._states[key]

        states = self._resource_dict("/ExtGState")
        candidate = self._free_name(states, "/PSGS")
        state = DictionaryObject()
        state[NameObject("/Type")] = NameObject("/ExtGState")
        state[NameObject("/ca")] = pdf_number(opacity)
        state[NameObject("/CA")] = pdf_number(opacity)
        if blend_mode:
            state[NameObject("/BM")] = NameObject(blend_mode)
        states[NameObject(candidate)] = self.writer._add_object(state)
        self._states[key] = candidate
        return candidate

    def commit(self) -> None:
        """Write the original operators, isolated in ``q``/``Q``, followed by the appended ones."""
        if not self.appended:
            return
        contents = self.source_page.get_contents()
        if contents is None:
            contents = DecodedStreamObject()
            contents.set_data(b"")
            content = ContentStream(contents, self.source_reader)
            operations: List[Operation] = []
        else:
            content = ContentStream(contents, self.source_reader)
            operations = [([], b"q"), *content.operations, ([], b"Q")]
        operations.extend(self.appended)
        content.operations = operations

        stream = DecodedStreamObject()
        stream.set_data(content.get_data())
        self.page[NameObject("/Contents")] = self.writer._add_object(stream)

    def _resource_dict(self, key: str) -> DictionaryObject:
        resources = self.page.get("/Resources")
        if resources is None:
            resources = DictionaryObject()
            self.page[NameObject("/Resources")] = resources
        elif hasattr(resources, "get_object"):
            resources = resources.get_object()

        entry = resources.get(key)
        if entry is None:
            entry = DictionaryObject()
            resources[NameObject(key)] = entry
        elif hasattr(entry, "get_object"):
            entry = entry.get_object()
        return entry

    @staticmethod
    def _free_name(existing: DictionaryObject, prefix: str) -> str:
        index = 1
        while f"{prefix}{index}" in existing:
            index += 1
        return f"{prefix}{index}"


class DocumentEditor:
    """Copies every page of a document into a writer and serializes the edits."""

    def __init__(self, document: RawDocument) -> None:
        self.document = document
        self.reader = document.open_reader()
        self.writer = PdfWriter()
        self.logger = get_logger(self.__class__.__name__)
        self._pages = [self.writer.add_page(page) for page in self.reader.pages]
        self._editors: Dict[int, PageEditor] = {}

    def page(self, index: int) -> PageEditor:
        self.document.check_page(index)
        editor = self._editors.get(index)
        if editor is None:
            editor = PageEditor(self.writer, self._pages[index], self.reader.pages[index], self.reader)
            self._editors[index] = editor
        return editor

    @property
    def modified(self) -> bool:
        return any(editor.modified for editor in self._editors.values())

    def serialize(self) -> RawDocument:
        """Commit pending page edits and return the new immutable document.

        Returns the input document itself when nothing was appended.
        """
        if not self.modified:
            return self.document
        try:
            for editor in self._editors.values():
                editor.commit()
            buffer = io.BytesIO()
            self.writer.write(buffer)
            data = buffer.getvalue()
        except Exception as exc:
            self.logger.exception("Failed to serialize edited document")
            raise SerializationError(f"Document could not be written: {exc}") from exc

        try:
            return load_document(data)
        except Exception as exc:
            raise SerializationError(f"Written document could not be re-read: {exc}") from exc


def fill_color_op(color: Color) -> Operation:
    return ([pdf_number(c) for c in color], b"rg")


def stroke_color_op(color: Color) -> Operation:
    return ([pdf_number(c) for c in color], b"RG")


def rect_fill_ops(rect: Tuple[float, float, float, float], color: Color) -> List[Operation]:
    x0, y0, x1, y1 = rect
    return [
        fill_color_op(color),
        ([pdf_number(x0), pdf_number(y0), pdf_number(x1 - x0), pdf_number(y1 - y0)], b"re"),
        ([], b"f"),
    ]


def text_ops(
    font_resource: str,
    font_size: float,
    x: float,
    y: float,
    text: str,
    color: Color,
    base_font: Optional[str] = None,
) -> List[Operation]:
    """Operators drawing ``text`` with its baseline origin at ``(x, y)``.

    Raises :class:`UnsupportedEncoding` when ``text`` has no WinAnsi form.
    """
    encoded = encode_win_ansi(text, base_font or font_resource)
    return [
        ([], b"BT"),
        ([NameObject(font_resource), pdf_number(font_size)], b"Tf"),
        fill_color_op(color),
        ([pdf_number(1), pdf_number(0), pdf_number(0), pdf_number(1), pdf_number(x), pdf_number(y)], b"Tm"),
        ([ByteStringObject(encoded)], b"Tj"),
        ([], b"ET"),
    ]


def marked_ops(annotation_id: str, body: Sequence[Operation]) -> List[Operation]:
    properties = DictionaryObject()
    properties[NameObject("/AnnotationId")] = TextStringObject(annotation_id)
    return [([NameObject(ANNOTATION_TAG), properties], b"BDC"), ([], b"q"), *body, ([], b"Q"), ([], b"EMC")]


def line_width_op(width: float) -> Operation:
    return ([pdf_number(width)], b"w")


def line_style_ops(cap: int, join: int) -> List[Operation]:
    return [([NumberObject(cap)], b"J"), ([NumberObject(join)], b"j")]
