from __future__ import annotations

import hashlib
import io
from dataclasses import dataclass, field
from typing import Tuple

import fitz
from PyPDF2 import PdfReader

from ..utils.exceptions import PageOutOfRange


@dataclass(frozen=True)
class OwnedBuffer:
    """Immutable copy of document bytes whose lifetime is independent of its source."""

    data: bytes

    def __len__(self) -> int:
        return len(self.data)

    def __bytes__(self) -> bytes:
        return self.data

    @property
    def sha256(self) -> str:
        return hashlib.sha256(self.data).hexdigest()


@dataclass(frozen=True)
class RawDocument:
    """An immutable snapshot of a parsed PDF.

    Parser handles are opened per call through :meth:`open_reader` and
    :meth:`open_fitz`; nothing mutable is retained on the snapshot itself.
    """

    buffer: OwnedBuffer
    page_sizes: Tuple[Tuple[float, float], ...] = field(default_factory=tuple)

    @property
    def data(self) -> bytes:
        return self.buffer.data

    @property
    def page_count(self) -> int:
        return len(self.page_sizes)

    @property
    def fingerprint(self) -> str:
        return self.buffer.sha256

    def page_height(self, page: int) -> float:
        return self.page_size(page)[1]

    def page_size(self, page: int) -> Tuple[float, float]:
        self.check_page(page)
        return self.page_sizes[page]

    def check_page(self, page: int) -> None:
        if page < 0 or page >= self.page_count:
            raise PageOutOfRange(page, self.page_count)

    def open_reader(self) -> PdfReader:
        return PdfReader(io.BytesIO(self.data), strict=False)

    def open_fitz(self) -> fitz.Document:
        return fitz.open(stream=self.data, filetype="pdf")
