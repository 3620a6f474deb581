from __future__ import annotations

from typing import Iterable, List, Sequence, Tuple, Union

import pytest

from pdfsurgeon.config import get_config
from pdfsurgeon.utils.logging import configure_logging

PageContent = Union[bytes, Sequence[Tuple]]

HELVETICA = b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica /Encoding /WinAnsiEncoding >>"
# Composite font without a ToUnicode map; its strings cannot be decoded
OPAQUE_TYPE0 = b"<< /Type /Font /Subtype /Type0 /BaseFont /ABCDEF+Custom /Encoding /Identity-H /DescendantFonts [] >>"


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def _content_for(page: PageContent) -> bytes:
    if isinstance(page, bytes):
        return page
    lines: List[str] = []
    for run in page:
        text, x, y, size = run[:4]
        font = run[4] if len(run) > 4 else "F1"
        lines.append(f"BT /{font} {size} Tf {x} {y} Td ({_escape(text)}) Tj ET")
    return "\n".join(lines).encode("cp1252")


def build_pdf(pages: Iterable[PageContent], *, with_type0: bool = False) -> bytes:
    """Assemble a minimal PDF with a correct xref table.

    Each page is either raw content-stream bytes or a list of
    ``(text, x, y, size[, font])`` runs drawn with ``Td``/``Tj``.
    """
    objects: List[bytes] = []

    def add(body: bytes) -> int:
        objects.append(body)
        return len(objects)

    catalog_id = add(b"")
    pages_id = add(b"")
    fonts = f"/F1 {add(HELVETICA)} 0 R"
    if with_type0:
        fonts += f" /F2 {add(OPAQUE_TYPE0)} 0 R"

    kids: List[int] = []
    for page_content in pages:
        data = _content_for(page_content)
        content_id = add(b"<< /Length %d >>\nstream\n" % len(data) + data + b"\nendstream")
        page = (
            f"<< /Type /Page /Parent {pages_id} 0 R /MediaBox [0 0 612 792] "
            f"/Resources << /Font << {fonts} >> >> /Contents {content_id} 0 R >>"
        )
        kids.append(add(page.encode()))

    objects[catalog_id - 1] = f"<< /Type /Catalog /Pages {pages_id} 0 R >>".encode()
    kid_refs = " ".join(f"{kid} 0 R" for kid in kids)
    objects[pages_id - 1] = f"<< /Type /Pages /Kids [{kid_refs}] /Count {len(kids)} >>".encode()

    out = bytearray(b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n")
    offsets: List[int] = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"

    xref_offset = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root %d 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (
        len(objects) + 1,
        catalog_id,
        xref_offset,
    )
    return bytes(out)


@pytest.fixture(scope="session", autouse=True)
def _logging():
    configure_logging(get_config("testing"))


@pytest.fixture
def testing_config():
    return get_config("testing")


@pytest.fixture
def make_pdf():
    return build_pdf


@pytest.fixture
def hello_pdf() -> bytes:
    return build_pdf([[("Hello", 50, 700, 14), ("Second line", 50, 650, 12)]])
