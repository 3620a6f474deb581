"""Owned, detachment-proof copies of raw document bytes.

Every other component consumes buffers issued here. A caller may hand over a
``bytearray`` or ``memoryview`` that it later mutates or releases; the copy
returned by :func:`copy_buffer` is an immutable ``bytes`` value that cannot be
affected by anything the caller does afterwards.
"""

from __future__ import annotations

from typing import Any, Optional, Tuple, Union

from ...config import get_config
from ...models.document import OwnedBuffer, RawDocument
from ...utils.exceptions import BufferDetached, EmptyBuffer, MalformedDocument
from ...utils.logging import get_logger

PDF_SIGNATURE = b"%PDF-"
EOF_MARKER = b"%%EOF"
TAIL_WINDOW = 1024

BufferLike = Union[bytes, bytearray, memoryview, OwnedBuffer]

logger = get_logger(__name__)


def copy_buffer(source: Optional[BufferLike]) -> OwnedBuffer:
    """Return an :class:`OwnedBuffer` independent of ``source``."""
    if source is None:
        raise BufferDetached("No buffer supplied")
    if isinstance(source, OwnedBuffer):
        return source
    if isinstance(source, memoryview):
        try:
            data = source.tobytes()
        except ValueError as exc:
            raise BufferDetached("Buffer was released before it could be copied") from exc
    elif isinstance(source, (bytes, bytearray)):
        data = bytes(source)
    else:
        raise BufferDetached(f"Unsupported buffer type: {type(source).__name__}")

    if not data:
        raise EmptyBuffer("Document buffer is empty")
    return OwnedBuffer(data)


def validate_header(buffer: BufferLike, *, min_size: Optional[int] = None) -> bool:
    """Check that ``buffer`` is structurally plausible before parsing it.

    Raises :class:`MalformedDocument` when the buffer is empty, too short, or
    lacks the ``%PDF-`` signature. A missing ``%%EOF`` near the end is only
    logged; streamed and linearized files frequently omit it from the tail.
    """
    data = buffer.data if isinstance(buffer, OwnedBuffer) else bytes(buffer)
    minimum = min_size if min_size is not None else get_config().MIN_DOCUMENT_BYTES

    if not data:
        raise EmptyBuffer("Document buffer is empty")
    if len(data) < minimum:
        raise MalformedDocument(f"Document too short ({len(data)} bytes, minimum {minimum} required)")
    if not data.startswith(PDF_SIGNATURE):
        raise MalformedDocument(f"PDF signature not found (got {data[:8]!r})")
    if EOF_MARKER not in data[-TAIL_WINDOW:]:
        logger.warning("EOF marker not found in document tail", size_bytes=len(data))
    return True


def load_document(source: BufferLike) -> RawDocument:
    """Copy, validate and parse ``source`` into an immutable :class:`RawDocument`."""
    buffer = copy_buffer(source)
    validate_header(buffer)
    page_sizes = _read_page_sizes(buffer)
    return RawDocument(buffer=buffer, page_sizes=page_sizes)


def _read_page_sizes(buffer: OwnedBuffer) -> Tuple[Tuple[float, float], ...]:
    candidate = RawDocument(buffer=buffer)
    try:
        reader = candidate.open_reader()
        if reader.is_encrypted:
            raise MalformedDocument("Encrypted documents are not supported")
        sizes = []
        for page in reader.pages:
            box: Any = page.mediabox
            sizes.append((abs(float(box.width)), abs(float(box.height))))
    except MalformedDocument:
        raise
    except Exception as exc:
        raise MalformedDocument(f"Document could not be parsed: {exc}") from exc

    if not sizes:
        raise MalformedDocument("Document has no pages")
    return tuple(sizes)
