from __future__ import annotations

import pytest

from pdfsurgeon.models import OwnedBuffer
from pdfsurgeon.services.buffers import copy_buffer, load_document, validate_header
from pdfsurgeon.utils.exceptions import BufferDetached, EmptyBuffer, MalformedDocument


def test_copy_is_independent_of_caller_bytearray(hello_pdf):
    source = bytearray(hello_pdf)
    owned = copy_buffer(source)
    source[:5] = b"XXXXX"

    assert owned.data == hello_pdf
    assert owned.data.startswith(b"%PDF-")


def test_copy_of_released_memoryview_is_detached():
    view = memoryview(bytearray(b"%PDF-1.4 something"))
    view.release()

    with pytest.raises(BufferDetached):
        copy_buffer(view)


def test_copy_rejects_missing_and_empty_buffers():
    with pytest.raises(BufferDetached):
        copy_buffer(None)
    with pytest.raises(EmptyBuffer):
        copy_buffer(b"")


def test_owned_buffer_passes_through_unchanged(hello_pdf):
    owned = OwnedBuffer(hello_pdf)
    assert copy_buffer(owned) is owned


def test_validate_header_rejects_bad_signatures():
    with pytest.raises(MalformedDocument):
        validate_header(b"%PDF-")
    with pytest.raises(MalformedDocument):
        validate_header(b"GIF89a" + b"\x00" * 64)
    with pytest.raises(EmptyBuffer):
        validate_header(b"")


def test_validate_header_tolerates_missing_eof_marker():
    assert validate_header(b"%PDF-1.7\n" + b"0" * 128) is True


def test_load_document_reads_page_sizes(make_pdf):
    document = load_document(make_pdf([[("A", 10, 10, 12)], [("B", 10, 10, 12)]]))

    assert document.page_count == 2
    assert document.page_size(1) == (612.0, 792.0)
    assert document.page_height(0) == 792.0


def test_load_document_rejects_unparseable_input():
    garbage = b"%PDF-1.4\n" + b"this is not a pdf body at all\n" * 4
    with pytest.raises(MalformedDocument):
        load_document(garbage)


def test_load_is_idempotent_for_fingerprint(hello_pdf):
    assert load_document(hello_pdf).fingerprint == load_document(bytearray(hello_pdf)).fingerprint
