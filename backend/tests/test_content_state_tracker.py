from __future__ import annotations

import pytest
from PyPDF2.generic import (
    ArrayObject,
    ByteStringObject,
    DictionaryObject,
    FloatObject,
    NameObject,
    NumberObject,
    TextStringObject,
    create_string_object,
)

from pdfsurgeon.services.layout.content_state_tracker import ContentStateTracker, apply_matrix


def _nums(*values):
    return [FloatObject(value) for value in values]


def test_text_origin_combines_ctm_and_text_matrix():
    operations = [
        ([], b"q"),
        (_nums(1, 0, 0, 1, 10, 20), b"cm"),
        ([], b"BT"),
        ([NameObject("/F1"), FloatObject(12)], b"Tf"),
        (_nums(100, 500), b"Td"),
        ([ByteStringObject(b"Hi")], b"Tj"),
        ([], b"ET"),
        ([], b"Q"),
    ]
    tracker = ContentStateTracker()
    tracker.walk(operations)

    (record,) = tracker.text_records()
    assert record.font_resource == "/F1"
    assert record.font_size == 12
    assert apply_matrix(record.rendering_matrix, 0, 0) == pytest.approx((110, 520))


def test_next_line_operators_apply_leading_before_showing():
    operations = [
        ([], b"BT"),
        ([NameObject("/F1"), FloatObject(10)], b"Tf"),
        (_nums(14), b"TL"),
        (_nums(72, 700), b"Td"),
        ([ByteStringObject(b"one")], b"Tj"),
        ([ByteStringObject(b"two")], b"'"),
        ([], b"T*"),
        ([ByteStringObject(b"three")], b"Tj"),
        ([], b"ET"),
    ]
    tracker = ContentStateTracker()
    tracker.walk(operations)

    origins = [apply_matrix(record.rendering_matrix, 0, 0) for record in tracker.text_records()]
    assert origins[0] == pytest.approx((72, 700))
    assert origins[1] == pytest.approx((72, 686))
    assert origins[2] == pytest.approx((72, 672))


def test_tj_array_keeps_strings_and_adjustments_in_order():
    operations = [
        ([], b"BT"),
        ([NameObject("/F1"), FloatObject(10)], b"Tf"),
        ([ArrayObject([TextStringObject("A"), NumberObject(-250), TextStringObject("B")])], b"TJ"),
        ([], b"ET"),
    ]
    tracker = ContentStateTracker()
    tracker.walk(operations)

    (record,) = tracker.text_records()
    assert record.text_items == [b"A", -250.0, b"B"]
    # naive advance: two glyphs at half the size plus the TJ shift
    assert record.advance == pytest.approx(2 * 5 + 2.5)


def test_strings_decoded_from_stream_bytes_keep_their_raw_bytes():
    operations = [
        ([], b"BT"),
        ([NameObject("/F1"), FloatObject(10)], b"Tf"),
        ([create_string_object(b"\xe9t\xe9")], b"Tj"),
        ([], b"ET"),
    ]
    tracker = ContentStateTracker()
    tracker.walk(operations)

    (record,) = tracker.text_records()
    assert record.text_items == [b"\xe9t\xe9"]


def test_fill_records_carry_alpha_and_page_space_rect():
    operations = [
        ([], b"q"),
        (_nums(2, 0, 0, 2, 0, 0), b"cm"),
        ([NameObject("/GS1")], b"gs"),
        (_nums(1, 0, 0), b"rg"),
        (_nums(10, 10, 5, 5), b"re"),
        ([], b"f"),
        ([], b"Q"),
        (_nums(0, 0, 100, 100), b"re"),
        ([], b"n"),
        (_nums(0.5), b"g"),
        (_nums(0, 0, 1, 1), b"re"),
        ([], b"f*"),
    ]
    tracker = ContentStateTracker(ext_gstate_alpha={"/GS1": 0.3})
    tracker.walk(operations)

    assert len(tracker.fills) == 2
    first, second = tracker.fills
    assert first.rect == pytest.approx((20, 20, 30, 30))
    assert first.alpha == pytest.approx(0.3)
    assert first.color == (1.0, 0.0, 0.0)
    assert second.alpha == 1.0
    assert second.color == (0.5, 0.5, 0.5)


def test_marked_annotation_ids_are_collected():
    properties = DictionaryObject()
    properties[NameObject("/AnnotationId")] = TextStringObject("abc123")
    operations = [
        ([NameObject("/EditorAnnotation"), properties], b"BDC"),
        ([], b"EMC"),
        ([NameObject("/Span"), DictionaryObject()], b"BDC"),
        ([], b"EMC"),
    ]
    tracker = ContentStateTracker()
    tracker.walk(operations)

    assert tracker.marked_ids == ["abc123"]
