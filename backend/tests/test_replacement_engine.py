from __future__ import annotations

import pytest

from pdfsurgeon.models import Replacement, TextBox, TextMove
from pdfsurgeon.services.buffers import load_document
from pdfsurgeon.services.layout import TextLayoutExtractor
from pdfsurgeon.services.rendering import ReplacementEngine


def _texts_by_origin(document, config, page=0):
    runs = TextLayoutExtractor(config=config).extract_text_runs(document, page)
    return {(round(run.origin_x, 2), round(run.origin_y, 2)): run.text for run in runs}


def test_hello_is_replaced_in_place(hello_pdf, testing_config):
    document = load_document(hello_pdf)
    replacement = Replacement(page=0, old_text="Hello", new_text="Hello, world!", x=50, y=700, font_size=14)

    result = ReplacementEngine(testing_config).apply(document, [replacement])

    assert result.applied == (replacement.id,)
    assert result.warnings == ()
    assert result.document.fingerprint != document.fingerprint
    assert _texts_by_origin(result.document, testing_config) == {
        (50.0, 700.0): "Hello, world!",
        (50.0, 650.0): "Second line",
    }


def test_input_document_is_left_untouched(hello_pdf, testing_config):
    document = load_document(hello_pdf)
    ReplacementEngine(testing_config).apply(
        document,
        [Replacement(page=0, old_text="Hello", new_text="Bye", x=50, y=700, font_size=14)],
    )
    assert document.data == hello_pdf


def test_unresolvable_font_only_skips_that_item(hello_pdf, testing_config):
    document = load_document(hello_pdf)
    good = Replacement(page=0, old_text="Hello", new_text="Howdy", x=50, y=700, font_size=14)
    bad = Replacement(
        page=0,
        old_text="Second line",
        new_text="Changed",
        x=50,
        y=650,
        font_size=12,
        font_name="NoSuchFont",
    )

    result = ReplacementEngine(testing_config).apply(document, [good, bad])

    assert result.applied == (good.id,)
    assert [(warning.item_id, warning.error) for warning in result.warnings] == [(bad.id, "FontResolutionFailure")]
    texts = _texts_by_origin(result.document, testing_config)
    assert texts[(50.0, 700.0)] == "Howdy"
    assert texts[(50.0, 650.0)] == "Second line"


def test_unencodable_text_and_missing_page_are_item_warnings(hello_pdf, testing_config):
    document = load_document(hello_pdf)
    unencodable = Replacement(page=0, old_text="Hello", new_text="你好", x=50, y=700, font_size=14)
    missing_page = Replacement(page=9, old_text="x", new_text="y", x=0, y=0, font_size=12)

    result = ReplacementEngine(testing_config).apply(document, [unencodable, missing_page])

    assert result.applied == ()
    assert [warning.error for warning in result.warnings] == ["UnsupportedEncoding", "PageOutOfRange"]
    assert result.document is document


def test_noop_replacement_keeps_text(hello_pdf, testing_config):
    document = load_document(hello_pdf)
    noop = Replacement(page=0, old_text="Hello", new_text="Hello", x=50, y=700, font_size=14)

    result = ReplacementEngine(testing_config).apply(document, [noop])

    assert result.applied == (noop.id,)
    assert _texts_by_origin(result.document, testing_config) == _texts_by_origin(document, testing_config)


def test_cover_rect_uses_wider_text_and_margin(testing_config):
    engine = ReplacementEngine(testing_config)
    item = Replacement(page=0, old_text="Hello", new_text="Hi", x=50, y=700, font_size=10)

    x0, y0, x1, y1 = engine.cover_rect(item, old_width=25.0, new_width=10.0)

    assert (x0, y0) == pytest.approx((48.0, 697.5))
    assert x1 - x0 == pytest.approx(29.0)
    assert y1 - y0 == pytest.approx(12.0)


def test_insert_adds_text_without_covering(hello_pdf, testing_config):
    document = load_document(hello_pdf)
    box = TextBox(page=0, text="Inserted", x=300, y=400, font_size=11, font_name="Times-Roman")

    result = ReplacementEngine(testing_config).insert(document, [box])

    texts = _texts_by_origin(result.document, testing_config)
    assert texts[(300.0, 400.0)] == "Inserted"
    assert texts[(50.0, 700.0)] == "Hello"


def test_replace_all_rewrites_every_matching_run(make_pdf, testing_config):
    pdf = make_pdf([[("cat and dog", 50, 700, 12), ("no match", 50, 680, 12)], [("cat", 72, 500, 12)]])
    document = load_document(pdf)

    result = ReplacementEngine(testing_config).replace_all(document, "cat", "cow")

    assert len(result.applied) == 2
    assert sorted(_texts_by_origin(result.document, testing_config).values()) == ["cow and dog", "no match"]
    assert list(_texts_by_origin(result.document, testing_config, page=1).values()) == ["cow"]


def test_replace_all_with_empty_search_changes_nothing(hello_pdf, testing_config):
    document = load_document(hello_pdf)
    result = ReplacementEngine(testing_config).replace_all(document, "", "x")
    assert result.document is document
    assert result.applied == ()


def test_move_covers_old_origin_and_redraws_at_target(hello_pdf, testing_config):
    document = load_document(hello_pdf)
    (hello, _) = TextLayoutExtractor(config=testing_config).extract_text_runs(document, 0)

    result = ReplacementEngine(testing_config).move(document, [TextMove.from_run(hello, 0, -100)])

    assert result.applied and not result.warnings
    assert _texts_by_origin(result.document, testing_config) == {(50, 650): "Second line", (50, 600): "Hello"}


def test_zero_offset_move_draws_nothing(hello_pdf, testing_config):
    document = load_document(hello_pdf)
    move = TextMove(page=0, text="Hello", x=50, y=700, font_size=14, dx=0, dy=0)

    result = ReplacementEngine(testing_config).move(document, [move])

    assert result.applied == (move.id,)
    assert result.document is document
