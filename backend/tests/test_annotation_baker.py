from __future__ import annotations

from PyPDF2.generic import ContentStream

from pdfsurgeon.models import (
    ArrowAnnotation,
    CircleAnnotation,
    HighlightAnnotation,
    InkAnnotation,
    NoteAnnotation,
    RectangleAnnotation,
)
from pdfsurgeon.services.buffers import load_document
from pdfsurgeon.services.layout import TextLayoutExtractor
from pdfsurgeon.services.rendering import AnnotationBaker


def _all_kinds():
    return [
        HighlightAnnotation(page=0, rect=(45, 695, 100, 715)),
        NoteAnnotation(page=0, x=300, y=500, text="Check this"),
        RectangleAnnotation(page=0, rect=(10, 10, 60, 40), fill=(0, 0, 1)),
        CircleAnnotation(page=0, rect=(100, 100, 160, 140), color=(1, 0, 0), opacity=0.5),
        ArrowAnnotation(page=0, start=(200, 200), end=(260, 240)),
        InkAnnotation(page=0, points=((10, 300), (20, 310), (30, 305))),
    ]


def _operators(document, page=0):
    reader = document.open_reader()
    content = ContentStream(reader.pages[page].get_contents(), reader)
    return [operator for _, operator in content.operations]


def test_every_kind_is_baked_and_tagged(hello_pdf, testing_config):
    annotations = _all_kinds()
    baker = AnnotationBaker(testing_config)

    result = baker.bake(load_document(hello_pdf), annotations)

    assert result.warnings == ()
    assert result.applied == tuple(item.id for item in annotations)
    assert baker.extractor.annotation_ids(result.document, 0) == {item.id for item in annotations}
    operators = _operators(result.document)
    assert operators.count(b"BDC") == len(annotations)
    assert b"c" in operators
    assert b"gs" in operators


def test_highlight_leaves_text_readable_and_note_text_is_extracted(hello_pdf, testing_config):
    highlight = HighlightAnnotation(page=0, rect=(45, 695, 100, 715))
    note = NoteAnnotation(page=0, x=300, y=500, text="Check this")

    result = AnnotationBaker(testing_config).bake(load_document(hello_pdf), [highlight, note])

    texts = [run.text for run in TextLayoutExtractor(config=testing_config).extract_text_runs(result.document, 0)]
    assert texts == ["Hello", "Second line", "Check this"]


def test_baking_same_id_twice_is_skipped(hello_pdf, testing_config):
    baker = AnnotationBaker(testing_config)
    rectangle = RectangleAnnotation(page=0, rect=(10, 10, 60, 40))

    first = baker.bake(load_document(hello_pdf), [rectangle, rectangle])
    assert first.applied == (rectangle.id,)
    assert [warning.error for warning in first.warnings] == ["DuplicateAnnotation"]

    second = baker.bake(first.document, [rectangle])
    assert second.applied == ()
    assert second.warnings[0].item_id == rectangle.id
    assert second.document is first.document
    assert _operators(second.document).count(b"BDC") == 1


def test_hidden_and_out_of_range_annotations_are_not_drawn(hello_pdf, testing_config):
    hidden = RectangleAnnotation(page=0, rect=(10, 10, 60, 40), hidden=True)
    elsewhere = InkAnnotation(page=4, points=((0, 0), (5, 5)))

    document = load_document(hello_pdf)
    result = AnnotationBaker(testing_config).bake(document, [hidden, elsewhere])

    assert result.applied == ()
    assert [(warning.item_id, warning.error) for warning in result.warnings] == [(elsewhere.id, "PageOutOfRange")]
    assert result.document is document


def test_id_baked_on_one_page_is_not_baked_on_another(make_pdf, testing_config):
    baker = AnnotationBaker(testing_config)
    document = load_document(make_pdf([[("A", 50, 700, 12)], [("B", 50, 700, 12)]]))

    first = baker.bake(document, [RectangleAnnotation(id="box", page=0, rect=(10, 10, 60, 40))])
    second = baker.bake(first.document, [RectangleAnnotation(id="box", page=1, rect=(10, 10, 60, 40))])

    assert first.applied == ("box",)
    assert second.applied == ()
    assert [(warning.item_id, warning.error) for warning in second.warnings] == [("box", "DuplicateAnnotation")]
    assert second.document is first.document
    assert b"BDC" not in _operators(second.document, page=1)


def test_ink_without_a_stroke_is_a_warning(hello_pdf, testing_config):
    dot = InkAnnotation(page=0, points=((5, 5),))
    document = load_document(hello_pdf)

    result = AnnotationBaker(testing_config).bake(document, [dot])

    assert result.applied == ()
    assert [(warning.item_id, warning.error) for warning in result.warnings] == [(dot.id, "InvalidAnnotation")]
    assert result.document is document
