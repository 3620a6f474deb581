from __future__ import annotations

from pdfsurgeon.models import FontRef, TextRun
from pdfsurgeon.services.geometry import find_run_at, find_run_at_viewer_point, run_viewer_rect


def _run(text: str, x: float, y: float, size: float, width: float) -> TextRun:
    return TextRun(
        text=text,
        page=0,
        origin_x=x,
        origin_y=y,
        font_size=size,
        estimated_width=width,
        font_ref=FontRef(resource="/F1", base_font="Helvetica"),
    )


def test_center_of_run_hits_that_run():
    run = _run("Hello", 50, 700, 14, 35)
    assert find_run_at(run.center, [run]) is run


def test_hit_band_extends_below_baseline():
    run = _run("Hello", 50, 700, 12, 30)
    assert find_run_at((60, 697.5), [run]) is run
    assert find_run_at((60, 696.0), [run]) is None
    assert find_run_at((60, 712.0), [run]) is run
    assert find_run_at((60, 712.5), [run]) is None


def test_smallest_overlapping_run_wins():
    heading = _run("Heading text", 40, 690, 30, 200)
    word = _run("word", 60, 700, 10, 20)
    assert find_run_at((65, 703), [heading, word]) is word
    assert find_run_at((200, 703), [heading, word]) is heading


def test_empty_area_returns_none():
    runs = [_run("Hello", 50, 700, 14, 35)]
    assert find_run_at((400, 100), runs) is None
    assert find_run_at((400, 100), []) is None


def test_viewer_point_lookup_uses_zoom():
    run = _run("Hello", 50, 700, 14, 35)
    x0, y0, x1, y1 = run_viewer_rect(run, 792.0, 2.0)
    center = ((x0 + x1) / 2, (y0 + y1) / 2)

    assert find_run_at_viewer_point(center, 792.0, 2.0, [run]) is run
    assert find_run_at_viewer_point(center, 792.0, 1.0, [run]) is None
