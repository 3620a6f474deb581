from __future__ import annotations

from typing import Iterable, Optional

from ...models.text import TextRun
from .coordinate_transform import Point, Rect, rect_to_viewer_space, to_doc_space


def run_contains(run: TextRun, doc_point: Point) -> bool:
    x0, y0, x1, y1 = run.hit_rect
    x, y = doc_point
    return x0 <= x <= x1 and y0 <= y <= y1


def find_run_at(doc_point: Point, runs: Iterable[TextRun]) -> Optional[TextRun]:
    """Return the run under ``doc_point``; overlapping hits resolve to the smallest box.

    Ties keep the run that comes first in content-stream order. ``None`` means
    the point is over empty page area, which callers treat as "insert new text".
    """
    best: Optional[TextRun] = None
    for run in runs:
        if not run_contains(run, doc_point):
            continue
        if best is None or run.area < best.area:
            best = run
    return best


def find_run_at_viewer_point(
    viewer_point: Point,
    page_height: float,
    zoom: float,
    runs: Iterable[TextRun],
) -> Optional[TextRun]:
    return find_run_at(to_doc_space(viewer_point, page_height, zoom), runs)


def run_viewer_rect(run: TextRun, page_height: float, zoom: float) -> Rect:
    return rect_to_viewer_space(run.hit_rect, page_height, zoom)
