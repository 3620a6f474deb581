"""Conversions between PDF content space and viewer space.

Content space has its origin at the bottom-left of the page, y up, unscaled
points. Viewer space has its origin at the top-left, y down, in pixels at the
given zoom. Both directions are exact inverses of each other.
"""

from __future__ import annotations

from typing import Tuple

Point = Tuple[float, float]
Rect = Tuple[float, float, float, float]


def _check_zoom(zoom: float) -> float:
    if zoom <= 0:
        raise ValueError(f"zoom must be positive, got {zoom}")
    return float(zoom)


def to_doc_space(viewer_point: Point, page_height: float, zoom: float) -> Point:
    zoom = _check_zoom(zoom)
    x, y = viewer_point
    return (x / zoom, page_height - y / zoom)


def to_viewer_space(doc_point: Point, page_height: float, zoom: float) -> Point:
    zoom = _check_zoom(zoom)
    x, y = doc_point
    return (x * zoom, (page_height - y) * zoom)


def rect_to_viewer_space(doc_rect: Rect, page_height: float, zoom: float) -> Rect:
    """Map a content-space ``(x0, y0, x1, y1)`` box to a top-left viewer box."""
    x0, y0 = to_viewer_space((doc_rect[0], doc_rect[3]), page_height, zoom)
    x1, y1 = to_viewer_space((doc_rect[2], doc_rect[1]), page_height, zoom)
    return (min(x0, x1), min(y0, y1), max(x0, x1), max(y0, y1))


def rect_to_doc_space(viewer_rect: Rect, page_height: float, zoom: float) -> Rect:
    x0, y0 = to_doc_space((viewer_rect[0], viewer_rect[3]), page_height, zoom)
    x1, y1 = to_doc_space((viewer_rect[2], viewer_rect[1]), page_height, zoom)
    return (min(x0, x1), min(y0, y1), max(x0, x1), max(y0, y1))
