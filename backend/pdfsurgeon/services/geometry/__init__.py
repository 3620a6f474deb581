from .coordinate_transform import rect_to_doc_space, rect_to_viewer_space, to_doc_space, to_viewer_space
from .hit_mapper import find_run_at, find_run_at_viewer_point, run_viewer_rect

__all__ = [
    "find_run_at",
    "find_run_at_viewer_point",
    "rect_to_doc_space",
    "rect_to_viewer_space",
    "run_viewer_rect",
    "to_doc_space",
    "to_viewer_space",
]
