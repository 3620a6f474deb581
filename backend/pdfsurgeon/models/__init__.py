from .annotations import (
    ANNOTATION_TYPES,
    Annotation,
    AnnotationKind,
    AnnotationReply,
    ArrowAnnotation,
    CircleAnnotation,
    HighlightAnnotation,
    InkAnnotation,
    NoteAnnotation,
    RectangleAnnotation,
    annotation_from_dict,
)
from .document import OwnedBuffer, RawDocument
from .operations import (
    AnnotationChange,
    BakeAnnotations,
    EditOperation,
    InsertText,
    MoveText,
    ReplaceAll,
    ReplaceText,
)
from .results import MutationResult, MutationWarning, PageLayout, RenderResult
from .session import HistoryEntry, SessionSnapshot, SessionState
from .text import FontRef, Replacement, TextBox, TextMove, TextRun

__all__ = [
    "ANNOTATION_TYPES",
    "AnnotationChange",
    "Annotation",
    "AnnotationReply",
    "AnnotationKind",
    "ArrowAnnotation",
    "BakeAnnotations",
    "CircleAnnotation",
    "EditOperation",
    "FontRef",
    "HistoryEntry",
    "HighlightAnnotation",
    "InkAnnotation",
    "InsertText",
    "MoveText",
    "MutationResult",
    "MutationWarning",
    "NoteAnnotation",
    "OwnedBuffer",
    "PageLayout",
    "RawDocument",
    "RectangleAnnotation",
    "RenderResult",
    "ReplaceAll",
    "ReplaceText",
    "SessionSnapshot",
    "SessionState",
    "Replacement",
    "TextBox",
    "TextMove",
    "TextRun",
    "annotation_from_dict",
]
