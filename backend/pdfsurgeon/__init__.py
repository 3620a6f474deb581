"""In-place PDF text editing and annotation baking over immutable document snapshots."""

from .config import get_config
from .models import (
    BakeAnnotations,
    InsertText,
    MutationResult,
    RawDocument,
    ReplaceAll,
    ReplaceText,
    Replacement,
    TextBox,
    TextRun,
)
from .services.buffers import copy_buffer, load_document, validate_header
from .services.mutation import DocumentMutator, mutate
from .services.session import EditSession
from .utils.logging import configure_logging, get_logger

__version__ = "0.1.0"

__all__ = [
    "BakeAnnotations",
    "DocumentMutator",
    "EditSession",
    "InsertText",
    "MutationResult",
    "RawDocument",
    "ReplaceAll",
    "ReplaceText",
    "Replacement",
    "TextBox",
    "TextRun",
    "configure_logging",
    "copy_buffer",
    "get_config",
    "get_logger",
    "load_document",
    "mutate",
    "validate_header",
]
