from __future__ import annotations


class PdfSurgeonError(Exception):
    """Base class for engine errors."""


class MutationError(PdfSurgeonError):
    """Whole-call failure: the caller's input is returned unchanged."""


class MalformedDocument(MutationError):
    pass


class EmptyBuffer(MalformedDocument):
    pass


class BufferDetached(MutationError):
    pass


class SerializationError(MutationError):
    pass


class UnsupportedEncoding(PdfSurgeonError):
    def __init__(self, font: str | None, message: str):
        super().__init__(f"Font '{font}': {message}")
        self.font = font
        self.message = message


class FontResolutionFailure(PdfSurgeonError):
    def __init__(self, font_name: str | None):
        super().__init__(f"Font '{font_name}' cannot be resolved to a standard font")
        self.font_name = font_name


class PageOutOfRange(PdfSurgeonError, IndexError):
    def __init__(self, page: int, page_count: int):
        super().__init__(f"Page {page} is outside a document with {page_count} page(s)")
        self.page = page
        self.page_count = page_count


class SessionStateError(PdfSurgeonError):
    pass


class AnnotationLocked(PdfSurgeonError):
    def __init__(self, annotation_id: str, reason: str):
        super().__init__(f"Annotation {annotation_id} cannot be changed: {reason}")
        self.annotation_id = annotation_id
        self.reason = reason


class InvalidAnnotation(PdfSurgeonError):
    def __init__(self, annotation_id: str, reason: str):
        super().__init__(f"Annotation {annotation_id} has nothing to draw: {reason}")
        self.annotation_id = annotation_id
        self.reason = reason
