from .buffer_guard import copy_buffer, load_document, validate_header

__all__ = ["copy_buffer", "load_document", "validate_header"]
