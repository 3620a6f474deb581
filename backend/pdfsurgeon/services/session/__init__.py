from .edit_session import EditSession

__all__ = ["EditSession"]
