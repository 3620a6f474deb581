from .document_mutator import DocumentMutator, mutate

__all__ = ["DocumentMutator", "mutate"]
