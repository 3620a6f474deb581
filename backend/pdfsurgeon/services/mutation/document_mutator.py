from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Type

from ...config import get_config
from ...models.document import OwnedBuffer, RawDocument
from ...models.operations import BakeAnnotations, EditOperation, InsertText, MoveText, ReplaceAll, ReplaceText
from ...models.results import MutationResult, RenderResult
from ...utils.exceptions import MutationError, SerializationError
from ...utils.logging import get_logger, log_context
from ..buffers.buffer_guard import BufferLike, copy_buffer, load_document, validate_header
from ..rendering.annotation_baker import AnnotationBaker
from ..rendering.replacement_engine import ReplacementEngine


class DocumentMutator:
    """The only producer of new document buffers.

    A call either returns a verified new buffer or, on any whole-call failure,
    the caller's original bytes with ``error`` set. Per-item failures travel as
    warnings on an otherwise successful result.
    """

    def __init__(
        self,
        config: Any = None,
        replacement_engine: Optional[ReplacementEngine] = None,
        baker: Optional[AnnotationBaker] = None,
    ) -> None:
        self.config = config or get_config()
        self.replacement_engine = replacement_engine or ReplacementEngine(self.config)
        self.baker = baker or AnnotationBaker(
            self.config,
            metrics=self.replacement_engine.metrics,
            extractor=self.replacement_engine.extractor,
        )
        self.logger = get_logger(self.__class__.__name__)
        self._handlers: Dict[Type[EditOperation], Callable[[RawDocument, Any], RenderResult]] = {
            ReplaceText: lambda document, op: self.replacement_engine.apply(document, op.replacements),
            InsertText: lambda document, op: self.replacement_engine.insert(document, op.text_boxes),
            ReplaceAll: lambda document, op: self.replacement_engine.replace_all(document, op.search, op.replacement),
            MoveText: lambda document, op: self.replacement_engine.move(document, op.moves),
            BakeAnnotations: lambda document, op: self.baker.bake(document, op.annotations),
        }

    def mutate(self, buffer: Optional[BufferLike], operation: EditOperation) -> MutationResult:
        try:
            original = copy_buffer(buffer)
        except MutationError as exc:
            self.logger.error("Mutation rejected", error=str(exc), error_type=exc.__class__.__name__)
            return MutationResult(buffer=OwnedBuffer(b""), error=exc)

        try:
            with log_context(operation=operation.label):
                document = load_document(original)
                rendered = self._dispatch(document, operation)
                self._verify(document, rendered.document)
        except MutationError as exc:
            self.logger.error(
                "Mutation failed; original buffer returned",
                operation=operation.label,
                error=str(exc),
                error_type=exc.__class__.__name__,
            )
            return MutationResult(buffer=original, error=exc)
        except Exception as exc:
            self.logger.exception("Unexpected mutation failure; original buffer returned", operation=operation.label)
            return MutationResult(buffer=original, error=MutationError(f"Unexpected failure: {exc}"))

        self.logger.info(
            "Mutation complete",
            operation=operation.label,
            applied=len(rendered.applied),
            warnings=len(rendered.warnings),
            size_bytes=len(rendered.document.buffer),
        )
        return MutationResult(
            buffer=rendered.document.buffer,
            document=rendered.document,
            warnings=rendered.warnings,
            applied=rendered.applied,
        )

    def _dispatch(self, document: RawDocument, operation: EditOperation) -> RenderResult:
        handler = self._handlers.get(type(operation))
        if handler is None:
            raise MutationError(f"Unsupported operation: {type(operation).__name__}")
        return handler(document, operation)

    def _verify(self, before: RawDocument, after: RawDocument) -> None:
        if after is before:
            return
        if len(after.buffer) > self.config.MAX_DOCUMENT_BYTES:
            raise SerializationError(
                f"Output of {len(after.buffer)} bytes exceeds limit of {self.config.MAX_DOCUMENT_BYTES}"
            )
        validate_header(after.buffer)
        try:
            with after.open_fitz() as doc:
                page_count = doc.page_count
        except Exception as exc:
            raise SerializationError(f"Output could not be reopened: {exc}") from exc
        if page_count != before.page_count:
            raise SerializationError(f"Output has {page_count} pages, expected {before.page_count}")


_default_mutator: Optional[DocumentMutator] = None


def mutate(buffer: Optional[BufferLike], operation: EditOperation) -> MutationResult:
    global _default_mutator
    if _default_mutator is None:
        _default_mutator = DocumentMutator()
    return _default_mutator.mutate(buffer, operation)
