from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Any, Iterator

from pythonjsonlogger import jsonlogger
import structlog

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(config: Any | None = None) -> None:
    """Route engine logs through structlog into one JSON handler on the root logger.

    The level comes from ``config.LOG_LEVEL`` when a config is given, otherwise
    from ``PDFSURGEON_LOG_LEVEL``. Values bound with :func:`log_context` are
    merged into every event logged inside the block.
    """
    log_level = getattr(config, "LOG_LEVEL", None) or os.getenv("PDFSURGEON_LOG_LEVEL") or "INFO"

    handler = logging.StreamHandler()
    handler.setFormatter(jsonlogger.JsonFormatter(LOG_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    # Reconfiguring replaces the handler instead of stacking another one
    root_logger.handlers = [handler]

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def log_context(**values: Any) -> Iterator[None]:
    """Bind ``values`` to every log event emitted inside the block."""
    with structlog.contextvars.bound_contextvars(**values):
        yield
