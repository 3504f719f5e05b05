import logging
from contextlib import AbstractContextManager
from typing import Any, Mapping

import structlog

LOG_FORMATS = ("json", "text")


def configure_logging(level: int | str = logging.INFO, fmt: str = "json") -> None:
    """Configure structlog/standard logging bridge."""

    if fmt not in LOG_FORMATS:
        raise ValueError(f"Unsupported log format {fmt!r}, expected one of {LOG_FORMATS}")

    if fmt == "text":
        timestamper = structlog.processors.TimeStamper(fmt="%H:%M:%S")
        renderer: Any = structlog.dev.ConsoleRenderer()
    else:
        timestamper = structlog.processors.TimeStamper(fmt="iso", utc=True)
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            timestamper,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if isinstance(level, str):
        level = level.upper()
    logging.basicConfig(level=level, format="%(message)s", force=True)


def bind_context(**kwargs: Any) -> AbstractContextManager[Mapping[str, Any]]:
    """Bind fields to every log line emitted within the block (and its tasks)."""

    return structlog.contextvars.bound_contextvars(**kwargs)
