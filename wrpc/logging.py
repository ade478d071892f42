"""Structured logging for wrpc.

Colored console output for development, JSON lines for production. Library
code only asks for loggers; applications call ``configure_logging`` once.
"""

from __future__ import annotations

import logging
import sys

import structlog
from structlog.types import EventDict, Processor


def _add_library_info(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Processor that tags events with the emitting library."""
    event_dict.setdefault("library", "wrpc")
    return event_dict


def get_shared_processors() -> list[Processor]:
    """Processors used in both dev and prod configurations."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        _add_library_info,
    ]


def configure_logging(level: str | None = None, json_logs: bool | None = None) -> None:
    """Configure structlog and the standard library root logger.

    Args:
        level: Log level name. Defaults to ``Settings.log_level``.
        json_logs: JSON output if True, colored console output if False.
            Defaults to ``Settings.log_json``.
    """
    from .config import get_settings

    settings = get_settings()
    level = level or settings.log_level
    json_logs = settings.log_json if json_logs is None else json_logs
    log_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors = get_shared_processors()

    if json_logs:
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.plain_traceback,
        )

    # Formatter for stdlib loggers (uvicorn, httpx, ...)
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(log_level)

    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
