"""
Structured logging configuration using structlog.

Production emits one JSON object per line; development uses the coloured
console renderer. Stdlib loggers (asyncpg, uvicorn, the storage layer) go
through the same processors, so every line carries the bound request or
job context.
"""

import logging
import sys

import structlog
from structlog.types import Processor

from tasksearch.config.settings import get_settings

# Third-party loggers that are chatty at INFO
_QUIET_LOGGERS = ("openai", "httpx", "httpcore", "asyncio", "asyncpg")

# Handler installed by the last setup_logging() call
_handler: logging.Handler | None = None


def setup_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """
    Configure structured logging for the process.

    Args:
        level: Log level name; defaults to LOG_LEVEL
        json_output: Force JSON rendering; defaults to on in production

    Usage:
        setup_logging()
        logger = structlog.get_logger(__name__)
        logger.info("Embedding stored", source_id="task_123", model="text-embedding-ada-002")
    """
    global _handler

    settings = get_settings()
    level_name = (level or settings.log_level).upper()
    if json_output is None:
        json_output = settings.is_production

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    output_processors: list[Processor] = [
        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
    ]
    if json_output:
        output_processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        output_processors.append(
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
        )

    structlog.configure(
        processors=shared_processors
        + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=output_processors,
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)
    _handler = handler
    root.addHandler(handler)
    root.setLevel(getattr(logging, level_name, logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_context(**kwargs) -> None:
    """
    Bind context variables to all subsequent log messages.

    Used for request IDs in the API and job fields in dispatcher workers.
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()
