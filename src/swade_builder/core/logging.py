"""Structured logging for the SWADE character builder.

The rules engine only emits structlog events. Every ledger and advancement
mutation runs inside :func:`mutation_context`, so anything logged while a
mutation is being validated carries the character and operation names.
Hosting applications route the events by calling
:func:`configure_logging_from_settings` once at startup.

Example:
    >>> from swade_builder.core.logging import get_logger, mutation_context
    >>> logger = get_logger(__name__)
    >>> with mutation_context("Red", "add_edge"):
    ...     logger.info("Edge added", edge_id="alertness")
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import Processor


if TYPE_CHECKING:
    from structlog.types import EventDict, WrappedLogger

    from swade_builder.core.config import Settings


DEFAULT_APP_NAME = "swade_builder"

_STDLIB_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class AppContext:
    """Processor stamping the application name and version on each event.

    Args:
        app_name: Value for the ``app`` key.
        app_version: Value for the ``version`` key; omitted when ``None``.
    """

    def __init__(self, app_name: str = DEFAULT_APP_NAME, app_version: str | None = None) -> None:
        self.app_name = app_name
        self.app_version = app_version

    def __call__(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("app", self.app_name)
        if self.app_version is not None:
            event_dict.setdefault("version", self.app_version)
        return event_dict


def build_processors(*, json_format: bool, app_context: AppContext) -> list[Processor]:
    """Processor chain ending in a JSON or console renderer."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        app_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if json_format:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(colors=True, exception_formatter=structlog.dev.plain_traceback)
        )
    return processors


def configure_logging(
    *,
    level: str = "INFO",
    json_format: bool = False,
    log_file: str | None = None,
    app_name: str = DEFAULT_APP_NAME,
    app_version: str | None = None,
) -> None:
    """Configure structlog and the standard library root logger.

    Args:
        level: The logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: If True, output logs in JSON format.
        log_file: Optional path that also receives standard library records.
        app_name: Application name stamped on each event.
        app_version: Application version stamped on each event.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    structlog.configure(
        processors=build_processors(
            json_format=json_format, app_context=AppContext(app_name, app_version)
        ),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(format=_STDLIB_FORMAT, level=numeric_level, handlers=handlers, force=True)


def configure_logging_from_settings(settings: Settings | None = None, *, log_file: str | None = None) -> None:
    """Configure logging from application settings.

    Args:
        settings: Settings to read; the cached settings when omitted.
        log_file: Optional path that also receives standard library records.

    Example:
        >>> configure_logging_from_settings(Settings(log_level="DEBUG", json_logs=True))
    """
    if settings is None:
        from swade_builder.core.config import get_settings

        settings = get_settings()
    configure_logging(
        level=settings.log_level,
        json_format=settings.json_logs,
        log_file=log_file,
        app_name=settings.app_name,
        app_version=settings.app_version,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a logger; typically called with ``__name__`` at module level."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context included in every later event of this execution context.

    Example:
        >>> bind_context(session_id="abc123")
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


@contextmanager
def mutation_context(character: str, operation: str) -> Iterator[None]:
    """Tag every event logged inside the block with a character and operation.

    Context bound before entering is restored on exit.
    """
    with structlog.contextvars.bound_contextvars(character=character, operation=operation):
        yield


__all__ = [
    "AppContext",
    "build_processors",
    "configure_logging",
    "configure_logging_from_settings",
    "get_logger",
    "bind_context",
    "clear_context",
    "mutation_context",
]
