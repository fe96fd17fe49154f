"""Logging helpers for sqlproc.

Library modules obtain loggers through ``get_logger`` so everything lands under
the ``sqlproc`` namespace. Applications opt into output with
``configure_logging``; nothing is configured on import.

A correlation id set with ``set_correlation_id`` (typically the id of the
incoming request) is attached to every record logged from the same context.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, Final

from sqlproc.utils.serializers import to_json

if TYPE_CHECKING:
    from logging import LogRecord

__all__ = (
    "ROOT_LOGGER_NAME",
    "CorrelationIDFilter",
    "StructuredFormatter",
    "configure_logging",
    "correlation_id_var",
    "get_correlation_id",
    "get_logger",
    "log_with_context",
    "set_correlation_id",
)

ROOT_LOGGER_NAME: Final[str] = "sqlproc"
SIMPLE_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

correlation_id_var: ContextVar[str | None] = ContextVar("sqlproc_correlation_id", default=None)


def set_correlation_id(correlation_id: str | None) -> None:
    """Bind a correlation id to the current context, or clear it with None."""
    correlation_id_var.set(correlation_id)


def get_correlation_id() -> str | None:
    """Return the correlation id bound to the current context, if any."""
    return correlation_id_var.get()


class StructuredFormatter(logging.Formatter):
    """Render each record as one JSON object per line.

    Fields passed as ``extra={"extra_fields": {...}}`` (or through
    ``log_with_context``) are merged into the top level of the object.
    """

    def format(self, record: LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        correlation_id = getattr(record, "correlation_id", None) or get_correlation_id()
        if correlation_id:
            entry["correlation_id"] = correlation_id

        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            entry.update(extra_fields)

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return to_json(entry)


class CorrelationIDFilter(logging.Filter):
    """Copy the context's correlation id onto each record that passes through."""

    def filter(self, record: LogRecord) -> bool:
        correlation_id = get_correlation_id()
        if correlation_id:
            record.correlation_id = correlation_id  # type: ignore[attr-defined]
        return True


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger under the ``sqlproc`` namespace.

    Args:
        name: Dotted suffix such as ``"gateway"``. Names already starting with
            ``sqlproc`` are used as given. None returns the package root logger.

    Returns:
        The logger, carrying exactly one ``CorrelationIDFilter``.
    """
    if name is None:
        return logging.getLogger(ROOT_LOGGER_NAME)

    qualified = name if name.startswith(ROOT_LOGGER_NAME) else f"{ROOT_LOGGER_NAME}.{name}"
    logger = logging.getLogger(qualified)
    if not any(isinstance(existing, CorrelationIDFilter) for existing in logger.filters):
        logger.addFilter(CorrelationIDFilter())
    return logger


def _build_formatter(format_style: str) -> logging.Formatter:
    if format_style == "structured":
        return StructuredFormatter()
    return logging.Formatter(SIMPLE_FORMAT)


def configure_logging(
    level: str = "INFO",
    format_style: str = "structured",
    log_to_file: str | None = None,
    extra_handlers: list[logging.Handler] | None = None,
) -> None:
    """Send sqlproc log output to stdout and optional extra destinations.

    Replaces any handlers previously installed on the ``sqlproc`` logger and
    stops propagation to the Python root logger.

    Args:
        level: Level name, e.g. ``"DEBUG"``.
        format_style: ``"structured"`` for JSON lines, anything else for plain text.
        log_to_file: Path of a file that receives JSON lines regardless of ``format_style``.
        extra_handlers: Handlers added as they are.
    """
    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    package_logger.setLevel(level.upper())
    package_logger.handlers.clear()

    handlers: list[logging.Handler] = []
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(_build_formatter(format_style))
    handlers.append(console)
    if log_to_file:
        file_handler = logging.FileHandler(log_to_file)
        file_handler.setFormatter(StructuredFormatter())
        handlers.append(file_handler)
    handlers.extend(extra_handlers or ())

    for handler in handlers:
        package_logger.addHandler(handler)
    package_logger.propagate = False

    log_with_context(
        package_logger,
        logging.INFO,
        "sqlproc logging configured",
        level=level,
        format_style=format_style,
        handlers_count=len(handlers),
    )


def log_with_context(logger: logging.Logger, level: int, message: str, **extra_fields: Any) -> None:
    """Log ``message`` with ``extra_fields`` attached for ``StructuredFormatter``."""
    if logger.isEnabledFor(level):
        logger.log(level, message, extra={"extra_fields": extra_fields}, stacklevel=2)
