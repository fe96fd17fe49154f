"""Connection lifecycle notifications.

Configurations notify a ``ConnectionTracer`` every time a connection is taken
from and handed back to the pool. The default tracer writes a log line for
each event.
"""

from typing import Protocol, runtime_checkable

from sqlproc.utils.logging import get_logger

__all__ = ("ConnectionTracer", "LoggingConnectionTracer", "NullConnectionTracer")


@runtime_checkable
class ConnectionTracer(Protocol):
    """Receives connection open and close notifications."""

    def connection_opened(self, connection_id: int) -> None: ...

    def connection_closed(self, connection_id: int) -> None: ...


class LoggingConnectionTracer:
    """Log every connection open and close at INFO level."""

    __slots__ = ("_logger",)

    def __init__(self, logger_name: str = "observability") -> None:
        self._logger = get_logger(logger_name)

    def connection_opened(self, connection_id: int) -> None:
        self._logger.info("Opening connection %s", connection_id)

    def connection_closed(self, connection_id: int) -> None:
        self._logger.info("Closed connection %s", connection_id)


class NullConnectionTracer:
    """Discard connection notifications."""

    __slots__ = ()

    def connection_opened(self, connection_id: int) -> None:
        return None

    def connection_closed(self, connection_id: int) -> None:
        return None
