import asyncio
import itertools
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, ClassVar, Generic, Optional

from typing_extensions import TypeVar

from sqlproc.observability import ConnectionTracer, LoggingConnectionTracer
from sqlproc.typing import ConnectionT, PoolT
from sqlproc.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from contextlib import AbstractAsyncContextManager

    from sqlproc.driver import AsyncProcedureDriverBase


__all__ = ("AsyncDatabaseConfig", "DriverT")

DriverT = TypeVar("DriverT", bound="AsyncProcedureDriverBase")

logger = get_logger("config")


class AsyncDatabaseConfig(ABC, Generic[ConnectionT, PoolT, DriverT]):
    """Base class for async database configurations that hand out pooled connections.

    Every call acquires its own connection through ``provide_connection`` and
    hands it back on every exit path. The pool itself belongs to the database
    client library.

    Args:
        pool_config: Pool and connection parameters for the client library.
        pool_instance: Optional pre-configured pool.
        driver_features: Options passed to every driver instance.
        connection_tracer: Receives connection open/close notifications.
    """

    __slots__ = (
        "_connection_ids",
        "_pool_lock",
        "connection_tracer",
        "driver_features",
        "pool_config",
        "pool_instance",
    )
    driver_type: "ClassVar[type[Any]]"
    connection_type: "ClassVar[type[Any]]"
    is_async: "ClassVar[bool]" = True
    supports_connection_pooling: "ClassVar[bool]" = True

    def __init__(
        self,
        *,
        pool_config: "Optional[dict[str, Any]]" = None,
        pool_instance: "Optional[PoolT]" = None,
        driver_features: "Optional[dict[str, Any]]" = None,
        connection_tracer: "Optional[ConnectionTracer]" = None,
    ) -> None:
        self.pool_config: dict[str, Any] = dict(pool_config) if pool_config else {}
        self.pool_instance = pool_instance
        self.driver_features: dict[str, Any] = driver_features if driver_features is not None else {}
        self.connection_tracer: ConnectionTracer = connection_tracer or LoggingConnectionTracer()
        self._connection_ids = itertools.count(1)
        self._pool_lock: Optional[asyncio.Lock] = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(pool_instance={self.pool_instance!r}, driver_features={self.driver_features!r})"

    @abstractmethod
    async def _create_pool(self) -> PoolT:
        """Create the actual async connection pool."""
        raise NotImplementedError

    @abstractmethod
    async def _close_pool(self) -> None:
        """Close the actual async connection pool."""
        raise NotImplementedError

    @abstractmethod
    def _acquire_connection(self, pool: PoolT) -> "AbstractAsyncContextManager[ConnectionT]":
        """Return a context manager that takes a connection from the pool and hands it back."""
        raise NotImplementedError

    async def create_pool(self) -> PoolT:
        """Create and return the connection pool, reusing the existing one.

        Returns:
            The connection pool.
        """
        if self.pool_instance is not None:
            return self.pool_instance
        if self._pool_lock is None:
            self._pool_lock = asyncio.Lock()
        async with self._pool_lock:
            if self.pool_instance is None:
                self.pool_instance = await self._create_pool()
                logger.debug("Created connection pool for %s", type(self).__name__)
        return self.pool_instance

    async def close_pool(self) -> None:
        """Close the connection pool."""
        if self.pool_instance is None:
            return
        await self._close_pool()
        self.pool_instance = None

    async def provide_pool(self, *args: Any, **kwargs: Any) -> PoolT:
        """Provide the pool instance, creating it on first use."""
        return await self.create_pool()

    @asynccontextmanager
    async def provide_connection(self, *args: Any, **kwargs: Any) -> "AsyncGenerator[ConnectionT, None]":
        """Provide a pooled connection for the duration of the context.

        Yields:
            A live connection that is handed back when the context exits.
        """
        pool = await self.provide_pool()
        connection_id = next(self._connection_ids)
        self.connection_tracer.connection_opened(connection_id)
        try:
            async with self._acquire_connection(pool) as connection:
                yield connection
        finally:
            self.connection_tracer.connection_closed(connection_id)

    @asynccontextmanager
    async def provide_session(self, *args: Any, **kwargs: Any) -> "AsyncGenerator[DriverT, None]":
        """Provide a driver bound to a pooled connection.

        Yields:
            A driver instance for this call.
        """
        async with self.provide_connection(*args, **kwargs) as connection:
            yield self.driver_type(connection=connection, driver_features=self.driver_features)
