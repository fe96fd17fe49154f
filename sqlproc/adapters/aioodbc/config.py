"""aioodbc database configuration."""

from typing import TYPE_CHECKING, Any, ClassVar, Optional, TypedDict

import aioodbc
from typing_extensions import NotRequired

from sqlproc.adapters.aioodbc._types import AioodbcConnection
from sqlproc.adapters.aioodbc.core import resolve_dsn
from sqlproc.adapters.aioodbc.driver import AioodbcDriver
from sqlproc.config import AsyncDatabaseConfig
from sqlproc.utils.logging import get_logger

if TYPE_CHECKING:
    from contextlib import AbstractAsyncContextManager

    from aioodbc.pool import Pool

    from sqlproc.observability import ConnectionTracer


__all__ = ("AioodbcConfig", "AioodbcConnectionParams", "AioodbcDriverFeatures", "AioodbcPoolParams")

logger = get_logger("adapters.aioodbc")


class AioodbcConnectionParams(TypedDict):
    """aioodbc connection parameters."""

    dsn: NotRequired[str]
    autocommit: NotRequired[bool]
    timeout: NotRequired[int]
    attrs_before: NotRequired["dict[int, Any]"]
    extra: NotRequired["dict[str, Any]"]


class AioodbcPoolParams(AioodbcConnectionParams):
    """aioodbc pool parameters."""

    minsize: NotRequired[int]
    maxsize: NotRequired[int]
    echo: NotRequired[bool]
    pool_recycle: NotRequired[int]


class AioodbcDriverFeatures(TypedDict):
    """aioodbc driver feature flags.

    fetch_size: Rows fetched per round trip while streaming a result set.
    """

    fetch_size: NotRequired[int]


class AioodbcConfig(AsyncDatabaseConfig[AioodbcConnection, "Pool", AioodbcDriver]):
    """Configuration for SQL Server connections pooled by aioodbc.

    When ``pool_config`` carries no ``dsn`` it is resolved from the
    ``SQLPROC_*`` environment variables at pool creation.
    """

    __slots__ = ()
    driver_type: ClassVar[type[AioodbcDriver]] = AioodbcDriver
    connection_type: "ClassVar[type[AioodbcConnection]]" = AioodbcConnection
    supports_connection_pooling: ClassVar[bool] = True

    def __init__(
        self,
        *,
        pool_config: "Optional[AioodbcPoolParams | dict[str, Any]]" = None,
        pool_instance: "Optional[Pool]" = None,
        driver_features: "Optional[AioodbcDriverFeatures | dict[str, Any]]" = None,
        connection_tracer: "Optional[ConnectionTracer]" = None,
    ) -> None:
        """Initialize aioodbc configuration.

        Args:
            pool_config: Pool configuration parameters, including connection settings.
            pool_instance: Existing pool instance to use.
            driver_features: Driver feature configuration.
            connection_tracer: Receives connection open/close notifications.
        """
        processed_pool_config: dict[str, Any] = dict(pool_config) if pool_config else {}
        extras = processed_pool_config.pop("extra", {})
        processed_pool_config.update(extras)
        super().__init__(
            pool_config=processed_pool_config,
            pool_instance=pool_instance,
            driver_features=dict(driver_features) if driver_features else {},
            connection_tracer=connection_tracer,
        )

    def _get_pool_config_dict(self) -> "dict[str, Any]":
        config = {key: value for key, value in self.pool_config.items() if value is not None}
        if not config.get("dsn"):
            config["dsn"] = resolve_dsn()
        return config

    async def _create_pool(self) -> "Pool":
        """Create the actual async connection pool."""
        config = self._get_pool_config_dict()
        logger.debug("Creating aioodbc pool (minsize=%s, maxsize=%s)", config.get("minsize"), config.get("maxsize"))
        return await aioodbc.create_pool(**config)

    async def _close_pool(self) -> None:
        """Close the actual async connection pool."""
        if self.pool_instance is not None:
            self.pool_instance.close()
            await self.pool_instance.wait_closed()

    def _acquire_connection(self, pool: "Pool") -> "AbstractAsyncContextManager[AioodbcConnection]":
        return pool.acquire()  # type: ignore[no-any-return]
