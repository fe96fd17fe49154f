"""Public entry points for calling stored procedures.

``ProcedureGateway`` executes every call on the interpreted path, building the
row mapping per call. ``CompiledProcedureGateway`` reuses a compiled plan per
result type and is meant for procedures called at high frequency. Commands
always take the interpreted path.

Usage::

    gateway = ProcedureGateway(AioodbcConfig(pool_config={"dsn": dsn}))
    users, error_message, error_code = await gateway.query_raw(
        "GetUsers", Parameter.input("TenantId", 42), schema_type=User
    )
"""

from contextlib import aclosing
from typing import TYPE_CHECKING, Any, Optional, overload

from typing_extensions import TypeVar

from sqlproc.core.cache import CompiledQueryCache, get_compiled_query_cache
from sqlproc.core.extraction import extract_reserved_slots
from sqlproc.core.parameters import build_all_parameters
from sqlproc.core.result import CommandResult, ProcedureResult
from sqlproc.utils.logging import get_logger
from sqlproc.utils.schema import build_row_converter

if TYPE_CHECKING:
    import asyncio

    from sqlproc.config import AsyncDatabaseConfig
    from sqlproc.core.parameters import Parameter

__all__ = ("CompiledProcedureGateway", "ProcedureGateway")

SchemaT = TypeVar("SchemaT")

logger = get_logger("gateway")


class _ProcedureGatewayBase:
    __slots__ = ("config",)

    def __init__(self, config: "AsyncDatabaseConfig[Any, Any, Any]") -> None:
        self.config = config

    async def execute_raw(
        self,
        procedure_name: str,
        *parameters: "Parameter",
        cancel_event: "Optional[asyncio.Event]" = None,
    ) -> CommandResult:
        """Execute a stored procedure as a command.

        Args:
            procedure_name: Name of the stored procedure.
            *parameters: The caller's parameters, in order.
            cancel_event: Set it to abandon the call.

        Raises:
            InvalidArgumentError: If the procedure name is missing, before any connection is acquired.
            DatabaseExecutionError: If the database call fails.
            ExecutionCancelledError: If ``cancel_event`` is set before completion.

        Returns:
            ``(rows_affected, error_message, error_code)``.
        """
        invocation = build_all_parameters(procedure_name, parameters)
        async with self.config.provide_session() as driver:
            return await driver.execute_raw(invocation, cancel_event=cancel_event)


class ProcedureGateway(_ProcedureGatewayBase):
    """Call stored procedures on the interpreted path."""

    __slots__ = ()

    @overload
    async def query_raw(
        self,
        procedure_name: str,
        *parameters: "Parameter",
        schema_type: "type[SchemaT]",
        cancel_event: "Optional[asyncio.Event]" = None,
    ) -> "ProcedureResult[SchemaT]": ...

    @overload
    async def query_raw(
        self,
        procedure_name: str,
        *parameters: "Parameter",
        schema_type: None = None,
        cancel_event: "Optional[asyncio.Event]" = None,
    ) -> "ProcedureResult[dict[str, Any]]": ...

    async def query_raw(
        self,
        procedure_name: str,
        *parameters: "Parameter",
        schema_type: "Optional[type[Any]]" = None,
        cancel_event: "Optional[asyncio.Event]" = None,
    ) -> "ProcedureResult[Any]":
        """Execute a stored procedure and return all of its rows.

        Args:
            procedure_name: Name of the stored procedure.
            *parameters: The caller's parameters, in order.
            schema_type: Record type the rows are mapped onto, or None for ``dict`` rows.
            cancel_event: Set it to abandon the call; no partial row list is returned.

        Raises:
            InvalidArgumentError: If the procedure name is missing or ``schema_type`` is unsupported,
                before any connection is acquired.
            DatabaseExecutionError: If the database call fails.
            ExecutionCancelledError: If ``cancel_event`` is set before completion.
            TypeCoercionError: If a row or the error code cannot be converted.

        Returns:
            ``(rows, error_message, error_code)``.
        """
        invocation = build_all_parameters(procedure_name, parameters)
        row_converter = build_row_converter(schema_type)
        async with self.config.provide_session() as driver:
            return await driver.query_raw(
                invocation, schema_type=schema_type, row_converter=row_converter, cancel_event=cancel_event
            )


class CompiledProcedureGateway(_ProcedureGatewayBase):
    """Call stored procedures through plans compiled once per result type.

    Args:
        config: Supplies a connection per call.
        cache: Plan cache to use. Defaults to the process-wide cache.
    """

    __slots__ = ("_cache",)

    def __init__(
        self, config: "AsyncDatabaseConfig[Any, Any, Any]", cache: "Optional[CompiledQueryCache]" = None
    ) -> None:
        super().__init__(config)
        self._cache = cache if cache is not None else get_compiled_query_cache()

    @property
    def cache(self) -> CompiledQueryCache:
        """The plan cache this gateway compiles into."""
        return self._cache

    @overload
    async def query_raw(
        self,
        procedure_name: str,
        *parameters: "Parameter",
        schema_type: "type[SchemaT]",
        cancel_event: "Optional[asyncio.Event]" = None,
    ) -> "ProcedureResult[SchemaT]": ...

    @overload
    async def query_raw(
        self,
        procedure_name: str,
        *parameters: "Parameter",
        schema_type: None = None,
        cancel_event: "Optional[asyncio.Event]" = None,
    ) -> "ProcedureResult[dict[str, Any]]": ...

    async def query_raw(
        self,
        procedure_name: str,
        *parameters: "Parameter",
        schema_type: "Optional[type[Any]]" = None,
        cancel_event: "Optional[asyncio.Event]" = None,
    ) -> "ProcedureResult[Any]":
        """Execute a stored procedure through its compiled plan and return all of its rows.

        The plan streams rows lazily; they are drained into a list here so the
        result matches the interpreted path.

        Args:
            procedure_name: Name of the stored procedure.
            *parameters: The caller's parameters, in order.
            schema_type: Record type the rows are mapped onto, or None for ``dict`` rows.
            cancel_event: Set it to abandon the call; no partial row list is returned.

        Raises:
            InvalidArgumentError: If the procedure name is missing or ``schema_type`` is unsupported,
                before any connection is acquired.
            DatabaseExecutionError: If the database call fails.
            ExecutionCancelledError: If ``cancel_event`` is set before completion.
            TypeCoercionError: If a row or the error code cannot be converted.

        Returns:
            ``(rows, error_message, error_code)``.
        """
        invocation = build_all_parameters(procedure_name, parameters)
        plan = self._cache.get_or_create(schema_type)
        async with self.config.provide_session() as driver:
            async with aclosing(plan.invoke(driver, invocation, cancel_event=cancel_event)) as stream:
                rows = [row async for row in stream]

        error_message, error_code = extract_reserved_slots(invocation.parameters)
        logger.debug("Procedure %s returned %d rows (code=%d)", invocation.procedure_name, len(rows), error_code)
        return ProcedureResult(rows, error_message, error_code)
