"""Asynchronous driver protocol implementation."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar, Optional

from sqlproc.core.execution import check_cancelled, convert_row
from sqlproc.core.extraction import extract_reserved_slots
from sqlproc.core.result import CommandResult, ProcedureResult
from sqlproc.utils.logging import get_logger
from sqlproc.utils.schema import build_row_converter

if TYPE_CHECKING:
    import asyncio
    from collections.abc import AsyncIterator
    from contextlib import AbstractAsyncContextManager

    from sqlproc.core.parameters import ProcedureInvocation
    from sqlproc.utils.schema import RowConverter

logger = get_logger("driver")

__all__ = ("AsyncProcedureDriverBase",)


class AsyncProcedureDriverBase(ABC):
    """Base class for drivers that execute stored procedures on one live connection.

    The public methods orchestrate the execution flow; concrete adapters
    implement the database-specific steps.

    Args:
        connection: The connection this driver executes on. It is never shared
            with another in-flight call.
        driver_features: Adapter specific options.
    """

    __slots__ = ("connection", "driver_features")
    dialect: "ClassVar[str]" = "tsql"

    def __init__(self, connection: Any, driver_features: "Optional[dict[str, Any]]" = None) -> None:
        self.connection = connection
        self.driver_features: dict[str, Any] = driver_features if driver_features is not None else {}

    @abstractmethod
    def with_cursor(self, connection: Any) -> "AbstractAsyncContextManager[Any]":
        """Return an async context manager for cursor acquisition and cleanup."""

    @abstractmethod
    def handle_database_exceptions(self) -> "AbstractAsyncContextManager[None]":
        """Return an async context manager translating driver errors into ``DatabaseExecutionError``.

        ``SQLProcError`` subclasses and ``asyncio.CancelledError`` must pass through unchanged.
        """

    @abstractmethod
    async def _execute(self, cursor: Any, invocation: "ProcedureInvocation", *, returns_rows: bool) -> None:
        """Send the invocation to the database.

        Args:
            cursor: Database cursor.
            invocation: The built invocation.
            returns_rows: True for queries, False for commands.
        """

    @abstractmethod
    def _fetch_rows(self, cursor: Any) -> "AsyncIterator[dict[str, Any]]":
        """Yield the rows of the procedure's result set, in database order."""

    @abstractmethod
    async def _rows_affected(self, cursor: Any) -> int:
        """Return the number of rows the procedure affected."""

    @abstractmethod
    async def _read_output_parameters(self, cursor: Any, invocation: "ProcedureInvocation") -> None:
        """Bind the values the database wrote back into the invocation's output parameters.

        Called only after every row of the call has been consumed.
        """

    async def query_raw(
        self,
        invocation: "ProcedureInvocation",
        *,
        schema_type: "Optional[type[Any]]" = None,
        row_converter: "Optional[RowConverter]" = None,
        cancel_event: "Optional[asyncio.Event]" = None,
    ) -> ProcedureResult[Any]:
        """Execute a procedure and materialize all of its rows.

        Unless ``row_converter`` is given, the row mapping for ``schema_type``
        is built for this call only.

        Args:
            invocation: The built invocation.
            schema_type: Record type the rows are mapped onto, or None for ``dict`` rows.
            row_converter: A converter already built for ``schema_type``.
            cancel_event: Checked before execution and at every row boundary.

        Returns:
            The rows with the error message and error code.
        """
        check_cancelled(cancel_event, invocation.procedure_name)
        converter = build_row_converter(schema_type) if row_converter is None else row_converter
        rows: list[Any] = []
        async with self.handle_database_exceptions(), self.with_cursor(self.connection) as cursor:
            await self._execute(cursor, invocation, returns_rows=True)
            async for row in self._fetch_rows(cursor):
                check_cancelled(cancel_event, invocation.procedure_name)
                rows.append(convert_row(converter, row))
            await self._read_output_parameters(cursor, invocation)

        error_message, error_code = extract_reserved_slots(invocation.parameters)
        logger.debug("Procedure %s returned %d rows (code=%d)", invocation.procedure_name, len(rows), error_code)
        return ProcedureResult(rows, error_message, error_code)

    async def stream_raw(
        self, invocation: "ProcedureInvocation", *, cancel_event: "Optional[asyncio.Event]" = None
    ) -> "AsyncIterator[dict[str, Any]]":
        """Execute a procedure and yield its rows as they arrive.

        The iterator is single pass. Output parameters are bound only once it
        has been exhausted.

        Args:
            invocation: The built invocation.
            cancel_event: Checked before execution and at every row boundary.

        Yields:
            Rows as ``dict`` objects, in database order.
        """
        check_cancelled(cancel_event, invocation.procedure_name)
        async with self.handle_database_exceptions(), self.with_cursor(self.connection) as cursor:
            await self._execute(cursor, invocation, returns_rows=True)
            async for row in self._fetch_rows(cursor):
                check_cancelled(cancel_event, invocation.procedure_name)
                yield row
            await self._read_output_parameters(cursor, invocation)

    async def execute_raw(
        self, invocation: "ProcedureInvocation", *, cancel_event: "Optional[asyncio.Event]" = None
    ) -> CommandResult:
        """Execute a procedure as a command.

        Args:
            invocation: The built invocation.
            cancel_event: Checked before execution.

        Returns:
            The affected-row count with the error message and error code.
        """
        check_cancelled(cancel_event, invocation.procedure_name)
        async with self.handle_database_exceptions(), self.with_cursor(self.connection) as cursor:
            await self._execute(cursor, invocation, returns_rows=False)
            rows_affected = await self._rows_affected(cursor)
            await self._read_output_parameters(cursor, invocation)

        error_message, error_code = extract_reserved_slots(invocation.parameters)
        logger.debug("Procedure %s affected %d rows (code=%d)", invocation.procedure_name, rows_affected, error_code)
        return CommandResult(rows_affected, error_message, error_code)
