"""aioodbc SQL Server driver implementation.

Executes rendered procedure batches on one pooled ODBC connection, streams the
procedure's first result set and binds output parameters from the trailing
output row.
"""

from typing import TYPE_CHECKING, Any, Final, Optional

import pyodbc

from sqlproc.adapters.aioodbc.core import is_output_result_set, map_odbc_exception, render_exec_batch
from sqlproc.driver import AsyncProcedureDriverBase
from sqlproc.exceptions import DatabaseExecutionError, SQLProcError
from sqlproc.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from aioodbc.cursor import Cursor

    from sqlproc.adapters.aioodbc._types import AioodbcConnection
    from sqlproc.core.parameters import ProcedureInvocation

__all__ = ("AioodbcCursor", "AioodbcDriver", "AioodbcExceptionHandler")

DEFAULT_FETCH_SIZE: Final[int] = 500

logger = get_logger("adapters.aioodbc")


class AioodbcCursor:
    """Context manager for aioodbc cursor operations."""

    __slots__ = ("connection", "cursor")

    def __init__(self, connection: "AioodbcConnection") -> None:
        self.connection = connection
        self.cursor: Optional[Cursor] = None

    async def __aenter__(self) -> "Cursor":
        self.cursor = await self.connection.cursor()
        return self.cursor

    async def __aexit__(self, *_: Any) -> None:
        if self.cursor is not None:
            await self.cursor.close()


class AioodbcExceptionHandler:
    """Async context manager mapping pyodbc errors to ``DatabaseExecutionError``.

    sqlproc errors and ``BaseException`` subclasses such as
    ``asyncio.CancelledError`` pass through unchanged.
    """

    __slots__ = ()

    async def __aenter__(self) -> None:
        return None

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if exc_type is None or issubclass(exc_type, SQLProcError):
            return
        if issubclass(exc_type, pyodbc.Error):
            map_odbc_exception(exc_val)
        if issubclass(exc_type, Exception):
            msg = "Unexpected database operation error"
            raise DatabaseExecutionError(msg, original=exc_val) from exc_val


class AioodbcDriver(AsyncProcedureDriverBase):
    """aioodbc driver for SQL Server stored procedures.

    Supported ``driver_features``:

    - ``fetch_size``: rows fetched per round trip while streaming (default 500).
    """

    __slots__ = ()

    def __init__(self, connection: "AioodbcConnection", driver_features: "Optional[dict[str, Any]]" = None) -> None:
        super().__init__(connection=connection, driver_features=driver_features)

    @property
    def fetch_size(self) -> int:
        return int(self.driver_features.get("fetch_size", DEFAULT_FETCH_SIZE))

    def with_cursor(self, connection: "AioodbcConnection") -> AioodbcCursor:
        return AioodbcCursor(connection)

    def handle_database_exceptions(self) -> AioodbcExceptionHandler:
        return AioodbcExceptionHandler()

    async def _execute(self, cursor: "Cursor", invocation: "ProcedureInvocation", *, returns_rows: bool) -> None:
        sql, parameters = render_exec_batch(invocation, returns_rows=returns_rows)
        logger.debug("Executing %s", invocation.sql)
        await cursor.execute(sql, *parameters)

    async def _fetch_rows(self, cursor: "Cursor") -> "AsyncIterator[dict[str, Any]]":
        """Yield the rows of the first result set the procedure produced."""
        while cursor.description is None:
            if not await cursor.nextset():
                return
        description = cursor.description
        if is_output_result_set(description):
            return

        columns = [column[0] for column in description]
        fetch_size = self.fetch_size
        while True:
            batch = await cursor.fetchmany(fetch_size)
            if not batch:
                return
            for row in batch:
                yield dict(zip(columns, row))

    async def _rows_affected(self, cursor: "Cursor") -> int:
        """Sum the row counts reported before the output row."""
        total = 0
        while not is_output_result_set(cursor.description):
            if cursor.description is None and cursor.rowcount > 0:
                total += cursor.rowcount
            if not await cursor.nextset():
                break
        return total

    async def _read_output_parameters(self, cursor: "Cursor", invocation: "ProcedureInvocation") -> None:
        while not is_output_result_set(cursor.description):
            if not await cursor.nextset():
                msg = f"Output parameters of {invocation.procedure_name} were not returned"
                raise DatabaseExecutionError(msg)

        row = await cursor.fetchone()
        if row is None:
            msg = f"Output parameters of {invocation.procedure_name} were not returned"
            raise DatabaseExecutionError(msg)
        for parameter, value in zip(invocation.output_parameters, row):
            parameter.value = value
