"""Shared fixtures: an in-memory procedure catalog behind a fake pool, config and driver."""

from collections.abc import AsyncGenerator, AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Optional

import pytest

from sqlproc.config import AsyncDatabaseConfig
from sqlproc.core.cache import CompiledQueryCache
from sqlproc.core.parameters import ERROR_MESSAGE_PARAMETER_NAME, ParameterDirection, ProcedureInvocation
from sqlproc.driver import AsyncProcedureDriverBase
from sqlproc.exceptions import DatabaseExecutionError, SQLProcError


@dataclass
class FakeProcedure:
    """What a stored procedure does when the fake driver runs it."""

    rows: "list[dict[str, Any]]" = field(default_factory=list)
    error_message: "Optional[str]" = None
    error_code: "Optional[int]" = 0
    rows_affected: int = 0
    outputs: "dict[str, Any]" = field(default_factory=dict)
    error: "Optional[BaseException]" = None
    before_row: "Optional[Callable[[int], None]]" = None


class FakeConnection:
    def __init__(self, procedures: "dict[str, FakeProcedure]") -> None:
        self.procedures = procedures
        self.executed: list[ProcedureInvocation] = []


class FakePool:
    def __init__(self, procedures: "dict[str, FakeProcedure]") -> None:
        self.procedures = procedures
        self.acquired = 0
        self.released = 0
        self.closed = False
        self.connections: list[FakeConnection] = []

    @property
    def in_use(self) -> int:
        return self.acquired - self.released

    @asynccontextmanager
    async def acquire(self) -> "AsyncGenerator[FakeConnection, None]":
        connection = FakeConnection(self.procedures)
        self.connections.append(connection)
        self.acquired += 1
        try:
            yield connection
        finally:
            self.released += 1


class _FakeCursor:
    def __init__(self, connection: FakeConnection) -> None:
        self.connection = connection
        self.procedure: Optional[FakeProcedure] = None


class FakeDriver(AsyncProcedureDriverBase):
    """Runs invocations against the in-memory procedure catalog."""

    __slots__ = ()

    @asynccontextmanager
    async def with_cursor(self, connection: FakeConnection) -> "AsyncGenerator[_FakeCursor, None]":
        yield _FakeCursor(connection)

    @asynccontextmanager
    async def handle_database_exceptions(self) -> "AsyncGenerator[None, None]":
        try:
            yield
        except SQLProcError:
            raise
        except Exception as e:
            msg = f"Fake database error: {e}"
            raise DatabaseExecutionError(msg, original=e) from e

    async def _execute(self, cursor: _FakeCursor, invocation: ProcedureInvocation, *, returns_rows: bool) -> None:
        cursor.connection.executed.append(invocation)
        procedure = cursor.connection.procedures.get(invocation.procedure_name)
        if procedure is None:
            msg = f"Could not find stored procedure '{invocation.procedure_name}'"
            raise RuntimeError(msg)
        if procedure.error is not None:
            raise procedure.error
        cursor.procedure = procedure

    async def _fetch_rows(self, cursor: _FakeCursor) -> "AsyncIterator[dict[str, Any]]":
        assert cursor.procedure is not None
        for index, row in enumerate(cursor.procedure.rows):
            if cursor.procedure.before_row is not None:
                cursor.procedure.before_row(index)
            yield dict(row)

    async def _rows_affected(self, cursor: _FakeCursor) -> int:
        assert cursor.procedure is not None
        return cursor.procedure.rows_affected

    async def _read_output_parameters(self, cursor: _FakeCursor, invocation: ProcedureInvocation) -> None:
        procedure = cursor.procedure
        assert procedure is not None
        for parameter in invocation.output_parameters:
            if parameter.direction is ParameterDirection.RETURN_VALUE:
                parameter.value = procedure.error_code
            elif parameter.name == ERROR_MESSAGE_PARAMETER_NAME:
                parameter.value = procedure.error_message
            else:
                parameter.value = procedure.outputs.get(parameter.name)


class RecordingTracer:
    def __init__(self) -> None:
        self.events: list[tuple[str, int]] = []

    def connection_opened(self, connection_id: int) -> None:
        self.events.append(("opened", connection_id))

    def connection_closed(self, connection_id: int) -> None:
        self.events.append(("closed", connection_id))


class FakeConfig(AsyncDatabaseConfig[FakeConnection, FakePool, FakeDriver]):
    __slots__ = ("pools_created", "procedures")
    driver_type = FakeDriver
    connection_type = FakeConnection

    def __init__(self, procedures: "dict[str, FakeProcedure]", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.procedures = procedures
        self.pools_created = 0

    async def _create_pool(self) -> FakePool:
        self.pools_created += 1
        return FakePool(self.procedures)

    async def _close_pool(self) -> None:
        if self.pool_instance is not None:
            self.pool_instance.closed = True

    def _acquire_connection(self, pool: FakePool) -> Any:
        return pool.acquire()


@pytest.fixture
def procedures() -> "dict[str, FakeProcedure]":
    return {}


@pytest.fixture
def register_procedure(procedures: "dict[str, FakeProcedure]") -> "Callable[..., FakeProcedure]":
    def _register(name: str, **behaviour: Any) -> FakeProcedure:
        procedure = FakeProcedure(**behaviour)
        procedures[name] = procedure
        return procedure

    return _register


@pytest.fixture
def tracer() -> RecordingTracer:
    return RecordingTracer()


@pytest.fixture
def fake_pool(procedures: "dict[str, FakeProcedure]") -> FakePool:
    return FakePool(procedures)


@pytest.fixture
def fake_config(procedures: "dict[str, FakeProcedure]", fake_pool: FakePool, tracer: RecordingTracer) -> FakeConfig:
    return FakeConfig(procedures, pool_instance=fake_pool, connection_tracer=tracer)


@pytest.fixture
def lazy_config(procedures: "dict[str, FakeProcedure]", tracer: RecordingTracer) -> FakeConfig:
    return FakeConfig(procedures, connection_tracer=tracer)


@pytest.fixture
def plan_cache() -> CompiledQueryCache:
    return CompiledQueryCache()
