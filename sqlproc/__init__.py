"""sqlproc: call SQL Server stored procedures through one calling convention."""

from sqlproc import adapters, core, driver, exceptions, typing, utils
from sqlproc.__metadata__ import __version__
from sqlproc.config import AsyncDatabaseConfig
from sqlproc.core.cache import CacheStats, CompiledQueryCache, get_compiled_query_cache
from sqlproc.core.extraction import extract_reserved_slots, get_string_or_default, get_value_or_default
from sqlproc.core.parameters import Parameter, ParameterDirection, ProcedureInvocation, SqlDbType
from sqlproc.core.result import CommandResult, ProcedureResult
from sqlproc.driver import AsyncProcedureDriverBase
from sqlproc.exceptions import (
    DatabaseExecutionError,
    ExecutionCancelledError,
    ImproperConfigurationError,
    InvalidArgumentError,
    NullParameterError,
    SQLProcError,
    TypeCoercionError,
)
from sqlproc.gateway import CompiledProcedureGateway, ProcedureGateway
from sqlproc.observability import ConnectionTracer, LoggingConnectionTracer

__all__ = (
    "AsyncDatabaseConfig",
    "AsyncProcedureDriverBase",
    "CacheStats",
    "CommandResult",
    "CompiledProcedureGateway",
    "CompiledQueryCache",
    "ConnectionTracer",
    "DatabaseExecutionError",
    "ExecutionCancelledError",
    "ImproperConfigurationError",
    "InvalidArgumentError",
    "LoggingConnectionTracer",
    "NullParameterError",
    "Parameter",
    "ParameterDirection",
    "ProcedureGateway",
    "ProcedureInvocation",
    "ProcedureResult",
    "SQLProcError",
    "SqlDbType",
    "TypeCoercionError",
    "__version__",
    "adapters",
    "core",
    "driver",
    "exceptions",
    "extract_reserved_slots",
    "get_compiled_query_cache",
    "get_string_or_default",
    "get_value_or_default",
    "typing",
    "utils",
)
