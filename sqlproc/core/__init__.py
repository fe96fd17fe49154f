"""Core stored procedure invocation machinery."""

from sqlproc.core.cache import (
    CacheStats,
    CompiledPlan,
    CompiledQueryCache,
    compile_plan,
    get_compiled_query_cache,
    reset_compiled_query_cache,
)
from sqlproc.core.extraction import extract_reserved_slots, get_string_or_default, get_value_or_default
from sqlproc.core.parameters import (
    ERROR_MESSAGE_PARAMETER_NAME,
    ERROR_MESSAGE_SIZE,
    Parameter,
    ParameterDirection,
    ProcedureInvocation,
    SqlDbType,
    build_all_parameters,
    validate_procedure_name,
)
from sqlproc.core.result import CommandResult, ProcedureResult

__all__ = (
    "ERROR_MESSAGE_PARAMETER_NAME",
    "ERROR_MESSAGE_SIZE",
    "CacheStats",
    "CommandResult",
    "CompiledPlan",
    "CompiledQueryCache",
    "Parameter",
    "ParameterDirection",
    "ProcedureInvocation",
    "ProcedureResult",
    "SqlDbType",
    "build_all_parameters",
    "compile_plan",
    "extract_reserved_slots",
    "get_compiled_query_cache",
    "get_string_or_default",
    "get_value_or_default",
    "reset_compiled_query_cache",
    "validate_procedure_name",
)
