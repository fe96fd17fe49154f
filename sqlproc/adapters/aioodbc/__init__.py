from sqlproc.adapters.aioodbc._types import AioodbcConnection
from sqlproc.adapters.aioodbc.config import (
    AioodbcConfig,
    AioodbcConnectionParams,
    AioodbcDriverFeatures,
    AioodbcPoolParams,
)
from sqlproc.adapters.aioodbc.core import build_connection_string, render_exec_batch, resolve_dsn
from sqlproc.adapters.aioodbc.driver import AioodbcCursor, AioodbcDriver, AioodbcExceptionHandler

__all__ = (
    "AioodbcConfig",
    "AioodbcConnection",
    "AioodbcConnectionParams",
    "AioodbcCursor",
    "AioodbcDriver",
    "AioodbcDriverFeatures",
    "AioodbcExceptionHandler",
    "AioodbcPoolParams",
    "build_connection_string",
    "render_exec_batch",
    "resolve_dsn",
)
