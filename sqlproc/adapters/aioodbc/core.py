"""aioodbc adapter helpers.

ODBC has no native output parameters, so a procedure call is rendered as a
T-SQL batch: output parameters are declared as variables, passed ``OUTPUT`` to
``EXEC``, and selected back in a trailing result set whose columns carry the
``__sqlproc_out_`` prefix.
"""

import os
import re
from typing import TYPE_CHECKING, Any, Final, Optional

from sqlproc.core.parameters import ParameterDirection, validate_parameter_name
from sqlproc.exceptions import DatabaseExecutionError, ImproperConfigurationError, InvalidArgumentError

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from sqlproc.core.parameters import ProcedureInvocation

__all__ = (
    "DEFAULT_ODBC_DRIVER",
    "OUTPUT_COLUMN_PREFIX",
    "RETURN_VALUE_VARIABLE",
    "build_connection_string",
    "format_procedure_name",
    "is_output_result_set",
    "map_odbc_exception",
    "render_exec_batch",
    "resolve_dsn",
)

DEFAULT_ODBC_DRIVER: Final[str] = "ODBC Driver 18 for SQL Server"
OUTPUT_COLUMN_PREFIX: Final[str] = "__sqlproc_out_"
RETURN_VALUE_VARIABLE: Final[str] = "@__sqlproc_rv"

_IDENTIFIER_PART = r"(?:\[[^\]]+\]|[A-Za-z_#][\w@#$]*)"
_PROCEDURE_NAME_PATTERN = re.compile(rf"^{_IDENTIFIER_PART}(?:\.{_IDENTIFIER_PART}){{0,3}}$")


def format_procedure_name(procedure_name: str) -> str:
    """Check that a procedure name is a plain or bracketed, optionally dotted identifier.

    Raises:
        InvalidArgumentError: If the name could change the meaning of the rendered batch.

    Returns:
        The name, unchanged.
    """
    if not _PROCEDURE_NAME_PATTERN.match(procedure_name):
        msg = f"Invalid stored procedure name: {procedure_name!r}"
        raise InvalidArgumentError(msg)
    return procedure_name


def _variable_name(index: int) -> str:
    return f"@__sqlproc_p{index}"


def render_exec_batch(invocation: "ProcedureInvocation", *, returns_rows: bool) -> "tuple[str, list[Any]]":
    """Render an invocation as an ODBC batch.

    Input values are bound as ``?`` markers. Input/output parameters are seeded
    in the ``DECLARE`` so their markers come first.

    Args:
        invocation: The built invocation.
        returns_rows: Queries run with ``SET NOCOUNT ON``; commands keep the
            row counts so affected rows can be summed.

    Returns:
        The batch text and its positional parameters.
    """
    name = format_procedure_name(invocation.procedure_name)
    declarations: list[str] = []
    declaration_values: list[Any] = []
    arguments: list[str] = []
    argument_values: list[Any] = []
    selected: list[str] = []

    for index, parameter in enumerate(invocation.parameters):
        direction = parameter.direction
        if direction is ParameterDirection.RETURN_VALUE:
            selected.append(RETURN_VALUE_VARIABLE)
            continue
        argument_name = validate_parameter_name(parameter.name)
        if direction is ParameterDirection.INPUT:
            arguments.append(f"{argument_name} = ?")
            argument_values.append(parameter.value)
            continue

        variable = _variable_name(index)
        declaration = f"{variable} {parameter.db_type.declaration(parameter.size)}"
        if direction is ParameterDirection.INPUT_OUTPUT:
            declaration = f"{declaration} = ?"
            declaration_values.append(parameter.value)
        declarations.append(declaration)
        arguments.append(f"{argument_name} = {variable} OUTPUT")
        selected.append(variable)

    declarations.append(f"{RETURN_VALUE_VARIABLE} INT")

    lines = ["SET NOCOUNT ON;"] if returns_rows else []
    lines.append(f"DECLARE {', '.join(declarations)};")
    exec_statement = f"EXEC {RETURN_VALUE_VARIABLE} = {name}"
    if arguments:
        exec_statement = f"{exec_statement} {', '.join(arguments)}"
    lines.append(f"{exec_statement};")
    columns = ", ".join(f"{variable} AS [{OUTPUT_COLUMN_PREFIX}{i}]" for i, variable in enumerate(selected))
    lines.append(f"SELECT {columns};")
    return "\n".join(lines), [*declaration_values, *argument_values]


def is_output_result_set(description: "Optional[Sequence[Sequence[Any]]]") -> bool:
    """Whether a cursor description belongs to the trailing output-parameter row."""
    if not description:
        return False
    column_name = description[0][0]
    return isinstance(column_name, str) and column_name.startswith(OUTPUT_COLUMN_PREFIX)


def build_connection_string(
    server: str, database: "Optional[str]" = None, *, driver: str = DEFAULT_ODBC_DRIVER, **options: Any
) -> str:
    """Build an ODBC connection string for SQL Server.

    Args:
        server: Server host, optionally with ``,port``.
        database: Initial database.
        driver: Installed ODBC driver name.
        **options: Extra ``key=value`` pairs, e.g. ``Encrypt="yes"``.

    Returns:
        The connection string.
    """
    parts = [f"DRIVER={{{driver}}}", f"SERVER={server}"]
    if database:
        parts.append(f"DATABASE={database}")
    parts.extend(f"{key}={value}" for key, value in options.items())
    return ";".join(parts) + ";"


def resolve_dsn(environ: "Optional[Mapping[str, str]]" = None) -> str:
    """Resolve a DSN from ``SQLPROC_*`` environment variables.

    ``SQLPROC_DSN`` wins; otherwise the DSN is built from ``SQLPROC_SERVER``,
    ``SQLPROC_DATABASE`` and ``SQLPROC_ODBC_DRIVER``.

    Raises:
        ImproperConfigurationError: If neither a DSN nor a server is set.
    """
    env = os.environ if environ is None else environ
    dsn = env.get("SQLPROC_DSN")
    if dsn:
        return dsn
    server = env.get("SQLPROC_SERVER", "")
    if not server:
        msg = "SQLPROC_SERVER environment variable is required when no DSN is configured"
        raise ImproperConfigurationError(msg)
    return build_connection_string(
        server, env.get("SQLPROC_DATABASE"), driver=env.get("SQLPROC_ODBC_DRIVER") or DEFAULT_ODBC_DRIVER
    )


def map_odbc_exception(error: Any) -> None:
    """Raise ``DatabaseExecutionError`` for a pyodbc error.

    pyodbc puts the SQLSTATE in ``args[0]`` and the driver message in ``args[1]``.
    """
    args = getattr(error, "args", ())
    sqlstate = args[0] if args and isinstance(args[0], str) else None
    detail = args[1] if len(args) > 1 else str(error)
    msg = f"ODBC error: {detail}"
    raise DatabaseExecutionError(msg, original=error, sqlstate=sqlstate) from error
