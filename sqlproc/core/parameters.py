"""Stored procedure parameters and the invocation builder.

Every invocation carries two reserved slots in addition to the caller's
parameters: an ``@ErrorMsg`` output parameter and the procedure's integer
return value. They are appended after the caller's parameters so the last two
positions of the full list are always ``(@ErrorMsg, return value)``.
"""

import datetime
import re
from collections.abc import Iterable
from decimal import Decimal
from enum import Enum
from typing import Any, Final, NamedTuple, Optional
from uuid import UUID

from sqlproc.exceptions import InvalidArgumentError, NullParameterError

__all__ = (
    "ERROR_MESSAGE_PARAMETER_NAME",
    "ERROR_MESSAGE_SIZE",
    "Parameter",
    "ParameterDirection",
    "ProcedureInvocation",
    "SqlDbType",
    "build_all_parameters",
    "validate_parameter_name",
    "validate_procedure_name",
)

ERROR_MESSAGE_PARAMETER_NAME: Final[str] = "@ErrorMsg"
ERROR_MESSAGE_SIZE: Final[int] = 4000

_INT_MIN: Final[int] = -(2**31)
_INT_MAX: Final[int] = 2**31 - 1

_PARAMETER_NAME_PATTERN: "Final[re.Pattern[str]]" = re.compile(r"^@[A-Za-z_#][\w@#$]*$")


class ParameterDirection(Enum):
    """Direction of a stored procedure parameter."""

    INPUT = "input"
    OUTPUT = "output"
    INPUT_OUTPUT = "input_output"
    RETURN_VALUE = "return_value"

    def __str__(self) -> str:
        return self.value

    @property
    def is_output(self) -> bool:
        """Whether the database writes a value back into the parameter."""
        return self is not ParameterDirection.INPUT

    @property
    def is_input(self) -> bool:
        """Whether the caller's value is sent to the database."""
        return self in {ParameterDirection.INPUT, ParameterDirection.INPUT_OUTPUT}


class SqlDbType(Enum):
    """SQL Server data types a parameter can be declared with."""

    NVARCHAR = "NVARCHAR"
    VARCHAR = "VARCHAR"
    NCHAR = "NCHAR"
    CHAR = "CHAR"
    INT = "INT"
    BIGINT = "BIGINT"
    SMALLINT = "SMALLINT"
    TINYINT = "TINYINT"
    BIT = "BIT"
    FLOAT = "FLOAT"
    REAL = "REAL"
    DECIMAL = "DECIMAL"
    MONEY = "MONEY"
    DATETIME = "DATETIME"
    DATETIME2 = "DATETIME2"
    DATETIMEOFFSET = "DATETIMEOFFSET"
    DATE = "DATE"
    TIME = "TIME"
    VARBINARY = "VARBINARY"
    UNIQUEIDENTIFIER = "UNIQUEIDENTIFIER"

    def __str__(self) -> str:
        return self.value

    @property
    def is_sized(self) -> bool:
        """Whether the type takes a length argument."""
        return self in _SIZED_TYPES

    def declaration(self, size: Optional[int] = None) -> str:
        """Render the T-SQL type used to declare a variable of this type.

        Args:
            size: Maximum length for character and binary types. ``None``, a
                non-positive size, or a size above the type's length limit
                renders ``MAX`` for the variable-length types.

        Raises:
            InvalidArgumentError: If a fixed-length type is sized above its limit.

        Returns:
            The type declaration, e.g. ``NVARCHAR(4000)``.
        """
        if self is SqlDbType.DECIMAL:
            return "DECIMAL(38, 10)"
        if not self.is_sized:
            return self.value
        fixed_length = self in {SqlDbType.NCHAR, SqlDbType.CHAR}
        if size is None or size <= 0:
            return f"{self.value}(1)" if fixed_length else f"{self.value}(MAX)"
        if size > _MAX_LENGTHS[self]:
            if fixed_length:
                msg = f"{self.value} length {size} exceeds the maximum of {_MAX_LENGTHS[self]}"
                raise InvalidArgumentError(msg)
            return f"{self.value}(MAX)"
        return f"{self.value}({size})"

    @classmethod
    def infer(cls, value: Any) -> "SqlDbType":
        """Infer the declared type from a Python value.

        Args:
            value: The value the parameter will carry.

        Raises:
            InvalidArgumentError: If no SQL Server type matches the value.

        Returns:
            The matching SqlDbType.
        """
        if value is None or isinstance(value, str):
            return cls.NVARCHAR
        if isinstance(value, bool):
            return cls.BIT
        if isinstance(value, int):
            return cls.INT if _INT_MIN <= value <= _INT_MAX else cls.BIGINT
        if isinstance(value, float):
            return cls.FLOAT
        if isinstance(value, Decimal):
            return cls.DECIMAL
        if isinstance(value, datetime.datetime):
            return cls.DATETIMEOFFSET if value.tzinfo is not None else cls.DATETIME2
        if isinstance(value, datetime.date):
            return cls.DATE
        if isinstance(value, datetime.time):
            return cls.TIME
        if isinstance(value, (bytes, bytearray, memoryview)):
            return cls.VARBINARY
        if isinstance(value, UUID):
            return cls.UNIQUEIDENTIFIER
        msg = f"Cannot infer a SQL type for value of type {type(value).__name__}"
        raise InvalidArgumentError(msg)


_SIZED_TYPES: Final[frozenset[SqlDbType]] = frozenset(
    {SqlDbType.NVARCHAR, SqlDbType.VARCHAR, SqlDbType.NCHAR, SqlDbType.CHAR, SqlDbType.VARBINARY}
)

# longest explicit length SQL Server accepts before MAX
_MAX_LENGTHS: "Final[dict[SqlDbType, int]]" = {
    SqlDbType.NVARCHAR: 4000,
    SqlDbType.NCHAR: 4000,
    SqlDbType.VARCHAR: 8000,
    SqlDbType.CHAR: 8000,
    SqlDbType.VARBINARY: 8000,
}


def validate_parameter_name(name: str) -> str:
    """Check that a parameter name is a single @-prefixed T-SQL identifier.

    Raises:
        InvalidArgumentError: If the name could change the meaning of the rendered call.

    Returns:
        The name, unchanged.
    """
    if not _PARAMETER_NAME_PATTERN.match(name):
        msg = f"Invalid parameter name: {name!r}"
        raise InvalidArgumentError(msg)
    return name


def _normalize_name(name: str) -> str:
    name = name.strip()
    if not name:
        return ""
    return validate_parameter_name(name if name.startswith("@") else f"@{name}")


class Parameter:
    """A single stored procedure parameter.

    ``value`` is written back by the driver for output, input/output and
    return-value parameters once the call has completed.

    Args:
        name: Parameter name, with or without the leading ``@``. Only the
            return-value parameter may be unnamed.
        db_type: Declared SQL Server type.
        size: Maximum length for character and binary types.
        direction: Parameter direction.
        value: Bound value.
    """

    __slots__ = ("db_type", "direction", "name", "size", "value")

    def __init__(
        self,
        name: str,
        db_type: SqlDbType,
        size: Optional[int] = None,
        direction: ParameterDirection = ParameterDirection.INPUT,
        value: Any = None,
    ) -> None:
        normalized = _normalize_name(name or "")
        if not normalized and direction is not ParameterDirection.RETURN_VALUE:
            msg = f"Only the return value parameter may be unnamed, got a nameless {direction} parameter"
            raise InvalidArgumentError(msg)
        # raises for oversized fixed-length types
        db_type.declaration(size)
        self.name = normalized
        self.db_type = db_type
        self.size = size
        self.direction = direction
        self.value = value

    @classmethod
    def input(cls, name: str, value: Any, db_type: Optional[SqlDbType] = None, size: Optional[int] = None) -> "Parameter":
        """Create an input parameter, inferring its type from the value when not given."""
        return cls(name, db_type or SqlDbType.infer(value), size, ParameterDirection.INPUT, value)

    @classmethod
    def output(cls, name: str, db_type: SqlDbType, size: Optional[int] = None) -> "Parameter":
        """Create an output parameter."""
        return cls(name, db_type, size, ParameterDirection.OUTPUT)

    @classmethod
    def input_output(
        cls, name: str, value: Any, db_type: Optional[SqlDbType] = None, size: Optional[int] = None
    ) -> "Parameter":
        """Create an input/output parameter seeded with ``value``."""
        return cls(name, db_type or SqlDbType.infer(value), size, ParameterDirection.INPUT_OUTPUT, value)

    @classmethod
    def return_value(cls) -> "Parameter":
        """Create the unnamed integer return-value parameter."""
        return cls("", SqlDbType.INT, direction=ParameterDirection.RETURN_VALUE)

    def __repr__(self) -> str:
        return (
            f"Parameter(name={self.name!r}, db_type={self.db_type}, size={self.size!r}, "
            f"direction={self.direction}, value={self.value!r})"
        )


class ProcedureInvocation(NamedTuple):
    """A fully built stored procedure call."""

    procedure_name: str
    sql: str
    parameters: "tuple[Parameter, ...]"

    @property
    def caller_parameters(self) -> "tuple[Parameter, ...]":
        """The parameters supplied by the caller, without the reserved slots."""
        return self.parameters[:-2]

    @property
    def output_parameters(self) -> "tuple[Parameter, ...]":
        """Every parameter the database writes a value back into, in list order."""
        return tuple(p for p in self.parameters if p.direction.is_output)


def validate_procedure_name(procedure_name: Any) -> str:
    """Ensure a procedure name is a non-empty string.

    Raises:
        InvalidArgumentError: If the name is missing or blank.

    Returns:
        The name with surrounding whitespace removed.
    """
    if procedure_name is None:
        msg = "procedure_name cannot be None"
        raise InvalidArgumentError(msg)
    if not isinstance(procedure_name, str) or not procedure_name.strip():
        msg = "procedure_name must be a non-empty string"
        raise InvalidArgumentError(msg)
    return procedure_name.strip()


def build_all_parameters(procedure_name: str, parameters: "Iterable[Parameter]" = ()) -> ProcedureInvocation:
    """Build the full parameter list and invocation text for a procedure call.

    The caller's parameters keep their order and identity; the reserved
    ``@ErrorMsg`` output and the return value are appended after them.

    Args:
        procedure_name: Name of the stored procedure, optionally schema qualified.
        parameters: The caller's parameters.

    Raises:
        InvalidArgumentError: If the name is blank or the caller supplied a return-value parameter.
        NullParameterError: If any caller parameter is None.

    Returns:
        The built invocation.
    """
    name = validate_procedure_name(procedure_name)

    caller_parameters = list(parameters)
    for index, parameter in enumerate(caller_parameters):
        if parameter is None:
            msg = f"Parameter at position {index} is None"
            raise NullParameterError(msg)
        if parameter.direction is ParameterDirection.RETURN_VALUE:
            msg = "The return value parameter is reserved and cannot be supplied by the caller"
            raise InvalidArgumentError(msg)
        if parameter.name.lower() == ERROR_MESSAGE_PARAMETER_NAME.lower():
            msg = f"{ERROR_MESSAGE_PARAMETER_NAME} is reserved and cannot be supplied by the caller"
            raise InvalidArgumentError(msg)

    all_parameters = (
        *caller_parameters,
        Parameter(ERROR_MESSAGE_PARAMETER_NAME, SqlDbType.NVARCHAR, ERROR_MESSAGE_SIZE, ParameterDirection.OUTPUT),
        Parameter.return_value(),
    )
    names = ", ".join(p.name for p in all_parameters if p.name)
    return ProcedureInvocation(procedure_name=name, sql=f"{name} {names}", parameters=all_parameters)
