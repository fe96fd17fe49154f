"""Schema transformation utilities for converting driver values to Python types.

Two concerns live here:

- row mapping: turning the ``dict`` rows a driver yields into the caller's
  record type (dataclass, msgspec Struct, pydantic model or TypedDict);
- scalar conversion: coercing a single output-parameter value into one of a
  closed set of primitive kinds.
"""

import datetime
from collections.abc import Callable
from decimal import Decimal
from functools import lru_cache
from typing import Any, Final, cast
from uuid import UUID

import msgspec
from typing_extensions import TypeVar

from sqlproc.exceptions import InvalidArgumentError
from sqlproc.typing import TypeAdapter
from sqlproc.utils.logging import get_logger
from sqlproc.utils.type_guards import is_dataclass, is_msgspec_struct, is_pydantic_model, is_typed_dict

__all__ = (
    "SUPPORTED_VALUE_TYPES",
    "RowConverter",
    "ValueT",
    "build_row_converter",
    "to_schema",
    "to_value_type",
)

ValueT = TypeVar("ValueT")

RowConverter = Callable[[dict[str, Any]], Any]

logger = get_logger("utils.schema")


# =============================================================================
# Row Mapping
# =============================================================================


@lru_cache(maxsize=128)
def _detect_schema_type(schema_type: type) -> "str | None":
    """Classify a record type as one of the supported row-mapping kinds, or None."""
    return (
        "typed_dict"
        if is_typed_dict(schema_type)
        else "dataclass"
        if is_dataclass(schema_type)
        else "msgspec"
        if is_msgspec_struct(schema_type)
        else "pydantic"
        if is_pydantic_model(schema_type)
        else None
    )


def _passthrough(row: "dict[str, Any]") -> "dict[str, Any]":
    return row


def _typed_dict_row(row: "dict[str, Any]") -> "dict[str, Any]":
    return dict(row)


class _DataclassRow:
    __slots__ = ("_field_names", "_schema_type")

    def __init__(self, schema_type: type) -> None:
        self._schema_type = schema_type
        self._field_names = frozenset(schema_type.__dataclass_fields__)  # type: ignore[attr-defined]

    def __call__(self, row: "dict[str, Any]") -> Any:
        return self._schema_type(**{k: v for k, v in row.items() if k in self._field_names})


def _msgspec_dec_hook(target_type: Any, value: Any) -> Any:
    if isinstance(target_type, type) and isinstance(value, target_type):
        return value
    if target_type is UUID and isinstance(value, str):
        return UUID(value)
    msg = f"Cannot convert {type(value).__name__} to {getattr(target_type, '__name__', target_type)}"
    raise TypeError(msg)


class _MsgspecRow:
    __slots__ = ("_schema_type",)

    def __init__(self, schema_type: type) -> None:
        self._schema_type = schema_type

    def __call__(self, row: "dict[str, Any]") -> Any:
        return msgspec.convert(row, type=self._schema_type, strict=False, dec_hook=_msgspec_dec_hook)


class _PydanticRow:
    __slots__ = ("_adapter",)

    def __init__(self, schema_type: type) -> None:
        self._adapter: TypeAdapter[Any] = TypeAdapter(schema_type)

    def __call__(self, row: "dict[str, Any]") -> Any:
        return self._adapter.validate_python(row)


def build_row_converter(schema_type: "type[Any] | None") -> RowConverter:
    """Build the callable that maps one driver row onto ``schema_type``.

    Building a converter can be expensive, since pydantic compiles a validator.
    The compiled execution path builds one per result type.

    Args:
        schema_type: Target record type, or None (or ``dict``) for plain rows.

    Raises:
        InvalidArgumentError: If schema_type is not a supported record type.

    Returns:
        A row converter.
    """
    if schema_type is None or schema_type is dict:
        return _passthrough

    kind = _detect_schema_type(schema_type)
    logger.debug("Building row converter for %s (%s)", getattr(schema_type, "__name__", schema_type), kind)
    if kind == "typed_dict":
        return _typed_dict_row
    if kind == "dataclass":
        return _DataclassRow(schema_type)
    if kind == "msgspec":
        return _MsgspecRow(schema_type)
    if kind == "pydantic":
        return _PydanticRow(schema_type)

    msg = "`schema_type` should be a valid Dataclass, Pydantic model, Msgspec struct, or TypedDict"
    raise InvalidArgumentError(msg)


def to_schema(data: "list[dict[str, Any]]", *, schema_type: "type[Any] | None" = None) -> "list[Any]":
    """Convert a list of rows to a specified schema type.

    Args:
        data: Rows to convert.
        schema_type: Target schema type. If None, returns data unchanged.

    Returns:
        The converted rows.
    """
    if schema_type is None:
        return data
    converter = build_row_converter(schema_type)
    return [converter(row) for row in data]


# =============================================================================
# Scalar Type Conversion
# =============================================================================

_TRUTHY: Final[frozenset[str]] = frozenset({"1", "on", "t", "true", "y", "yes"})
_FALSY: Final[frozenset[str]] = frozenset({"0", "f", "false", "n", "no", "off"})


def _refuse(value: Any, target: type) -> TypeError:
    return TypeError(f"Cannot convert {type(value).__name__} to {target.__name__}")


def _as_int(value: Any) -> int:
    if isinstance(value, int):
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if text.lstrip("+-").isdigit():
            return int(text)
        number = Decimal(text)
    elif isinstance(value, (float, Decimal)):
        number = Decimal(value)
    else:
        raise _refuse(value, int)
    # integral values such as "42.0" are accepted
    if not number.is_finite() or number != number.to_integral_value():
        raise _refuse(value, int)
    return int(number)


def _as_float(value: Any) -> float:
    if isinstance(value, (str, int, float, Decimal)):
        return float(value)
    raise _refuse(value, float)


def _as_decimal(value: Any) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise _refuse(value, Decimal)
    return Decimal(str(value))


def _as_bool(value: Any) -> bool:
    if isinstance(value, (int, float, Decimal)):
        return bool(value)
    if isinstance(value, str):
        flag = value.strip().lower()
        if flag in _TRUTHY or flag in _FALSY:
            return flag in _TRUTHY
    raise _refuse(value, bool)


def _as_str(value: Any) -> str:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8")
    return str(value)


def _as_bytes(value: Any) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    if isinstance(value, UUID):
        return value.bytes
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    raise _refuse(value, bytes)


def _as_datetime(value: Any) -> datetime.datetime:
    if isinstance(value, str):
        return datetime.datetime.fromisoformat(value)
    if isinstance(value, datetime.date):
        return datetime.datetime(value.year, value.month, value.day)
    raise _refuse(value, datetime.datetime)


def _as_date(value: Any) -> datetime.date:
    if isinstance(value, str):
        return datetime.datetime.fromisoformat(value.strip()).date()
    if isinstance(value, datetime.datetime):
        return value.date()
    raise _refuse(value, datetime.date)


def _as_time(value: Any) -> datetime.time:
    if isinstance(value, str):
        return datetime.time.fromisoformat(value.strip())
    if isinstance(value, datetime.datetime):
        return value.time()
    raise _refuse(value, datetime.time)


def _as_uuid(value: Any) -> UUID:
    if isinstance(value, str):
        return UUID(value)
    if isinstance(value, (bytes, bytearray)):
        return UUID(bytes=bytes(value))
    raise _refuse(value, UUID)


_CONVERTERS: "Final[dict[type, Callable[[Any], Any]]]" = {
    bool: _as_bool,
    bytes: _as_bytes,
    datetime.date: _as_date,
    datetime.datetime: _as_datetime,
    datetime.time: _as_time,
    Decimal: _as_decimal,
    float: _as_float,
    int: _as_int,
    str: _as_str,
    UUID: _as_uuid,
}

SUPPORTED_VALUE_TYPES: "Final[frozenset[type]]" = frozenset(_CONVERTERS)

# isinstance would accept bool for int and datetime for date
_EXACT_MATCH_TYPES: "Final[frozenset[type]]" = frozenset({bool, datetime.date, int})


def to_value_type(value: Any, value_type: "type[ValueT]") -> "ValueT":
    """Coerce one output-parameter value to ``value_type``.

    Values that already have the requested type come back unchanged. Targets
    outside ``SUPPORTED_VALUE_TYPES`` are refused without attempting a conversion.

    Raises:
        TypeError: If the target type is unsupported or the value cannot be converted.

    Examples:
        >>> to_value_type("42", int)
        42
        >>> to_value_type("on", bool)
        True
    """
    if type(value) is value_type or (value_type not in _EXACT_MATCH_TYPES and isinstance(value, value_type)):
        return cast("ValueT", value)

    convert = _CONVERTERS.get(value_type)
    if convert is None:
        msg = f"Unsupported target type {getattr(value_type, '__name__', value_type)!s}"
        raise TypeError(msg)
    try:
        return cast("ValueT", convert(value))
    except (ValueError, ArithmeticError) as e:
        raise _refuse(value, value_type) from e
