"""Typed access to output parameter values."""

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Optional, overload

from typing_extensions import TypeVar

from sqlproc.exceptions import InvalidArgumentError, NullParameterError, TypeCoercionError
from sqlproc.utils.schema import to_value_type

if TYPE_CHECKING:
    from sqlproc.core.parameters import Parameter

__all__ = ("extract_reserved_slots", "get_string_or_default", "get_value_or_default")

V = TypeVar("V")


@overload
def get_value_or_default(parameter: "Optional[Parameter]", default: V, value_type: None = None) -> V: ...
@overload
def get_value_or_default(parameter: "Optional[Parameter]", default: Any, value_type: "type[V]") -> V: ...
@overload
def get_value_or_default(parameter: "Optional[Parameter]", default: None = None, value_type: None = None) -> Any: ...


def get_value_or_default(parameter: "Optional[Parameter]", default: Any = None, value_type: Any = None) -> Any:
    """Read a parameter's bound value as ``value_type``, or ``default`` when it is null.

    The target type is ``value_type`` when given, otherwise the type of
    ``default``. With neither, the raw value is returned.

    Args:
        parameter: The parameter to read.
        default: Returned unchanged when the bound value is null.
        value_type: Explicit target type.

    Raises:
        NullParameterError: If ``parameter`` is None.
        TypeCoercionError: If the value cannot be converted to the target type.

    Returns:
        The converted value or ``default``.
    """
    if parameter is None:
        raise NullParameterError

    value = parameter.value
    if value is None:
        return default

    target = value_type if value_type is not None else (type(default) if default is not None else None)
    if target is None:
        return value

    try:
        return to_value_type(value, target)
    except (TypeError, ValueError) as e:
        target_name = getattr(target, "__name__", str(target))
        msg = f"Cannot convert value of parameter {parameter.name or '<return value>'} to {target_name}: {e}"
        raise TypeCoercionError(msg, value_type=target) from e


def get_string_or_default(parameter: "Optional[Parameter]") -> str:
    """Read a parameter as ``str``, returning an empty string when it is null."""
    return get_value_or_default(parameter, "", str)


def extract_reserved_slots(parameters: "Sequence[Parameter]") -> "tuple[str, int]":
    """Read the error message and error code from the trailing reserved slots.

    Args:
        parameters: The full parameter list of an invocation, after execution.

    Raises:
        InvalidArgumentError: If the list is too short to hold the reserved slots.

    Returns:
        ``(error_message, error_code)``.
    """
    if len(parameters) < 2:
        msg = f"Expected at least 2 parameters for the reserved slots, got {len(parameters)}"
        raise InvalidArgumentError(msg)
    error_message = get_string_or_default(parameters[-2])
    error_code = get_value_or_default(parameters[-1], 0, int)
    return error_message, error_code
