"""Tests for typed output-parameter extraction."""

import datetime
from decimal import Decimal

import pytest

from sqlproc.core.extraction import extract_reserved_slots, get_string_or_default, get_value_or_default
from sqlproc.core.parameters import Parameter, SqlDbType, build_all_parameters
from sqlproc.exceptions import InvalidArgumentError, NullParameterError, TypeCoercionError


def _output(value: object, db_type: SqlDbType = SqlDbType.INT) -> Parameter:
    parameter = Parameter.output("Value", db_type)
    parameter.value = value
    return parameter


@pytest.mark.parametrize("default", [0, -1, "", "fallback", Decimal("0.00"), None])
def test_null_value_returns_default_exactly(default: object) -> None:
    assert get_value_or_default(_output(None), default) is default


def test_already_typed_value_is_returned_unchanged() -> None:
    value = Decimal("12.50")
    assert get_value_or_default(_output(value), Decimal("0")) is value

    text = "already a string"
    assert get_value_or_default(_output(text), "") is text


def test_target_type_comes_from_default() -> None:
    assert get_value_or_default(_output("42"), 0) == 42
    assert get_value_or_default(_output(7), "") == "7"
    assert get_value_or_default(_output("1.25"), 0.0) == 1.25


def test_explicit_value_type_wins_over_default() -> None:
    result = get_value_or_default(_output("2024-03-01"), None, datetime.date)
    assert result == datetime.date(2024, 3, 1)


def test_no_target_returns_raw_value() -> None:
    marker = object()
    assert get_value_or_default(_output(marker)) is marker


def test_bool_is_not_accepted_as_int_unchanged() -> None:
    result = get_value_or_default(_output(True), 0)
    assert result == 1
    assert type(result) is int


def test_null_parameter_raises() -> None:
    with pytest.raises(NullParameterError, match="Parameter cannot be None"):
        get_value_or_default(None, 0)


def test_unconvertible_value_raises_type_coercion_error() -> None:
    with pytest.raises(TypeCoercionError) as exc_info:
        get_value_or_default(_output("not a number"), 0)

    assert exc_info.value.value_type is int
    assert isinstance(exc_info.value, TypeError)


def test_unsupported_target_type_raises_type_coercion_error() -> None:
    with pytest.raises(TypeCoercionError):
        get_value_or_default(_output("x"), None, list)


def test_get_string_or_default() -> None:
    assert get_string_or_default(_output(None, SqlDbType.NVARCHAR)) == ""
    assert get_string_or_default(_output("OK", SqlDbType.NVARCHAR)) == "OK"


def test_extract_reserved_slots_reads_last_two_parameters() -> None:
    invocation = build_all_parameters("GetUsers", [Parameter.input("A", 1)])
    invocation.parameters[-2].value = "OK"
    invocation.parameters[-1].value = 3

    assert extract_reserved_slots(invocation.parameters) == ("OK", 3)


def test_extract_reserved_slots_defaults_when_null() -> None:
    invocation = build_all_parameters("GetUsers")

    assert extract_reserved_slots(invocation.parameters) == ("", 0)


def test_extract_reserved_slots_requires_two_parameters() -> None:
    with pytest.raises(InvalidArgumentError):
        extract_reserved_slots([Parameter.return_value()])


@pytest.mark.parametrize("value", [1.9, "2.7", Decimal("3.5")])
def test_fractional_error_code_raises_type_coercion_error(value: object) -> None:
    invocation = build_all_parameters("GetUsers")
    invocation.parameters[-1].value = value

    with pytest.raises(TypeCoercionError):
        extract_reserved_slots(invocation.parameters)
