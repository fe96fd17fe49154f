"""Tests for stored procedure parameters and the invocation builder."""

import datetime
from decimal import Decimal
from uuid import uuid4

import pytest

from sqlproc.core.parameters import (
    ERROR_MESSAGE_PARAMETER_NAME,
    ERROR_MESSAGE_SIZE,
    Parameter,
    ParameterDirection,
    SqlDbType,
    build_all_parameters,
    validate_procedure_name,
)
from sqlproc.exceptions import InvalidArgumentError, NullParameterError


def test_build_all_parameters_appends_reserved_slots() -> None:
    invocation = build_all_parameters("GetUsers")

    assert invocation.procedure_name == "GetUsers"
    assert invocation.sql == "GetUsers @ErrorMsg"
    assert len(invocation.parameters) == 2

    error_message, return_value = invocation.parameters
    assert error_message.name == ERROR_MESSAGE_PARAMETER_NAME
    assert error_message.db_type is SqlDbType.NVARCHAR
    assert error_message.size == ERROR_MESSAGE_SIZE
    assert error_message.direction is ParameterDirection.OUTPUT
    assert return_value.name == ""
    assert return_value.db_type is SqlDbType.INT
    assert return_value.direction is ParameterDirection.RETURN_VALUE


@pytest.mark.parametrize("count", [0, 1, 3, 10])
def test_build_all_parameters_length_is_caller_count_plus_two(count: int) -> None:
    caller = [Parameter.input(f"P{i}", i) for i in range(count)]

    invocation = build_all_parameters("dbo.Search", caller)

    assert len(invocation.parameters) == count + 2
    assert list(invocation.caller_parameters) == caller


def test_build_all_parameters_preserves_caller_order_and_identity() -> None:
    first = Parameter.input("UserId", 7)
    second = Parameter.output("Total", SqlDbType.INT)

    invocation = build_all_parameters("GetUsers", [first, second])

    assert invocation.parameters[0] is first
    assert invocation.parameters[1] is second
    assert invocation.sql == "GetUsers @UserId, @Total, @ErrorMsg"


def test_output_parameters_include_reserved_slots_in_order() -> None:
    seed = Parameter.input_output("Counter", 1)
    invocation = build_all_parameters("Bump", [Parameter.input("Step", 2), seed])

    outputs = invocation.output_parameters

    assert outputs[0] is seed
    assert outputs[1].name == ERROR_MESSAGE_PARAMETER_NAME
    assert outputs[2].direction is ParameterDirection.RETURN_VALUE


def test_build_all_parameters_strips_procedure_name() -> None:
    assert build_all_parameters("  GetUsers ").procedure_name == "GetUsers"


@pytest.mark.parametrize("name", [None, "", "   ", 42])
def test_validate_procedure_name_rejects_missing_names(name: object) -> None:
    with pytest.raises(InvalidArgumentError):
        validate_procedure_name(name)


def test_null_parameter_rejected() -> None:
    with pytest.raises(NullParameterError, match="position 1"):
        build_all_parameters("GetUsers", [Parameter.input("A", 1), None])  # type: ignore[list-item]


def test_caller_cannot_supply_reserved_slots() -> None:
    with pytest.raises(InvalidArgumentError):
        build_all_parameters("GetUsers", [Parameter.return_value()])
    with pytest.raises(InvalidArgumentError):
        build_all_parameters("GetUsers", [Parameter.output("errormsg", SqlDbType.NVARCHAR, 100)])


def test_parameter_name_normalization() -> None:
    assert Parameter.input("UserId", 1).name == "@UserId"
    assert Parameter.input("@UserId", 1).name == "@UserId"
    assert Parameter.input(" UserId ", 1).name == "@UserId"


def test_only_return_value_may_be_unnamed() -> None:
    with pytest.raises(InvalidArgumentError):
        Parameter("", SqlDbType.INT)
    assert Parameter.return_value().name == ""


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("text", SqlDbType.NVARCHAR),
        (None, SqlDbType.NVARCHAR),
        (True, SqlDbType.BIT),
        (42, SqlDbType.INT),
        (2**40, SqlDbType.BIGINT),
        (1.5, SqlDbType.FLOAT),
        (Decimal("1.50"), SqlDbType.DECIMAL),
        (datetime.datetime(2024, 1, 1, 12, 0), SqlDbType.DATETIME2),
        (datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc), SqlDbType.DATETIMEOFFSET),
        (datetime.date(2024, 1, 1), SqlDbType.DATE),
        (datetime.time(12, 30), SqlDbType.TIME),
        (b"\x00\x01", SqlDbType.VARBINARY),
        (uuid4(), SqlDbType.UNIQUEIDENTIFIER),
    ],
)
def test_sql_db_type_infer(value: object, expected: SqlDbType) -> None:
    assert SqlDbType.infer(value) is expected


def test_sql_db_type_infer_rejects_unknown_values() -> None:
    with pytest.raises(InvalidArgumentError):
        SqlDbType.infer(object())


@pytest.mark.parametrize(
    ("db_type", "size", "expected"),
    [
        (SqlDbType.NVARCHAR, 4000, "NVARCHAR(4000)"),
        (SqlDbType.NVARCHAR, None, "NVARCHAR(MAX)"),
        (SqlDbType.VARBINARY, 0, "VARBINARY(MAX)"),
        (SqlDbType.CHAR, None, "CHAR(1)"),
        (SqlDbType.INT, 10, "INT"),
        (SqlDbType.DECIMAL, None, "DECIMAL(38, 10)"),
        (SqlDbType.NVARCHAR, 4001, "NVARCHAR(MAX)"),
        (SqlDbType.NVARCHAR, 8000, "NVARCHAR(MAX)"),
        (SqlDbType.VARCHAR, 8000, "VARCHAR(8000)"),
        (SqlDbType.VARCHAR, 8001, "VARCHAR(MAX)"),
        (SqlDbType.VARBINARY, 10000, "VARBINARY(MAX)"),
        (SqlDbType.NCHAR, 4000, "NCHAR(4000)"),
    ],
)
def test_sql_db_type_declaration(db_type: SqlDbType, size: "int | None", expected: str) -> None:
    assert db_type.declaration(size) == expected


def test_parameter_direction_flags() -> None:
    assert ParameterDirection.INPUT.is_input
    assert not ParameterDirection.INPUT.is_output
    assert ParameterDirection.INPUT_OUTPUT.is_input
    assert ParameterDirection.INPUT_OUTPUT.is_output
    assert ParameterDirection.OUTPUT.is_output
    assert not ParameterDirection.RETURN_VALUE.is_input


@pytest.mark.parametrize(("db_type", "size"), [(SqlDbType.NCHAR, 4001), (SqlDbType.CHAR, 8001)])
def test_oversized_fixed_length_types_are_rejected(db_type: SqlDbType, size: int) -> None:
    with pytest.raises(InvalidArgumentError):
        db_type.declaration(size)
    with pytest.raises(InvalidArgumentError):
        Parameter.output("Code", db_type, size)


@pytest.mark.parametrize("name", ["Id", "@Id", "_private", "#temp", "Amount$2", "user_id_1"])
def test_parameter_accepts_identifier_names(name: str) -> None:
    assert Parameter.input(name, 1).name.lstrip("@") == name.lstrip("@")


@pytest.mark.parametrize(
    "name",
    [
        "Id = 1; DROP TABLE Users; --",
        "Id OUTPUT",
        "Id,@Other",
        "1Id",
        "@",
        "Id]",
        "Id--",
        "Id'",
    ],
)
def test_parameter_rejects_names_that_are_not_identifiers(name: str) -> None:
    with pytest.raises(InvalidArgumentError, match="Invalid parameter name"):
        Parameter.input(name, 5)
