"""Tests for row mapping and scalar value conversion."""

import datetime
from dataclasses import dataclass
from decimal import Decimal
from typing import TypedDict
from uuid import UUID

import msgspec
import pytest
from pydantic import BaseModel

from sqlproc.exceptions import InvalidArgumentError
from sqlproc.utils.schema import SUPPORTED_VALUE_TYPES, build_row_converter, to_schema, to_value_type

ROW = {"user_id": 1, "name": "Ada", "extra_column": "ignored"}


@dataclass
class UserDataclass:
    user_id: int
    name: str


class UserStruct(msgspec.Struct):
    user_id: int
    name: str


class UserModel(BaseModel):
    user_id: int
    name: str


class UserDict(TypedDict):
    user_id: int
    name: str


@pytest.mark.parametrize("schema_type", [None, dict])
def test_plain_rows_pass_through(schema_type: "type | None") -> None:
    row = dict(ROW)
    assert build_row_converter(schema_type)(row) is row


def test_dataclass_rows_ignore_unknown_columns() -> None:
    assert build_row_converter(UserDataclass)(ROW) == UserDataclass(1, "Ada")


def test_msgspec_rows() -> None:
    assert build_row_converter(UserStruct)(ROW) == UserStruct(1, "Ada")


def test_pydantic_rows() -> None:
    assert build_row_converter(UserModel)(ROW) == UserModel(user_id=1, name="Ada")


def test_typed_dict_rows_are_copied() -> None:
    result = build_row_converter(UserDict)(ROW)
    assert result == ROW
    assert result is not ROW


def test_unsupported_schema_type() -> None:
    with pytest.raises(InvalidArgumentError):
        build_row_converter(str)


def test_to_schema_converts_every_row() -> None:
    rows = [{"user_id": 1, "name": "Ada"}, {"user_id": 2, "name": "Grace"}]

    assert to_schema(rows, schema_type=UserStruct) == [UserStruct(1, "Ada"), UserStruct(2, "Grace")]
    assert to_schema(rows) is rows


@pytest.mark.parametrize(
    ("value", "value_type", "expected"),
    [
        ("42", int, 42),
        ("42.0", int, 42),
        (Decimal("7"), int, 7),
        (True, int, 1),
        ("1.5", float, 1.5),
        (3, Decimal, Decimal("3")),
        ("yes", bool, True),
        (0, bool, False),
        (12, str, "12"),
        (b"ok", str, "ok"),
        ("abc", bytes, b"abc"),
        ("2024-01-02T03:04:05", datetime.datetime, datetime.datetime(2024, 1, 2, 3, 4, 5)),
        (datetime.datetime(2024, 1, 2, 3, 4), datetime.date, datetime.date(2024, 1, 2)),
        ("12:30:00", datetime.time, datetime.time(12, 30)),
        ("12345678-1234-5678-1234-567812345678", UUID, UUID("12345678-1234-5678-1234-567812345678")),
    ],
)
def test_to_value_type_conversions(value: object, value_type: type, expected: object) -> None:
    result = to_value_type(value, value_type)
    assert result == expected
    assert type(result) is type(expected)


def test_to_value_type_identity() -> None:
    value = UUID("12345678-1234-5678-1234-567812345678")
    assert to_value_type(value, UUID) is value


@pytest.mark.parametrize(
    ("value", "value_type"),
    [("abc", int), ("maybe", bool), (object(), float), (1.5, bytes), ("not-a-uuid", UUID)],
)
def test_to_value_type_rejects_unconvertible_values(value: object, value_type: type) -> None:
    with pytest.raises(TypeError):
        to_value_type(value, value_type)


def test_to_value_type_refuses_types_outside_the_closed_set() -> None:
    assert list not in SUPPORTED_VALUE_TYPES
    with pytest.raises(TypeError, match="Unsupported target type"):
        to_value_type("[1]", list)


@pytest.mark.parametrize(
    ("value", "expected"), [(2.0, 2), (Decimal("3"), 3), (Decimal("-4.00"), -4), (" 7 ", 7), ("-8.0", -8)]
)
def test_to_value_type_accepts_integral_values_as_int(value: object, expected: int) -> None:
    result = to_value_type(value, int)
    assert result == expected
    assert type(result) is int


@pytest.mark.parametrize("value", [1.9, "2.7", Decimal("3.5"), float("nan"), float("inf"), "Infinity"])
def test_to_value_type_refuses_lossy_int_conversion(value: object) -> None:
    with pytest.raises(TypeError, match="Cannot convert"):
        to_value_type(value, int)
