from typing import TYPE_CHECKING, Any, ClassVar, Protocol

from msgspec import Struct
from pydantic import BaseModel, TypeAdapter
from typing_extensions import TypeVar

if TYPE_CHECKING:
    from dataclasses import Field

__all__ = ("BaseModel", "ConnectionT", "DataclassProtocol", "PoolT", "Struct", "TypeAdapter")


class DataclassProtocol(Protocol):
    """Protocol for instance checking dataclasses."""

    __dataclass_fields__: "ClassVar[dict[str, Field[Any]]]"


ConnectionT = TypeVar("ConnectionT")
"""Type variable for connection types."""

PoolT = TypeVar("PoolT")
"""Type variable for pool types."""
