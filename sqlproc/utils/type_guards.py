"""Type guard functions for runtime type checking in sqlproc.

This module provides type-safe runtime checks that help the type checker
understand type narrowing, replacing defensive hasattr() and duck typing patterns.
"""

from typing import TYPE_CHECKING, Any

from typing_extensions import is_typeddict

from sqlproc.typing import BaseModel, DataclassProtocol, Struct

if TYPE_CHECKING:
    from typing_extensions import TypeGuard

__all__ = (
    "is_dataclass",
    "is_dataclass_instance",
    "is_msgspec_struct",
    "is_pydantic_model",
    "is_typed_dict",
)


def is_dataclass_instance(obj: Any) -> "TypeGuard[DataclassProtocol]":
    """Check if an object is a dataclass instance.

    Args:
        obj: An object to check.

    Returns:
        True if the object is a dataclass instance.
    """
    return not isinstance(obj, type) and hasattr(type(obj), "__dataclass_fields__")


def is_dataclass(obj: Any) -> "TypeGuard[DataclassProtocol]":
    """Check if an object is a dataclass.

    Args:
        obj: Value to check.

    Returns:
        bool
    """
    if isinstance(obj, type) and hasattr(obj, "__dataclass_fields__"):
        return True
    return is_dataclass_instance(obj)


def is_pydantic_model(obj: Any) -> "TypeGuard[type[BaseModel]]":
    """Check if a value is a pydantic model class.

    Args:
        obj: Value to check.

    Returns:
        bool
    """
    return isinstance(obj, type) and issubclass(obj, BaseModel)


def is_msgspec_struct(obj: Any) -> "TypeGuard[type[Struct]]":
    """Check if a value is a msgspec struct class.

    Args:
        obj: Value to check.

    Returns:
        bool
    """
    return isinstance(obj, type) and issubclass(obj, Struct)


def is_typed_dict(obj: Any) -> bool:
    """Check if a value is a TypedDict class.

    Args:
        obj: Value to check.

    Returns:
        bool
    """
    return is_typeddict(obj)

