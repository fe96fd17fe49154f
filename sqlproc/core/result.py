"""Result types returned by the gateway.

Both results are named tuples so callers can unpack them directly::

    rows, error_message, error_code = await gateway.query_raw("GetUsers")
"""

from typing import Any, Generic

from typing_extensions import NamedTuple, TypeVar

__all__ = ("CommandResult", "ProcedureResult")

T = TypeVar("T", default="dict[str, Any]")


class ProcedureResult(NamedTuple, Generic[T]):
    """Rows returned by a stored procedure together with its reserved outputs."""

    rows: "list[T]"
    error_message: str
    error_code: int

    @property
    def is_success(self) -> bool:
        """Whether the procedure reported a zero status code."""
        return self.error_code == 0


class CommandResult(NamedTuple):
    """Affected-row count of a stored procedure together with its reserved outputs."""

    rows_affected: int
    error_message: str
    error_code: int

    @property
    def is_success(self) -> bool:
        """Whether the procedure reported a zero status code."""
        return self.error_code == 0
