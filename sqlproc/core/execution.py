"""Helpers shared by the interpreted and compiled execution paths."""

from typing import TYPE_CHECKING, Any, Optional

from sqlproc.exceptions import ExecutionCancelledError, TypeCoercionError

if TYPE_CHECKING:
    import asyncio

    from sqlproc.utils.schema import RowConverter

__all__ = ("check_cancelled", "convert_row")


def check_cancelled(cancel_event: "Optional[asyncio.Event]", procedure_name: str = "") -> None:
    """Raise ``ExecutionCancelledError`` if the caller has set the cancel event.

    Args:
        cancel_event: The caller's cancellation signal, if any.
        procedure_name: Used in the error message.

    Raises:
        ExecutionCancelledError: If the event is set.
    """
    if cancel_event is not None and cancel_event.is_set():
        target = f" of {procedure_name}" if procedure_name else ""
        msg = f"Execution{target} was cancelled by the caller"
        raise ExecutionCancelledError(msg)


def convert_row(converter: "RowConverter", row: "dict[str, Any]") -> Any:
    """Map a driver row with ``converter``, surfacing failures as ``TypeCoercionError``."""
    try:
        return converter(row)
    except (TypeError, ValueError) as e:
        msg = f"Cannot map result row onto the requested type: {e}"
        raise TypeCoercionError(msg) from e
