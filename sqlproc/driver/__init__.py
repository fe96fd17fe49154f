"""Driver base classes for database adapters."""

from sqlproc.driver._async import AsyncProcedureDriverBase

__all__ = ("AsyncProcedureDriverBase",)
