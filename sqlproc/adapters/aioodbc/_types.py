from typing import TYPE_CHECKING

from sqlproc.exceptions import MissingDependencyError

try:
    import pyodbc  # noqa: F401
    from aioodbc import Connection
except ImportError as e:
    # pyodbc also fails to import when the unixODBC shared library is absent
    raise MissingDependencyError(package=e.name or "aioodbc", install_package="aioodbc") from e

if TYPE_CHECKING:
    from typing import TypeAlias

    AioodbcConnection: TypeAlias = Connection
else:
    AioodbcConnection = Connection


__all__ = ("AioodbcConnection",)
