from typing import Any, Optional

__all__ = (
    "DatabaseExecutionError",
    "ExecutionCancelledError",
    "ImproperConfigurationError",
    "InvalidArgumentError",
    "MissingDependencyError",
    "NullParameterError",
    "SQLProcError",
    "TypeCoercionError",
)


class SQLProcError(Exception):
    """Base exception class from which all sqlproc exceptions inherit."""

    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        """Initialize ``SQLProcError``.

        Args:
            *args: args are converted to :class:`str` before passing to :class:`Exception`
            detail: detail of the exception.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


class MissingDependencyError(SQLProcError, ImportError):
    """Missing optional dependency.

    This exception is raised only when a module depends on a dependency that has not been installed.
    """

    def __init__(self, package: str, install_package: Optional[str] = None) -> None:
        super().__init__(
            f"Package {package!r} is not installed but required. You can install it by running "
            f"'pip install {install_package or package}' to install the package separately",
        )


class ImproperConfigurationError(SQLProcError):
    """Improper Configuration error.

    Raised when a database configuration cannot produce a usable connection pool.
    """


class InvalidArgumentError(SQLProcError, ValueError):
    """A caller supplied an argument the gateway cannot work with.

    Missing procedure names and malformed parameter lists land here. These are
    programming errors and are never retried.
    """


class NullParameterError(InvalidArgumentError):
    """A parameter object was ``None`` where one was mandatory."""

    def __init__(self, message: Optional[str] = None) -> None:
        if message is None:
            message = "Parameter cannot be None."
        super().__init__(message)


class TypeCoercionError(SQLProcError, TypeError):
    """An output value could not be converted to the requested type."""

    value_type: Optional[type]

    def __init__(self, message: str, value_type: Optional[type] = None) -> None:
        super().__init__(message)
        self.value_type = value_type


class DatabaseExecutionError(SQLProcError):
    """The underlying database call failed.

    The driver exception is chained as ``__cause__`` and kept on ``original``.
    """

    original: Optional[BaseException]
    sqlstate: Optional[str]

    def __init__(
        self,
        message: Optional[str] = None,
        original: Optional[BaseException] = None,
        sqlstate: Optional[str] = None,
    ) -> None:
        if message is None:
            message = "Stored procedure execution failed."
        detail_message = message
        if sqlstate:
            detail_message = f"{message} (SQLSTATE: {sqlstate})"
        super().__init__(detail=detail_message)
        self.original = original
        self.sqlstate = sqlstate


class ExecutionCancelledError(SQLProcError):
    """The caller withdrew interest before the call completed."""

    def __init__(self, message: Optional[str] = None) -> None:
        if message is None:
            message = "Stored procedure execution was cancelled."
        super().__init__(message)
