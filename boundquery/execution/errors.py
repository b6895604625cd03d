from __future__ import annotations

from dataclasses import dataclass


# ==================================================
# Normalized Execution Errors
# ==================================================


@dataclass(slots=True)
class ExecutionErrorDetails:
    """
    Structured metadata for normalized execution errors.
    """

    operation: str
    sqlstate: str | None
    errno: int | None
    original_message: str


class ExecutionError(Exception):
    """
    Base normalized execution error type.
    """

    def __init__(self, details: ExecutionErrorDetails, original_exception: Exception | None = None) -> None:
        self.details = details
        self.original_exception = original_exception
        super().__init__(
            f"[mysql:{details.operation}] {self.__class__.__name__}: {details.original_message}"
        )

    @classmethod
    def from_message(cls, *, operation: str, message: str) -> "ExecutionError":
        """
        Builds an error raised by this package rather than by the driver.
        """
        return cls(
            ExecutionErrorDetails(
                operation=operation,
                sqlstate=None,
                errno=None,
                original_message=message,
            )
        )


class ConnectionError(ExecutionError):
    """
    Session options, connect, or a lost/unavailable connection.
    """


class PrepareError(ExecutionError):
    """
    Malformed or server-rejected SQL.
    """


class BindError(ExecutionError):
    """
    Parameter arity or type-tag mismatch.
    """


class ExecuteError(ExecutionError):
    """
    Statement execution rejected by the server.
    """


class MetadataError(ExecutionError):
    """
    Result-set descriptor missing or unusable.
    """


class TLSError(ExecutionError):
    """
    Base type for fatal transport encryption failures.
    """

    fatal = True


class TLSUnsupportedError(TLSError):
    pass


class TLSConfigError(TLSError):
    pass


_CONNECTION_ERRNOS = {1045, 1049, 2002, 2003, 2005, 2006, 2013, 2055}
_TLS_ERRNOS = {2026}
# Server or client library without SSL, e.g. "SSL is required but the server doesn't support it".
_TLS_UNSUPPORTED_MESSAGES = (
    "doesn't support",
    "does not support",
    "not supported",
    "ssl is not enabled",
)
_PREPARE_ERRNOS = {1054, 1064, 1146, 1149}
_BIND_MESSAGES = (
    "number of arguments",
    "not all parameters",
    "not enough parameters",
    "wrong number of parameters",
)


def _extract_sqlstate(exc: Exception) -> str | None:
    sqlstate = getattr(exc, "sqlstate", None)
    if isinstance(sqlstate, str) and sqlstate:
        return sqlstate.upper()
    return None


def _extract_errno(exc: Exception) -> int | None:
    errno = getattr(exc, "errno", None)
    if isinstance(errno, int) and not isinstance(errno, bool) and errno > 0:
        return errno
    return None


def _extract_message(exc: Exception) -> str:
    msg = getattr(exc, "msg", None)
    if isinstance(msg, str) and msg:
        return msg
    return str(exc)


def normalize_execution_error(
    *,
    operation: str,
    exc: Exception,
    tls_configured: bool = False,
    context: str | None = None,
    fallback: type[ExecutionError] = ExecuteError,
) -> ExecutionError:
    """
    Maps driver exceptions to the normalized execution error taxonomy.
    """
    if isinstance(exc, ExecutionError):
        return exc

    sqlstate = _extract_sqlstate(exc)
    errno = _extract_errno(exc)
    original = _extract_message(exc)
    message = original.lower()
    details = ExecutionErrorDetails(
        operation=operation,
        sqlstate=sqlstate,
        errno=errno,
        original_message=original if context is None else f"{context}: {original}",
    )

    if operation == "connect":
        if tls_configured and (
            errno in _TLS_ERRNOS or "ssl" in message or "tls" in message or "certificate" in message
        ):
            if any(fragment in message for fragment in _TLS_UNSUPPORTED_MESSAGES):
                return TLSUnsupportedError(details, exc)
            return TLSConfigError(details, exc)
        return ConnectionError(details, exc)

    if any(fragment in message for fragment in _BIND_MESSAGES):
        return BindError(details, exc)

    if (
        errno in _CONNECTION_ERRNOS
        or "connection not available" in message
        or "not connected" in message
        or "lost connection" in message
        or "server has gone away" in message
    ):
        return ConnectionError(details, exc)

    if errno in _PREPARE_ERRNOS or (sqlstate is not None and sqlstate.startswith("42")):
        return PrepareError(details, exc)
    if "syntax" in message or "unknown column" in message or "doesn't exist" in message:
        return PrepareError(details, exc)

    return fallback(details, exc)
