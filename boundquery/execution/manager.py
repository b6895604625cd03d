import atexit
import logging
import threading
import time
from typing import Any

from boundquery.execution.connection import (
    CONNECT_TIMEOUT_SECONDS,
    SESSION_AUTOCOMMIT,
    ConnectionConfig,
    TlsSettings,
)
from boundquery.execution.errors import ConnectionError, ExecutionError, normalize_execution_error
from boundquery.execution.observability import ObservabilitySettings, build_event

logger = logging.getLogger(__name__)

# ==================================================
# Shared Connection Manager
# ==================================================


class ConnectionManager:
    """
    Owns the single MySQL session of the process.

    Use ``ConnectionManager.get_instance()`` (or ``get_connection()``) rather
    than constructing one directly; the first caller's configuration wins.
    Opening never raises: failures are kept on ``error`` and re-raised when
    ``connection`` is accessed.
    """

    _instance: "ConnectionManager | None" = None
    _instance_lock = threading.Lock()

    def __init__(
        self,
        config: ConnectionConfig | None = None,
        debug: bool = False,
        observability_settings: ObservabilitySettings | None = None,
    ) -> None:
        self.config = config or ConnectionConfig()
        self.debug = debug
        self.observability_settings = observability_settings or ObservabilitySettings()
        self.tls_settings: TlsSettings | None = None
        self.error: ExecutionError | None = None
        self.lock = threading.RLock()
        self._connection: Any | None = None
        self._closed = False
        self._mysql_connector = None

    @classmethod
    def get_instance(
        cls,
        config: ConnectionConfig | None = None,
        debug: bool = False,
        *,
        defer_connect: bool = False,
        observability_settings: ObservabilitySettings | None = None,
    ) -> "ConnectionManager":
        with cls._instance_lock:
            if cls._instance is None:
                instance = cls(config, debug=debug, observability_settings=observability_settings)
                if not defer_connect:
                    instance.open()
                cls._instance = instance
            return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """
        Closes and forgets the shared instance.
        """
        with cls._instance_lock:
            instance = cls._instance
            cls._instance = None
        if instance is not None:
            instance.close()

    def _get_mysql_connector(self) -> Any:
        if self._mysql_connector is None:
            try:
                import importlib

                self._mysql_connector = importlib.import_module("mysql.connector")
            except ImportError:
                raise ImportError(
                    "The 'mysql-connector-python' library is required for ConnectionManager. "
                    "Install it with 'pip install mysql-connector-python'."
                )
        return self._mysql_connector

    # ==================================================
    # Opening
    # ==================================================

    def _connect_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "autocommit": SESSION_AUTOCOMMIT,
            "connection_timeout": CONNECT_TIMEOUT_SECONDS,
        }
        kwargs.update(self.config.to_connect_kwargs())
        if self.tls_settings is not None:
            kwargs.update(self.tls_settings.to_connect_kwargs())
        return kwargs

    def open(self) -> "ConnectionManager":
        with self.lock:
            if self._connection is not None:
                return self
            if self._closed:
                self.error = ConnectionError.from_message(
                    operation="connect",
                    message="Connection manager is closed.",
                )
                return self

            self.error = None
            started = time.perf_counter()
            try:
                # The driver applies autocommit right after the handshake and fails the connect if it cannot.
                self._connection = self._get_mysql_connector().connect(**self._connect_kwargs())
            except ImportError:
                raise
            except Exception as exc:
                self.error = normalize_execution_error(
                    operation="connect",
                    exc=exc,
                    tls_configured=self.tls_settings is not None,
                    context="MySQL database connect error",
                )
                self.report(self.error, "Opening the MySQL connection failed")
                build_event(
                    self.observability_settings,
                    "connection.open",
                    component=self.__class__.__name__,
                    success=False,
                    duration_ms=(time.perf_counter() - started) * 1000,
                    error_type=type(self.error).__name__,
                    error_code=None if self.error.details.errno is None else str(self.error.details.errno),
                    error_message=str(self.error),
                )
                return self

            build_event(
                self.observability_settings,
                "connection.open",
                component=self.__class__.__name__,
                success=True,
                connection_id=str(id(self._connection)),
                duration_ms=(time.perf_counter() - started) * 1000,
            )
            logger.debug("Opened MySQL connection to %s", self.config.resolved().host)
            return self

    # ==================================================
    # State
    # ==================================================

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def has_unread_result(self) -> bool:
        """
        True while the driver still holds rows of the last result set.
        """
        return getattr(self._connection, "unread_result", False) is True

    @property
    def connection(self) -> Any:
        """
        The live driver connection. Raises the recorded ConnectionError when unusable.
        """
        if self._connection is None:
            if self.error is not None:
                raise self.error
            raise ConnectionError.from_message(
                operation="connection",
                message="Connection manager is closed." if self._closed else "Connection is not open.",
            )
        return self._connection

    def report(self, error: ExecutionError, context: str) -> None:
        """
        Logs a failure: with a traceback in debug mode, quietly otherwise.
        """
        if self.debug:
            logger.error("%s: %s", context, error, exc_info=error.original_exception or error)
        else:
            logger.debug("%s: %s", context, error)

    # ==================================================
    # Lifecycle Controls
    # ==================================================

    def close(self) -> None:
        with self.lock:
            if self._closed:
                return
            self._closed = True
            conn = self._connection
            self._connection = None
        if conn is None:
            return
        try:
            conn.close()
        except Exception as exc:
            logger.debug("Error closing MySQL connection: %s", exc)
        build_event(
            self.observability_settings,
            "connection.close",
            component=self.__class__.__name__,
            success=True,
            connection_id=str(id(conn)),
        )

    def __enter__(self) -> "ConnectionManager":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

    def __copy__(self) -> "ConnectionManager":
        raise TypeError("ConnectionManager cannot be duplicated.")

    def __deepcopy__(self, memo: dict[int, Any]) -> "ConnectionManager":
        raise TypeError("ConnectionManager cannot be duplicated.")

    def __reduce_ex__(self, protocol: Any) -> Any:
        raise TypeError("ConnectionManager cannot be duplicated.")


def get_connection(
    config: ConnectionConfig | None = None,
    debug: bool = False,
    *,
    defer_connect: bool = False,
    observability_settings: ObservabilitySettings | None = None,
) -> ConnectionManager:
    """
    Returns the shared ConnectionManager, creating it on first use.
    """
    return ConnectionManager.get_instance(
        config,
        debug,
        defer_connect=defer_connect,
        observability_settings=observability_settings,
    )


atexit.register(ConnectionManager.reset_instance)
