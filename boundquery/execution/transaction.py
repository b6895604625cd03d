import time
from typing import Any

from boundquery.execution.errors import ExecutionError, normalize_execution_error
from boundquery.execution.manager import ConnectionManager
from boundquery.execution.observability import build_event

# ==================================================
# Transaction Controls
# ==================================================


class TransactionController:
    """
    Autocommit toggling and explicit commit/rollback on the shared connection.

    ``set_autocommit(False)`` opens a multi-statement transaction region that
    the caller ends with ``commit()`` or ``rollback()``.
    """

    def __init__(self, manager: ConnectionManager) -> None:
        self.manager = manager
        self._region_started_at: float | None = None

    def _run(self, operation: str, action: Any) -> Any:
        with self.manager.lock:
            try:
                return action(self.manager.connection)
            except ExecutionError as error:
                self.manager.report(error, f"Transaction control '{operation}' failed")
                raise
            except Exception as exc:
                normalized = normalize_execution_error(operation=operation, exc=exc)
                self.manager.report(normalized, f"Transaction control '{operation}' failed")
                raise normalized from exc

    def _emit(self, event: str, operation: str, duration_ms: float | None = None) -> None:
        build_event(
            self.manager.observability_settings,
            event,
            component=self.__class__.__name__,
            success=True,
            operation=operation,
            duration_ms=duration_ms,
        )

    def _region_duration_ms(self) -> float | None:
        started = self._region_started_at
        if started is None:
            return None
        # autocommit is still off, so the next statement opens a new region
        now = time.perf_counter()
        self._region_started_at = now
        return (now - started) * 1000

    def set_autocommit(self, enabled: bool) -> "TransactionController":
        def _apply(conn: Any) -> None:
            conn.autocommit = bool(enabled)

        self._run("set_autocommit", _apply)
        self._region_started_at = None if enabled else time.perf_counter()
        self._emit("txn.autocommit", "set_autocommit")
        return self

    def is_autocommit_enabled(self) -> bool:
        """
        Asks the server for the session autocommit flag.
        """

        def _query(conn: Any) -> bool:
            cursor = conn.cursor()
            try:
                cursor.execute("SELECT @@autocommit")
                row = cursor.fetchone()
            finally:
                cursor.close()
            if row is None:
                raise ExecutionError.from_message(
                    operation="is_autocommit_enabled",
                    message="SELECT @@autocommit returned no row.",
                )
            return bool(int(row[0]))

        return self._run("is_autocommit_enabled", _query)

    def commit(self) -> "TransactionController":
        self._run("commit", lambda conn: conn.commit())
        self._emit("txn.commit", "commit", self._region_duration_ms())
        return self

    def rollback(self) -> "TransactionController":
        self._run("rollback", lambda conn: conn.rollback())
        self._emit("txn.rollback", "rollback", self._region_duration_ms())
        return self
