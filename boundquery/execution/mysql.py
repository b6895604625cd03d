import logging
from typing import Any, Callable

from boundquery.execution.base import Executor, QueryOutcome, QueryParams
from boundquery.execution.binding import ParamSpec, ParameterBinder
from boundquery.execution.errors import (
    ConnectionError,
    ExecuteError,
    ExecutionError,
    PrepareError,
    normalize_execution_error,
)
from boundquery.execution.manager import ConnectionManager
from boundquery.execution.materialize import DuplicateColumnPolicy, ResultMaterializer
from boundquery.execution.observability import ObservabilitySettings

logger = logging.getLogger(__name__)

Postprocess = Callable[[Any, QueryOutcome], None]

# ==================================================
# MySQL Query Executor
# ==================================================


class QueryExecutor(Executor):
    """
    Runs prepared statements on the shared connection using the
    'mysql-connector-python' prepared cursor.

    Calls never raise: each returns a fresh QueryOutcome whose ``error`` is a
    typed ExecutionError when any stage failed. The prepared cursor is closed
    before every call returns.
    """

    def __init__(
        self,
        manager: ConnectionManager | None = None,
        *,
        binder: ParameterBinder | None = None,
        materializer: ResultMaterializer | None = None,
        duplicate_columns: DuplicateColumnPolicy = DuplicateColumnPolicy.ALIAS,
        observability_settings: ObservabilitySettings | None = None,
        debug: bool | None = None,
    ) -> None:
        self.manager = manager or ConnectionManager.get_instance()
        self.binder = binder or ParameterBinder()
        self.materializer = materializer or ResultMaterializer(duplicate_columns)
        self.observability_settings = observability_settings or self.manager.observability_settings
        self.debug = self.manager.debug if debug is None else debug
        self._closed = False

    def insert_or_update(self, query: str, params: QueryParams = None) -> QueryOutcome:
        return self._observe_query(
            operation="insert_or_update",
            sql=query,
            param_count=self._param_count(params),
            run=lambda: self._run_statement(query, params, self._read_affected_rows),
        )

    def fetch(self, query: str, params: QueryParams = None) -> QueryOutcome:
        return self._observe_query(
            operation="fetch",
            sql=query,
            param_count=self._param_count(params),
            run=lambda: self._run_statement(query, params, self._materialize),
        )

    def _param_count(self, params: QueryParams) -> int:
        try:
            return len(ParamSpec.coerce(params).values)
        except ExecutionError:
            return 0

    # ==================================================
    # Statement Pipeline
    # ==================================================

    def _read_affected_rows(self, cursor: Any, outcome: QueryOutcome) -> None:
        outcome.rows_affected = max(int(cursor.rowcount), 0)

    def _materialize(self, cursor: Any, outcome: QueryOutcome) -> None:
        column_names, rows = self.materializer.materialize(cursor)
        outcome.column_names = column_names
        outcome.rows = rows
        outcome.rows_affected = len(rows)

    def _run_statement(self, query: str, params: QueryParams, postprocess: Postprocess) -> QueryOutcome:
        outcome = QueryOutcome()
        cursor: Any | None = None
        stage = "prepare"
        with self.manager.lock:
            try:
                if self._closed:
                    raise ConnectionError.from_message(operation="prepare", message="Executor is closed.")
                cursor = self.manager.connection.cursor(prepared=True)

                stage = "bind"
                values = self.binder.bind(ParamSpec.coerce(params))

                stage = "execute"
                cursor.execute(query, values)

                stage = "materialize"
                result = QueryOutcome()
                postprocess(cursor, result)
                outcome = result
            except Exception as exc:
                outcome = QueryOutcome(error=self._normalize(stage, exc))
                self._report(outcome.error, query)
            finally:
                if cursor is not None:
                    self._close_cursor(cursor)
        return outcome

    def _normalize(self, stage: str, exc: Exception) -> ExecutionError:
        return normalize_execution_error(
            operation=stage,
            exc=exc,
            fallback=PrepareError if stage == "prepare" else ExecuteError,
        )

    def _close_cursor(self, cursor: Any) -> None:
        # The driver refuses to close a statement while its result set is unread.
        if self.manager.has_unread_result:
            try:
                cursor.fetchall()
            except Exception as exc:
                logger.debug("Error discarding unread rows: %s", exc)
        try:
            cursor.close()
        except Exception as exc:
            logger.debug("Error closing prepared statement: %s", exc)

    # ==================================================
    # Lifecycle Controls
    # ==================================================

    def close(self) -> None:
        """
        Stops this executor. The shared connection stays open; close it through the manager.
        """
        self._closed = True
