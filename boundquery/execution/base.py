from abc import ABC, abstractmethod
from dataclasses import dataclass, field
import logging
import time
from typing import Any, Callable, Sequence
from uuid import uuid4

from boundquery.execution.binding import ParamSpec
from boundquery.execution.errors import ExecutionError
from boundquery.execution.materialize import ResultRow
from boundquery.execution.observability import ObservabilitySettings, QueryObservation, build_event

logger = logging.getLogger(__name__)

QueryParams = ParamSpec | Sequence[Any] | None

# ==================================================
# Per-call Outcome
# ==================================================


@dataclass
class QueryOutcome:
    """
    Result of one executor call; ``error`` is None when the call succeeded.
    """

    rows_affected: int = 0
    rows: list[ResultRow] = field(default_factory=list)
    column_names: list[str] = field(default_factory=list)
    error: ExecutionError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_message(self) -> str | None:
        return None if self.error is None else str(self.error)

    def raise_for_error(self) -> "QueryOutcome":
        if self.error is not None:
            raise self.error
        return self


# ==================================================
# Base Executor
# ==================================================


class Executor(ABC):
    """
    Abstract base class for executing parameterized statements.
    """

    observability_settings: ObservabilitySettings
    debug: bool = False

    @abstractmethod
    def insert_or_update(self, query: str, params: QueryParams = None) -> QueryOutcome:
        """
        Executes a write statement and reports the affected row count.
        """
        pass

    @abstractmethod
    def fetch(self, query: str, params: QueryParams = None) -> QueryOutcome:
        """
        Executes a SELECT statement and returns its rows as dict records.
        """
        pass

    # ==================================================
    # Observability Helpers
    # ==================================================

    def _next_query_id(self) -> str:
        return uuid4().hex

    def _emit_event(self, event: str, *, success: bool, **kwargs: Any) -> None:
        build_event(
            getattr(self, "observability_settings", None),
            event,
            component=self.__class__.__name__,
            success=success,
            **kwargs,
        )

    def _report(self, error: ExecutionError, sql: str) -> None:
        if self.debug:
            logger.error("Statement failed: %s\nQuery: %s", error, sql, exc_info=error.original_exception or error)
        else:
            logger.debug("Statement failed: %s (query: %s)", error, sql)

    def _observe_query(
        self,
        *,
        operation: str,
        sql: str,
        param_count: int,
        run: Callable[[], QueryOutcome],
    ) -> QueryOutcome:
        settings = getattr(self, "observability_settings", None)
        if not isinstance(settings, ObservabilitySettings):
            return run()

        query_id = self._next_query_id()
        self._emit_event("query.start", success=True, operation=operation, query_id=query_id)

        started = time.perf_counter()
        outcome = run()
        duration_ms = (time.perf_counter() - started) * 1000
        error = outcome.error

        if settings.query_observer is not None:
            settings.query_observer(
                QueryObservation(
                    operation=operation,
                    sql=sql,
                    param_count=param_count,
                    duration_ms=duration_ms,
                    succeeded=error is None,
                    metadata=dict(settings.metadata),
                    rows_affected=outcome.rows_affected if error is None else None,
                    error_type=type(error).__name__ if error is not None else None,
                    error_message=str(error) if error is not None else None,
                )
            )
        self._emit_event(
            "query.end",
            success=error is None,
            operation=operation,
            query_id=query_id,
            duration_ms=duration_ms,
            error_type=type(error).__name__ if error is not None else None,
            error_code=str(error.details.errno) if error is not None and error.details.errno is not None else None,
            error_message=str(error) if error is not None else None,
        )
        return outcome

    # ==================================================
    # Lifecycle Controls
    # ==================================================

    def close(self) -> None:
        """
        Releases executor-owned resources.
        Subclasses should override when they hold lifecycle state.
        """
        return None

    def __enter__(self) -> "Executor":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        _ = exc_type
        _ = exc
        _ = tb
        self.close()
