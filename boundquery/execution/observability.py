from dataclasses import dataclass, field
from datetime import datetime, timezone
import json
import logging
from typing import Any, Callable, Mapping

# ==================================================
# Observability Types
# ==================================================

QueryObserveHook = Callable[["QueryObservation"], None]
EventObserveHook = Callable[["ExecutionEvent"], None]
LabelMap = Mapping[str, str]


@dataclass(frozen=True)
class ObservabilitySettings:
    """
    Hooks notified about queries and connection/transaction lifecycle.
    """

    query_observer: QueryObserveHook | None = None
    event_observer: EventObserveHook | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class QueryObservation:
    """
    Structured query execution observation payload.
    """

    operation: str
    sql: str
    param_count: int
    duration_ms: float
    succeeded: bool
    metadata: Mapping[str, Any] = field(default_factory=dict)
    rows_affected: int | None = None
    error_type: str | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class ExecutionEvent:
    """
    Structured lifecycle event payload.
    """

    timestamp: str
    event: str
    component: str
    success: bool
    metadata: Mapping[str, Any] = field(default_factory=dict)
    operation: str | None = None
    query_id: str | None = None
    connection_id: str | None = None
    duration_ms: float | None = None
    error_type: str | None = None
    error_code: str | None = None
    error_message: str | None = None


def now_iso_utc() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_event(
    settings: ObservabilitySettings | None,
    event: str,
    *,
    component: str,
    success: bool,
    **kwargs: Any,
) -> None:
    """
    Sends an ExecutionEvent to the configured observer, if any.
    """
    if settings is None or settings.event_observer is None:
        return
    settings.event_observer(
        ExecutionEvent(
            timestamp=now_iso_utc(),
            event=event,
            component=component,
            success=success,
            metadata=dict(settings.metadata),
            **kwargs,
        )
    )


def execution_event_to_dict(event: ExecutionEvent) -> dict[str, Any]:
    """
    Converts an ExecutionEvent dataclass into a JSON-safe dictionary.
    """

    return {
        "timestamp": event.timestamp,
        "event": event.event,
        "component": event.component,
        "success": event.success,
        "metadata": dict(event.metadata),
        "operation": event.operation,
        "query_id": event.query_id,
        "connection_id": event.connection_id,
        "duration_ms": event.duration_ms,
        "error_type": event.error_type,
        "error_code": event.error_code,
        "error_message": event.error_message,
    }


def make_json_event_logger(
    *,
    logger: logging.Logger,
    level: int = logging.INFO,
) -> EventObserveHook:
    """
    Builds an EventObserveHook that emits one JSON log line per ExecutionEvent.
    """

    def _log_event(event: ExecutionEvent) -> None:
        payload = execution_event_to_dict(event)
        logger.log(level, json.dumps(payload, separators=(",", ":"), sort_keys=True))

    return _log_event


def compose_event_observers(*observers: EventObserveHook) -> EventObserveHook:
    """
    Composes multiple event observers into a single observer.
    """

    def _composed(event: ExecutionEvent) -> None:
        for observer in observers:
            observer(event)

    return _composed


def _normalize_label(value: str | None, *, fallback: str) -> str:
    if value is None:
        return fallback
    stripped = value.strip()
    return stripped if stripped else fallback


def _event_labels(event: ExecutionEvent) -> dict[str, str]:
    return {
        "component": _normalize_label(event.component, fallback="unknown"),
        "operation": _normalize_label(event.operation, fallback="unknown"),
        "error_type": _normalize_label(event.error_type, fallback="none"),
    }


def _labels_key(labels: LabelMap) -> tuple[tuple[str, str], ...]:
    return tuple(sorted((str(key), str(value)) for key, value in labels.items()))


@dataclass(frozen=True)
class MetricPoint:
    """
    Single metric point lookup result.
    """

    name: str
    labels: Mapping[str, str]
    value: int | float


class InMemoryMetricsAdapter:
    """
    In-memory metrics adapter for ExecutionEvent streams.
    """

    def __init__(self) -> None:
        self._counters: dict[tuple[str, tuple[tuple[str, str], ...]], int] = {}
        self._histograms: dict[tuple[str, tuple[tuple[str, str], ...]], list[float]] = {}

    def __call__(self, event: ExecutionEvent) -> None:
        labels = _event_labels(event)
        if event.event == "query.end":
            self._inc("boundquery_queries_total", labels, 1)
            if not event.success:
                self._inc("boundquery_query_failures_total", labels, 1)
            if event.duration_ms is not None:
                self._observe("boundquery_query_duration_ms", labels, event.duration_ms)
            return

        if event.event in {"txn.commit", "txn.rollback", "txn.autocommit"}:
            self._inc("boundquery_txn_total", {**labels, "event": event.event}, 1)
            return

        if event.event == "connection.open" and event.success:
            self._inc("boundquery_connections_opened_total", labels, 1)

    def _inc(self, metric: str, labels: LabelMap, delta: int) -> None:
        key = (metric, _labels_key(labels))
        self._counters[key] = self._counters.get(key, 0) + delta

    def _observe(self, metric: str, labels: LabelMap, value: float) -> None:
        key = (metric, _labels_key(labels))
        bucket = self._histograms.setdefault(key, [])
        bucket.append(value)

    def counter_value(self, metric: str, labels: LabelMap) -> int:
        return self._counters.get((metric, _labels_key(labels)), 0)

    def histogram_values(self, metric: str, labels: LabelMap) -> list[float]:
        values = self._histograms.get((metric, _labels_key(labels)), [])
        return list(values)

    def counters(self) -> list[MetricPoint]:
        points: list[MetricPoint] = []
        for (name, label_key), value in self._counters.items():
            points.append(MetricPoint(name=name, labels=dict(label_key), value=value))
        return points

    def histograms(self) -> list[MetricPoint]:
        points: list[MetricPoint] = []
        for (name, label_key), values in self._histograms.items():
            for value in values:
                points.append(MetricPoint(name=name, labels=dict(label_key), value=value))
        return points
