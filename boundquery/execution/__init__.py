from boundquery.execution.mysql import QueryExecutor
from boundquery.execution.base import Executor, QueryOutcome
from boundquery.execution.binding import ParamSpec, ParameterBinder
from boundquery.execution.materialize import DuplicateColumnPolicy, ResultMaterializer, ResultRow
from boundquery.execution.manager import ConnectionManager, get_connection
from boundquery.execution.tls import TLSConfigurator
from boundquery.execution.transaction import TransactionController
from boundquery.execution.connection import ConnectionConfig, TlsSettings
from boundquery.execution.observability import (
    ExecutionEvent,
    InMemoryMetricsAdapter,
    MetricPoint,
    ObservabilitySettings,
    QueryObservation,
    compose_event_observers,
    execution_event_to_dict,
    make_json_event_logger,
)
from boundquery.execution.errors import (
    ExecutionError,
    ConnectionError,
    PrepareError,
    BindError,
    ExecuteError,
    MetadataError,
    TLSError,
    TLSUnsupportedError,
    TLSConfigError,
)

__all__ = [
    "QueryExecutor",
    "Executor",
    "QueryOutcome",
    "ParamSpec",
    "ParameterBinder",
    "DuplicateColumnPolicy",
    "ResultMaterializer",
    "ResultRow",
    "ConnectionManager",
    "get_connection",
    "TLSConfigurator",
    "TransactionController",
    "ConnectionConfig",
    "TlsSettings",
    "ObservabilitySettings",
    "QueryObservation",
    "ExecutionEvent",
    "InMemoryMetricsAdapter",
    "MetricPoint",
    "compose_event_observers",
    "execution_event_to_dict",
    "make_json_event_logger",
    "ExecutionError",
    "ConnectionError",
    "PrepareError",
    "BindError",
    "ExecuteError",
    "MetadataError",
    "TLSError",
    "TLSUnsupportedError",
    "TLSConfigError",
]
