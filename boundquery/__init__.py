from boundquery.execution import (
    BindError,
    ConnectionConfig,
    ConnectionError,
    ConnectionManager,
    DuplicateColumnPolicy,
    ExecuteError,
    ExecutionError,
    InMemoryMetricsAdapter,
    MetadataError,
    ObservabilitySettings,
    ParamSpec,
    PrepareError,
    QueryExecutor,
    QueryOutcome,
    TLSConfigError,
    TLSConfigurator,
    TLSUnsupportedError,
    TlsSettings,
    TransactionController,
    get_connection,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "BindError",
    "ConnectionConfig",
    "ConnectionError",
    "ConnectionManager",
    "DuplicateColumnPolicy",
    "ExecuteError",
    "ExecutionError",
    "InMemoryMetricsAdapter",
    "MetadataError",
    "ObservabilitySettings",
    "ParamSpec",
    "PrepareError",
    "QueryExecutor",
    "QueryOutcome",
    "TLSConfigError",
    "TLSConfigurator",
    "TLSUnsupportedError",
    "TlsSettings",
    "TransactionController",
    "get_connection",
]
