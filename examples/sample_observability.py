import logging

from dotenv import load_dotenv

from boundquery import ConnectionConfig, InMemoryMetricsAdapter, ObservabilitySettings, ParamSpec, QueryExecutor
from boundquery import get_connection
from boundquery.execution.observability import QueryObservation, compose_event_observers, make_json_event_logger


def log_query(event: QueryObservation) -> None:
    print(
        f"op={event.operation} success={event.succeeded} "
        f"duration_ms={event.duration_ms:.2f} params={event.param_count} metadata={dict(event.metadata)}"
    )


def main():
    load_dotenv()
    logging.basicConfig(level=logging.INFO)

    metrics = InMemoryMetricsAdapter()
    settings = ObservabilitySettings(
        query_observer=log_query,
        event_observer=compose_event_observers(
            make_json_event_logger(logger=logging.getLogger("boundquery.events")),
            metrics,
        ),
        metadata={"service": "boundquery-sample"},
    )

    with get_connection(ConnectionConfig.from_env(), observability_settings=settings) as manager:
        executor = QueryExecutor(manager)
        executor.fetch("SELECT ? AS answer", ParamSpec.of("i", 42))
        executor.fetch("SELEC broken")

    for point in metrics.counters():
        print(point)


if __name__ == "__main__":
    main()
