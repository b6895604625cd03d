import logging
from unittest.mock import MagicMock

import pytest

from boundquery.execution.binding import ParamSpec
from boundquery.execution.errors import (
    BindError,
    ConnectionError,
    ExecuteError,
    MetadataError,
    PrepareError,
)
from boundquery.execution.manager import ConnectionManager
from boundquery.execution.materialize import DuplicateColumnPolicy
from boundquery.execution.mysql import QueryExecutor
from boundquery.execution.observability import ExecutionEvent, ObservabilitySettings, QueryObservation


class _FakeDriverError(Exception):
    def __init__(self, message: str, errno: int | None = None, sqlstate: str | None = None) -> None:
        super().__init__(message)
        self.msg = message
        self.errno = errno
        self.sqlstate = sqlstate


@pytest.fixture
def mock_cursor(mock_mysql_connector) -> MagicMock:
    return mock_mysql_connector.connect.return_value.cursor.return_value


def _returns_rows(cursor: MagicMock, names: list[str], rows: list[tuple]) -> None:
    cursor.description = [(name, 3, None, None, None, None, 1, 0) for name in names]
    cursor.fetchone.side_effect = list(rows) + [None]


def test_insert_reports_affected_rows(manager, mock_mysql_connector, mock_cursor) -> None:
    mock_cursor.rowcount = 1
    executor = QueryExecutor(manager)

    outcome = executor.insert_or_update(
        "INSERT INTO t (id, name) VALUES (?, ?)",
        ParamSpec.of("is", 5, "Alice"),
    )

    assert outcome.ok
    assert outcome.error is None
    assert outcome.rows_affected == 1
    mock_mysql_connector.connect.return_value.cursor.assert_called_once_with(prepared=True)
    mock_cursor.execute.assert_called_once_with("INSERT INTO t (id, name) VALUES (?, ?)", (5, "Alice"))
    mock_cursor.close.assert_called_once()


def test_fetch_returns_dict_rows(manager, mock_cursor) -> None:
    _returns_rows(mock_cursor, ["id", "name"], [(5, "Alice")])

    outcome = QueryExecutor(manager).fetch("SELECT id, name FROM t WHERE id = ?", ParamSpec.of("i", 5))

    assert outcome.ok
    assert outcome.rows == [{"id": 5, "name": "Alice"}]
    assert outcome.column_names == ["id", "name"]
    assert outcome.rows_affected == 1
    mock_cursor.execute.assert_called_once_with("SELECT id, name FROM t WHERE id = ?", (5,))
    mock_cursor.close.assert_called_once()


def test_fetch_accepts_legacy_parameter_sequence(manager, mock_cursor) -> None:
    _returns_rows(mock_cursor, ["id"], [(1,), (2,)])

    outcome = QueryExecutor(manager).fetch("SELECT id FROM t WHERE id > ? AND name = ?", ("is", 0, "x"))

    assert outcome.rows == [{"id": 1}, {"id": 2}]
    mock_cursor.execute.assert_called_once_with("SELECT id FROM t WHERE id > ? AND name = ?", (0, "x"))


def test_fetch_without_parameters(manager, mock_cursor) -> None:
    _returns_rows(mock_cursor, ["n"], [(3,)])

    outcome = QueryExecutor(manager).fetch("SELECT COUNT(*) AS n FROM t")

    assert outcome.rows == [{"n": 3}]
    mock_cursor.execute.assert_called_once_with("SELECT COUNT(*) AS n FROM t", ())


def test_arity_mismatch_is_bind_error_and_closes_statement(manager, mock_cursor) -> None:
    outcome = QueryExecutor(manager).insert_or_update(
        "INSERT INTO t (id, name) VALUES (?, ?)",
        ParamSpec.of("is", 5),
    )

    assert not outcome.ok
    assert isinstance(outcome.error, BindError)
    assert "declares 2 parameter(s)" in outcome.error_message
    mock_cursor.execute.assert_not_called()
    mock_cursor.close.assert_called_once()


def test_driver_placeholder_mismatch_is_bind_error(manager, mock_cursor) -> None:
    mock_cursor.execute.side_effect = _FakeDriverError("Incorrect number of arguments executing prepared statement")

    outcome = QueryExecutor(manager).insert_or_update("INSERT INTO t (id) VALUES (?)", ParamSpec.of("ii", 1, 2))

    assert isinstance(outcome.error, BindError)
    mock_cursor.close.assert_called_once()


def test_rejected_sql_is_prepare_error(manager, mock_cursor) -> None:
    mock_cursor.execute.side_effect = _FakeDriverError(
        "You have an error in your SQL syntax",
        errno=1064,
        sqlstate="42000",
    )

    outcome = QueryExecutor(manager).fetch("SELEC id FROM t")

    assert isinstance(outcome.error, PrepareError)
    assert outcome.error.details.errno == 1064
    assert outcome.rows == []
    mock_cursor.close.assert_called_once()


def test_execution_failure_is_execute_error(manager, mock_cursor) -> None:
    mock_cursor.execute.side_effect = _FakeDriverError(
        "Duplicate entry '5' for key 'PRIMARY'",
        errno=1062,
        sqlstate="23000",
    )

    outcome = QueryExecutor(manager).insert_or_update("INSERT INTO t (id) VALUES (?)", ParamSpec.of("i", 5))

    assert isinstance(outcome.error, ExecuteError)
    assert outcome.rows_affected == 0
    mock_cursor.close.assert_called_once()


def test_cursor_creation_failure_is_prepare_error(manager, mock_mysql_connector) -> None:
    mock_mysql_connector.connect.return_value.cursor.side_effect = RuntimeError("cursor init failed")

    outcome = QueryExecutor(manager).fetch("SELECT 1")

    assert isinstance(outcome.error, PrepareError)


def test_fetch_on_write_statement_is_metadata_error(manager, mock_cursor) -> None:
    mock_cursor.description = None

    outcome = QueryExecutor(manager).fetch("UPDATE t SET name = ? WHERE id = ?", ParamSpec.of("si", "Bob", 5))

    assert isinstance(outcome.error, MetadataError)
    mock_cursor.close.assert_called_once()


def test_failure_during_fetch_discards_partial_rows(manager, mock_cursor) -> None:
    mock_cursor.description = [("id", 3)]
    mock_cursor.fetchone.side_effect = [(1,), _FakeDriverError("Lost connection to MySQL server", errno=2013)]

    outcome = QueryExecutor(manager).fetch("SELECT id FROM t")

    assert isinstance(outcome.error, ConnectionError)
    assert outcome.rows == []
    assert outcome.column_names == []


def test_unusable_connection_is_reported_in_outcome(mock_mysql_connector, config) -> None:
    mock_mysql_connector.connect.side_effect = _FakeDriverError("Can't connect to MySQL server", errno=2003)
    manager = ConnectionManager.get_instance(config)

    outcome = QueryExecutor(manager).fetch("SELECT 1")

    assert isinstance(outcome.error, ConnectionError)
    assert outcome.error is manager.error


def test_each_call_gets_a_fresh_outcome(manager, mock_cursor) -> None:
    executor = QueryExecutor(manager)
    failed = executor.insert_or_update("INSERT INTO t (id) VALUES (?)", ParamSpec.of("i", "abc"))

    mock_cursor.rowcount = 1
    succeeded = executor.insert_or_update("INSERT INTO t (id) VALUES (?)", ParamSpec.of("i", 1))

    assert isinstance(failed.error, BindError)
    assert succeeded.error is None
    assert succeeded is not failed


def test_duplicate_column_policy_is_forwarded(manager, mock_cursor) -> None:
    _returns_rows(mock_cursor, ["id", "id"], [(1, 2)])

    outcome = QueryExecutor(manager, duplicate_columns=DuplicateColumnPolicy.REJECT).fetch(
        "SELECT a.id, b.id FROM a JOIN b"
    )

    assert isinstance(outcome.error, MetadataError)


def _cursor_call_names(cursor: MagicMock) -> list[str]:
    return [name for name, _, _ in cursor.mock_calls if name in {"execute", "fetchone", "fetchall", "close"}]


def test_unread_rows_are_drained_before_statement_close(manager, mock_mysql_connector, mock_cursor) -> None:
    mock_mysql_connector.connect.return_value.unread_result = True
    _returns_rows(mock_cursor, ["id", "id"], [(1, 2)])

    outcome = QueryExecutor(manager, duplicate_columns=DuplicateColumnPolicy.REJECT).fetch(
        "SELECT a.id, b.id FROM a JOIN b"
    )

    assert isinstance(outcome.error, MetadataError)
    assert _cursor_call_names(mock_cursor) == ["execute", "fetchall", "close"]


def test_select_through_insert_or_update_drains_rows(manager, mock_mysql_connector, mock_cursor) -> None:
    mock_mysql_connector.connect.return_value.unread_result = True
    mock_cursor.rowcount = -1

    outcome = QueryExecutor(manager).insert_or_update("SELECT id FROM t")

    assert outcome.rows_affected == 0
    assert _cursor_call_names(mock_cursor) == ["execute", "fetchall", "close"]


def test_statement_closed_even_when_draining_fails(manager, mock_mysql_connector, mock_cursor) -> None:
    mock_mysql_connector.connect.return_value.unread_result = True
    mock_cursor.description = [("id", 3), ("name", 253)]
    mock_cursor.fetchone.side_effect = [(1,)]
    mock_cursor.fetchall.side_effect = _FakeDriverError("Lost connection to MySQL server", errno=2013)

    outcome = QueryExecutor(manager).fetch("SELECT id, name FROM t")

    assert isinstance(outcome.error, MetadataError)
    mock_cursor.close.assert_called_once()


def test_fully_read_result_is_not_drained(manager, mock_mysql_connector, mock_cursor) -> None:
    mock_mysql_connector.connect.return_value.unread_result = False
    _returns_rows(mock_cursor, ["id"], [(1,)])

    outcome = QueryExecutor(manager).fetch("SELECT id FROM t")

    assert outcome.rows == [{"id": 1}]
    mock_cursor.fetchall.assert_not_called()
    mock_cursor.close.assert_called_once()


def test_closed_executor_reports_connection_error(manager, mock_cursor) -> None:
    with QueryExecutor(manager) as executor:
        pass

    outcome = executor.fetch("SELECT 1")

    assert isinstance(outcome.error, ConnectionError)
    assert manager.is_open
    mock_cursor.execute.assert_not_called()


def test_executor_defaults_to_shared_manager(manager) -> None:
    assert QueryExecutor().manager is manager


def test_raise_for_error(manager) -> None:
    outcome = QueryExecutor(manager).insert_or_update("INSERT INTO t (id) VALUES (?)", ParamSpec.of("x", 1))

    with pytest.raises(BindError):
        outcome.raise_for_error()


def test_failures_logged_with_traceback_only_in_debug(manager, mock_cursor, caplog) -> None:
    mock_cursor.execute.side_effect = _FakeDriverError("boom", errno=1105)

    with caplog.at_level(logging.DEBUG, logger="boundquery.execution.base"):
        QueryExecutor(manager).fetch("SELECT quiet")
        QueryExecutor(manager, debug=True).fetch("SELECT loud")

    records = [record for record in caplog.records if record.name == "boundquery.execution.base"]
    assert [record.levelno for record in records] == [logging.DEBUG, logging.ERROR]
    assert "SELECT loud" in records[1].message
    assert records[1].exc_info is not None


def test_observability_hooks_receive_query_lifecycle(mock_mysql_connector, config, mock_cursor) -> None:
    observations: list[QueryObservation] = []
    events: list[ExecutionEvent] = []
    settings = ObservabilitySettings(
        query_observer=observations.append,
        event_observer=events.append,
        metadata={"service": "unit-test"},
    )
    manager = ConnectionManager.get_instance(config, observability_settings=settings)
    _returns_rows(mock_cursor, ["id"], [(1,)])
    executor = QueryExecutor(manager)

    executor.fetch("SELECT id FROM t WHERE id = ?", ParamSpec.of("i", 1))
    mock_cursor.execute.side_effect = _FakeDriverError("syntax", errno=1064)
    executor.insert_or_update("INSRT INTO t VALUES (?)", ParamSpec.of("i", 1))

    assert len(observations) == 2
    assert observations[0].operation == "fetch"
    assert observations[0].param_count == 1
    assert observations[0].succeeded is True
    assert observations[0].rows_affected == 1
    assert observations[0].metadata["service"] == "unit-test"
    assert observations[1].succeeded is False
    assert observations[1].error_type == "PrepareError"

    query_events = [event for event in events if event.event.startswith("query.")]
    assert [event.event for event in query_events] == ["query.start", "query.end", "query.start", "query.end"]
    assert query_events[0].query_id == query_events[1].query_id
    assert query_events[3].success is False
    assert query_events[3].error_code == "1064"
    assert query_events[3].component == "QueryExecutor"
