import logging
import sqlite3

import pytest

from ormkit.observability import (
    Metrics,
    StatusCode,
    Tracer,
    with_default_meter,
    with_default_tracer,
    with_logger,
    with_meter,
    with_query_logging,
    with_slow_query_threshold,
    with_tracer,
)
from ormkit.session import Session, SQLiteDialect, TransactionDoneError

CREATE = "CREATE TABLE obs_test (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL)"
INSERT = "INSERT INTO obs_test (name) VALUES (?)"
COUNT = "SELECT COUNT(*) AS n FROM obs_test"


def make_session(*options, isolation_level=""):
    connection = sqlite3.connect(":memory:", isolation_level=isolation_level)
    session = Session(connection, SQLiteDialect(), *options)
    session.exec(CREATE)
    return session


def test_with_logger_logs_queries(caplog):
    logger = logging.getLogger("ormkit.tests.logger")
    session = make_session(with_logger(logger), with_query_logging(True))
    with caplog.at_level(logging.DEBUG, logger=logger.name):
        session.exec(INSERT, "Test")
    messages = [record.getMessage() for record in caplog.records]
    assert messages
    assert any(INSERT in message for message in messages)


def test_slow_query_threshold_warns(caplog):
    logger = logging.getLogger("ormkit.tests.slow")
    session = make_session(with_logger(logger), with_slow_query_threshold(1e-9))
    with caplog.at_level(logging.WARNING, logger=logger.name):
        session.exec(INSERT, "Test")
    assert any(r.getMessage().startswith("slow query") for r in caplog.records)
    assert all(r.levelno == logging.WARNING for r in caplog.records)


def test_failed_query_is_logged_traced_and_counted(caplog):
    logger = logging.getLogger("ormkit.tests.fail")
    tracer = Tracer()
    metrics = Metrics()
    session = make_session(with_logger(logger), with_tracer(tracer), with_meter(metrics))
    with caplog.at_level(logging.ERROR, logger=logger.name):
        with pytest.raises(sqlite3.OperationalError):
            session.exec("INSERT INTO missing_table VALUES (1)")
    assert any(r.getMessage().startswith("query failed") for r in caplog.records)
    span = tracer.spans[-1]
    assert span.status_code is StatusCode.ERROR
    assert len(span.errors) == 1
    assert metrics.query_errors[("exec", "sqlite3")] == 1


def test_tracer_records_span_with_statement():
    tracer = Tracer()
    session = make_session(with_tracer(tracer))
    session.exec(INSERT, "Test")
    span = tracer.spans[-1]
    assert span.name == "ormkit.Exec"
    assert span.attributes["db.statement"] == INSERT
    assert span.end_time is not None


def test_default_tracer_and_meter():
    session = make_session(with_default_tracer(), with_default_meter())
    before = session.observability.metrics.query_count[("exec", "sqlite3")]
    session.exec(INSERT, "Test")
    assert session.observability.tracer.spans[-1].name == "ormkit.Exec"
    after = session.observability.metrics.query_count[("exec", "sqlite3")]
    assert after == before + 1
    assert session.get("SELECT name FROM obs_test WHERE id = ?", 1) == {"name": "Test"}


def test_meter_counts_by_operation():
    metrics = Metrics()
    session = make_session(with_meter(metrics))
    session.exec(INSERT, "a")
    session.exec(INSERT, "b")
    session.select("SELECT * FROM obs_test")
    assert metrics.query_count[("exec", "sqlite3")] == 3
    assert metrics.query_count[("select", "sqlite3")] == 1
    assert metrics.query_errors[("exec", "sqlite3")] == 0


def test_select_returns_mappings():
    session = make_session()
    session.exec(INSERT, "alice")
    session.exec(INSERT, "bob")
    rows = session.select("SELECT id, name FROM obs_test ORDER BY id")
    assert rows == [{"id": 1, "name": "alice"}, {"id": 2, "name": "bob"}]


def test_get_without_rows_raises():
    session = make_session()
    with pytest.raises(LookupError):
        session.get("SELECT name FROM obs_test")


def test_query_and_query_row():
    session = make_session()
    session.exec(INSERT, "alice")
    assert session.query("SELECT name FROM obs_test").fetchall() == [("alice",)]
    assert session.query_row("SELECT name FROM obs_test") == ("alice",)
    assert session.query_row("SELECT name FROM obs_test WHERE id = ?", 99) is None


def test_exec_reports_last_row_id():
    session = make_session()
    session.exec(INSERT, "a")
    cursor = session.exec(INSERT, "b")
    assert cursor.lastrowid == 2


@pytest.mark.parametrize("isolation_level", ["", None])
def test_transaction_commits(isolation_level):
    session = make_session(isolation_level=isolation_level)
    with session.transaction() as tx:
        assert tx.in_transaction
        tx.exec(INSERT, "kept")
    assert session.get(COUNT)["n"] == 1


@pytest.mark.parametrize("isolation_level", ["", None])
def test_transaction_rolls_back_on_error(isolation_level):
    session = make_session(isolation_level=isolation_level)
    with pytest.raises(RuntimeError, match="boom"):
        with session.transaction() as tx:
            tx.exec(INSERT, "lost")
            raise RuntimeError("boom")
    assert session.get(COUNT)["n"] == 0


def test_nested_transaction_joins_outer():
    session = make_session()
    with session.transaction() as tx:
        with tx.transaction() as inner:
            assert inner is tx


def test_commit_outside_transaction_raises():
    session = make_session()
    with pytest.raises(TransactionDoneError):
        session.commit()
    with pytest.raises(TransactionDoneError):
        session.rollback()


def test_commit_twice_raises():
    session = make_session()
    tx = session.begin()
    tx.exec(INSERT, "x")
    tx.commit()
    with pytest.raises(TransactionDoneError):
        tx.commit()
    assert session.get(COUNT)["n"] == 1


def test_upsert_clause():
    dialect = SQLiteDialect()
    assert dialect.name() == "sqlite3"
    clause = dialect.upsert_clause("obs_test", ["id"], ["name"])
    assert clause == "ON CONFLICT (id) DO UPDATE SET name = excluded.name"
    assert dialect.upsert_clause("obs_test", ["id"], []).endswith("DO NOTHING")