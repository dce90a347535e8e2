"""Database sessions: instrumented query execution and transactions."""

from __future__ import annotations

import contextlib
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Protocol, Sequence, TypeVar

from ormkit.observability import ObservabilityConfig, SessionOption, StatusCode

R = TypeVar("R")


class Dialect(Protocol):
    """SQL details that differ between databases."""

    def name(self) -> str: ...

    def upsert_clause(
        self, table: str, conflict_columns: Sequence[str], update_columns: Sequence[str]
    ) -> str: ...


class SQLiteDialect:
    """SQL details for SQLite."""

    def name(self) -> str:
        return "sqlite3"

    def upsert_clause(
        self, table: str, conflict_columns: Sequence[str], update_columns: Sequence[str]
    ) -> str:
        """Return the ON CONFLICT suffix of an INSERT statement."""
        target = ", ".join(conflict_columns)
        if not update_columns:
            return f"ON CONFLICT ({target}) DO NOTHING"
        assignments = ", ".join(f"{column} = excluded.{column}" for column in update_columns)
        return f"ON CONFLICT ({target}) DO UPDATE SET {assignments}"


class TransactionDoneError(RuntimeError):
    """Raised when committing or rolling back outside an open transaction."""

    def __init__(
        self, message: str = "sql: transaction has already been committed or rolled back"
    ) -> None:
        super().__init__(message)


@dataclass
class _ConnectionState:
    transaction_open: bool = False


def _rows_as_dicts(cursor: Any) -> list[dict[str, Any]]:
    names = [description[0] for description in cursor.description or ()]
    return [dict(zip(names, row)) for row in cursor.fetchall()]


class Session:
    """A database connection, or a transaction on it, with observability."""

    def __init__(self, connection: Any, dialect: Dialect, *options: SessionOption) -> None:
        self.connection = connection
        self.dialect = dialect
        self.observability = ObservabilityConfig()
        for option in options:
            option(self.observability)
        self._state = _ConnectionState()
        self._in_transaction = False
        self._done = False

    @property
    def in_transaction(self) -> bool:
        """Whether this session runs inside a transaction."""
        return self._in_transaction

    def _execute(self, sql: str, args: Sequence[Any]) -> Any:
        cursor = self.connection.cursor()
        cursor.execute(sql, tuple(args))
        return cursor

    def _instrument(
        self, span_name: str, operation: str, sql: str, action: Callable[[], R]
    ) -> R:
        span = self.observability.start_span(span_name)
        start = time.perf_counter()
        error: BaseException | None = None
        try:
            return action()
        except Exception as exc:
            error = exc
            span.record_error(exc)
            span.set_status(StatusCode.ERROR, str(exc))
            raise
        finally:
            duration = time.perf_counter() - start
            span.set_attributes(**{"db.statement": sql})
            self.observability.log_query(operation, sql, duration, error)
            self.observability.record_metrics(operation, self.dialect.name(), duration, error)
            span.end()

    def query(self, sql: str, *args: Any) -> Any:
        """Run a query and return the cursor holding its rows."""
        return self._instrument("ormkit.Query", "query", sql, lambda: self._execute(sql, args))

    def query_row(self, sql: str, *args: Any) -> tuple[Any, ...] | None:
        """Run a query and return its first row, or None when it has none."""
        span = self.observability.start_span("ormkit.QueryRow")
        try:
            span.set_attributes(**{"db.statement": sql})
            logger = self.observability.logger
            if logger is not None and self.observability.log_queries:
                logger.debug("query row operation=query_row query=%r", sql)
            row = self._execute(sql, args).fetchone()
            return tuple(row) if row is not None else None
        finally:
            span.end()

    def exec(self, sql: str, *args: Any) -> Any:
        """Run a statement; return the cursor (``lastrowid``, ``rowcount``)."""

        def action() -> Any:
            cursor = self._execute(sql, args)
            if not self._in_transaction and not self._state.transaction_open:
                self.connection.commit()
            return cursor

        return self._instrument("ormkit.Exec", "exec", sql, action)

    def select(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        """Run a query and return every row as a mapping of column to value."""
        return self._instrument(
            "ormkit.Select", "select", sql, lambda: _rows_as_dicts(self._execute(sql, args))
        )

    def get(self, sql: str, *args: Any) -> dict[str, Any]:
        """Run a query and return its first row; raise LookupError when it has none."""

        def action() -> dict[str, Any]:
            rows = _rows_as_dicts(self._execute(sql, args))
            if not rows:
                raise LookupError("sql: no rows in result set")
            return rows[0]

        return self._instrument("ormkit.Get", "get", sql, action)

    def begin(self) -> Session:
        """Open a transaction and return a session that runs inside it."""
        span = self.observability.start_span("ormkit.Begin")
        try:
            if self._state.transaction_open:
                raise RuntimeError("a transaction is already open on this connection")
            autocommit = getattr(self.connection, "isolation_level", "") is None
            if autocommit and not getattr(self.connection, "in_transaction", False):
                self.connection.cursor().execute("BEGIN")
        except Exception as exc:
            span.record_error(exc)
            span.set_status(StatusCode.ERROR, str(exc))
            raise
        finally:
            span.end()
        self._state.transaction_open = True
        child = Session.__new__(Session)
        child.connection = self.connection
        child.dialect = self.dialect
        child.observability = self.observability
        child._state = self._state
        child._in_transaction = True
        child._done = False
        return child

    def _finish(self, action: Callable[[], None]) -> None:
        if not self._in_transaction or self._done:
            raise TransactionDoneError()
        self._done = True
        self._state.transaction_open = False
        action()

    def commit(self) -> None:
        """Commit this session's transaction."""
        self._finish(self.connection.commit)

    def rollback(self) -> None:
        """Roll back this session's transaction."""
        self._finish(self.connection.rollback)

    @contextlib.contextmanager
    def transaction(self) -> Iterator[Session]:
        """Run a block in a transaction, committed on success and rolled back on error.

        Inside a transaction already, the block joins it.
        """
        if self._in_transaction:
            yield self
            return
        tx = self.begin()
        try:
            yield tx
        except BaseException:
            with contextlib.suppress(Exception):
                tx.rollback()
            raise
        tx.commit()