"""A SELECT builder bound to a model type, with aggregates."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from ormkit.expressions import Columnar, Expression, resolve_column_names
from ormkit.schema import Schema, load_schema
from ormkit.session import Session

T = TypeVar("T")
R = TypeVar("R")


class NotFoundError(LookupError):
    """Raised when a query that needs a record finds none."""

    def __init__(self, message: str = "orm: record not found") -> None:
        super().__init__(message)


def _check_count(n: int) -> int:
    if isinstance(n, bool) or not isinstance(n, int) or n < 0:
        raise ValueError(f"expected a non-negative integer, got {n!r}")
    return n


class QueryBuilder(Generic[T]):
    """Builds and runs a SELECT on the table of a model type.

    Builder methods change the query in place and return it, so calls chain.
    """

    def __init__(self, session: Session, model_type: type[T], schema: Schema[T] | None = None):
        self.session = session
        self.model_type = model_type
        self.schema = schema if schema is not None else load_schema(model_type)
        self._columns: list[str] = []
        self._joins: list[tuple[str, list[Any]]] = []
        self._wheres: list[tuple[str, list[Any]]] = []
        self._group_by: list[str] = []
        self._havings: list[tuple[str, list[Any]]] = []
        self._order_by: list[str] = []
        self._limit: int | None = None
        self._offset: int | None = None

    def where(self, expr: Expression) -> QueryBuilder[T]:
        """Add a condition; conditions are joined with AND."""
        self._wheres.append(expr.build())
        return self

    def order_by(self, *orders: Any) -> QueryBuilder[T]:
        """Add ORDER BY terms: objects with ``build()`` or plain strings."""
        for order in orders:
            self._order_by.append(order if isinstance(order, str) else order.build())
        return self

    def limit(self, n: int) -> QueryBuilder[T]:
        self._limit = _check_count(n)
        return self

    def offset(self, n: int) -> QueryBuilder[T]:
        self._offset = _check_count(n)
        return self

    def select(self, *columns: Columnar) -> QueryBuilder[T]:
        """Add columns to select instead of the schema's default columns."""
        self._columns.extend(resolve_column_names(columns))
        return self

    def _join(self, kind: str, table: str, on: Expression) -> QueryBuilder[T]:
        sql, args = on.build()
        self._joins.append((f"{kind} {table} ON {sql}", args))
        return self

    def join(self, table: str, on: Expression) -> QueryBuilder[T]:
        """Add an INNER JOIN."""
        return self._join("JOIN", table, on)

    def left_join(self, table: str, on: Expression) -> QueryBuilder[T]:
        """Add a LEFT JOIN."""
        return self._join("LEFT JOIN", table, on)

    def right_join(self, table: str, on: Expression) -> QueryBuilder[T]:
        """Add a RIGHT JOIN."""
        return self._join("RIGHT JOIN", table, on)

    def group_by(self, *columns: Columnar) -> QueryBuilder[T]:
        self._group_by.extend(resolve_column_names(columns))
        return self

    def having(self, expr: Expression) -> QueryBuilder[T]:
        """Add a HAVING condition; conditions are joined with AND."""
        self._havings.append(expr.build())
        return self

    def _render(self, columns: list[str], paginate: bool = True) -> tuple[str, list[Any]]:
        parts = [f"SELECT {', '.join(columns)}", f"FROM {self.schema.table_name()}"]
        args: list[Any] = []
        for sql, join_args in self._joins:
            parts.append(sql)
            args.extend(join_args)
        if self._wheres:
            parts.append("WHERE " + " AND ".join(sql for sql, _ in self._wheres))
            for _, where_args in self._wheres:
                args.extend(where_args)
        if self._group_by:
            parts.append("GROUP BY " + ", ".join(self._group_by))
        if self._havings:
            parts.append("HAVING " + " AND ".join(sql for sql, _ in self._havings))
            for _, having_args in self._havings:
                args.extend(having_args)
        if self._order_by:
            parts.append("ORDER BY " + ", ".join(self._order_by))
        if paginate and self._limit is not None:
            parts.append(f"LIMIT {self._limit}")
        if paginate and self._offset is not None:
            parts.append(f"OFFSET {self._offset}")
        return " ".join(parts), args

    def to_sql(self) -> tuple[str, list[Any]]:
        """Return the SELECT statement and its arguments."""
        return self._render(self._columns or list(self.schema.select_columns()))

    def find(self) -> list[T]:
        """Run the query and return the matching models."""
        return self.scan(self.model_type)

    def scan(self, row_type: type[R]) -> list[R]:
        """Run the query and build a ``row_type`` from each row's columns."""
        sql, args = self.to_sql()
        return [row_type(**row) for row in self.session.select(sql, *args)]

    def first(self) -> T:
        """Return the first matching model; raise NotFoundError when none match."""
        results = self.limit(1).find()
        if not results:
            raise NotFoundError()
        return results[0]

    def count(self) -> int:
        """Count the matching rows, ignoring LIMIT and OFFSET."""
        sql, args = self._render(["COUNT(*)"], paginate=False)
        row = self.session.get(sql, *args)
        return int(next(iter(row.values())))

    def _aggregate(self, function: str, column: Columnar) -> Any:
        sql, args = self._render([f"{function}({column.column_name()})"])
        row = self.session.query_row(sql, *args)
        if row is None:
            raise NotFoundError("sql: no rows in result set")
        return row[0]

    def _aggregate_float(self, function: str, column: Columnar) -> float:
        value = self._aggregate(function, column)
        if value is None:
            return 0.0
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        raise TypeError(f"unexpected type {type(value).__name__} for aggregate")

    def sum(self, column: Columnar) -> float:
        """Sum of the column over the matching rows; 0.0 when there are none."""
        return self._aggregate_float("SUM", column)

    def avg(self, column: Columnar) -> float:
        """Average of the column over the matching rows; 0.0 when there are none."""
        return self._aggregate_float("AVG", column)

    def min(self, column: Columnar) -> Any:
        """Smallest value of the column, or None when no rows match."""
        return self._aggregate("MIN", column)

    def max(self, column: Columnar) -> Any:
        """Largest value of the column, or None when no rows match."""
        return self._aggregate("MAX", column)


def query(session: Session, model_type: type[T]) -> QueryBuilder[T]:
    """Start a query on the table of a registered model type."""
    return QueryBuilder(session, model_type)