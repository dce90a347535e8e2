"""Builders and path helpers for dialect-aware JSON column operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ormkit.expressions import Assignment, Column, Expr, Expression
from ormkit.jsondialect import JSONDialect, default_dialect


class JSONSetBuilder:
    """Collects path/value pairs and renders one JSON SET expression."""

    def __init__(self, column: str, dialect: JSONDialect) -> None:
        self.column = column
        self.dialect = dialect
        self._paths: list[str] = []
        self._values: list[Any] = []

    def path(self, path: str, value: Any) -> JSONSetBuilder:
        """Add a path to set to the given value."""
        self._paths.append(path)
        self._values.append(value)
        return self

    def build(self) -> Expr:
        """Render the SQL expression; empty when no paths were added."""
        if not self._paths:
            return Expr()
        return self.dialect.set_multiple_paths(self.column, self._paths, self._values)

    def assignment(self, column: Column) -> Assignment:
        """Return an assignment of the built expression to the column."""
        return Assignment(column, self.build())


class JSONRemoveBuilder:
    """Collects paths and renders one JSON REMOVE expression."""

    def __init__(self, column: str, dialect: JSONDialect) -> None:
        self.column = column
        self.dialect = dialect
        self._paths: list[str] = []

    def path(self, path: str) -> JSONRemoveBuilder:
        """Add a path to remove."""
        self._paths.append(path)
        return self

    def build(self) -> Expr:
        """Render the SQL expression; empty when no paths were added."""
        if not self._paths:
            return Expr()
        return self.dialect.remove_multiple_paths(self.column, self._paths)

    def assignment(self, column: Column) -> Assignment:
        """Return an assignment of the built expression to the column."""
        return Assignment(column, self.build())


@dataclass(frozen=True)
class JSONPathOps:
    """Conditions and assignments on one JSON path, in one dialect."""

    column: Column
    path: str
    dialect: JSONDialect

    def _name(self) -> str:
        return self.column.column_name()

    def eq(self, value: Any) -> Expression:
        return Expr(*self.dialect.path_eq(self._name(), self.path, value))

    def neq(self, value: Any) -> Expression:
        return Expr(*self.dialect.path_neq(self._name(), self.path, value))

    def gt(self, value: Any) -> Expression:
        return Expr(*self.dialect.path_gt(self._name(), self.path, value))

    def gte(self, value: Any) -> Expression:
        return Expr(*self.dialect.path_gte(self._name(), self.path, value))

    def lt(self, value: Any) -> Expression:
        return Expr(*self.dialect.path_lt(self._name(), self.path, value))

    def lte(self, value: Any) -> Expression:
        return Expr(*self.dialect.path_lte(self._name(), self.path, value))

    def contains(self, value: Any) -> Expression:
        return Expr(*self.dialect.contains(self._name(), value, self.path))

    def set(self, value: Any) -> Assignment:
        return Assignment(self.column, self.dialect.set_path(self._name(), self.path, value))

    def remove(self) -> Assignment:
        return Assignment(self.column, self.dialect.remove_path(self._name(), self.path))


@dataclass(frozen=True)
class PathValue:
    """A JSON path paired with the value to store there."""

    path: str
    value: Any


@dataclass(frozen=True)
class JSONPath:
    """A path inside a named JSON column; operations use the default dialect."""

    column: str
    path: str

    def with_dialect(self, dialect: JSONDialect) -> JSONPathOps:
        return JSONPathOps(Column(name=self.column), self.path, dialect)

    def _ops(self) -> JSONPathOps:
        return self.with_dialect(default_dialect())

    def eq(self, value: Any) -> Expression:
        return self._ops().eq(value)

    def neq(self, value: Any) -> Expression:
        return self._ops().neq(value)

    def contains(self, value: Any) -> Expression:
        return self._ops().contains(value)

    def gt(self, value: Any) -> Expression:
        return self._ops().gt(value)

    def lt(self, value: Any) -> Expression:
        return self._ops().lt(value)

    def gte(self, value: Any) -> Expression:
        return self._ops().gte(value)

    def lte(self, value: Any) -> Expression:
        return self._ops().lte(value)

    def set(self, value: Any) -> Assignment:
        return self._ops().set(value)

    def remove(self) -> Assignment:
        return self._ops().remove()

    def arg(self, value: Any) -> PathValue:
        return PathValue(self.path, value)