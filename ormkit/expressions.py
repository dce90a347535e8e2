"""SQL expression building blocks: columns, conditions, assignments and ordering."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterable, Protocol, Sequence


class Columnar(Protocol):
    """Anything that can name a column."""

    def column_name(self) -> str: ...


@dataclass(frozen=True)
class Column:
    """A column reference, optionally qualified by a table name."""

    name: str = ""
    table: str = ""

    def column_name(self) -> str:
        if self.table:
            return f"{self.table}.{self.name}"
        return self.name


class Expression(ABC):
    """A fragment of SQL with its positional arguments."""

    @abstractmethod
    def build(self) -> tuple[str, list[Any]]:
        """Return the SQL text and the values bound to its placeholders."""


@dataclass(frozen=True)
class Expr(Expression):
    """Raw SQL with bound variables."""

    sql: str = ""
    vars: list[Any] = field(default_factory=list)

    def build(self) -> tuple[str, list[Any]]:
        return self.sql, list(self.vars)


@dataclass(frozen=True)
class _Comparison(Expression):
    column: Column
    value: Any

    def _compare(self, operator: str) -> tuple[str, list[Any]]:
        return f"{self.column.column_name()} {operator} ?", [self.value]


class Eq(_Comparison):
    """column = value"""

    def build(self) -> tuple[str, list[Any]]:
        return self._compare("=")


class Neq(_Comparison):
    """column <> value"""

    def build(self) -> tuple[str, list[Any]]:
        return self._compare("<>")


class Gt(_Comparison):
    """column > value"""

    def build(self) -> tuple[str, list[Any]]:
        return self._compare(">")


class Gte(_Comparison):
    """column >= value"""

    def build(self) -> tuple[str, list[Any]]:
        return self._compare(">=")


class Lt(_Comparison):
    """column < value"""

    def build(self) -> tuple[str, list[Any]]:
        return self._compare("<")


class Lte(_Comparison):
    """column <= value"""

    def build(self) -> tuple[str, list[Any]]:
        return self._compare("<=")


class Like(_Comparison):
    """column LIKE pattern"""

    def build(self) -> tuple[str, list[Any]]:
        return self._compare("LIKE")


class NotLike(_Comparison):
    """column NOT LIKE pattern"""

    def build(self) -> tuple[str, list[Any]]:
        return self._compare("NOT LIKE")


@dataclass(frozen=True)
class In(Expression):
    """column IN (values...)"""

    column: Column
    values: Sequence[Any] = ()

    def build(self) -> tuple[str, list[Any]]:
        values = list(self.values)
        if not values:
            return f"{self.column.column_name()} IN (NULL)", []
        placeholders = ", ".join("?" for _ in values)
        return f"{self.column.column_name()} IN ({placeholders})", values


@dataclass(frozen=True)
class Not(Expression):
    """NOT (expression)"""

    expr: Expression

    def build(self) -> tuple[str, list[Any]]:
        sql, args = self.expr.build()
        return f"NOT ({sql})", args


@dataclass(frozen=True)
class IsNull(Expression):
    """column IS NULL"""

    column: Column

    def build(self) -> tuple[str, list[Any]]:
        return f"{self.column.column_name()} IS NULL", []


@dataclass(frozen=True)
class IsNotNull(Expression):
    """column IS NOT NULL"""

    column: Column

    def build(self) -> tuple[str, list[Any]]:
        return f"{self.column.column_name()} IS NOT NULL", []


@dataclass(frozen=True)
class Between(Expression):
    """column BETWEEN low AND high"""

    column: Column
    low: Any
    high: Any

    def build(self) -> tuple[str, list[Any]]:
        return f"{self.column.column_name()} BETWEEN ? AND ?", [self.low, self.high]


class _Junction(Expression):
    def __init__(self, *expressions: Expression) -> None:
        self.expressions: tuple[Expression, ...] = expressions

    def _join(self, keyword: str) -> tuple[str, list[Any]]:
        parts: list[str] = []
        args: list[Any] = []
        for expr in self.expressions:
            sql, expr_args = expr.build()
            parts.append(f"({sql})")
            args.extend(expr_args)
        return f" {keyword} ".join(parts), args

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other) and self.expressions == other.expressions  # type: ignore[attr-defined]

    def __hash__(self) -> int:
        return hash((type(self), self.expressions))

    def __repr__(self) -> str:
        return f"{type(self).__name__}{self.expressions!r}"


class And(_Junction):
    """All sub-expressions joined with AND."""

    def build(self) -> tuple[str, list[Any]]:
        return self._join("AND")


class Or(_Junction):
    """All sub-expressions joined with OR."""

    def build(self) -> tuple[str, list[Any]]:
        return self._join("OR")


@dataclass(frozen=True)
class Assignment(Expression):
    """column = value, for UPDATE statements."""

    column: Column
    value: Any

    def build(self) -> tuple[str, list[Any]]:
        return f"{self.column.column_name()} = ?", [self.value]


@dataclass(frozen=True)
class OrderByColumn:
    """A column in an ORDER BY clause."""

    column: Column
    desc: bool = False

    def build(self) -> str:
        name = self.column.column_name()
        return f"{name} DESC" if self.desc else name


def resolve_column_names(columns: Iterable[Columnar]) -> list[str]:
    """Return the column names of the given column-like objects."""
    return [column.column_name() for column in columns]