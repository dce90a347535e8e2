"""Typed column fields that build query conditions, assignments and ordering."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any

from ormkit.expressions import (
    Assignment,
    Between,
    Column,
    Eq,
    Expression,
    Gt,
    Gte,
    In,
    IsNotNull,
    IsNull,
    Like,
    Lt,
    Lte,
    Neq,
    Not,
    NotLike,
    OrderByColumn,
)


@dataclass(frozen=True)
class BaseField:
    """A column of a model, with the operations every field type supports."""

    column: Column = Column()

    def column_name(self) -> str:
        """The column name, qualified by its table when one is set."""
        return self.column.column_name()

    def with_column(self, name: str):
        """Return a copy of this field naming the given column."""
        return dataclasses.replace(self, column=dataclasses.replace(self.column, name=name))

    def with_table(self, name: str):
        """Return a copy of this field qualified by the given table."""
        return dataclasses.replace(self, column=dataclasses.replace(self.column, table=name))

    def eq(self, value: Any) -> Expression:
        """field = value"""
        return Eq(self.column, value)

    def neq(self, value: Any) -> Expression:
        """field <> value"""
        return Neq(self.column, value)

    def is_null(self) -> Expression:
        """field IS NULL"""
        return IsNull(self.column)

    def is_not_null(self) -> Expression:
        """field IS NOT NULL"""
        return IsNotNull(self.column)

    def set(self, value: Any) -> Assignment:
        """field = value, for UPDATE statements."""
        return Assignment(self.column, value)


class _Ranged:
    """Ordering comparisons and ranges."""

    column: Column

    def gt(self, value: Any) -> Expression:
        """field > value"""
        return Gt(self.column, value)

    def gte(self, value: Any) -> Expression:
        """field >= value"""
        return Gte(self.column, value)

    def lt(self, value: Any) -> Expression:
        """field < value"""
        return Lt(self.column, value)

    def lte(self, value: Any) -> Expression:
        """field <= value"""
        return Lte(self.column, value)

    def between(self, low: Any, high: Any) -> Expression:
        """field BETWEEN low AND high"""
        return Between(self.column, low, high)


@dataclass(frozen=True)
class Field(BaseField):
    """A field of any value type."""

    def in_(self, *values: Any) -> Expression:
        """field IN (values...)"""
        return In(self.column, tuple(values))

    def not_in(self, *values: Any) -> Expression:
        """NOT (field IN (values...))"""
        return Not(In(self.column, tuple(values)))

    def asc(self) -> OrderByColumn:
        """Ascending order on this field."""
        return OrderByColumn(self.column, desc=False)

    def desc(self) -> OrderByColumn:
        """Descending order on this field."""
        return OrderByColumn(self.column, desc=True)


@dataclass(frozen=True)
class BoolField(BaseField):
    """A boolean field."""

    def is_true(self) -> Expression:
        """field = TRUE"""
        return Eq(self.column, True)

    def is_false(self) -> Expression:
        """field = FALSE"""
        return Eq(self.column, False)

    def asc(self) -> OrderByColumn:
        """Ascending order on this field."""
        return OrderByColumn(self.column, desc=False)

    def desc(self) -> OrderByColumn:
        """Descending order on this field."""
        return OrderByColumn(self.column, desc=True)


@dataclass(frozen=True)
class BytesField(BaseField):
    """A binary (BLOB/BYTEA) field."""


@dataclass(frozen=True)
class NumberField(_Ranged, Field):
    """An integer or floating-point field."""

    def gt(self, value: Any) -> Expression:
        return _Ranged.gt(self, value)

    def gte(self, value: Any) -> Expression:
        return _Ranged.gte(self, value)

    def lt(self, value: Any) -> Expression:
        return _Ranged.lt(self, value)

    def lte(self, value: Any) -> Expression:
        return _Ranged.lte(self, value)

    def between(self, low: Any, high: Any) -> Expression:
        return _Ranged.between(self, low, high)


@dataclass(frozen=True)
class StringField(Field):
    """A text field."""

    def like(self, pattern: str) -> Expression:
        """field LIKE pattern"""
        return Like(self.column, pattern)

    def not_like(self, pattern: str) -> Expression:
        """field NOT LIKE pattern"""
        return NotLike(self.column, pattern)


@dataclass(frozen=True)
class TimeField(_Ranged, BaseField):
    """A date or time field."""

    def gt(self, value: Any) -> Expression:
        return _Ranged.gt(self, value)

    def gte(self, value: Any) -> Expression:
        return _Ranged.gte(self, value)

    def lt(self, value: Any) -> Expression:
        return _Ranged.lt(self, value)

    def lte(self, value: Any) -> Expression:
        return _Ranged.lte(self, value)

    def between(self, low: Any, high: Any) -> Expression:
        return _Ranged.between(self, low, high)

    def asc(self) -> OrderByColumn:
        """Ascending order on this field."""
        return OrderByColumn(self.column, desc=False)

    def desc(self) -> OrderByColumn:
        """Descending order on this field."""
        return OrderByColumn(self.column, desc=True)