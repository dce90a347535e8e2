"""A JSON column field with path queries, partial updates and merges."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any

from ormkit.expressions import Assignment, Column, Expr, Expression, IsNotNull, IsNull
from ormkit.jsondialect import JSONDialect, default_dialect, marshal_value
from ormkit.jsonpath import JSONPathOps, JSONRemoveBuilder, JSONSetBuilder, PathValue


@dataclass(frozen=True)
class JSONPathBuilder:
    """A JSON column and a path inside it, awaiting a dialect."""

    column: Column
    path: str

    def with_dialect(self, dialect: JSONDialect) -> JSONPathOps:
        """Return the path operations rendered in the given dialect."""
        return JSONPathOps(self.column, self.path, dialect)


@dataclass(frozen=True)
class JSONField:
    """A column holding JSON documents."""

    column: Column = Column()

    def column_name(self) -> str:
        """The column name, qualified by its table when one is set."""
        return self.column.column_name()

    def with_column(self, name: str) -> JSONField:
        """Return a copy of this field naming the given column."""
        return dataclasses.replace(self, column=dataclasses.replace(self.column, name=name))

    def with_table(self, name: str) -> JSONField:
        """Return a copy of this field qualified by the given table."""
        return dataclasses.replace(self, column=dataclasses.replace(self.column, table=name))

    def is_null(self) -> Expression:
        """field IS NULL"""
        return IsNull(self.column)

    def is_not_null(self) -> Expression:
        """field IS NOT NULL"""
        return IsNotNull(self.column)

    def set(self, value: Any) -> Assignment:
        """Assign the JSON encoding of the value to the whole column."""
        return Assignment(self.column, marshal_value(value))

    def raw_set(self, value: Any) -> Assignment:
        """Assign an already encoded JSON value to the column."""
        return Assignment(self.column, value)

    def path(self, path: str) -> JSONPathBuilder:
        """Select a path inside the document; pick a dialect with ``with_dialect``."""
        return JSONPathBuilder(self.column, path)

    def set_builder(self, dialect: JSONDialect) -> JSONSetBuilder:
        """Start a multi-path SET expression in the given dialect."""
        return JSONSetBuilder(self.column.column_name(), dialect)

    def remove_builder(self, dialect: JSONDialect) -> JSONRemoveBuilder:
        """Start a multi-path REMOVE expression in the given dialect."""
        return JSONRemoveBuilder(self.column.column_name(), dialect)

    def path_eq(self, path: str, value: Any) -> Expression:
        """The value at the path equals the given value (default dialect)."""
        return Expr(*default_dialect().path_eq(self.column.column_name(), path, value))

    def set_path(self, path: str, value: Any) -> Assignment:
        """Set the value at one path (default dialect)."""
        return Assignment(
            self.column, default_dialect().set_path(self.column.column_name(), path, value)
        )

    def remove_path(self, path: str) -> Assignment:
        """Remove one path from the document (default dialect)."""
        return Assignment(
            self.column, default_dialect().remove_path(self.column.column_name(), path)
        )

    def set_paths(self, *args: PathValue) -> Assignment:
        """Set several paths in one assignment (default dialect)."""
        builder = self.set_builder(default_dialect())
        for arg in args:
            builder.path(arg.path, arg.value)
        return builder.assignment(self.column)

    def merge_patch(self, value: Any) -> Assignment:
        """Merge the value into the document as an RFC 7396 merge patch."""
        return Assignment(
            self.column, default_dialect().merge_patch(self.column.column_name(), value)
        )

    def merge_preserve(self, value: Any) -> Assignment:
        """Merge the value into the document, concatenating arrays where supported."""
        return Assignment(
            self.column, default_dialect().merge_preserve(self.column.column_name(), value)
        )