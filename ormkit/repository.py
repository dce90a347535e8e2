"""Create, read, update and delete operations for one model type."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Iterable, Sequence, TypeVar

from ormkit.expressions import Assignment, Column, Columnar, Eq, Expression, resolve_column_names
from ormkit.hooks import (
    trigger_after_create,
    trigger_after_delete,
    trigger_after_update,
    trigger_before_create,
    trigger_before_delete,
    trigger_before_update,
)
from ormkit.query import QueryBuilder
from ormkit.schema import Schema, load_schema
from ormkit.session import Session

T = TypeVar("T")


@dataclass
class _UpsertConfig:
    conflict_columns: list[str] = field(default_factory=list)
    update_columns: list[str] = field(default_factory=list)


UpsertOption = Callable[[_UpsertConfig], None]


def on_conflict(*columns: Columnar) -> UpsertOption:
    """Columns whose conflict triggers the update (a primary key or unique constraint)."""

    def apply(config: _UpsertConfig) -> None:
        config.conflict_columns = resolve_column_names(columns)

    return apply


def do_update(*columns: Columnar) -> UpsertOption:
    """Columns to update on conflict; by default every non-conflict column."""

    def apply(config: _UpsertConfig) -> None:
        config.update_columns = resolve_column_names(columns)

    return apply


def _value_sql(value: Any) -> tuple[str, list[Any]]:
    """A placeholder for a plain value, or the SQL of an embedded expression."""
    if isinstance(value, Expression):
        return value.build()
    return "?", [value]


def _equality(column: str, value: Any) -> tuple[str, list[Any]]:
    if value is None:
        return f"{column} IS NULL", []
    if isinstance(value, (list, tuple, set, frozenset)):
        values = list(value)
        if not values:
            return "(1=0)", []
        placeholders = ", ".join("?" for _ in values)
        return f"{column} IN ({placeholders})", values
    return f"{column} = ?", [value]


class Repository(Generic[T]):
    """CRUD operations on the table of a registered model type.

    Conditions added with ``where`` scope updates, deletes and lookups.
    """

    def __init__(
        self,
        session: Session,
        model_type: type[T],
        schema: Schema[T] | None = None,
        scopes: Sequence[Expression] = (),
    ) -> None:
        self.session = session
        self.model_type = model_type
        self.schema = schema if schema is not None else load_schema(model_type)
        self.scopes: tuple[Expression, ...] = tuple(scopes)

    def where(self, *conditions: Expression) -> Repository[T]:
        """Return a new repository with the conditions added to its scopes."""
        return Repository(
            self.session, self.model_type, self.schema, self.scopes + tuple(conditions)
        )

    def _where_clause(self, pk_column: str, pk_value: Any) -> tuple[str, list[Any]]:
        sql, args = _equality(pk_column, pk_value)
        parts = [sql]
        for scope in self.scopes:
            scope_sql, scope_args = scope.build()
            parts.append(f"({scope_sql})")
            args.extend(scope_args)
        return " WHERE " + " AND ".join(parts), args

    def _insert_sql(
        self, columns: Sequence[str], rows: Iterable[Sequence[Any]]
    ) -> tuple[str, list[Any]]:
        if not columns:
            raise ValueError("insert statements must have at least one column")
        args: list[Any] = []
        groups: list[str] = []
        for values in rows:
            if len(values) != len(columns):
                raise ValueError(
                    f"expected {len(columns)} values per row, got {len(values)}"
                )
            rendered = []
            for value in values:
                sql, value_args = _value_sql(value)
                rendered.append(sql)
                args.extend(value_args)
            groups.append(f"({', '.join(rendered)})")
        sql = (
            f"INSERT INTO {self.schema.table_name()} ({', '.join(columns)}) "
            f"VALUES {', '.join(groups)}"
        )
        return sql, args

    def create(self, model: T) -> None:
        """Insert the model; store a generated primary key on it."""
        trigger_before_create(model)
        columns, values = self.schema.insert_row(model)
        sql, args = self._insert_sql(columns, [values])
        cursor = self.session.exec(sql, *args)
        if self.schema.auto_increment():
            last_id = getattr(cursor, "lastrowid", None)
            if last_id is not None:
                self.schema.set_pk(model, last_id)
        trigger_after_create(model)

    def batch_create(self, models: Sequence[T]) -> None:
        """Insert several models in one statement; generated keys are not stored."""
        if not models:
            return
        for model in models:
            trigger_before_create(model)
        rows = [self.schema.insert_row(model) for model in models]
        columns = rows[0][0]
        sql, args = self._insert_sql(columns, [values for _, values in rows])
        self.session.exec(sql, *args)
        for model in models:
            trigger_after_create(model)

    def upsert(self, model: T, *options: UpsertOption) -> None:
        """Insert the model, or update it when it conflicts with an existing row.

        The primary key is the default conflict target, and every other
        inserted column is updated by default.
        """
        config = _UpsertConfig()
        for option in options:
            option(config)
        trigger_before_create(model)
        columns, values = self.schema.insert_row(model)
        conflict = config.conflict_columns or [self.schema.pk(None).column.name]
        update = config.update_columns or [c for c in columns if c not in conflict]
        suffix = self.session.dialect.upsert_clause(self.schema.table_name(), conflict, update)
        sql, args = self._insert_sql(columns, [values])
        self.session.exec(f"{sql} {suffix}", *args)
        trigger_after_create(model)

    def _update(self, assignments: Sequence[tuple[str, Any]], pk_column: str, pk_value: Any) -> None:
        if not assignments:
            raise ValueError("update statements must have at least one Set clause")
        parts: list[str] = []
        args: list[Any] = []
        for column, value in assignments:
            sql, value_args = _value_sql(value)
            parts.append(f"{column} = {sql}")
            args.extend(value_args)
        where, where_args = self._where_clause(pk_column, pk_value)
        statement = f"UPDATE {self.schema.table_name()} SET {', '.join(parts)}{where}"
        self.session.exec(statement, *args, *where_args)

    def update(self, model: T) -> None:
        """Write the model's columns to its row."""
        trigger_before_update(model)
        set_map = self.schema.update_map(model)
        pk = self.schema.pk(model)
        self._update(sorted(set_map.items()), pk.column.name, pk.value)
        trigger_after_update(model)

    def update_columns(self, id: Any, *assignments: Assignment) -> None:
        """Update only the assigned columns of the row with the given key."""
        if not assignments:
            return
        pk = self.schema.pk(None)
        self._update(
            [(a.column.column_name(), a.value) for a in assignments], pk.column.name, id
        )

    def _delete(self, pk_column: str, pk_value: Any) -> None:
        where, args = self._where_clause(pk_column, pk_value)
        self.session.exec(f"DELETE FROM {self.schema.table_name()}{where}", *args)

    def delete(self, id: Any) -> None:
        """Delete the row with the given key; no hooks run."""
        self._delete(self.schema.pk(None).column.name, id)

    def delete_model(self, model: T) -> None:
        """Delete the model's row, running its delete hooks."""
        trigger_before_delete(model)
        pk = self.schema.pk(model)
        self._delete(pk.column.name, pk.value)
        trigger_after_delete(model)

    def query(self) -> QueryBuilder[T]:
        """Start a query on the model's table."""
        return QueryBuilder(self.session, self.model_type, self.schema)

    def find_one(self, id: Any) -> T:
        """Return the model with the given key; raise NotFoundError when absent."""
        pk = self.schema.pk(None)
        builder = self.query().where(Eq(Column(name=pk.column.name, table=pk.column.table), id))
        for scope in self.scopes:
            builder = builder.where(scope)
        return builder.first()