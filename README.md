# ormkit

ormkit maps plain Python classes to SQL tables. You describe a table once
with a `Schema`, then read and write rows through a `Repository` or a
`QueryBuilder`. Conditions are built from typed field objects, so queries
are composed from Python values, and every value travels as a bound `?`
parameter.

It has no dependencies outside the standard library.

## Installing

```
pip install ormkit
```

To run the test suite, install the `test` extra and run `pytest`:

```
pip install "ormkit[test]"
pytest
```

## Building conditions

Fields (`ormkit.fields`) produce expressions (`ormkit.expressions`); each
expression's `build()` returns an SQL fragment and its parameters.

```python
from ormkit.fields import BoolField, NumberField, StringField
from ormkit.expressions import And, Or

age = NumberField().with_column("age")
status = StringField().with_column("status")
role = StringField().with_column("role")
active = BoolField().with_column("is_active")

condition = Or(And(age.gt(18), status.eq("active")), role.eq("admin"))
sql, args = condition.build()
# sql  == "((age > ?) AND (status = ?)) OR (role = ?)"
# args == [18, "active", "admin"]

active.is_true().build()                                # ("is_active = ?", [True])
StringField().with_column("email").is_null().build()    # ("email IS NULL", [])
StringField().with_column("created_at").desc().build()  # "created_at DESC"
StringField().with_column("name").in_("a", "b").build() # ("name IN (?, ?)", ["a", "b"])
```

`with_table("users")` qualifies a field, giving `users.email = ?`.

The field types are `Field` (any value), `StringField` (adds `like` and
`not_like`), `NumberField` and `TimeField` (add `gt`, `gte`, `lt`, `lte`,
`between`), `BoolField` (adds `is_true` and `is_false`) and `BytesField`.
Every field has `eq`, `neq`, `is_null`, `is_not_null` and `set`, the last
giving an `Assignment` for updates. `resolve_column_names` turns fields or
`Column` objects into column names.

## Describing a table

```python
from dataclasses import dataclass
from ormkit.schema import Schema, register_schema
from ormkit.expressions import Column, Eq

@dataclass
class User:
    id: int = 0
    name: str = ""

class UserSchema(Schema):
    def table_name(self):
        return "users"

    def select_columns(self):
        return ["id", "name"]

    def insert_row(self, model):
        if model.id:
            return ["id", "name"], [model.id, model.name]
        return ["name"], [model.name]

    def update_map(self, model):
        return {"name": model.name}

    def pk(self, model):
        return Eq(Column(name="id"), model.id if model is not None else None)

    def set_pk(self, model, value):
        model.id = value

    def auto_increment(self):
        return True

register_schema(User, UserSchema())
```

`load_schema(User)` returns the registered schema, and raises
`SchemaNotRegisteredError` for a type that has none. Rows read by queries
are turned into models by calling the model type with the columns as
keyword arguments, so a dataclass whose fields match the columns works as is.

## Sessions and repositories

A `Session` wraps a DB-API connection (such as one from `sqlite3`) and a
dialect. Options switch on logging, tracing and metrics.

```python
import logging
import sqlite3
from ormkit.session import Session, SQLiteDialect
from ormkit.observability import with_logger, with_query_logging, with_slow_query_threshold
from ormkit.repository import Repository

session = Session(
    sqlite3.connect(":memory:"),
    SQLiteDialect(),
    with_logger(logging.getLogger("db")),
    with_query_logging(True),
    with_slow_query_threshold(0.2),
)
session.exec("CREATE TABLE users (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL)")

users = Repository(session, User)
alice = User(name="Alice")
users.create(alice)            # alice.id is filled in from the new row
found = users.find_one(alice.id)

alice.name = "Alice B."
users.update(alice)
users.delete(alice.id)
```

`Session` also offers `query` (returns the cursor), `query_row` (first row
as a tuple, or `None`), `select` (all rows as dicts) and `get` (first row as
a dict, `LookupError` when there is none). Outside a transaction, `exec`
commits after each statement.

`Repository.where(...)` returns a scoped copy whose conditions are added to
every update, delete and lookup. `batch_create` inserts several models in
one statement but does not fill in generated keys. `update_columns(id,
*assignments)` updates only the given columns. `delete` runs no hooks;
`delete_model` does. `upsert` takes `on_conflict(...)` and `do_update(...)`
to choose the conflict target and the columns to update; by default the
primary key is the target and every other inserted column is updated.

Models may define `before_create`, `after_create`, `before_update`,
`after_update`, `before_delete` and `after_delete` methods taking no
arguments; they are called around the matching operations, and an exception
raised from one stops the operation.

## Queries

```python
name = StringField().with_column("name")
q = users.query().where(name.like("A%")).order_by(name.asc()).limit(10)
sql, args = q.to_sql()
rows = q.find()
total = users.query().count()
first = users.query().where(name.eq("Alice")).first()   # raises NotFoundError if no row
```

`query(session, User)` starts the same builder without a repository.
`sum` and `avg` return floats (0.0 when no rows match); `min` and `max`
return the raw value or `None`. `select`, `join`, `left_join`,
`right_join`, `group_by`, `having` and `offset` are available for larger
queries, and `scan(row_type)` builds some other type from each row.

## Transactions

```python
with session.transaction() as tx:
    Repository(tx, User).create(User(name="Bob"))
```

The transaction commits when the block ends normally and rolls back if it
raises. Inside a transaction already, the block joins it. `begin`,
`commit` and `rollback` are available for manual control; committing or
rolling back outside an open transaction raises `TransactionDoneError`.

## Observability

`ormkit.observability` provides `with_logger`, `with_query_logging`,
`with_slow_query_threshold` (seconds, 0.2 by default), `with_tracer`,
`with_default_tracer`, `with_meter` and `with_default_meter`. Failed
queries are logged as errors and slow ones as warnings; with query logging
on, every query is logged at debug level with its SQL. A `Tracer` keeps the
`Span` objects it started, each with its `db.statement` attribute, status
and errors. `Metrics` counts queries and errors and records durations in
milliseconds per operation and database.

## JSON columns

`ormkit.json_type.JSON` wraps a value that is stored as JSON text: `value()`
encodes it, `scan()` loads it from bytes, text or `None`, and an optional
`decoder` turns the parsed JSON into your own type. It can be passed
directly as an `sqlite3` parameter.

`JSONField` builds dialect-aware JSON path conditions and updates:

```python
from ormkit.jsonfield import JSONField
from ormkit.jsondialect import MYSQL, set_default_dialect

meta = JSONField().with_column("metadata")
meta.path("$.count").with_dialect(MYSQL).eq(100).build()
# ("JSON_EXTRACT(metadata, ?) = ?", ["$.count", "100"])

meta.set_builder(MYSQL).path("$.name", "alice").path("$.age", 25).assignment(meta.column)
```

The dialects are `MySQLJSONDialect`, `PostgresJSONDialect` and
`SQLiteJSONDialect` (instances `MYSQL`, `POSTGRES`, `SQLITE`);
`dialect_by_name` looks one up and falls back to MySQL. `set_default_dialect`
chooses the one used by the shortcut methods `path_eq`, `set_path`,
`remove_path`, `set_paths`, `merge_patch` and `merge_preserve`.
`ormkit.jsonpath.JSONPath` names a path in a column by name, and its
`arg(value)` gives a `PathValue` for `set_paths`.

## What it does not do

- Statements are always written with `?` placeholders, and the only session
  dialect provided is `SQLiteDialect`. Other databases need a driver that
  accepts `?` and a dialect object of your own with `name()` and
  `upsert_clause(...)`. The JSON dialects only render SQL text.
- Schemas are written by hand; nothing generates them from model classes,
  and there are no migrations or table creation helpers.
- There is no command-line tool.