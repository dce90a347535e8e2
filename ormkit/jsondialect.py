"""Database-specific SQL generation for JSON column operations."""

from __future__ import annotations

import base64
import dataclasses
import datetime
import json
from abc import ABC, abstractmethod
from typing import Any, Sequence

from ormkit.expressions import Expr

_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def _json_default(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    raise TypeError(f"value of type {type(value).__name__} is not JSON serializable")


def marshal_value(value: Any) -> str:
    """Encode a value as compact JSON text for use as an SQL parameter."""
    text = json.dumps(
        value, separators=(",", ":"), ensure_ascii=False, default=_json_default
    )
    for char, escaped in _HTML_ESCAPES.items():
        text = text.replace(char, escaped)
    return text


def _sprint(value: Any) -> str:
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _pairs(paths: Sequence[str], values: Sequence[Any]) -> list[tuple[str, Any]]:
    if len(values) < len(paths):
        raise ValueError("every path needs a value")
    return list(zip(paths, values))


class JSONDialect(ABC):
    """SQL generation for JSON operations in one database."""

    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def extract_path(self, column: str, path: str) -> tuple[str, list[Any]]: ...

    @abstractmethod
    def path_eq(self, column: str, path: str, value: Any) -> tuple[str, list[Any]]: ...

    @abstractmethod
    def path_neq(self, column: str, path: str, value: Any) -> tuple[str, list[Any]]: ...

    @abstractmethod
    def path_gt(self, column: str, path: str, value: Any) -> tuple[str, list[Any]]: ...

    @abstractmethod
    def path_gte(self, column: str, path: str, value: Any) -> tuple[str, list[Any]]: ...

    @abstractmethod
    def path_lt(self, column: str, path: str, value: Any) -> tuple[str, list[Any]]: ...

    @abstractmethod
    def path_lte(self, column: str, path: str, value: Any) -> tuple[str, list[Any]]: ...

    @abstractmethod
    def contains(self, column: str, value: Any, path: str) -> tuple[str, list[Any]]: ...

    @abstractmethod
    def set_path(self, column: str, path: str, value: Any) -> Expr: ...

    @abstractmethod
    def set_multiple_paths(
        self, column: str, paths: Sequence[str], values: Sequence[Any]
    ) -> Expr: ...

    @abstractmethod
    def remove_path(self, column: str, path: str) -> Expr: ...

    @abstractmethod
    def remove_multiple_paths(self, column: str, paths: Sequence[str]) -> Expr: ...

    @abstractmethod
    def merge_patch(self, column: str, value: Any) -> Expr: ...

    @abstractmethod
    def merge_preserve(self, column: str, value: Any) -> Expr: ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class _ExtractFunctionDialect(JSONDialect):
    """Dialects that compare via an extract function taking the path as a parameter."""

    _extract = "JSON_EXTRACT"
    _set = "JSON_SET"
    _remove = "JSON_REMOVE"

    def extract_path(self, column, path):
        return f"{self._extract}({column}, ?)", [path]

    def _compare(self, op, column, path, value):
        return f"{self._extract}({column}, ?) {op} ?", [path, marshal_value(value)]

    def path_eq(self, column, path, value):
        return self._compare("=", column, path, value)

    def path_neq(self, column, path, value):
        return self._compare("!=", column, path, value)

    def path_gt(self, column, path, value):
        return self._compare(">", column, path, value)

    def path_gte(self, column, path, value):
        return self._compare(">=", column, path, value)

    def path_lt(self, column, path, value):
        return self._compare("<", column, path, value)

    def path_lte(self, column, path, value):
        return self._compare("<=", column, path, value)

    def set_path(self, column, path, value):
        return Expr(f"{self._set}({column}, ?, ?)", [path, marshal_value(value)])

    def set_multiple_paths(self, column, paths, values):
        if not paths:
            return Expr()
        pairs = _pairs(paths, values)
        placeholders = ", ".join("?, ?" for _ in pairs)
        variables: list[Any] = []
        for path, value in pairs:
            variables.extend((path, marshal_value(value)))
        return Expr(f"{self._set}({column}, {placeholders})", variables)

    def remove_path(self, column, path):
        return Expr(f"{self._remove}({column}, ?)", [path])

    def remove_multiple_paths(self, column, paths):
        if not paths:
            return Expr()
        placeholders = ", ".join("?" for _ in paths)
        return Expr(f"{self._remove}({column}, {placeholders})", list(paths))


class MySQLJSONDialect(_ExtractFunctionDialect):
    """JSON operations for MySQL."""

    def name(self):
        return "mysql"

    def contains(self, column, value, path):
        if path:
            return f"JSON_CONTAINS({column}, ?, ?)", [marshal_value(value), path]
        return f"JSON_CONTAINS({column}, ?)", [marshal_value(value)]

    def merge_patch(self, column, value):
        return Expr(f"JSON_MERGE_PATCH({column}, ?)", [marshal_value(value)])

    def merge_preserve(self, column, value):
        return Expr(f"JSON_MERGE_PRESERVE({column}, ?)", [marshal_value(value)])


class SQLiteJSONDialect(_ExtractFunctionDialect):
    """JSON operations for SQLite."""

    _extract = "json_extract"
    _set = "json_set"
    _remove = "json_remove"

    def name(self):
        return "sqlite3"

    def contains(self, column, value, path):
        pattern = f"%{_sprint(value)}%"
        if path:
            return f"json_extract({column}, ?) LIKE ?", [path, pattern]
        return f"json({column}) LIKE ?", [pattern]

    def merge_patch(self, column, value):
        return Expr(f"json_patch({column}, ?)", [marshal_value(value)])

    def merge_preserve(self, column, value):
        # SQLite offers only RFC 7396 merge patch.
        return Expr(f"json_patch({column}, ?)", [marshal_value(value)])


def _format_pg_path(path: str) -> str:
    path = path.removeprefix("$").removeprefix(".")
    return "'{" + ",".join(path.split(".")) + "}'"


class PostgresJSONDialect(JSONDialect):
    """JSON operations for PostgreSQL (jsonb)."""

    def name(self):
        return "postgres"

    def extract_path(self, column, path):
        return f"{column}->>'{path}'", []

    def _compare(self, op, column, path, value):
        return (
            f"{column} #> {_format_pg_path(path)} {op} ?::jsonb",
            [marshal_value(value)],
        )

    def path_eq(self, column, path, value):
        return self._compare("=", column, path, value)

    def path_neq(self, column, path, value):
        return self._compare("!=", column, path, value)

    def path_gt(self, column, path, value):
        return self._compare(">", column, path, value)

    def path_gte(self, column, path, value):
        return self._compare(">=", column, path, value)

    def path_lt(self, column, path, value):
        return self._compare("<", column, path, value)

    def path_lte(self, column, path, value):
        return self._compare("<=", column, path, value)

    def contains(self, column, value, path):
        if path:
            return f"{column}->'{path}' @> ?::jsonb", [marshal_value(value)]
        return f"{column} @> ?::jsonb", [marshal_value(value)]

    def set_path(self, column, path, value):
        return Expr(f"jsonb_set({column}, '{{{path}}}', ?::jsonb)", [marshal_value(value)])

    def set_multiple_paths(self, column, paths, values):
        if not paths:
            return Expr()
        # jsonb_set takes one path per call, so the calls are nested.
        sql = column
        variables: list[Any] = []
        for path, value in _pairs(paths, values):
            sql = f"jsonb_set({sql}, '{{{path}}}', ?::jsonb)"
            variables.append(marshal_value(value))
        return Expr(sql, variables)

    def remove_path(self, column, path):
        return Expr(f"{column} - ?", [path])

    def remove_multiple_paths(self, column, paths):
        if not paths:
            return Expr()
        return Expr(column + " - ?" * len(paths), list(paths))

    def merge_patch(self, column, value):
        return Expr(f"{column} || ?::jsonb", [marshal_value(value)])

    def merge_preserve(self, column, value):
        return Expr(f"{column} || ?::jsonb", [marshal_value(value)])


MYSQL: JSONDialect = MySQLJSONDialect()
POSTGRES: JSONDialect = PostgresJSONDialect()
SQLITE: JSONDialect = SQLiteJSONDialect()

_default_dialect: JSONDialect = MYSQL


def set_default_dialect(dialect: JSONDialect) -> None:
    """Set the dialect used by operations that take none explicitly."""
    global _default_dialect
    _default_dialect = dialect


def default_dialect() -> JSONDialect:
    """Return the current default dialect."""
    return _default_dialect


def dialect_by_name(name: str) -> JSONDialect:
    """Look up a dialect by name; unknown names give MySQL."""
    if name == "postgres":
        return POSTGRES
    if name in ("sqlite3", "sqlite"):
        return SQLITE
    return MYSQL