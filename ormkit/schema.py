"""Mapping between model objects and database tables."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from ormkit.expressions import Eq

T = TypeVar("T")

PK = Eq
"""A primary key: its column and, for a given model, its value."""


class Schema(ABC, Generic[T]):
    """Describes how a model type maps to a table and back."""

    @abstractmethod
    def table_name(self) -> str:
        """Name of the table."""

    @abstractmethod
    def select_columns(self) -> list[str]:
        """Columns read by default."""

    @abstractmethod
    def insert_row(self, model: T) -> tuple[list[str], list[Any]]:
        """Columns and values to insert for the model."""

    @abstractmethod
    def update_map(self, model: T) -> dict[str, Any]:
        """Column values written by an update of the model."""

    @abstractmethod
    def pk(self, model: T | None) -> PK:
        """Primary key column, with the model's value when a model is given."""

    @abstractmethod
    def set_pk(self, model: T, value: int) -> None:
        """Store a generated primary key on the model."""

    @abstractmethod
    def auto_increment(self) -> bool:
        """Whether the database generates the primary key."""


class SchemaNotRegisteredError(LookupError):
    """Raised when no schema was registered for a model type."""


_schemas: dict[type, Schema[Any]] = {}


def register_schema(model_type: type[T], schema: Schema[T]) -> None:
    """Register the schema for a model type, replacing any earlier one."""
    _schemas[model_type] = schema


def load_schema(model_type: type[T]) -> Schema[T]:
    """Return the schema registered for a model type."""
    try:
        return _schemas[model_type]
    except KeyError:
        raise SchemaNotRegisteredError(
            f"orm: schema not registered for type {model_type.__qualname__}"
        ) from None