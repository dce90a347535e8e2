"""A wrapper that stores a Python value in a JSON database column."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, TypeVar

from ormkit.jsondialect import marshal_value

T = TypeVar("T")


@dataclass
class JSON(Generic[T]):
    """Holds ``data`` and converts it to and from JSON column values.

    ``decoder`` turns parsed JSON (dicts, lists, scalars) into the wanted type
    when a column value is scanned; without it the parsed value is kept.
    """

    data: T | None = None
    decoder: Callable[[Any], T] | None = field(default=None, repr=False, compare=False)

    def scan(self, value: Any) -> None:
        """Load ``data`` from a column value: bytes, text or None."""
        if value is None:
            self.data = None
            return
        if isinstance(value, (bytes, bytearray, memoryview)):
            raw = bytes(value)
        elif isinstance(value, str):
            raw = value.encode("utf-8")
        else:
            raise TypeError(
                "failed to scan JSON: expected bytes or str, "
                f"got {type(value).__name__}"
            )
        if not raw:
            self.data = None
            return
        parsed = json.loads(raw)
        self.data = self.decoder(parsed) if self.decoder else parsed

    def value(self) -> bytes:
        """Return the column value: the JSON encoding of ``data``."""
        return self.to_json().encode("utf-8")

    def to_json(self) -> str:
        """Return ``data`` as JSON text."""
        return marshal_value(self.data)

    @classmethod
    def from_json(cls, data: str | bytes) -> JSON[Any]:
        """Build a wrapper from JSON text."""
        return cls(json.loads(data))

    def __conform__(self, protocol: Any) -> Any:
        if protocol is sqlite3.PrepareProtocol:
            return self.to_json()
        return None