"""Typed SQL query building, repositories, sessions and JSON column helpers."""

__version__ = "0.1.0"