"""Lifecycle hooks that models may define.

A model takes part by defining any of ``before_create``, ``after_create``,
``before_update``, ``after_update``, ``before_delete`` or ``after_delete``
as a method with no arguments. A hook stops the operation by raising.
"""

from __future__ import annotations

from typing import Any


def _trigger(model: Any, hook: str) -> None:
    method = getattr(model, hook, None)
    if callable(method):
        method()


def trigger_before_create(model: Any) -> None:
    """Run the model's ``before_create`` hook, if any."""
    _trigger(model, "before_create")


def trigger_after_create(model: Any) -> None:
    """Run the model's ``after_create`` hook, if any."""
    _trigger(model, "after_create")


def trigger_before_update(model: Any) -> None:
    """Run the model's ``before_update`` hook, if any."""
    _trigger(model, "before_update")


def trigger_after_update(model: Any) -> None:
    """Run the model's ``after_update`` hook, if any."""
    _trigger(model, "after_update")


def trigger_before_delete(model: Any) -> None:
    """Run the model's ``before_delete`` hook, if any."""
    _trigger(model, "before_delete")


def trigger_after_delete(model: Any) -> None:
    """Run the model's ``after_delete`` hook, if any."""
    _trigger(model, "after_delete")