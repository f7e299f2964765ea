"""Copy helpers for JSON-like payloads and cached results."""

from __future__ import annotations

from typing import Any, TypeVar

T = TypeVar("T")


def clone(value: T) -> T:
    """Deep-copy plain containers, sharing every other value by reference.

    Lists, tuples and dicts are copied recursively (tuples come back as lists,
    matching their JSON shape); scalars, datetimes and arbitrary objects are
    shared with the source.
    """
    if isinstance(value, dict):
        return {key: clone(item) for key, item in value.items()}  # type: ignore[return-value]
    if isinstance(value, list | tuple):
        return [clone(item) for item in value]  # type: ignore[return-value]
    return value


def enumerate_items(value: Any) -> list[Any]:
    """Uniformly enumerate a value that may be a single item or a sequence of items."""
    if value is None:
        return []
    if isinstance(value, list | tuple):
        return list(value)
    return [value]
