"""Recursive JSON merge used to fold paginated query results."""

from __future__ import annotations

from typing import Any


def merge_values(target: Any, incoming: Any) -> Any:
    """Merge ``incoming`` into ``target`` and return the result.

    Objects merge key by key, arrays concatenate, anything else is replaced
    by the incoming value. Dicts and lists in ``target`` are updated in place.
    """
    if isinstance(target, dict) and isinstance(incoming, dict):
        for key, value in incoming.items():
            target[key] = merge_values(target.get(key), value)
        return target
    if isinstance(target, list) and isinstance(incoming, list):
        target.extend(incoming)
        return target
    return incoming
