"""Encoding of multi-value API parameters."""

from __future__ import annotations

from collections.abc import Iterable

UNIT_SEPARATOR = "\x1f"


def encode_multivalue(values: Iterable[object]) -> str:
    """Join values with ``|``.

    When any value itself contains ``|`` the API expects the whole string to
    be prefixed with U+001F and that character used as the separator instead.
    """
    items = [str(v) for v in values]
    if any("|" in item for item in items):
        return UNIT_SEPARATOR + UNIT_SEPARATOR.join(items)
    return "|".join(items)
