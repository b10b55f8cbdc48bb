"""
Query string encoding with bracket notation for nested filters.

    stringify_nested({"created": {"gte": 1688169600}, "type": "invoice.*"})
    -> "created[gte]=1688169600&type=invoice.*"

Values are not URL-escaped; callers pass values that are already safe.
"""

from collections.abc import Mapping
from typing import Any


def _render(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def stringify_nested(obj: Mapping[str, Any] | list | tuple, parent_key: str = "") -> str:
    """
    Convert a nested mapping into a query string.

    Nested keys are wrapped in square brackets (`a[b][c]=v`); list items use
    their index as key. Pairs are joined with `&`.

    Args:
        obj: Mapping (or sequence) to encode
        parent_key: Already-encoded key prefix of the enclosing level

    Returns:
        Query string without a leading `?`
    """
    items = obj.items() if isinstance(obj, Mapping) else enumerate(obj)
    parts = []

    for key, value in items:
        full_key = f"{parent_key}[{key}]" if parent_key else str(key)

        if isinstance(value, (Mapping, list, tuple)):
            nested = stringify_nested(value, full_key)
            if nested:
                parts.append(nested)
        else:
            parts.append(f"{full_key}={_render(value)}")

    return "&".join(parts)
