"""
Record flattening.

Collapses nested event payloads into single-level records suitable for a
tabular export. Keys are joined with an underscore:

    {"plan": {"interval": "month"}} -> {"plan_interval": "month"}
"""

from collections.abc import Iterable
from typing import Any

MAX_DEPTH = 3
SEPARATOR = "_"


def flatten_record(record: dict[str, Any], parent_key: str = "", depth: int = 1) -> dict[str, Any]:
    """
    Flatten nested dicts up to MAX_DEPTH levels.

    Dicts found deeper than MAX_DEPTH are kept as nested values. Lists are
    treated as scalars. When two branches produce the same key, the later one
    wins.

    Args:
        record: Record to flatten
        parent_key: Prefix (including trailing separator) for keys at this level
        depth: Current nesting level, starting at 1

    Returns:
        Flat dictionary
    """
    flat: dict[str, Any] = {}

    for key, value in record.items():
        if isinstance(value, dict) and depth <= MAX_DEPTH:
            flat.update(flatten_record(value, f"{parent_key}{key}{SEPARATOR}", depth + 1))
        else:
            flat[f"{parent_key}{key}"] = value

    return flat


def flatten_records(records: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Flatten each record of a sequence, preserving order."""
    return [flatten_record(record) for record in records]
