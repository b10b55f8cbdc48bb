"""
Field type coercion for export.

Keeps only the fields declared in the field type map and casts each value to
its declared kind. A value that cannot be converted is logged and left out;
the rest of the record is still exported.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Callable

import orjson

from utils.schemas import FieldKind

logger = logging.getLogger(__name__)

_TRUE_STRINGS = frozenset({"true", "1", "yes", "y", "t"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "n", "f"})


def _to_string(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return orjson.dumps(value).decode("utf-8")
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _to_integer(value: Any) -> int:
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"{value!r} is not an integral number")
    if isinstance(value, (dict, list)):
        raise TypeError(f"cannot convert {type(value).__name__} to integer")
    return int(value)


def _to_float(value: Any) -> float:
    if isinstance(value, (dict, list)):
        raise TypeError(f"cannot convert {type(value).__name__} to float")
    return float(value)


def _to_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ValueError(f"{value!r} is not a boolean")


def _to_json(value: Any) -> Any:
    if isinstance(value, (str, bytes, bytearray)):
        return orjson.loads(value)
    if isinstance(value, (dict, list, int, float)):
        return value
    raise TypeError(f"cannot convert {type(value).__name__} to JSON")


CONVERTERS: dict[str, Callable[[Any], Any]] = {
    "STRING": _to_string,
    "INTEGER": _to_integer,
    "FLOAT": _to_float,
    "BOOLEAN": _to_boolean,
    "JSON": _to_json,
}


def coerce_record(record: Mapping[str, Any], field_types: Mapping[str, FieldKind]) -> dict[str, Any]:
    """
    Build an export record containing only declared fields, cast to their types.

    Args:
        record: Flattened record
        field_types: Mapping from field name to declared kind

    Returns:
        New record with declared fields only
    """
    coerced: dict[str, Any] = {}

    for key, value in record.items():
        kind = field_types.get(key)
        if kind is None:
            continue

        if value is None:
            coerced[key] = None
            continue

        try:
            coerced[key] = CONVERTERS[kind](value)
        except (ValueError, TypeError, KeyError, orjson.JSONDecodeError) as e:
            logger.warning(
                "Failed to convert field %s to %s, dropping it: %s",
                key, kind, str(e),
                extra={"field": key, "field_type": kind},
            )

    return coerced


def coerce_records(
    records: Iterable[Mapping[str, Any]], field_types: Mapping[str, FieldKind]
) -> list[dict[str, Any]]:
    """Coerce each record of a sequence, preserving order."""
    return [coerce_record(record, field_types) for record in records]
