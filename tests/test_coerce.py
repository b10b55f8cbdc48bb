from __future__ import annotations

import logging

import pytest

from apps.transformer.coerce import coerce_record, coerce_records


def test_declared_fields_only_and_cast():
    result = coerce_record({"count": "5", "other": "x"}, {"count": "INTEGER"})

    assert result == {"count": 5}
    assert isinstance(result["count"], int)


@pytest.mark.parametrize(
    "kind,value,expected",
    [
        ("STRING", 42, "42"),
        ("STRING", {"a": 1}, '{"a":1}'),
        ("STRING", True, "true"),
        ("INTEGER", 7.0, 7),
        ("INTEGER", "12", 12),
        ("FLOAT", "1.5", 1.5),
        ("BOOLEAN", "true", True),
        ("BOOLEAN", "0", False),
        ("BOOLEAN", False, False),
        ("BOOLEAN", 1, True),
        ("JSON", '{"a": [1, 2]}', {"a": [1, 2]}),
        ("JSON", {"already": "parsed"}, {"already": "parsed"}),
        ("JSON", [1, 2], [1, 2]),
        ("JSON", 5, 5),
        ("JSON", 1.5, 1.5),
        ("JSON", True, True),
        ("JSON", "5", 5),
    ],
)
def test_conversions(kind, value, expected):
    assert coerce_record({"f": value}, {"f": kind}) == {"f": expected}


def test_none_passes_through():
    assert coerce_record({"canceled_at": None}, {"canceled_at": "INTEGER"}) == {"canceled_at": None}


def test_failed_conversion_drops_field_and_warns(caplog):
    record = {"count": "five", "status": "active", "livemode": "maybe"}
    types = {"count": "INTEGER", "status": "STRING", "livemode": "BOOLEAN"}

    with caplog.at_level(logging.WARNING, logger="apps.transformer.coerce"):
        result = coerce_record(record, types)

    assert result == {"status": "active"}
    warned = [r.field for r in caplog.records]
    assert warned == ["count", "livemode"]


def test_invalid_json_is_dropped():
    assert coerce_record({"meta": "{not json"}, {"meta": "JSON"}) == {}


def test_fractional_integer_is_dropped():
    assert coerce_record({"n": 1.5}, {"n": "INTEGER"}) == {}


def test_declared_field_missing_from_record_is_absent():
    assert coerce_record({"a": "1"}, {"a": "INTEGER", "b": "STRING"}) == {"a": 1}


def test_coerce_records_maps_sequence():
    records = [{"n": "1"}, {"n": "x"}, {"n": "3"}]

    assert coerce_records(records, {"n": "INTEGER"}) == [{"n": 1}, {}, {"n": 3}]
