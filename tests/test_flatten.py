from __future__ import annotations

from apps.transformer.flatten import flatten_record, flatten_records


def test_flat_record_is_unchanged():
    record = {"id": "sub_1", "status": "active", "quantity": 2, "cancel_at": None}

    assert flatten_record(record) == record


def test_nested_keys_joined_with_underscore():
    record = {"id": "sub_1", "plan": {"id": "plan_1", "interval": "month"}}

    assert flatten_record(record) == {"id": "sub_1", "plan_id": "plan_1", "plan_interval": "month"}


def test_fourth_level_is_kept_nested():
    record = {"a": {"b": {"c": {"d": {"e": 1}}}}}

    assert flatten_record(record) == {"a_b_c_d": {"e": 1}}


def test_three_levels_fully_flattened():
    record = {"a": {"b": {"c": 1}}}

    assert flatten_record(record) == {"a_b_c": 1}


def test_lists_are_copied_verbatim():
    items = [{"id": "si_1", "price": {"unit_amount": 500}}]
    record = {"items": {"data": items, "object": "list"}}

    flat = flatten_record(record)

    assert flat == {"items_data": items, "items_object": "list"}
    assert flat["items_data"] is items


def test_key_collisions_last_write_wins():
    record = {"a_b": 1, "a": {"b": 2}}

    assert flatten_record(record) == {"a_b": 2}

    record = {"a": {"b": 2}, "a_b": 1}
    assert flatten_record(record) == {"a_b": 1}


def test_empty_nested_dict_disappears():
    assert flatten_record({"metadata": {}, "id": "x"}) == {"id": "x"}


def test_flatten_records_preserves_order():
    records = [{"id": 1, "p": {"x": 1}}, {"id": 2, "p": {"x": 2}}]

    assert flatten_records(records) == [{"id": 1, "p_x": 1}, {"id": 2, "p_x": 2}]
