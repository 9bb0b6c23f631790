from __future__ import annotations

from decimal import Decimal

from ddb_stream_indexer.values import (
    changed_fields,
    convert_sets_to_lists,
    deep_equal,
    deleted_fields,
    document_id_value,
)


def test_convert_sets_to_lists_recurses_through_mappings_and_lists() -> None:
    image = {
        "tags": {"b", "a"},
        "nested": {"scores": {Decimal("2"), Decimal("1")}},
        "history": [{"labels": {"x"}}, "plain"],
        "name": "order",
    }

    converted = convert_sets_to_lists(image)

    assert converted == {
        "tags": ["a", "b"],
        "nested": {"scores": [Decimal("1"), Decimal("2")]},
        "history": [{"labels": ["x"]}, "plain"],
        "name": "order",
    }


def test_convert_sets_to_lists_leaves_strings_and_bytes_alone() -> None:
    assert convert_sets_to_lists("abc") == "abc"
    assert convert_sets_to_lists(b"abc") == b"abc"
    assert convert_sets_to_lists(None) is None


def test_deep_equal_is_reflexive() -> None:
    values = [
        None,
        0,
        "text",
        Decimal("1.5"),
        [1, [2, {"a": 3}]],
        {"a": {"b": [1, 2]}},
        {"x", "y"},
    ]
    for value in values:
        assert deep_equal(value, value)


def test_deep_equal_ignores_set_order_but_not_membership() -> None:
    assert deep_equal({"a", "b", "c"}, {"c", "b", "a"})
    assert not deep_equal({"a", "b"}, {"a", "c"})
    assert not deep_equal({"a", "b"}, {"a", "b", "c"})


def test_deep_equal_sequences_are_order_sensitive() -> None:
    assert deep_equal([1, 2, 3], [1, 2, 3])
    assert deep_equal((1, 2), [1, 2])
    assert not deep_equal([1, 2, 3], [3, 2, 1])
    assert not deep_equal([1, 2], [1, 2, 3])


def test_deep_equal_mappings_with_different_key_counts_are_unequal() -> None:
    class _ExplodingValue:
        def __eq__(self, other: object) -> bool:
            raise AssertionError("values must not be compared")

    assert not deep_equal({"a": _ExplodingValue()}, {"a": 1, "b": 2})


def test_deep_equal_recurses_into_mappings() -> None:
    assert deep_equal({"a": {"b": [1, {"c": "d"}]}}, {"a": {"b": [1, {"c": "d"}]}})
    assert not deep_equal({"a": {"b": [1, {"c": "d"}]}}, {"a": {"b": [1, {"c": "e"}]}})
    assert not deep_equal({"a": 1}, {"b": 1})


def test_deep_equal_distinguishes_types() -> None:
    assert not deep_equal(True, 1)
    assert not deep_equal("1", 1)
    assert not deep_equal(None, {})
    assert not deep_equal({"a": 1}, [("a", 1)])
    assert not deep_equal({"a"}, ["a"])


def test_changed_fields_on_create_returns_every_new_field() -> None:
    new_image = {"orderId": "123", "status": "placed"}

    assert changed_fields({}, new_image) == new_image


def test_changed_and_deleted_fields_on_update_are_disjoint() -> None:
    old_image = {"orderId": "123", "status": "placed", "note": "gift", "tags": ["a"]}
    new_image = {"orderId": "123", "status": "shipped", "tags": ["a"], "carrier": "ups"}

    changed = changed_fields(old_image, new_image)
    deleted = deleted_fields(old_image, new_image)

    assert changed == {"status": "shipped", "carrier": "ups"}
    assert deleted == ["note"]
    assert set(changed).isdisjoint(deleted)


def test_changed_fields_treats_new_none_value_as_change() -> None:
    assert changed_fields({}, {"note": None}) == {"note": None}
    assert changed_fields({"note": None}, {"note": None}) == {}


def test_deleted_fields_with_empty_old_image() -> None:
    assert deleted_fields({}, {"a": 1}) == []
    assert deleted_fields(None, {"a": 1}) == []


def test_document_id_value_normalises_numbers() -> None:
    assert document_id_value(Decimal("123")) == "123"
    assert document_id_value(Decimal("123.00")) == "123"
    assert document_id_value(Decimal("12.5")) == "12.5"
    assert document_id_value("abc") == "abc"
    assert document_id_value(None) is None
