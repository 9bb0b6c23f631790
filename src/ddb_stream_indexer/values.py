from __future__ import annotations

from collections.abc import Mapping, Sequence, Set
from decimal import Decimal
from typing import Any

_SCALAR_SEQUENCES = (str, bytes, bytearray)


def convert_sets_to_lists(value: Any) -> Any:
    """Recursively replace set values with lists so images stay JSON-serializable."""
    if isinstance(value, Set):
        return [convert_sets_to_lists(item) for item in _ordered(value)]
    if isinstance(value, Mapping):
        return {key: convert_sets_to_lists(item) for key, item in value.items()}
    if isinstance(value, Sequence) and not isinstance(value, _SCALAR_SEQUENCES):
        return [convert_sets_to_lists(item) for item in value]
    return value


def deep_equal(a: Any, b: Any) -> bool:
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b

    if isinstance(a, Set) and isinstance(b, Set):
        if len(a) != len(b):
            return False
        return deep_equal(_ordered(a), _ordered(b))

    if isinstance(a, Mapping) and isinstance(b, Mapping):
        if len(a) != len(b):
            return False
        for key, value in a.items():
            if key not in b or not deep_equal(value, b[key]):
                return False
        return True

    a_is_sequence = isinstance(a, Sequence) and not isinstance(a, _SCALAR_SEQUENCES)
    b_is_sequence = isinstance(b, Sequence) and not isinstance(b, _SCALAR_SEQUENCES)
    if a_is_sequence or b_is_sequence:
        if not (a_is_sequence and b_is_sequence) or len(a) != len(b):
            return False
        return all(deep_equal(x, y) for x, y in zip(a, b))

    if isinstance(a, (Set, Mapping)) or isinstance(b, (Set, Mapping)):
        return False

    try:
        return bool(a == b)
    except TypeError:
        return False


def changed_fields(old_image: Mapping[str, Any] | None, new_image: Mapping[str, Any]) -> dict[str, Any]:
    """Fields of ``new_image`` whose value is new or differs from ``old_image``."""
    old_image = old_image or {}
    changed: dict[str, Any] = {}
    for key, new_value in new_image.items():
        if key not in old_image or not deep_equal(old_image[key], new_value):
            changed[key] = new_value
    return changed


def deleted_fields(old_image: Mapping[str, Any] | None, new_image: Mapping[str, Any]) -> list[str]:
    """Fields present in ``old_image`` but absent from ``new_image``."""
    if not old_image:
        return []
    return [key for key in old_image if key not in new_image]


def _ordered(values: Set[Any]) -> list[Any]:
    # DynamoDB sets are homogeneous; mixed sets fall back to a stable repr order.
    try:
        return sorted(values)
    except TypeError:
        return sorted(values, key=repr)


def document_id_value(value: Any) -> str | None:
    """Render an image attribute as an OpenSearch ``_id``.

    DynamoDB numbers unmarshal to ``Decimal``; integral ones must keep their
    integer spelling or ``123`` would be indexed as ``"123.0"``.
    """
    if value is None:
        return None
    if isinstance(value, Decimal) and value.is_finite() and value == value.to_integral_value():
        return str(int(value))
    return str(value)
