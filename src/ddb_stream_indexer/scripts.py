"""Painless script templates used in bulk ``update`` bodies.

Every template is a plain string builder so the emitted source is stable and
can be asserted on exactly. Values are never inlined; they always travel in
``params``.
"""

from __future__ import annotations

from collections.abc import Iterable

SCRIPT_LANG = "painless"
NEW_ITEM_PARAM = "newItem"
UNIQUE_ID_PARAM = "uniqueId"


def field_set_script(fields: Iterable[str]) -> str:
    return " ".join(f"ctx._source[{_quote(name)}] = params[{_quote(name)}];" for name in fields)


def field_remove_script(fields: Iterable[str]) -> str:
    return " ".join(f"ctx._source.remove({_quote(name)});" for name in fields)


def field_update_script(set_fields: Iterable[str], remove_fields: Iterable[str]) -> str:
    parts = [field_set_script(set_fields), field_remove_script(remove_fields)]
    return " ".join(part for part in parts if part)


def array_append_script(array_field: str) -> str:
    field = f"ctx._source[{_quote(array_field)}]"
    return (
        f"if ({field} == null) {{ {field} = []; }} "
        f"{field}.add(params.{NEW_ITEM_PARAM});"
    )


def array_remove_script(array_field: str, unique_attr: str) -> str:
    field = f"ctx._source[{_quote(array_field)}]"
    return (
        f"if ({field} != null) {{ "
        f"{field}.removeIf(item -> item[{_quote(unique_attr)}] == params.{UNIQUE_ID_PARAM}); "
        f"}}"
    )


def _quote(name: str) -> str:
    escaped = name.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"
