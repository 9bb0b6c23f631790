from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ddb_stream_indexer.values import document_id_value


class EventKind(str, Enum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    DELETED = "DELETED"


class ChangeRecord(BaseModel):
    """Single DynamoDB item mutation destined for OpenSearch."""

    model_config = ConfigDict(frozen=True)

    event_kind: EventKind
    keys: dict[str, Any] = Field(default_factory=dict)
    old_image: dict[str, Any] = Field(default_factory=dict)
    new_image: dict[str, Any] = Field(default_factory=dict)
    size_bytes: int = 0

    @property
    def partition_key(self) -> str:
        return _key_string(self.keys.get("PK"))

    @property
    def sort_key(self) -> str:
        return _key_string(self.keys.get("SK"))


class ArrayEntitySpec(BaseModel):
    """Child item stored inside an array field of its parent document.

    ``match_keyword`` is searched for in the item's sort key, ``array_field``
    names the array on the parent document, ``item_unique_attr`` identifies
    one item inside that array and ``parent_id_attr`` holds the parent's
    document ``_id``.
    """

    model_config = ConfigDict(frozen=True)

    match_keyword: str
    array_field: str
    item_unique_attr: str
    parent_id_attr: str


class IndexOperation(BaseModel):
    """One bulk ``update`` action line plus its body line."""

    model_config = ConfigDict(frozen=True)

    action: dict[str, Any]
    body: dict[str, Any]

    @classmethod
    def update(cls, *, index: str, document_id: Any, body: dict[str, Any]) -> IndexOperation:
        return cls(
            action={"update": {"_index": index, "_id": document_id_value(document_id)}},
            body=body,
        )

    @property
    def index(self) -> Any:
        return (self.action.get("update") or {}).get("_index")

    @property
    def document_id(self) -> Any:
        return (self.action.get("update") or {}).get("_id")

    @property
    def is_valid(self) -> bool:
        return _present(self.index) and _present(self.document_id)

    def as_pair(self) -> tuple[dict[str, Any], dict[str, Any]]:
        return self.action, self.body


class Translation(BaseModel):
    model_config = ConfigDict(frozen=True)

    operation: IndexOperation | None = None
    flush_required: bool = False


def _key_string(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _present(value: Any) -> bool:
    return value is not None and value != ""
