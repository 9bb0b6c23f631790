from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from ddb_stream_indexer.models import (
    ArrayEntitySpec,
    ChangeRecord,
    EventKind,
    IndexOperation,
    Translation,
)
from ddb_stream_indexer.scripts import (
    NEW_ITEM_PARAM,
    SCRIPT_LANG,
    UNIQUE_ID_PARAM,
    array_append_script,
    array_remove_script,
    field_update_script,
)
from ddb_stream_indexer.values import changed_fields, convert_sets_to_lists, deleted_fields

_UPSERT_EVENTS = frozenset({EventKind.CREATED, EventKind.UPDATED})


class EntityProcessor(ABC):
    """Translates the change records of one entity type into index operations."""

    def __init__(
        self,
        *,
        index_name: str,
        id_attr: str,
        mandatory_flush_events: Iterable[EventKind] = (),
    ) -> None:
        self._index_name = index_name
        self._id_attr = id_attr
        self._mandatory_flush_events = frozenset(mandatory_flush_events)

    @property
    def index_name(self) -> str:
        return self._index_name

    @property
    def id_attr(self) -> str:
        return self._id_attr

    @abstractmethod
    def can_handle(self, record: ChangeRecord) -> bool:
        ...

    @abstractmethod
    def prepare_operation(self, record: ChangeRecord) -> IndexOperation | None:
        ...

    def translate(self, record: ChangeRecord) -> Translation:
        return Translation(
            operation=self.prepare_operation(record),
            flush_required=self.requires_immediate_flush(record),
        )

    def requires_immediate_flush(self, record: ChangeRecord) -> bool:
        return record.event_kind in self._mandatory_flush_events


class DocumentProcessor(EntityProcessor):
    """Keeps one document per entity in sync using diff-based update scripts.

    Records whose sort key contains an ``ArrayEntitySpec.match_keyword`` are
    merged into an array field of the parent document instead. Sub-processors
    are consulted before any of this and take over the whole translation.
    """

    def __init__(
        self,
        *,
        index_name: str,
        id_attr: str,
        partition_prefix: str,
        array_entities: Sequence[ArrayEntitySpec] = (),
        sub_processors: Sequence[EntityProcessor] = (),
        mandatory_flush_events: Iterable[EventKind] = (),
    ) -> None:
        super().__init__(
            index_name=index_name,
            id_attr=id_attr,
            mandatory_flush_events=mandatory_flush_events,
        )
        self._partition_prefix = partition_prefix
        self._array_entities = tuple(array_entities)
        self._sub_processors = tuple(sub_processors)

    def can_handle(self, record: ChangeRecord) -> bool:
        return record.partition_key.startswith(self._partition_prefix)

    def sub_processor_for(self, record: ChangeRecord) -> EntityProcessor | None:
        for processor in self._sub_processors:
            if processor.can_handle(record):
                return processor
        return None

    def array_entity_for(self, sort_key: str) -> ArrayEntitySpec | None:
        for spec in self._array_entities:
            if spec.match_keyword in sort_key:
                return spec
        return None

    def requires_immediate_flush(self, record: ChangeRecord) -> bool:
        sub_processor = self.sub_processor_for(record)
        if sub_processor is not None:
            return sub_processor.requires_immediate_flush(record)
        return super().requires_immediate_flush(record)

    def prepare_operation(self, record: ChangeRecord) -> IndexOperation | None:
        sub_processor = self.sub_processor_for(record)
        if sub_processor is not None:
            return sub_processor.prepare_operation(record)

        old_image = convert_sets_to_lists(record.old_image)
        new_image = convert_sets_to_lists(record.new_image)
        array_entity = self.array_entity_for(record.sort_key)

        if record.event_kind in _UPSERT_EVENTS:
            if array_entity is not None:
                return self._array_append(new_image, array_entity)
            return self._field_update(old_image, new_image)

        if record.event_kind is EventKind.DELETED and array_entity is not None:
            return self._array_remove(old_image, array_entity)

        return None

    def _field_update(
        self,
        old_image: Mapping[str, Any],
        new_image: dict[str, Any],
    ) -> IndexOperation:
        params = changed_fields(old_image, new_image)
        removed = deleted_fields(old_image, new_image)
        return IndexOperation.update(
            index=self._index_name,
            document_id=new_image.get(self._id_attr),
            body={
                "script": {
                    "source": field_update_script(params, removed),
                    "params": params,
                    "lang": SCRIPT_LANG,
                },
                "upsert": new_image,
            },
        )

    def _array_append(self, new_image: dict[str, Any], spec: ArrayEntitySpec) -> IndexOperation:
        # No de-duplication: a redelivered insert appends the item a second time.
        parent_id = new_image.get(spec.parent_id_attr)
        return IndexOperation.update(
            index=self._index_name,
            document_id=parent_id,
            body={
                "script": {
                    "source": array_append_script(spec.array_field),
                    "params": {NEW_ITEM_PARAM: new_image},
                    "lang": SCRIPT_LANG,
                },
                "upsert": {
                    spec.parent_id_attr: parent_id,
                    spec.array_field: [new_image],
                },
            },
        )

    def _array_remove(self, old_image: dict[str, Any], spec: ArrayEntitySpec) -> IndexOperation:
        return IndexOperation.update(
            index=self._index_name,
            document_id=old_image.get(spec.parent_id_attr),
            body={
                "script": {
                    "source": array_remove_script(spec.array_field, spec.item_unique_attr),
                    "params": {UNIQUE_ID_PARAM: old_image.get(spec.item_unique_attr)},
                    "lang": SCRIPT_LANG,
                },
            },
        )


class EmbeddedDocumentProcessor(EntityProcessor):
    """Stores a one-to-one child record as an object field of its parent document."""

    def __init__(
        self,
        *,
        index_name: str,
        id_attr: str,
        sort_prefix: str,
        embed_field: str,
        mandatory_flush_events: Iterable[EventKind] = (),
    ) -> None:
        super().__init__(
            index_name=index_name,
            id_attr=id_attr,
            mandatory_flush_events=mandatory_flush_events,
        )
        self._sort_prefix = sort_prefix
        self._embed_field = embed_field

    def can_handle(self, record: ChangeRecord) -> bool:
        return record.sort_key.startswith(self._sort_prefix)

    def prepare_operation(self, record: ChangeRecord) -> IndexOperation | None:
        if record.event_kind in _UPSERT_EVENTS:
            image = convert_sets_to_lists(record.new_image)
            fragment = image
        elif record.event_kind is EventKind.DELETED:
            image = convert_sets_to_lists(record.old_image)
            fragment = None
        else:
            return None

        return IndexOperation.update(
            index=self._index_name,
            document_id=image.get(self._id_attr),
            body={
                "doc": {self._embed_field: fragment},
                "doc_as_upsert": True,
            },
        )
