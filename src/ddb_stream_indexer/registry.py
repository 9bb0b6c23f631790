from __future__ import annotations

from collections.abc import Sequence

from ddb_stream_indexer.models import ArrayEntitySpec, ChangeRecord
from ddb_stream_indexer.processors import (
    DocumentProcessor,
    EmbeddedDocumentProcessor,
    EntityProcessor,
)

ORDERS_INDEX = "orders"
USERS_INDEX = "users"


class ProcessorRegistry:
    """Routes a record to the first registered processor that claims it.

    Registration order matters: more specific processors must come before
    broader catch-alls.
    """

    def __init__(self, processors: Sequence[EntityProcessor]) -> None:
        self._processors = tuple(processors)

    @property
    def processors(self) -> tuple[EntityProcessor, ...]:
        return self._processors

    def route(self, record: ChangeRecord) -> EntityProcessor | None:
        for processor in self._processors:
            if processor.can_handle(record):
                return processor
        return None


def build_order_processor() -> DocumentProcessor:
    return DocumentProcessor(
        index_name=ORDERS_INDEX,
        id_attr="orderId",
        partition_prefix="ORDER#",
        array_entities=[
            ArrayEntitySpec(
                match_keyword="ITEM",
                array_field="orderItems",
                item_unique_attr="itemId",
                parent_id_attr="orderId",
            ),
        ],
        sub_processors=[
            EmbeddedDocumentProcessor(
                index_name=ORDERS_INDEX,
                id_attr="orderId",
                sort_prefix="SHIPMENT#",
                embed_field="shipmentInfo",
            ),
        ],
    )


def build_user_processor() -> DocumentProcessor:
    return DocumentProcessor(
        index_name=USERS_INDEX,
        id_attr="userId",
        partition_prefix="USER#",
    )


def default_registry() -> ProcessorRegistry:
    return ProcessorRegistry([build_order_processor(), build_user_processor()])
