from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

from ddb_stream_indexer.models import ChangeRecord, IndexOperation, Translation
from ddb_stream_indexer.opensearch import BulkWriteResult
from ddb_stream_indexer.registry import ProcessorRegistry

LOGGER = logging.getLogger(__name__)

# Bulk indexing throughput is best with payloads of roughly 5-15 MiB.
DEFAULT_MAX_BATCH_BYTES = 5 * 1024 * 1024


class BulkWriteGateway(Protocol):
    async def bulk_update(self, operations: Sequence[IndexOperation]) -> BulkWriteResult:
        ...


class BatchAccumulator:
    """Buffers index operations for one invocation and flushes them in bulk.

    Sizes come from the source record's reported byte size, not from the
    generated operation.
    """

    def __init__(
        self,
        *,
        gateway: BulkWriteGateway,
        max_bytes: int = DEFAULT_MAX_BATCH_BYTES,
    ) -> None:
        if max_bytes <= 0:
            raise ValueError("max_bytes must be > 0")

        self._gateway = gateway
        self._max_bytes = max_bytes
        self._operations: list[IndexOperation] = []
        self._size_bytes = 0
        self._flush_count = 0

    @property
    def operations(self) -> tuple[IndexOperation, ...]:
        return tuple(self._operations)

    @property
    def size_bytes(self) -> int:
        return self._size_bytes

    @property
    def max_bytes(self) -> int:
        return self._max_bytes

    @property
    def flush_count(self) -> int:
        return self._flush_count

    def add(self, operation: IndexOperation | None, size_bytes: int) -> None:
        if operation is not None:
            self._operations.append(operation)
        self._size_bytes += size_bytes

    def should_flush(self, flush_required: bool = False) -> bool:
        return self._size_bytes > self._max_bytes or flush_required

    async def process(self, record: ChangeRecord, registry: ProcessorRegistry) -> Translation | None:
        processor = registry.route(record)
        if processor is None:
            LOGGER.debug(
                "record_unroutable",
                extra={"partition_key": record.partition_key, "sort_key": record.sort_key},
            )
            return None

        translation = processor.translate(record)
        if translation.operation is None:
            LOGGER.debug(
                "record_untranslated",
                extra={
                    "event_kind": record.event_kind.value,
                    "partition_key": record.partition_key,
                    "sort_key": record.sort_key,
                },
            )
        else:
            self.add(translation.operation, record.size_bytes)

        if self.should_flush(translation.flush_required):
            await self.flush()
        return translation

    async def flush(self) -> BulkWriteResult | None:
        if not self._operations:
            return None

        operations = self._operations
        size_bytes = self._size_bytes
        self._flush_count += 1
        try:
            return await self._gateway.bulk_update(operations)
        except Exception:
            # Failed batches are dropped; redelivery belongs to the stream trigger.
            LOGGER.exception(
                "bulk_flush_failed",
                extra={"operation_count": len(operations), "size_bytes": size_bytes},
            )
            return None
        finally:
            self._operations = []
            self._size_bytes = 0
