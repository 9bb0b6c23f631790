from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Mapping
from typing import Any
from uuid import uuid4

from pydantic import BaseModel

from ddb_stream_indexer.batching import BatchAccumulator
from ddb_stream_indexer.opensearch import (
    OpenSearchBulkWriter,
    OpenSearchClient,
    create_opensearch_client,
)
from ddb_stream_indexer.registry import ProcessorRegistry, default_registry
from ddb_stream_indexer.settings import Settings
from ddb_stream_indexer.stream import StreamRecordError, parse_stream_record

LOGGER = logging.getLogger(__name__)


class InvocationSummary(BaseModel):
    batch_id: str
    received: int = 0
    invalid: int = 0
    unroutable: int = 0
    untranslated: int = 0
    queued: int = 0
    flushes: int = 0


def configure_logging() -> None:
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    # The Lambda runtime installs its own root handler before basicConfig runs.
    logging.getLogger().setLevel(level)


async def process_stream_event(
    event: Mapping[str, Any],
    *,
    registry: ProcessorRegistry,
    accumulator: BatchAccumulator,
    batch_id: str | None = None,
) -> InvocationSummary:
    summary = InvocationSummary(batch_id=batch_id or uuid4().hex)
    records = event.get("Records") or []
    LOGGER.info("batch_start", extra={"batch_id": summary.batch_id, "record_count": len(records)})

    for position, raw in enumerate(records):
        summary.received += 1
        try:
            record = parse_stream_record(raw)
        except StreamRecordError as exc:
            summary.invalid += 1
            LOGGER.warning(
                "stream_record_invalid",
                extra={"batch_id": summary.batch_id, "position": position, "error": str(exc)},
            )
            continue

        translation = await accumulator.process(record, registry)
        if translation is None:
            summary.unroutable += 1
        elif translation.operation is None:
            summary.untranslated += 1
        else:
            summary.queued += 1

    # Partial batches must never outlive the invocation.
    await accumulator.flush()
    summary.flushes = accumulator.flush_count

    LOGGER.info("batch_complete", extra=summary.model_dump())
    return summary


async def run(
    event: Mapping[str, Any],
    *,
    settings: Settings | None = None,
    client: OpenSearchClient | None = None,
    batch_id: str | None = None,
) -> InvocationSummary:
    settings = settings or Settings()
    if client is None:
        client = create_opensearch_client(
            endpoint=settings.opensearch_endpoint,
            region_name=settings.aws_region,
            auth_mode=settings.opensearch_auth_mode,
            service=settings.opensearch_service,
            timeout_s=settings.opensearch_timeout_s,
        )

    accumulator = BatchAccumulator(
        gateway=OpenSearchBulkWriter(client=client),
        max_bytes=settings.batch_max_bytes,
    )
    return await process_stream_event(
        event,
        registry=default_registry(),
        accumulator=accumulator,
        batch_id=batch_id,
    )


def handler(event: Mapping[str, Any], context: Any = None) -> dict[str, Any]:
    """Lambda entry point for DynamoDB stream events."""
    configure_logging()
    batch_id = getattr(context, "aws_request_id", None)
    summary = asyncio.run(run(event, batch_id=batch_id))
    return summary.model_dump()
