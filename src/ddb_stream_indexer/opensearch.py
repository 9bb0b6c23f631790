from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any, Protocol

import boto3
from opensearchpy import AWSV4SignerAuth, OpenSearch, RequestsHttpConnection
from pydantic import BaseModel, ConfigDict, Field

from ddb_stream_indexer.models import IndexOperation

LOGGER = logging.getLogger(__name__)

_MISSING_TARGET_REASON = "Missing '_index' or '_id' in operation"


class BulkWriteError(RuntimeError):
    """Raised when the bulk request fails at the transport level."""


class OpenSearchClient(Protocol):
    def bulk(self, *, body: list[dict[str, Any]]) -> dict[str, Any]:
        ...


class SkippedOperation(BaseModel):
    model_config = ConfigDict(frozen=True)

    position: int
    reason: str
    operation: IndexOperation


class BulkWriteResult(BaseModel):
    sent: int = 0
    took_ms: int | None = None
    skipped: list[SkippedOperation] = Field(default_factory=list)
    failed: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return self.sent - len(self.failed)


def create_opensearch_client(
    *,
    endpoint: str,
    region_name: str,
    auth_mode: str,
    service: str,
    timeout_s: float,
) -> OpenSearchClient:
    http_auth = None
    if auth_mode == "sigv4":
        credentials = boto3.Session(region_name=region_name).get_credentials()
        if credentials is None:
            raise RuntimeError("AWS credentials are required for SigV4 OpenSearch auth")
        http_auth = AWSV4SignerAuth(credentials, region_name, service)
    elif auth_mode != "none":
        raise ValueError(f"Unsupported OpenSearch auth mode: {auth_mode}")

    return OpenSearch(
        hosts=[endpoint],
        http_auth=http_auth,
        use_ssl=endpoint.startswith("https://"),
        verify_certs=True,
        connection_class=RequestsHttpConnection,
        timeout=timeout_s,
    )


def validate_operations(
    operations: Sequence[IndexOperation],
) -> tuple[list[dict[str, Any]], list[SkippedOperation]]:
    """Flatten valid operations into bulk body lines; collect the rest."""
    body: list[dict[str, Any]] = []
    skipped: list[SkippedOperation] = []
    for position, operation in enumerate(operations):
        if operation.is_valid:
            body.extend(operation.as_pair())
            continue
        skipped.append(
            SkippedOperation(position=position, reason=_MISSING_TARGET_REASON, operation=operation)
        )
    return body, skipped


class OpenSearchBulkWriter:
    def __init__(self, *, client: OpenSearchClient) -> None:
        self._client = client

    async def bulk_update(self, operations: Sequence[IndexOperation]) -> BulkWriteResult:
        body, skipped = validate_operations(operations)
        if skipped:
            LOGGER.warning(
                "bulk_operations_skipped",
                extra={
                    "skipped_count": len(skipped),
                    "skipped": [
                        {"position": s.position, "reason": s.reason, "action": s.operation.action}
                        for s in skipped
                    ],
                },
            )

        if not body:
            LOGGER.error(
                "bulk_no_valid_operations",
                extra={"operation_count": len(operations)},
            )
            return BulkWriteResult(skipped=skipped)

        sent = len(body) // 2
        try:
            response = await asyncio.to_thread(self._client.bulk, body=body)
        except Exception as exc:
            raise BulkWriteError(f"OpenSearch bulk request failed: {exc}") from exc

        took_ms = response.get("took")
        LOGGER.info("bulk_write_completed", extra={"sent": sent, "took_ms": took_ms})

        failed = _item_errors(response)
        if failed:
            LOGGER.error(
                "bulk_item_errors",
                extra={"failed_count": len(failed), "sent": sent, "errors": failed},
            )

        return BulkWriteResult(sent=sent, took_ms=took_ms, skipped=skipped, failed=failed)


def _item_errors(response: dict[str, Any]) -> list[dict[str, Any]]:
    if not response.get("errors"):
        return []

    failed: list[dict[str, Any]] = []
    for item in response.get("items", []):
        if not isinstance(item, dict):
            continue
        result = item.get("update")
        if isinstance(result, dict) and result.get("error"):
            failed.append(result)
    return failed
