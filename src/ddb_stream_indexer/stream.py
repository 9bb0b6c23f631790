from __future__ import annotations

import base64
from collections.abc import Mapping
from typing import Any

from boto3.dynamodb.types import TypeDeserializer

from ddb_stream_indexer.models import ChangeRecord, EventKind

EVENT_NAME_TO_KIND = {
    "INSERT": EventKind.CREATED,
    "MODIFY": EventKind.UPDATED,
    "REMOVE": EventKind.DELETED,
}


class StreamTypeDeserializer(TypeDeserializer):
    """Keeps Binary attributes as base64 text.

    Stream events carry `B` and `BS` values base64-encoded, and OpenSearch
    stores binary fields as base64 strings as well.
    """

    def _deserialize_b(self, value: Any) -> str:
        if isinstance(value, (bytes, bytearray)):
            return base64.b64encode(bytes(value)).decode("ascii")
        if isinstance(value, str):
            base64.b64decode(value, validate=True)
            return value
        raise TypeError(f"Binary value must be base64 text or bytes, got {type(value).__name__}")


_DESERIALIZER = StreamTypeDeserializer()


class StreamRecordError(ValueError):
    """Raised when a DynamoDB stream record cannot be decoded."""


def unmarshall_image(image: Mapping[str, Any] | None) -> dict[str, Any]:
    if not image:
        return {}

    try:
        return {name: _DESERIALIZER.deserialize(value) for name, value in image.items()}
    except (TypeError, ValueError) as exc:
        raise StreamRecordError(f"Invalid DynamoDB attribute value: {exc}") from exc


def parse_stream_record(raw: Mapping[str, Any]) -> ChangeRecord:
    if not isinstance(raw, Mapping):
        raise StreamRecordError(f"Stream record must be an object, got {type(raw).__name__}")

    event_name = raw.get("eventName")
    event_kind = EVENT_NAME_TO_KIND.get(event_name) if isinstance(event_name, str) else None
    if event_kind is None:
        raise StreamRecordError(f"Unsupported stream event name: {event_name!r}")

    dynamodb = raw.get("dynamodb")
    if not isinstance(dynamodb, Mapping):
        raise StreamRecordError("Stream record is missing the 'dynamodb' section")

    size_bytes = dynamodb.get("SizeBytes") or 0
    if not isinstance(size_bytes, int) or size_bytes < 0:
        raise StreamRecordError(f"Invalid SizeBytes: {size_bytes!r}")

    return ChangeRecord(
        event_kind=event_kind,
        keys=unmarshall_image(dynamodb.get("Keys")),
        old_image=unmarshall_image(dynamodb.get("OldImage")),
        new_image=unmarshall_image(dynamodb.get("NewImage")),
        size_bytes=size_bytes,
    )
