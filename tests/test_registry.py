from __future__ import annotations

from ddb_stream_indexer.models import ChangeRecord, EventKind
from ddb_stream_indexer.processors import DocumentProcessor
from ddb_stream_indexer.registry import ProcessorRegistry, default_registry


def _record(pk: str, sk: str = "") -> ChangeRecord:
    return ChangeRecord(event_kind=EventKind.CREATED, keys={"PK": pk, "SK": sk})


def test_default_registry_routes_by_partition_prefix() -> None:
    registry = default_registry()

    order = registry.route(_record("ORDER#1", "ORDER#1"))
    user = registry.route(_record("USER#1", "USER#1"))

    assert order is not None and order.index_name == "orders"
    assert user is not None and user.index_name == "users"


def test_unclaimed_record_routes_to_none() -> None:
    registry = default_registry()

    assert registry.route(_record("INVOICE#1", "INVOICE#1")) is None
    assert registry.route(ChangeRecord(event_kind=EventKind.DELETED)) is None


def test_first_registered_processor_wins() -> None:
    specific = DocumentProcessor(index_name="vip-users", id_attr="userId", partition_prefix="USER#VIP")
    general = DocumentProcessor(index_name="users", id_attr="userId", partition_prefix="USER#")

    assert ProcessorRegistry([specific, general]).route(_record("USER#VIP#1")) is specific
    assert ProcessorRegistry([general, specific]).route(_record("USER#VIP#1")) is general
    assert ProcessorRegistry([specific, general]).route(_record("USER#2")) is general


def test_empty_registry_routes_nothing() -> None:
    assert ProcessorRegistry([]).route(_record("ORDER#1")) is None
