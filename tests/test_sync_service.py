import asyncio
from datetime import datetime, timezone

from conftest import NOW, build_tenant_tree
from services.document_store import MemoryDocumentStore
from services.sync_service import SyncService, keyed_records


def test_keyed_records_inject_ids_and_skip_malformed() -> None:
    records = keyed_records({"a": {"name": "x"}, "b": "not a record", "c": {"name": "y"}})
    assert records == [("a", {"name": "x"}), ("c", {"name": "y"})]
    assert keyed_records(None) == []


def test_build_snapshot_converts_collections(config) -> None:
    snapshot = SyncService(MemoryDocumentStore(), config).build_snapshot(build_tenant_tree())

    assert [t.id for t in snapshot.templates] == ["T1", "T2"]
    assert snapshot.triggers[0].config.lead_id == "L1"
    assert snapshot.meetings[0].start_time == datetime(2024, 5, 2, 12, 0, tzinfo=timezone.utc)
    assert [s.name for s in snapshot.lead_statuses] == ["New", "Meeting"]
    assert snapshot.admin_user.email == "owner@example.com"
    assert snapshot.green_api_config.instance_id == "1101000001"


def test_leads_sorted_newest_first_with_bad_dates_last(config) -> None:
    tree = build_tenant_tree(leads={
        "old": {"name": "Old", "mobile": "1", "dateAdded": "2024-01-01T00:00:00.000Z"},
        "broken": {"name": "Broken", "mobile": "2", "dateAdded": "yesterday"},
        "new": {"name": "New", "mobile": "3", "dateAdded": "2024-04-30T08:00:00.000Z"},
        "missing": {"name": "Missing", "mobile": "4"},
    })
    snapshot = SyncService(MemoryDocumentStore(), config).build_snapshot(tree)

    assert [lead.id for lead in snapshot.leads] == ["new", "old", "broken", "missing"]


def test_defaults_when_optional_nodes_missing(config) -> None:
    snapshot = SyncService(MemoryDocumentStore(), config).build_snapshot({"adminUser": {"name": "A"}})

    assert snapshot.leads == ()
    assert snapshot.lead_statuses == ()
    assert snapshot.green_api_config is None


def test_missing_tenant_yields_none(config) -> None:
    assert SyncService(MemoryDocumentStore(), config).build_snapshot(None) is None


def test_malformed_meeting_dates_do_not_crash(config) -> None:
    tree = build_tenant_tree(meetings={"M1": {"title": "x", "attendee": "Raj", "startTime": "soon"}})
    snapshot = SyncService(MemoryDocumentStore(), config).build_snapshot(tree)

    assert snapshot.meetings[0].start_time is None


def test_sync_user_data_republishes_on_every_change(config) -> None:
    async def scenario():
        store = MemoryDocumentStore()
        sync = SyncService(store, config)
        snapshots = []
        subscription = await sync.sync_user_data("t1", snapshots.append)
        await asyncio.sleep(0)
        await store.set("users/t1", build_tenant_tree(NOW))
        await asyncio.sleep(0)
        await store.remove("users/t1/leads/L1")
        await asyncio.sleep(0)
        subscription.unsubscribe()
        await store.remove("users/t1/leads/L2")
        await asyncio.sleep(0)
        return snapshots

    snapshots = asyncio.run(scenario())
    assert snapshots[0] is None
    assert len(snapshots[1].leads) == 2
    assert [lead.id for lead in snapshots[2].leads] == ["L2"]
    assert len(snapshots) == 3


def test_scalar_lead_statuses_read_as_empty(config) -> None:
    snapshot = SyncService(MemoryDocumentStore(), config).build_snapshot(build_tenant_tree(leadStatuses=5))

    assert snapshot is not None
    assert snapshot.lead_statuses == ()


def test_unreadable_tree_is_published_as_none(config, monkeypatch) -> None:
    store = MemoryDocumentStore({"users": {"tenant-1": build_tenant_tree()}})
    sync = SyncService(store, config)
    seen = []

    def broken(raw):
        raise TypeError("unexpected shape")

    monkeypatch.setattr(sync, "build_snapshot", broken)

    async def scenario():
        subscription = await sync.sync_user_data("tenant-1", seen.append)
        await asyncio.sleep(0)
        subscription.unsubscribe()

    asyncio.run(scenario())
    assert seen == [None]
