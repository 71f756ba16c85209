from datetime import timedelta

import pytest

from conftest import NOW, build_tenant_tree
from models.template import render_template
from models.timestamps import to_iso
from services.document_store import MemoryDocumentStore
from services.sync_service import SyncService
from services.trigger_service import FireKey, TriggerService


@pytest.fixture
def snapshot_from(config):
    sync = SyncService(MemoryDocumentStore(), config)

    def _build(**overrides):
        return sync.build_snapshot(build_tenant_tree(NOW, **overrides))

    return _build


def reminder_trigger(minutes_before, enabled=True, template_id="T1"):
    return {"name": "Reminder", "type": "meeting-reminder", "enabled": enabled,
            "templateId": template_id, "config": {"minutesBefore": minutes_before}}


def test_scheduled_trigger_fires_once_at_its_datetime(config, snapshot_from) -> None:
    fires = TriggerService(config).plan(snapshot_from(), NOW)

    assert len(fires) == 1
    assert fires[0].key == FireKey("TR1", "lead:L1")
    assert fires[0].fire_at == NOW + timedelta(hours=1)
    assert fires[0].message == "Reminder Raj"
    assert fires[0].mobile == "9876500001"


@pytest.mark.parametrize("offset", [timedelta(0), timedelta(minutes=-5)])
def test_scheduled_trigger_in_the_past_or_now_never_fires(config, snapshot_from, offset) -> None:
    triggers = {"TR1": {"name": "x", "type": "scheduled", "enabled": True, "templateId": "T1",
                        "config": {"dateTime": to_iso(NOW + offset), "leadId": "L1"}}}
    assert TriggerService(config).plan(snapshot_from(triggers=triggers), NOW) == []


@pytest.mark.parametrize("trigger_config, template_id", [
    ({"dateTime": "2024-05-01T13:00:00Z", "leadId": "gone"}, "T1"),
    ({"dateTime": "2024-05-01T13:00:00Z", "leadId": "L1"}, "deleted-template"),
    ({"dateTime": "not a date", "leadId": "L1"}, "T1"),
    ({"leadId": "L1"}, "T1"),
])
def test_unresolvable_scheduled_triggers_are_skipped(config, snapshot_from, trigger_config, template_id) -> None:
    triggers = {"TR1": {"name": "x", "type": "scheduled", "enabled": True, "templateId": template_id,
                        "config": trigger_config}}
    assert TriggerService(config).plan(snapshot_from(triggers=triggers), NOW) == []


def test_meeting_reminder_fires_minutes_before_start(config, snapshot_from) -> None:
    fires = TriggerService(config).plan(snapshot_from(triggers={"R": reminder_trigger(30)}), NOW)

    assert [f.key for f in fires] == [FireKey("R", "meeting:M1")]
    assert fires[0].fire_at == NOW + timedelta(days=1) - timedelta(minutes=30)
    assert fires[0].message == "Reminder Priya Sharma"


def test_meeting_reminder_already_passed_never_fires(config, snapshot_from) -> None:
    # 25 hours before a meeting that starts in 24 hours
    assert TriggerService(config).plan(snapshot_from(triggers={"R": reminder_trigger(25 * 60)}), NOW) == []


def test_meeting_reminder_matches_attendee_by_exact_name(config, snapshot_from) -> None:
    meetings = {
        "M1": {"title": "a", "attendee": "priya sharma", "startTime": to_iso(NOW + timedelta(days=1))},
        "M2": {"title": "b", "attendee": "Raj", "startTime": to_iso(NOW + timedelta(days=2))},
    }
    fires = TriggerService(config).plan(snapshot_from(triggers={"R": reminder_trigger(60)}, meetings=meetings), NOW)

    assert [f.key.target for f in fires] == ["meeting:M2"]


def test_meeting_reminder_without_minutes_is_ignored(config, snapshot_from) -> None:
    trigger = {"name": "x", "type": "meeting-reminder", "enabled": True, "templateId": "T1"}
    assert TriggerService(config).plan(snapshot_from(triggers={"R": trigger}), NOW) == []


def test_new_lead_and_disabled_triggers_are_not_planned(config, snapshot_from) -> None:
    triggers = {
        "W": {"name": "Welcome", "type": "new-lead", "enabled": True, "templateId": "T2"},
        "R": reminder_trigger(30, enabled=False),
        "X": {"name": "Odd", "type": "birthday", "enabled": True, "templateId": "T1"},
    }
    assert TriggerService(config).plan(snapshot_from(triggers=triggers), NOW) == []


def test_bad_trigger_does_not_block_others(config, snapshot_from) -> None:
    triggers = {
        "BAD": {"name": "bad", "type": "scheduled", "enabled": True, "templateId": "T1",
                "config": {"dateTime": "2024-13-45", "leadId": "L1"}},
        "R": reminder_trigger(30),
    }
    fires = TriggerService(config).plan(snapshot_from(triggers=triggers), NOW)
    assert [f.key.trigger_id for f in fires] == ["R"]


@pytest.mark.parametrize("overrides", [
    {"greenApiConfig": None},
    {"leads": {}},
    {"templates": {}},
    {"triggers": {}},
])
def test_idle_without_prerequisites(config, snapshot_from, overrides) -> None:
    service = TriggerService(config)
    snapshot = snapshot_from(**overrides)

    assert service.is_actionable(snapshot) is False
    assert service.plan(snapshot, NOW) == []


def test_planning_is_deterministic(config, snapshot_from) -> None:
    service = TriggerService(config)
    snapshot = snapshot_from(triggers={**build_tenant_tree()["triggers"], "R": reminder_trigger(30)})

    first = {f.key: f.fire_at for f in service.plan(snapshot, NOW)}
    second = {f.key: f.fire_at for f in service.plan(snapshot, NOW)}
    assert first == second
    assert len(first) == 2


def test_render_template_replaces_every_placeholder() -> None:
    assert render_template("Hi {{name}}! Bye {{name}}.", "Raj") == "Hi Raj! Bye Raj."
    assert render_template("No placeholder here", "Raj") == "No placeholder here"


def test_out_of_range_meeting_does_not_drop_other_reminders(config, snapshot_from) -> None:
    meetings = {
        "M0": {"title": "Ancient", "attendee": "Raj", "startTime": "0001-01-01T00:00:00Z"},
        "M1": {"title": "Discovery Call", "attendee": "Priya Sharma", "startTime": to_iso(NOW + timedelta(days=1))},
    }
    fires = TriggerService(config).plan(snapshot_from(triggers={"R": reminder_trigger(30)}, meetings=meetings), NOW)

    assert [f.key for f in fires] == [FireKey("R", "meeting:M1")]
