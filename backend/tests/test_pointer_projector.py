"""Tests for pointer fan-out — propagation, version guard, failure handling, concurrent writers."""
from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError

from app.errors import Conflict
from app.models.event import Event
from app.models.pointer import EventPointer, PointerRepair
from app.models.poll import Vote
from app.services import poll_service
from app.services.event_service import get_event_or_404, update_event
from app.services.pointer_projector import (
    FanoutPolicy, PointerProjector, PointerState, WriteOutcome, pointer_state,
)
from app.services.projection import PointerFields
from tests.conftest import add_test_member, create_test_event, create_test_group, create_test_user, in_hours


def _two_groups(client):
    alice = create_test_user(client, name="Alice")
    bob = create_test_user(client, name="Bob")
    g1 = create_test_group(client, creator_id=alice["user_id"], name="G1")
    g2 = create_test_group(client, creator_id=alice["user_id"], name="G2")
    add_test_member(client, g1["group_id"], bob["user_id"])
    return alice, bob, g1, g2


def _pointer(db, group_id, event_id):
    db.expire_all()
    return db.get(EventPointer, (group_id, event_id))


def _fail_for_group(monkeypatch, group_id):
    original = PointerProjector._apply

    def _flaky(self, session, write):
        if write.group_id == group_id:
            raise OperationalError("UPDATE event_pointers", {}, Exception("database is locked"))
        return original(self, session, write)

    monkeypatch.setattr(PointerProjector, "_apply", _flaky)


class TestPropagation:

    def test_vote_reaches_every_group(self, client, db):
        alice, bob, g1, g2 = _two_groups(client)
        event = create_test_event(client, alice["user_id"], [g1["group_id"], g2["group_id"]], start=in_hours(24))
        poll = client.post(
            f"/api/events/{event['event_id']}/polls?actor_user_id={alice['user_id']}",
            json={"title": "Where?", "options": ["Beach", "Lake"]},
        ).json()
        beach = poll["options"][0]["option_id"]

        resp = client.post(
            f"/api/events/{event['event_id']}/polls/{poll['poll_id']}/options/{beach}/votes"
            f"?actor_user_id={bob['user_id']}"
        )
        assert resp.status_code == 201

        db.expire_all()
        version = db.get(Event, event["event_id"]).version
        for group in (g1, g2):
            pointer = _pointer(db, group["group_id"], event["event_id"])
            tallies = {o["option_id"]: o for o in pointer.polls[0]["options"]}
            assert tallies[beach]["vote_count"] == 1
            assert tallies[beach]["voter_ids"] == [bob["user_id"]]
            assert pointer.polls[0]["total_votes"] == 1
            assert pointer.version == version

    def test_child_write_only_touches_its_section(self, client, db):
        alice, _, g1, _ = _two_groups(client)
        event = create_test_event(client, alice["user_id"], [g1["group_id"]], title="Original", start=in_hours(24))

        # Scalar fields are not rewritten by a section write.
        db.query(EventPointer).filter(EventPointer.event_id == event["event_id"]).update(
            {EventPointer.title: "Edited elsewhere"}, synchronize_session=False
        )
        db.commit()

        client.post(
            f"/api/events/{event['event_id']}/attributes?actor_user_id={alice['user_id']}",
            json={"name": "Bring", "value": "Water"},
        )
        pointer = _pointer(db, g1["group_id"], event["event_id"])
        assert pointer.title == "Edited elsewhere"
        assert pointer.attributes[0]["name"] == "Bring"
        assert pointer.version == 2

    def test_pointer_states(self, client, db):
        alice, _, g1, g2 = _two_groups(client)
        event = create_test_event(client, alice["user_id"], [g1["group_id"]])
        assert pointer_state(db, g1["group_id"], event["event_id"]) == PointerState.active
        assert pointer_state(db, g2["group_id"], event["event_id"]) == PointerState.absent

        resp = client.get(f"/api/maintenance/pointers/{g1['group_id']}/{event['event_id']}")
        assert resp.json()["state"] == "ACTIVE"


class TestVersionGuard:

    def test_older_version_does_not_regress(self, client, db, projector):
        alice, _, g1, _ = _two_groups(client)
        event = create_test_event(client, alice["user_id"], [g1["group_id"]], title="v1")
        client.put(
            f"/api/events/{event['event_id']}?actor_user_id={alice['user_id']}",
            json={"title": "v2", "version": 1},
        )

        stale = PointerFields(event_id=event["event_id"], title="v1")
        outcome = projector.write_projection(db, g1["group_id"], stale, 1, datetime.now(timezone.utc))
        assert outcome == WriteOutcome.superseded
        assert _pointer(db, g1["group_id"], event["event_id"]).title == "v2"

    def test_equal_version_reapplies(self, client, db, projector):
        alice, _, g1, _ = _two_groups(client)
        event = create_test_event(client, alice["user_id"], [g1["group_id"]], title="Same")

        fields = PointerFields(event_id=event["event_id"], title="Same")
        outcome = projector.write_projection(db, g1["group_id"], fields, 1, datetime.now(timezone.utc))
        assert outcome == WriteOutcome.applied

    def test_late_write_does_not_resurrect(self, client, db, projector):
        alice, _, g1, _ = _two_groups(client)
        event = create_test_event(client, alice["user_id"], [g1["group_id"]], title="Gone soon")
        client.delete(f"/api/events/{event['event_id']}?actor_user_id={alice['user_id']}")

        late = PointerFields(event_id=event["event_id"], title="Gone soon")
        outcome = projector.write_projection(db, g1["group_id"], late, 5, datetime.now(timezone.utc))
        assert outcome == WriteOutcome.skipped
        assert _pointer(db, g1["group_id"], event["event_id"]) is None


class TestFanoutFailure:

    def test_failed_write_keeps_canonical_and_queues_repair(self, client, db, monkeypatch):
        alice, _, g1, g2 = _two_groups(client)
        _fail_for_group(monkeypatch, g2["group_id"])

        event = create_test_event(client, alice["user_id"], [g1["group_id"], g2["group_id"]], title="Half")
        assert client.get(f"/api/events/{event['event_id']}").status_code == 200

        assert _pointer(db, g1["group_id"], event["event_id"]) is not None
        assert _pointer(db, g2["group_id"], event["event_id"]) is None
        assert pointer_state(db, g2["group_id"], event["event_id"]) == PointerState.stale
        repair = db.query(PointerRepair).filter(PointerRepair.group_id == g2["group_id"]).one()
        assert "database is locked" in repair.reason

        monkeypatch.undo()
        resp = client.post("/api/maintenance/pointers/reconcile")
        assert resp.status_code == 200
        assert resp.json()["created"] == 1
        assert pointer_state(db, g2["group_id"], event["event_id"]) == PointerState.active
        assert _pointer(db, g2["group_id"], event["event_id"]).title == "Half"

    def test_failed_update_is_healed_by_group_sweep(self, client, db, monkeypatch):
        alice, _, g1, _ = _two_groups(client)
        event = create_test_event(client, alice["user_id"], [g1["group_id"]], title="Before")

        _fail_for_group(monkeypatch, g1["group_id"])
        resp = client.put(
            f"/api/events/{event['event_id']}?actor_user_id={alice['user_id']}",
            json={"title": "After", "version": 1},
        )
        assert resp.status_code == 200
        assert _pointer(db, g1["group_id"], event["event_id"]).title == "Before"

        monkeypatch.undo()
        report = client.post(f"/api/maintenance/pointers/reconcile?group_id={g1['group_id']}").json()
        assert report["repaired"] == 1
        pointer = _pointer(db, g1["group_id"], event["event_id"])
        assert pointer.title == "After"
        assert pointer.version == 2
        assert pointer_state(db, g1["group_id"], event["event_id"]) == PointerState.active


class TestBackgroundMode:

    def test_background_fanout_completes_on_shutdown(self, client, db, session_factory):
        alice, _, g1, _ = _two_groups(client)
        created = create_test_event(client, alice["user_id"], [g1["group_id"]], title="Queued")

        event = db.get(Event, created["event_id"])
        event.title = "Written by worker"
        event.version += 1
        db.commit()

        background = PointerProjector(session_factory, FanoutPolicy(mode="background", max_workers=2))
        background.on_event_updated(db, event)
        background.shutdown(wait=True)

        pointer = _pointer(db, g1["group_id"], created["event_id"])
        assert pointer.title == "Written by worker"
        assert pointer.version == 2


class TestConcurrentWriters:
    """Two requests that loaded the same event version and then both write."""

    def _event_with_poll(self, client):
        alice, bob, g1, g2 = _two_groups(client)
        event = create_test_event(client, alice["user_id"], [g1["group_id"], g2["group_id"]], start=in_hours(24))
        poll = client.post(
            f"/api/events/{event['event_id']}/polls?actor_user_id={alice['user_id']}",
            json={"title": "Where?", "options": ["Beach", "Lake"]},
        ).json()
        options = {o["text"]: o["option_id"] for o in poll["options"]}
        return alice, bob, (g1, g2), event, poll, options

    def test_losing_child_write_conflicts_and_pointer_matches(self, client, db, session_factory, projector):
        alice, bob, groups, event, poll, options = self._event_with_poll(client)
        first, second = session_factory(), session_factory()
        try:
            assert get_event_or_404(first, event["event_id"]).version == 2
            assert get_event_or_404(second, event["event_id"]).version == 2

            poll_service.vote(second, projector, event["event_id"], poll["poll_id"], options["Beach"], bob["user_id"])
            with pytest.raises(Conflict):
                poll_service.vote(first, projector, event["event_id"], poll["poll_id"], options["Lake"], alice["user_id"])
        finally:
            first.close()
            second.close()

        db.expire_all()
        canonical = db.get(Event, event["event_id"])
        assert canonical.version == 3
        assert db.query(Vote).filter(Vote.event_id == event["event_id"]).count() == 1
        for group in groups:
            pointer = _pointer(db, group["group_id"], event["event_id"])
            assert pointer.version == canonical.version
            assert pointer.polls[0]["total_votes"] == 1
        assert db.query(PointerRepair).count() == 0

    def test_sequential_child_writes_get_distinct_versions(self, client, db, session_factory, projector):
        alice, bob, groups, event, poll, options = self._event_with_poll(client)
        seen = []
        for option, user in ((options["Beach"], bob), (options["Lake"], alice)):
            session = session_factory()
            try:
                poll_service.vote(session, projector, event["event_id"], poll["poll_id"], option, user["user_id"])
                seen.append(session.get(Event, event["event_id"]).version)
            finally:
                session.close()

        assert seen == [3, 4]
        pointer = _pointer(db, groups[0]["group_id"], event["event_id"])
        assert pointer.version == 4
        assert pointer.polls[0]["total_votes"] == 2

    def test_update_with_same_version_conflicts_for_second_writer(self, client, db, session_factory, projector):
        alice, _, groups, event, _, _ = self._event_with_poll(client)
        first, second = session_factory(), session_factory()
        try:
            loaded = get_event_or_404(first, event["event_id"]).version
            assert get_event_or_404(second, event["event_id"]).version == loaded

            update_event(second, projector, event["event_id"], alice["user_id"], loaded, {"title": "Second wins"})
            with pytest.raises(Conflict):
                update_event(first, projector, event["event_id"], alice["user_id"], loaded, {"title": "First loses"})
        finally:
            first.close()
            second.close()

        db.expire_all()
        canonical = db.get(Event, event["event_id"])
        assert canonical.title == "Second wins"
        assert canonical.version == loaded + 1
        pointer = _pointer(db, groups[0]["group_id"], event["event_id"])
        assert pointer.title == "Second wins"
        assert pointer.version == canonical.version
