"""Tests for canonical event writes and their pointer fan-out.

Covers:
- Event create / update / delete
- Membership checks and optimistic locking (version mismatch → 409)
- Exact and fuzzy time specifications
- Group association / disassociation
- Pointer rows created, overwritten and removed after each canonical write
"""
from datetime import datetime, timedelta

from app.models.group import Group
from app.models.pointer import EventPointer
from tests.conftest import add_test_member, create_test_event, create_test_group, create_test_user, in_hours


def _setup(client):
    """Create a creator, another member, and a group with both as members."""
    creator = create_test_user(client, name="Creator")
    other = create_test_user(client, name="Other User")
    group = create_test_group(client, creator_id=creator["user_id"])
    add_test_member(client, group["group_id"], other["user_id"])
    return creator, other, group


def _pointer(db, group_id, event_id):
    db.expire_all()
    return db.get(EventPointer, (group_id, event_id))


class TestEventCreate:
    """Event creation and initial state."""

    def test_create_event(self, client, db):
        creator, _, group = _setup(client)
        event = create_test_event(client, creator["user_id"], [group["group_id"]], title="Dinner", start=in_hours(24))
        assert event["title"] == "Dinner"
        assert event["version"] == 1
        assert event["group_ids"] == [group["group_id"]]
        assert event["start_time_utc"] is not None

        pointer = _pointer(db, group["group_id"], event["event_id"])
        assert pointer is not None
        assert pointer.title == "Dinner"
        assert pointer.version == 1
        # Creator is recorded as GOING
        assert pointer.participant_count == 1
        assert pointer.interest_levels[0]["status"] == "GOING"

    def test_create_unscheduled_event(self, client, db):
        creator, _, group = _setup(client)
        event = create_test_event(client, creator["user_id"], [group["group_id"]], title="Someday")
        assert event["start_time_utc"] is None
        assert _pointer(db, group["group_id"], event["event_id"]).start_timestamp is None

    def test_create_with_fuzzy_time(self, client):
        creator, _, group = _setup(client)
        resp = client.post("/api/events/", json={
            "title": "Board games",
            "created_by": creator["user_id"],
            "group_ids": [group["group_id"]],
            "time_input": {"period_granularity": "evening", "period_start": in_hours(48)},
        })
        assert resp.status_code == 201
        data = resp.json()
        start = datetime.fromisoformat(data["start_time_utc"])
        end = datetime.fromisoformat(data["end_time_utc"])
        assert end - start == timedelta(hours=4)

    def test_create_with_invalid_time(self, client):
        creator, _, group = _setup(client)
        resp = client.post("/api/events/", json={
            "title": "Broken",
            "created_by": creator["user_id"],
            "group_ids": [group["group_id"]],
            "time_input": {"start_time": "next tuesday"},
        })
        assert resp.status_code == 422

    def test_create_in_unknown_group(self, client):
        creator, _, _ = _setup(client)
        resp = client.post("/api/events/", json={
            "title": "Nowhere", "created_by": creator["user_id"], "group_ids": ["missing-group"],
        })
        assert resp.status_code == 404

    def test_create_requires_membership(self, client):
        creator, _, group = _setup(client)
        outsider = create_test_user(client, name="Outsider")
        resp = client.post("/api/events/", json={
            "title": "Crash", "created_by": outsider["user_id"], "group_ids": [group["group_id"]],
        })
        assert resp.status_code == 403

    def test_create_requires_a_group(self, client):
        creator, _, _ = _setup(client)
        resp = client.post("/api/events/", json={"title": "Alone", "created_by": creator["user_id"], "group_ids": []})
        assert resp.status_code == 422

    def test_create_bumps_group_last_modified(self, client, db):
        creator, _, group = _setup(client)
        create_test_event(client, creator["user_id"], [group["group_id"]], start=in_hours(24))
        db.expire_all()
        assert db.get(Group, group["group_id"]).last_modified_at is not None


class TestEventUpdate:
    """Event update with membership checks and optimistic locking."""

    def test_update_event(self, client, db):
        creator, other, group = _setup(client)
        event = create_test_event(client, creator["user_id"], [group["group_id"]], start=in_hours(24))

        resp = client.put(
            f"/api/events/{event['event_id']}?actor_user_id={other['user_id']}",
            json={"title": "Updated Title", "version": 1},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["title"] == "Updated Title"
        assert data["version"] == 2

        pointer = _pointer(db, group["group_id"], event["event_id"])
        assert pointer.title == "Updated Title"
        assert pointer.version == 2

    def test_update_time_moves_pointer(self, client, db):
        creator, _, group = _setup(client)
        event = create_test_event(client, creator["user_id"], [group["group_id"]], start=in_hours(24))
        before = _pointer(db, group["group_id"], event["event_id"]).start_timestamp

        resp = client.put(
            f"/api/events/{event['event_id']}?actor_user_id={creator['user_id']}",
            json={"time_input": {"start_time": in_hours(72)}, "version": 1},
        )
        assert resp.status_code == 200
        after = _pointer(db, group["group_id"], event["event_id"]).start_timestamp
        assert abs(after - before - 48 * 3600) <= 1

    def test_update_non_member_forbidden(self, client):
        creator, _, group = _setup(client)
        outsider = create_test_user(client, name="Outsider")
        event = create_test_event(client, creator["user_id"], [group["group_id"]])

        resp = client.put(
            f"/api/events/{event['event_id']}?actor_user_id={outsider['user_id']}",
            json={"title": "Hacked Title", "version": 1},
        )
        assert resp.status_code == 403

    def test_update_event_version_mismatch(self, client):
        creator, _, group = _setup(client)
        event = create_test_event(client, creator["user_id"], [group["group_id"]])

        resp = client.put(
            f"/api/events/{event['event_id']}?actor_user_id={creator['user_id']}",
            json={"title": "Stale Update", "version": 999},
        )
        assert resp.status_code == 409

    def test_update_unknown_event(self, client):
        creator, _, _ = _setup(client)
        resp = client.put(
            f"/api/events/missing?actor_user_id={creator['user_id']}",
            json={"title": "Nope", "version": 1},
        )
        assert resp.status_code == 404


class TestEventDelete:

    def test_delete_removes_pointer(self, client, db):
        creator, _, group = _setup(client)
        event = create_test_event(client, creator["user_id"], [group["group_id"]], start=in_hours(24))

        resp = client.delete(f"/api/events/{event['event_id']}?actor_user_id={creator['user_id']}")
        assert resp.status_code == 204
        assert _pointer(db, group["group_id"], event["event_id"]) is None
        assert client.get(f"/api/events/{event['event_id']}").status_code == 404

    def test_delete_by_non_creator_forbidden(self, client):
        creator, other, group = _setup(client)
        event = create_test_event(client, creator["user_id"], [group["group_id"]])
        resp = client.delete(f"/api/events/{event['event_id']}?actor_user_id={other['user_id']}")
        assert resp.status_code == 403


class TestGroupAssociation:

    def test_associate_creates_pointer(self, client, db):
        creator, _, g1 = _setup(client)
        g2 = create_test_group(client, creator_id=creator["user_id"], name="Second Group")
        event = create_test_event(client, creator["user_id"], [g1["group_id"]], start=in_hours(24))

        resp = client.post(
            f"/api/events/{event['event_id']}/groups/{g2['group_id']}?actor_user_id={creator['user_id']}"
        )
        assert resp.status_code == 200
        assert sorted(resp.json()["group_ids"]) == sorted([g1["group_id"], g2["group_id"]])

        first = _pointer(db, g1["group_id"], event["event_id"])
        second = _pointer(db, g2["group_id"], event["event_id"])
        assert second is not None
        assert first.version == second.version == 2

    def test_associate_twice_conflicts(self, client):
        creator, _, group = _setup(client)
        event = create_test_event(client, creator["user_id"], [group["group_id"]])
        resp = client.post(
            f"/api/events/{event['event_id']}/groups/{group['group_id']}?actor_user_id={creator['user_id']}"
        )
        assert resp.status_code == 409

    def test_disassociate_removes_pointer(self, client, db):
        creator, _, g1 = _setup(client)
        g2 = create_test_group(client, creator_id=creator["user_id"], name="Second Group")
        event = create_test_event(client, creator["user_id"], [g1["group_id"], g2["group_id"]])

        resp = client.delete(
            f"/api/events/{event['event_id']}/groups/{g2['group_id']}?actor_user_id={creator['user_id']}"
        )
        assert resp.status_code == 200
        assert _pointer(db, g2["group_id"], event["event_id"]) is None
        assert _pointer(db, g1["group_id"], event["event_id"]) is not None

    def test_cannot_remove_last_group(self, client):
        creator, _, group = _setup(client)
        event = create_test_event(client, creator["user_id"], [group["group_id"]])
        resp = client.delete(
            f"/api/events/{event['event_id']}/groups/{group['group_id']}?actor_user_id={creator['user_id']}"
        )
        assert resp.status_code == 422


class TestEventList:

    def test_list_by_group(self, client):
        creator, _, g1 = _setup(client)
        g2 = create_test_group(client, creator_id=creator["user_id"], name="Second Group")
        create_test_event(client, creator["user_id"], [g1["group_id"]], title="In G1")
        create_test_event(client, creator["user_id"], [g2["group_id"]], title="In G2")

        resp = client.get(f"/api/events/?group_id={g1['group_id']}")
        assert resp.status_code == 200
        assert [e["title"] for e in resp.json()] == ["In G1"]
