"""Tests for groups and memberships."""
from tests.conftest import add_test_member, create_test_group, create_test_user


class TestGroups:

    def test_create_group(self, client):
        user = create_test_user(client, name="Admin")
        group = create_test_group(client, creator_id=user["user_id"], name="Climbing Crew")
        assert group["name"] == "Climbing Crew"
        assert group["created_by"] == user["user_id"]
        assert group["is_public"] is False
        assert group["last_modified_at"] is None
        # Creator joins as admin
        assert [(m["user_id"], m["role"]) for m in group["members"]] == [(user["user_id"], "admin")]

    def test_create_group_unknown_creator(self, client):
        resp = client.post("/api/groups/", json={"name": "Ghosts", "created_by": "nobody"})
        assert resp.status_code == 404

    def test_create_group_blank_name(self, client):
        user = create_test_user(client)
        resp = client.post("/api/groups/", json={"name": " ", "created_by": user["user_id"]})
        assert resp.status_code == 422

    def test_get_group(self, client):
        user = create_test_user(client)
        group = create_test_group(client, creator_id=user["user_id"])
        assert client.get(f"/api/groups/{group['group_id']}").json()["name"] == "Test Group"
        assert client.get("/api/groups/missing").status_code == 404

    def test_list_public_groups(self, client):
        user = create_test_user(client)
        create_test_group(client, creator_id=user["user_id"], name="Open Mic", is_public=True)
        create_test_group(client, creator_id=user["user_id"], name="Family")

        every = [g["name"] for g in client.get("/api/groups/").json()]
        public = [g["name"] for g in client.get("/api/groups/?public_only=true").json()]
        assert sorted(every) == ["Family", "Open Mic"]
        assert public == ["Open Mic"]


class TestMembership:

    def test_add_member(self, client):
        admin = create_test_user(client, name="Admin")
        member = create_test_user(client, name="Member")
        group = create_test_group(client, creator_id=admin["user_id"])

        data = add_test_member(client, group["group_id"], member["user_id"])
        assert data["role"] == "member"

    def test_add_duplicate_member(self, client):
        admin = create_test_user(client, name="Admin")
        group = create_test_group(client, creator_id=admin["user_id"])
        resp = client.post(f"/api/groups/{group['group_id']}/members", json={"user_id": admin["user_id"]})
        assert resp.status_code == 409

    def test_add_member_unknown_role(self, client):
        admin = create_test_user(client, name="Admin")
        member = create_test_user(client, name="Member")
        group = create_test_group(client, creator_id=admin["user_id"])
        resp = client.post(f"/api/groups/{group['group_id']}/members", json={
            "user_id": member["user_id"], "role": "owner",
        })
        assert resp.status_code == 422

    def test_add_member_to_unknown_group(self, client):
        member = create_test_user(client, name="Member")
        resp = client.post("/api/groups/missing/members", json={"user_id": member["user_id"]})
        assert resp.status_code == 404

    def test_remove_member(self, client):
        admin = create_test_user(client, name="Admin")
        member = create_test_user(client, name="Member")
        group = create_test_group(client, creator_id=admin["user_id"])
        add_test_member(client, group["group_id"], member["user_id"])

        path = f"/api/groups/{group['group_id']}/members/{member['user_id']}"
        assert client.delete(path).status_code == 204
        assert client.delete(path).status_code == 404
