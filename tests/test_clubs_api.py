"""Test degli endpoint club, inviti e adesione."""

import pytest

from db import now_ms

FAR_FUTURE = 4_102_444_800_000  # 2100-01-01


def club_body(**overrides):
    body = {
        "name": "Stade Toulousain",
        "embleme": None,
        "status": "validated",
        "requested_by": "user_admin",
        "created_at": 1000,
        "updated_at": 1000,
    }
    body.update(overrides)
    return body


def user_body(**overrides):
    body = {
        "id": "user_1",
        "email": "antoine@example.com",
        "name": "Antoine Dupont",
        "created_at": 1000,
        "updated_at": 1000,
    }
    body.update(overrides)
    return body


@pytest.fixture
def club(client):
    return client.post("/clubs", json=club_body(id="club_1")).json()["id"]


@pytest.fixture
def user(client):
    return client.post("/users", json=user_body()).json()["id"]


class TestClubs:

    def test_create_and_get(self, client):
        resp = client.post("/clubs", json=club_body())
        assert resp.status_code == 201
        club_id = resp.json()["id"]
        assert club_id.startswith("club_")
        assert client.get(f"/clubs/{club_id}").json()["name"] == "Stade Toulousain"

    def test_invalid_status(self, client):
        assert client.post("/clubs", json=club_body(status="boh")).status_code == 422

    def test_get_missing(self, client):
        resp = client.get("/clubs/nope")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Club not found"

    def test_list_filter_and_limit(self, client):
        client.post("/clubs", json=club_body(id="a", created_at=1))
        client.post("/clubs", json=club_body(id="b", created_at=3, status="pending"))
        client.post("/clubs", json=club_body(id="c", created_at=2))
        assert [c["id"] for c in client.get("/clubs").json()] == ["b", "c", "a"]
        assert [c["id"] for c in client.get("/clubs", params={"status": "validated"}).json()] == ["c", "a"]
        assert [c["id"] for c in client.get("/clubs", params={"limit": 1}).json()] == ["b"]

    def test_search_case_insensitive(self, client):
        client.post("/clubs", json=club_body(id="a", name="Stade Toulousain"))
        client.post("/clubs", json=club_body(id="b", name="Racing 92"))
        assert [c["id"] for c in client.get("/clubs/search", params={"q": " toulou "}).json()] == ["a"]
        assert client.get("/clubs/search", params={"q": "   "}).json() == []

    def test_stats(self, client):
        client.post("/clubs", json=club_body(id="a", status="pending"))
        client.post("/clubs", json=club_body(id="b", status="pending"))
        client.post("/clubs", json=club_body(id="c", status="rejected"))
        assert client.get("/clubs/stats").json() == {
            "pending": 2, "validated": 0, "rejected": 1, "total": 3,
        }

    def test_patch_only_allowed_fields(self, client, club):
        resp = client.patch(f"/clubs/{club}", json={
            "status": "rejected", "validated_by": "admin", "requested_by": "hacker",
        })
        assert resp.json() == {"ok": True}
        body = client.get(f"/clubs/{club}").json()
        assert body["status"] == "rejected"
        assert body["validated_by"] == "admin"
        assert body["requested_by"] == "user_admin"
        assert body["updated_at"] > 1000

    def test_patch_missing(self, client):
        assert client.patch("/clubs/nope", json={"name": "x"}).status_code == 404

    def test_patch_invalid_status_is_rejected(self, client, club):
        resp = client.patch(f"/clubs/{club}", json={"status": "banana"})
        assert resp.status_code == 422
        assert client.get(f"/clubs/{club}").json()["status"] == "validated"

    def test_patch_null_name_is_rejected(self, client, club):
        assert client.patch(f"/clubs/{club}", json={"name": None}).status_code == 422
        assert client.get(f"/clubs/{club}").json()["name"] == "Stade Toulousain"

    def test_patch_keeps_fields_not_sent(self, client, club):
        client.patch(f"/clubs/{club}", json={"embleme": "https://cdn.example.com/st.png"})
        body = client.get(f"/clubs/{club}").json()
        assert body["embleme"] == "https://cdn.example.com/st.png"
        assert body["name"] == "Stade Toulousain"
        assert body["status"] == "validated"
        assert body["validated_by"] is None


class TestJoin:

    def test_join_completes_onboarding(self, client, club, user):
        resp = client.post(f"/clubs/{club}/join", json={"user_id": user, "is_coach": "true"})
        assert resp.json() == {"ok": True, "club_id": club, "club_name": "Stade Toulousain"}
        body = client.get(f"/users/{user}").json()
        assert body["club_id"] == club
        assert body["club_status"] == "validated"
        assert body["onboarding_completed"] is True
        assert body["is_coach"] is True

    def test_join_without_coach_flag_keeps_it(self, client, club):
        user_id = client.post("/users", json=user_body(is_coach=True)).json()["id"]
        client.post(f"/clubs/{club}/join", json={"user_id": user_id})
        assert client.get(f"/users/{user_id}").json()["is_coach"] is True

    def test_join_requires_user_id(self, client, club):
        assert client.post(f"/clubs/{club}/join", json={}).status_code == 400

    @pytest.mark.parametrize("status, detail", [
        ("pending", "Club is pending validation"),
        ("rejected", "Club has been rejected"),
    ])
    def test_join_refused(self, client, user, status, detail):
        client.post("/clubs", json=club_body(id="x", status=status))
        resp = client.post("/clubs/x/join", json={"user_id": user})
        assert resp.status_code == 400
        assert resp.json()["detail"] == detail

    def test_join_missing_club_or_user(self, client, club):
        assert client.post("/clubs/nope/join", json={"user_id": "u"}).status_code == 404
        resp = client.post(f"/clubs/{club}/join", json={"user_id": "ghost"})
        assert resp.status_code == 404
        assert resp.json()["detail"] == "User not found"


class TestInvites:

    def invite(self, client, club_id="club_1", code="ABC123", expires_at=FAR_FUTURE, **extra):
        body = {
            "club_id": club_id,
            "invite_code": code,
            "expires_at": expires_at,
            "created_at": now_ms(),
        }
        body.update(extra)
        resp = client.post("/club-invites", json=body)
        assert resp.status_code == 201
        return resp.json()["id"]

    def test_get_by_code_includes_club(self, client, club):
        invite_id = self.invite(client)
        assert invite_id.startswith("invite_")
        body = client.get("/club-invites/ABC123").json()
        assert body["club_id"] == club
        assert body["club_name"] == "Stade Toulousain"
        assert body["club_status"] == "validated"

    def test_expired_code_is_invalid(self, client, club):
        self.invite(client, expires_at=1)
        resp = client.get("/club-invites/ABC123")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Invalid or expired invite code"

    def test_code_for_missing_club(self, client):
        self.invite(client, club_id="ghost")
        assert client.get("/club-invites/ABC123").json()["detail"] == "Club not found"

    def test_list_only_active(self, client, club):
        self.invite(client, code="OLD", expires_at=1)
        self.invite(client, code="NEW")
        self.invite(client, club_id="other", code="OTHER")
        codes = [i["invite_code"] for i in client.get("/club-invites", params={"club_id": club}).json()]
        assert codes == ["NEW"]
        assert client.get("/club-invites").json() == []

    def test_use_invite(self, client, club):
        self.invite(client)
        resp = client.post("/club-invites/ABC123/use", json={"user_id": "u1"})
        assert resp.json() == {"ok": True, "club_id": club}

    def test_use_invite_pending_club(self, client):
        client.post("/clubs", json=club_body(id="p", status="pending"))
        self.invite(client, club_id="p")
        resp = client.post("/club-invites/ABC123/use", json={"user_id": "u1"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Club is not validated yet"

    def test_use_invite_requires_user(self, client, club):
        self.invite(client)
        assert client.post("/club-invites/ABC123/use", json={}).status_code == 400
