import requests

import ai
from store import db


def test_index(client):
    response = client.get("/")
    assert response.status_code == 200


def test_single_admin_signup(client):
    first = client.post("/auth/register", json={"name": "A", "email": "a@uni.edu", "password": "pw", "role": "admin"})
    second = client.post("/auth/register", json={"name": "B", "email": "b@uni.edu", "password": "pw", "role": "admin"})

    assert first.status_code == 201
    assert second.status_code == 403
    assert second.get_json()["message"] == "Register Failed: System already has an Admin. Only one allowed."


def test_login_and_me(client, make_user):
    make_user("Ada", "ada@uni.edu")

    response = client.post("/auth/login", json={"email": "ada@uni.edu", "password": "Password123"})
    assert response.status_code == 200
    token = response.get_json()["token"]

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.get_json()["email"] == "ada@uni.edu"

    bad = client.post("/auth/login", json={"email": "ada@uni.edu", "password": "wrong"})
    assert bad.status_code == 400


def test_protected_routes_need_token(client):
    for method, path in [
        ("get", "/auth/me"),
        ("post", "/clubs/request"),
        ("post", "/events"),
        ("get", "/announcements"),
        ("get", "/admin/stats"),
        ("post", "/ai/match"),
    ]:
        response = getattr(client, method)(path, json={})
        assert response.status_code == 401, path
        assert response.get_json()["message"] == "Access Denied: No Token Provided"


def test_garbage_token(client):
    response = client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 400
    assert response.get_json()["message"] == "Invalid Token"


def test_admin_routes_reject_students(client, make_user, auth_header):
    student = make_user("Ada")
    response = client.get("/admin/clubs/pending", headers=auth_header(student))
    assert response.status_code == 403
    assert response.get_json()["message"] == "Access Denied: Admins only."


def test_chess_club_flow(client, make_user, auth_header):
    admin = auth_header(make_user("Admin", role="admin"))
    alice_id = make_user("Alice")
    alice = auth_header(alice_id)

    submitted = client.post("/clubs/request", json={"name": "Chess Club", "category": "Games"}, headers=alice)
    assert submitted.status_code == 201
    request_id = submitted.get_json()["id"]

    pending = client.get("/admin/clubs/pending", headers=admin).get_json()
    assert [p["name"] for p in pending] == ["Chess Club"]
    assert pending[0]["creator"]["name"] == "Alice"

    assert client.post(f"/admin/clubs/{request_id}/approve", headers=admin).status_code == 200
    assert client.post(f"/admin/clubs/{request_id}/approve", headers=admin).status_code == 404

    club = client.get(f"/clubs/{request_id}").get_json()
    assert club["name"] == "Chess Club"
    # Promotion shows up without a fresh token
    assert client.get("/auth/me", headers=alice).get_json()["role"] == "club_head"
    assert [c["name"] for c in client.get("/clubs/my-clubs", headers=alice).get_json()] == ["Chess Club"]
    assert client.get("/clubs/my-requests", headers=alice).get_json()[0]["status"] == "approved"


def test_reject_then_approve(client, make_user, auth_header):
    admin = auth_header(make_user("Admin", role="admin"))
    alice = auth_header(make_user("Alice"))
    request_id = client.post("/clubs", json={"name": "Go Club"}, headers=alice).get_json()["id"]

    assert client.post(f"/admin/clubs/{request_id}/reject", headers=admin).status_code == 200
    assert client.post(f"/admin/clubs/{request_id}/approve", headers=admin).status_code == 404
    assert client.get(f"/clubs/{request_id}").status_code == 404


def test_non_head_is_forbidden(client, make_user, make_club, auth_header):
    alice_id = make_user("Alice")
    club_id = make_club(alice_id)
    bob = auth_header(make_user("Bob"))

    edit = client.put(f"/clubs/{club_id}", json={"description": "mine"}, headers=bob)
    event = client.post("/events", json={"title": "X", "date": "2099-01-01", "organizer_club": club_id}, headers=bob)
    note = client.post("/announcements", json={"club_id": club_id, "message": "hi"}, headers=bob)

    assert edit.status_code == 403
    assert event.status_code == 403
    assert note.status_code == 403
    assert db.execute("SELECT COUNT(*) AS c FROM events_pending")[0]["c"] == 0
    assert db.execute("SELECT COUNT(*) AS c FROM announcements_pending")[0]["c"] == 0


def test_event_registration_flow(client, make_user, make_club, auth_header):
    admin = auth_header(make_user("Admin", role="admin"))
    alice_id = make_user("Alice")
    alice = auth_header(alice_id)
    club_id = make_club(alice_id)
    bob = auth_header(make_user("Bob"))

    submitted = client.post(
        "/events",
        json={"title": "Blitz Night", "date": "2099-03-01T19:00", "organizer_club": club_id},
        headers=alice,
    )
    assert submitted.status_code == 201
    event_id = submitted.get_json()["id"]
    assert client.get("/events").get_json() == []

    assert client.post(f"/admin/events/{event_id}/approve", headers=admin).status_code == 200
    assert [e["title"] for e in client.get("/events").get_json()] == ["Blitz Night"]

    assert client.post(f"/events/{event_id}/register", headers=bob).status_code == 200
    assert client.post(f"/events/{event_id}/register", headers=bob).status_code == 400
    assert [r["event_id"] for r in client.get("/users/me/registrations", headers=bob).get_json()] == [event_id]

    participants = client.get(f"/events/{event_id}/participants", headers=alice).get_json()
    assert len(participants) == 1
    assert client.get(f"/events/{event_id}/participants", headers=bob).status_code == 403

    registration_id = participants[0]["id"]
    toggled = client.put(f"/events/participants/{registration_id}/attendance", json={"attended": True}, headers=alice)
    assert toggled.status_code == 200
    assert client.get("/users/me/events", headers=bob).get_json()[0]["attended"] is True

    assert client.delete(f"/events/{event_id}/register", headers=bob).status_code == 200
    assert client.get(f"/events/{event_id}/participants", headers=alice).get_json() == []
    assert client.post(f"/events/{event_id}/register", headers=bob).status_code == 200


def test_membership_routes(client, make_user, make_club, auth_header):
    club_id = make_club(make_user("Alice"))
    bob = auth_header(make_user("Bob"))

    assert client.post(f"/clubs/{club_id}/join", headers=bob).status_code == 200
    again = client.post(f"/clubs/{club_id}/join", headers=bob)
    assert again.status_code == 400
    assert again.get_json()["message"] == "Already a member"
    assert len(client.get(f"/clubs/{club_id}/members").get_json()) == 2

    assert client.post(f"/clubs/{club_id}/leave", headers=bob).status_code == 200
    assert client.post(f"/clubs/{club_id}/leave", headers=bob).status_code == 200
    assert client.get("/users/me/clubs", headers=bob).get_json() == []


def test_restore_head_route(client, make_user, make_club, auth_header):
    alice_id = make_user("Alice")
    club_id = make_club(alice_id)
    bob = auth_header(make_user("Bob"))
    client.post(f"/clubs/{club_id}/join", headers=bob)

    assert client.put(f"/clubs/{club_id}/restore-head", headers=bob).status_code == 403
    assert client.put(f"/clubs/{club_id}/restore-head", headers=auth_header(alice_id)).status_code == 200


def test_announcement_flow(client, make_user, make_club, auth_header):
    admin = auth_header(make_user("Admin", role="admin"))
    alice_id = make_user("Alice")
    club_id = make_club(alice_id)
    alice = auth_header(alice_id)

    request_id = client.post(
        "/announcements", json={"club_id": club_id, "message": "Meeting moved"}, headers=alice
    ).get_json()["id"]
    assert [a["id"] for a in client.get("/admin/announcements/pending", headers=admin).get_json()] == [request_id]

    client.post(f"/admin/announcements/{request_id}/approve", headers=admin)

    assert [a["message"] for a in client.get(f"/clubs/{club_id}/announcements").get_json()] == ["Meeting moved"]
    assert client.get("/announcements", headers=alice).get_json()[0]["club_name"] == "Chess Club"


def test_discussion_routes(client, make_user, make_club, auth_header):
    club_id = make_club(make_user("Alice"))
    bob = auth_header(make_user("Bob"))
    carol = auth_header(make_user("Carol"))

    posted = client.post(f"/clubs/{club_id}/discussions", json={"message": "Hello"}, headers=bob)
    assert posted.status_code == 201
    message_id = posted.get_json()["id"]

    assert client.delete(f"/discussions/{message_id}", headers=carol).status_code == 403
    assert client.delete(f"/discussions/{message_id}", headers=bob).status_code == 200
    assert client.get(f"/clubs/{club_id}/discussions", headers=carol).get_json() == []


def test_profile_update(client, make_user, auth_header):
    ada = auth_header(make_user("Ada"))

    assert client.put("/users/me", json={"bio": "Hi", "role": "admin"}, headers=ada).status_code == 200

    profile = client.get("/users/me", headers=ada).get_json()
    assert profile["bio"] == "Hi"
    assert profile["role"] == "student"


def test_admin_stats(client, make_user, make_club, auth_header):
    admin = auth_header(make_user("Admin", role="admin"))
    make_club(make_user("Alice"))

    stats = client.get("/admin/stats", headers=admin).get_json()

    assert stats["totalClubs"] == 1
    assert stats["totalUsers"] == 2


def test_ai_match_route(client, make_user, make_club, auth_header):
    alice_id = make_user("Alice")
    make_club(alice_id, "Chess Club", category="Games")

    response = client.post("/ai/match", json={"interest": "chess"}, headers=auth_header(alice_id))

    assert response.status_code == 200
    assert [m["name"] for m in response.get_json()["matches"]] == ["Chess Club"]
    assert client.post("/ai/match", json={}, headers=auth_header(alice_id)).status_code == 400


def test_ai_poster_failure_message(client, make_user, auth_header, monkeypatch):
    def down(*args, **kwargs):
        raise requests.exceptions.ConnectionError("image service unreachable")

    monkeypatch.setattr(ai.requests, "get", down)

    response = client.post("/ai/poster", json={"prompt": "Chess night"}, headers=auth_header(make_user("Ada")))

    assert response.status_code == 500
    assert response.get_json() == {"success": False, "message": "AI Generation Failed. Please try again."}


def test_home(client, make_user, make_club):
    make_club(make_user("Alice"))
    body = client.get("/home").get_json()
    assert body["stats"]["clubs"] == 1


def test_unknown_route_is_json(client):
    response = client.get("/nowhere")
    assert response.status_code == 404
    assert response.get_json() == {"message": "Not found"}


def test_non_object_body_is_bad_request(client, make_user, auth_header):
    ada = auth_header(make_user("Ada"))

    register = client.post("/auth/register", json=[1])
    club = client.post("/clubs/request", json=["Chess Club"], headers=ada)

    assert register.status_code == 400
    assert register.get_json()["message"] == "Request body must be a JSON object."
    assert club.status_code == 400
    assert db.execute("SELECT COUNT(*) AS c FROM clubs_pending")[0]["c"] == 0
