import re

from fastapi.testclient import TestClient

from conftest import GAMES, PANEL_URL, login, put_json, read_json

DAY_MS = 24 * 60 * 60 * 1000


def test_login_sets_session_cookie_and_redirects(seeded, panel_client):
    response = login(panel_client, "alice", "alice-pass")

    assert response.status_code == 302
    assert response.headers["location"] == "/"
    cookie = response.headers["set-cookie"]
    assert re.search(r"panel_session=[0-9a-f]{64}", cookie)
    for attribute in ("HttpOnly", "Secure", "SameSite=strict", "Max-Age=86400", "Path=/"):
        assert attribute.lower() in cookie.lower()

    me = panel_client.get("/api/me")
    assert me.status_code == 200
    assert me.json() == {"username": "alice", "role": "user", "allowedStudios": ["Studio A"]}


def test_login_failure_renders_page(seeded, panel_client):
    response = login(panel_client, "alice", "wrong")
    assert response.status_code == 401
    assert response.headers["content-type"].startswith("text/html")
    assert "Invalid credentials" in response.text
    assert "set-cookie" not in response.headers
    assert panel_client.get("/api/me").status_code == 401


def test_login_unknown_user(seeded, panel_client):
    assert login(panel_client, "mallory", "x").status_code == 401


def test_login_against_corrupt_hash_is_rejected(panel_client, backend):
    put_json(
        backend,
        "users",
        [{"username": "odd", "password": "pbkdf2_sha256$0$AAAAAAAAAAAAAAAAAAAAAA==$AAAA", "role": "admin"}],
    )
    response = login(panel_client, "odd", "anything")
    assert response.status_code == 401
    assert "Invalid credentials" in response.text


def test_login_with_seeded_admin(panel_client, backend):
    assert login(panel_client, "admin", "admin-pass").status_code == 302
    assert panel_client.get("/api/me").json()["allowedStudios"] == ["*"]
    assert "users" in backend.data


def test_login_via_legacy_credential_key(seeded, panel_client, backend):
    users = read_json(backend, "users")
    users.append({"username": "veteran", "role": "user", "allowedStudios": ["Studio B"]})
    put_json(backend, "users", users)
    put_json(backend, "user:veteran", {"password": "old-school"})

    assert login(panel_client, "veteran", "old-school").status_code == 302
    assert panel_client.get("/api/me").json()["username"] == "veteran"


def test_unauthenticated_api_is_401(seeded, panel_client):
    for path in ("/api/me", "/api/games", "/api/users", "/api/config", "/api/nope"):
        response = panel_client.get(path)
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}
    assert panel_client.post("/api/games", json={}).status_code == 401


def test_unauthenticated_pages_render_login(seeded, panel_client):
    for path in ("/", "/games", "/assets/app.js"):
        response = panel_client.get(path)
        assert response.status_code == 200
        assert 'action="/api/login"' in response.text


def test_forged_cookie_is_treated_as_absent(seeded, panel_client):
    panel_client.cookies.set("panel_session", "0" * 64, domain="panel.example.com")
    assert panel_client.get("/api/me").status_code == 401


def test_session_expires_after_a_day(as_alice, clock):
    clock.advance(DAY_MS - 1)
    assert as_alice.get("/api/me").status_code == 200
    clock.advance(2)
    assert as_alice.get("/api/me").status_code == 401


def test_logout_clears_session(as_alice):
    response = as_alice.get("/api/logout")
    assert response.status_code == 302
    assert response.headers["location"] == "/"
    assert "max-age=0" in response.headers["set-cookie"].lower()
    assert as_alice.get("/api/me").status_code == 401
    assert as_alice.get("/api/logout").status_code == 302


def test_panel_shell_for_authenticated_users(as_alice):
    assert "panel" in as_alice.get("/").text
    assert "panel" in as_alice.get("/games/edit").text
    assert as_alice.get("/assets/app.js").status_code == 200
    assert as_alice.get("/logo.png").content == b"png"
    assert as_alice.get("/nothing.css").status_code == 404
    assert as_alice.get("/api/unknown").status_code == 404


def test_panel_games_are_migrated(as_alice):
    games = {game["id"]: game for game in as_alice.get("/api/games").json()}
    assert games["game-b"]["genres"] == ["Horror", "Mystery"]
    assert "genre" not in games["game-b"]


def test_create_game_generates_id(as_alice):
    response = as_alice.post(
        "/api/games",
        json={"name": "Charlie", "ownedBy": "Studio A", "status": "in-development", "genre": "Puzzle"},
    )
    assert response.status_code == 201
    created = response.json()
    assert re.fullmatch(r"game-\d+", created["id"])
    assert created["genres"] == ["Puzzle"]

    listed = [game for game in as_alice.get("/api/games").json() if game["id"] == created["id"]]
    assert len(listed) == 1


def test_create_game_outside_allowed_studios_is_forbidden(as_alice, backend):
    response = as_alice.post(
        "/api/games", json={"name": "Nope", "ownedBy": "Studio B", "status": "beta"}
    )
    assert response.status_code == 403
    assert len(read_json(backend, "games")) == len(GAMES)


def test_create_game_validation(as_admin):
    assert as_admin.post("/api/games", json={"name": "No owner", "status": "beta"}).status_code == 400
    bad_status = as_admin.post(
        "/api/games", json={"name": "X", "ownedBy": "Studio A", "status": "released"}
    )
    assert bad_status.status_code == 400
    assert "error" in bad_status.json()
    unknown = as_admin.post(
        "/api/games", json={"name": "X", "ownedBy": "Nowhere", "status": "beta"}
    )
    assert unknown.status_code == 400
    duplicate = as_admin.post(
        "/api/games", json={"id": "game-a", "name": "X", "ownedBy": "Studio A", "status": "beta"}
    )
    assert duplicate.status_code == 400


def test_malformed_json_is_rejected(as_admin):
    response = as_admin.post(
        "/api/games", content=b"{not json", headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 400
    assert "error" in response.json()
    assert as_admin.put("/api/games/game-a", json=["not", "an", "object"]).status_code == 400


def test_edit_other_studio_game_is_forbidden(as_alice, backend):
    before = read_json(backend, "games")
    response = as_alice.put("/api/games/game-b", json={"name": "Hijacked"})
    assert response.status_code == 403
    assert response.json()["error"]
    assert read_json(backend, "games") == before


def test_missing_and_forbidden_are_distinct(as_alice):
    missing = as_alice.put("/api/games/game-zzz", json={"name": "x"})
    forbidden = as_alice.put("/api/games/game-b", json={"name": "x"})
    assert missing.status_code == 404
    assert forbidden.status_code == 403
    assert as_alice.delete("/api/games/game-zzz").status_code == 404
    assert as_alice.delete("/api/games/game-b").status_code == 403


def test_update_game_merges_and_keeps_id(as_alice, backend):
    response = as_alice.put("/api/games/game-a", json={"id": "renamed", "description": "New text"})
    assert response.status_code == 200
    updated = response.json()
    assert updated["id"] == "game-a"
    assert updated["description"] == "New text"
    assert updated["name"] == "Alpha"
    assert read_json(backend, "games")[0]["description"] == "New text"


def test_reassigning_owner_needs_both_studios(as_alice, backend):
    before = read_json(backend, "games")
    response = as_alice.put("/api/games/game-a", json={"ownedBy": "Studio B"})
    assert response.status_code == 403
    assert read_json(backend, "games") == before


def test_wildcard_user_can_reassign(seeded, panel_client, backend):
    login(panel_client, "wild", "wild-pass")
    response = panel_client.put("/api/games/game-a", json={"ownedBy": "Studio B"})
    assert response.status_code == 200
    assert read_json(backend, "games")[0]["ownedBy"] == "Studio B"


def test_legacy_genre_in_update_replaces_stored_list(as_alice, backend):
    response = as_alice.put("/api/games/game-a", json={"genre": "Racing, Sports"})
    assert response.status_code == 200
    assert response.json()["genres"] == ["Racing", "Sports"]
    stored = read_json(backend, "games")[0]
    assert stored["genres"] == ["Racing", "Sports"]
    assert "genre" not in stored

    both = as_alice.put("/api/games/game-a", json={"genre": "Ignored", "genres": ["Puzzle"]})
    assert both.json()["genres"] == ["Puzzle"]


def test_reassigning_to_unknown_studio(as_admin):
    assert as_admin.put("/api/games/game-a", json={"ownedBy": "Ghost"}).status_code == 400


def test_delete_game(as_alice, backend):
    assert as_alice.delete("/api/games/game-a").json() == {"deleted": True}
    assert [game["id"] for game in read_json(backend, "games")] == ["game-b"]


def _announcement(**overrides):
    payload = {"gameId": "game-a", "title": "Launch", "description": "Soon", "active": True}
    payload.update(overrides)
    return payload


def test_announcement_crud_within_own_studio(as_alice, backend):
    created = as_alice.post("/api/announcements", json=_announcement())
    assert created.status_code == 201
    notification_id = created.json()["id"]
    assert notification_id.startswith("announcement-")

    updated = as_alice.put(f"/api/announcements/{notification_id}", json={"title": "Launch day"})
    assert updated.json()["title"] == "Launch day"
    assert as_alice.get("/api/announcements").json()[0]["title"] == "Launch day"

    assert as_alice.delete(f"/api/announcements/{notification_id}").status_code == 200
    assert read_json(backend, "notifications") == []


def test_announcement_for_other_studio_game_is_forbidden(as_alice, backend):
    assert as_alice.post("/api/announcements", json=_announcement(gameId="game-b")).status_code == 403
    assert read_json(backend, "notifications") == []


def test_announcement_for_unknown_game(as_alice):
    assert as_alice.post("/api/announcements", json=_announcement(gameId="ghost")).status_code == 400


def test_announcement_reassignment_checks_new_game_owner(as_alice, backend):
    notification_id = as_alice.post("/api/announcements", json=_announcement()).json()["id"]
    response = as_alice.put(f"/api/announcements/{notification_id}", json={"gameId": "game-b"})
    assert response.status_code == 403
    assert read_json(backend, "notifications")[0]["gameId"] == "game-a"


def test_announcement_rejects_unreadable_countdown(as_alice):
    response = as_alice.post("/api/announcements", json=_announcement(countdownTo="someday"))
    assert response.status_code == 400


def test_announcement_missing_vs_forbidden(seeded, as_alice, backend):
    put_json(
        backend,
        "notifications",
        [{"id": "n-b", "gameId": "game-b", "title": "B news", "active": True}],
    )
    assert as_alice.put("/api/announcements/n-zzz", json={}).status_code == 404
    assert as_alice.put("/api/announcements/n-b", json={"title": "x"}).status_code == 403
    assert as_alice.delete("/api/announcements/n-b").status_code == 403


def test_orphaned_announcement_needs_admin(as_alice, backend):
    put_json(
        backend,
        "notifications",
        [{"id": "n-orphan", "gameId": "deleted-game", "title": "Old", "active": False}],
    )
    assert as_alice.delete("/api/announcements/n-orphan").status_code == 403


def test_studios_listing(as_alice):
    names = [studio["name"] for studio in as_alice.get("/api/studios").json()]
    assert names == ["Studio A", "Studio B"]


def test_studio_creation_is_admin_only(as_alice):
    assert as_alice.post("/api/studios", json={"name": "Studio C"}).status_code == 403


def test_studio_crud(as_admin, backend):
    created = as_admin.post("/api/studios", json={"name": "Studio C", "hero": True})
    assert created.status_code == 201
    studio_id = created.json()["id"]
    assert as_admin.post("/api/studios", json={"name": "Studio C"}).status_code == 400

    assert as_admin.delete(f"/api/studios/{studio_id}").json() == {"deleted": True}
    assert as_admin.delete("/api/studios/studio-a").status_code == 400
    assert as_admin.delete("/api/studios/nope").status_code == 404


def test_studio_rename_moves_join_key(as_admin, backend):
    response = as_admin.put("/api/studios/studio-a", json={"name": "Studio Alpha"})
    assert response.status_code == 200
    assert read_json(backend, "games")[0]["ownedBy"] == "Studio Alpha"
    alice = [user for user in read_json(backend, "users") if user["username"] == "alice"][0]
    assert alice["allowedStudios"] == ["Studio Alpha"]


def test_studio_edits_are_admin_only(as_alice, backend):
    before = read_json(backend, "studios")
    assert as_alice.put("/api/studios/studio-a", json={"description": "Ours"}).status_code == 403
    assert as_alice.put("/api/studios/studio-a", json={"name": "Mine"}).status_code == 403
    assert as_alice.delete("/api/studios/studio-a").status_code == 403
    assert read_json(backend, "studios") == before


def test_studio_rename_carries_over_to_live_sessions(as_alice, portal, backend):
    admin = TestClient(portal, base_url=PANEL_URL, follow_redirects=False)
    assert login(admin, "root", "root-pass").status_code == 302
    assert admin.put("/api/studios/studio-a", json={"name": "Studio Alpha"}).status_code == 200

    assert as_alice.get("/api/me").json()["allowedStudios"] == ["Studio Alpha"]
    response = as_alice.put("/api/games/game-a", json={"description": "Still ours"})
    assert response.status_code == 200
    assert read_json(backend, "games")[0]["ownedBy"] == "Studio Alpha"


def test_config_roundtrip(as_alice, backend):
    assert as_alice.get("/api/config").json() == {}
    payload = {
        "specialCountdown": {
            "enabled": True,
            "title": "Something is coming",
            "description": "Stay tuned",
            "targetDate": "2026-12-01T00:00:00Z",
            "youtubeRevealDate": "2026-11-20T00:00:00Z",
        }
    }
    response = as_alice.put("/api/config", json=payload)
    assert response.status_code == 200
    assert response.json() == payload
    assert as_alice.get("/api/config").json() == payload
    assert read_json(backend, "config") == payload


def test_media_list(as_alice):
    media = as_alice.get("/api/media").json()
    assert "/ashmoor.png" in media


def test_activity_log_records_mutations(as_alice):
    as_alice.put("/api/games/game-a", json={"description": "changed"})
    as_alice.delete("/api/games/game-a")
    entries = as_alice.get("/api/activity").json()
    assert [(entry["type"], entry["entityType"]) for entry in entries] == [
        ("delete", "game"),
        ("update", "game"),
    ]
    assert entries[0]["user"] == "alice"
    assert entries[0]["entityName"] == "Alpha"


def test_failed_mutations_leave_no_activity(as_alice):
    as_alice.put("/api/games/game-b", json={"name": "x"})
    assert as_alice.get("/api/activity").json() == []
