from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from studio_portal.auth import hash_password
from studio_portal.config import Settings
from studio_portal.kv import MemoryKV
from studio_portal.main import create_app
from studio_portal.sessions import MemorySessionStore

START_MS = 1_700_000_000_000
PANEL_URL = "https://panel.example.com"
PUBLIC_URL = "https://example.com"


class FakeClock:
    def __init__(self, now: int) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


def quick_hash(password: str) -> str:
    return hash_password(password, iterations=1_000)


def put_json(backend: MemoryKV, key: str, value: Any) -> None:
    backend.data[key] = json.dumps(value)


def read_json(backend: MemoryKV, key: str) -> Any:
    return json.loads(backend.data[key])


STUDIOS = [
    {"id": "studio-a", "name": "Studio A"},
    {"id": "studio-b", "name": "Studio B"},
]

GAMES = [
    {
        "id": "game-a",
        "name": "Alpha",
        "logo": "/alpha.png",
        "description": "Owned by A",
        "ownedBy": "Studio A",
        "status": "playable",
        "genres": ["Action"],
    },
    {
        "id": "game-b",
        "name": "Bravo",
        "logo": "/bravo.png",
        "description": "Owned by B",
        "ownedBy": "Studio B",
        "status": "beta",
        "genre": "Horror, Mystery",
    },
]

USERS = [
    {"username": "root", "password": quick_hash("root-pass"), "role": "admin", "allowedStudios": []},
    {"username": "alice", "password": quick_hash("alice-pass"), "role": "user", "allowedStudios": ["Studio A"]},
    {"username": "wild", "password": quick_hash("wild-pass"), "role": "user", "allowedStudios": ["*"]},
]


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(START_MS)


@pytest.fixture()
def backend() -> MemoryKV:
    return MemoryKV()


@pytest.fixture()
def site_dir(tmp_path: Path) -> Path:
    dist = tmp_path / "dist"
    (dist / "panel").mkdir(parents=True)
    (dist / "assets").mkdir()
    (dist / "index.html").write_text("<html>site</html>", encoding="utf-8")
    (dist / "logo.png").write_bytes(b"png")
    (dist / "assets" / "app.js").write_text("console.log('app')", encoding="utf-8")
    (dist / "panel" / "index.html").write_text("<html>panel</html>", encoding="utf-8")
    return dist


@pytest.fixture()
def portal(backend: MemoryKV, clock: FakeClock, site_dir: Path):
    settings = Settings(
        kv_backend="memory",
        public_dir=site_dir,
        panel_dir=site_dir / "panel",
        admin_password="admin-pass",
    )
    return create_app(settings, backend=backend, sessions=MemorySessionStore(clock=clock))


@pytest.fixture()
def seeded(backend: MemoryKV) -> MemoryKV:
    put_json(backend, "studios", STUDIOS)
    put_json(backend, "games", GAMES)
    put_json(backend, "users", USERS)
    put_json(backend, "notifications", [])
    return backend


@pytest.fixture()
def public_client(portal) -> TestClient:
    return TestClient(portal, base_url=PUBLIC_URL)


@pytest.fixture()
def panel_client(portal) -> TestClient:
    return TestClient(portal, base_url=PANEL_URL, follow_redirects=False)


def login(client: TestClient, username: str, password: str):
    return client.post("/api/login", data={"username": username, "password": password})


@pytest.fixture()
def as_admin(seeded, panel_client: TestClient) -> TestClient:
    assert login(panel_client, "root", "root-pass").status_code == 302
    return panel_client


@pytest.fixture()
def as_alice(seeded, panel_client: TestClient) -> TestClient:
    assert login(panel_client, "alice", "alice-pass").status_code == 302
    return panel_client
