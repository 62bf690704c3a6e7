"""HTTP and WebSocket tests against the FastAPI app."""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from config.settings import SchedulerConfig, get_template_config
from discussion_engine.service import DiscussionService
from web import api
from web.api import app, get_discussion_manager
from web.auth_database import AuthDatabaseManager
from web.auth_utils import ACCESS_TOKEN_COOKIE_NAME, JWTUtils
from web.discussion_manager import DiscussionManager
from web.endpoints.discussions import setup_discussion_manager
from web.endpoints.v1 import auth as auth_endpoints
from web.endpoints.v1.auth import get_auth_db

BASE_URL = "https://testserver"


@pytest.fixture
def manager(service: DiscussionService) -> DiscussionManager:
    return DiscussionManager(service, SchedulerConfig(enabled=False))


@pytest.fixture
def auth_db(db_path: Path) -> AuthDatabaseManager:
    return AuthDatabaseManager(db_path)


@pytest.fixture
def client(manager: DiscussionManager, auth_db: AuthDatabaseManager) -> Iterator[TestClient]:
    """Anonymous client; the app lifespan is not started."""
    app.dependency_overrides[setup_discussion_manager] = lambda: manager
    app.dependency_overrides[get_auth_db] = lambda: auth_db
    yield TestClient(app, base_url=BASE_URL)
    app.dependency_overrides.clear()


@pytest.fixture
def as_user(client: TestClient) -> Callable[[int, str], TestClient]:
    """Build a client signed in as the given user id."""

    def _make(user_id: int, username: str) -> TestClient:
        token = JWTUtils.create_access_token(user_id, f"{username}@example.com", username)
        return TestClient(app, base_url=BASE_URL, cookies={ACCESS_TOKEN_COOKIE_NAME: token})

    return _make


def _create_debate(creator: TestClient, **overrides) -> dict:
    payload = {
        "title": "Should cities ban cars downtown?",
        "description": "Traffic, air quality and local business.",
        "type": "pros-cons",
        "category": "환경",
        "phase_time_limit": 5,
    }
    payload.update(overrides)
    response = creator.post("/v1/api/discussions", json=payload)
    assert response.status_code == 200, response.text
    return response.json()


# System


def test_health(client: TestClient) -> None:
    response = client.get("/v1/api/health")
    assert response.status_code == 200
    assert response.json() == {"isAlive": True}


def test_formats_and_phases(client: TestClient) -> None:
    formats = client.get("/v1/api/formats").json()["formats"]
    assert set(formats) == {"pros-cons", "free", "one-on-one"}

    phases = client.get("/v1/api/phases").json()["phases"]
    assert phases[0]["phase"] == "waiting"
    assert phases[-1]["phase"] == "ended"


def test_format_details_and_categories(client: TestClient) -> None:
    details = client.get("/v1/api/formats/pros-cons").json()
    assert details["mode"] == "structured"
    assert details["roles"] == ["pros", "cons"]
    opening = details["phases"][1]
    assert opening["phase"] == "opening_pros"
    assert opening["authors"] == "pros"
    assert opening["team_leaders_only"] is True

    assert client.get("/v1/api/formats/free").json()["phases"] == []
    assert client.get("/v1/api/formats/oxford").status_code == 404

    categories = client.get("/v1/api/categories").json()["categories"]
    assert "교육" in categories


# Discussions


def test_create_requires_authentication(client: TestClient) -> None:
    response = client.post(
        "/v1/api/discussions",
        json={"title": "t", "description": "d", "category": "기타"},
    )
    assert response.status_code == 401


def test_create_validates_payload(as_user) -> None:
    creator = as_user(1, "host")
    response = creator.post(
        "/v1/api/discussions",
        json={"title": "  ", "description": "d", "category": "기타", "max_participants": 1},
    )
    assert response.status_code == 422


def test_unknown_discussion_is_404(client: TestClient) -> None:
    assert client.get("/v1/api/discussions/missing").status_code == 404


def test_structured_debate_over_http(as_user) -> None:
    creator, alice, bob, watcher = (
        as_user(1, "host"),
        as_user(2, "alice"),
        as_user(3, "bob"),
        as_user(4, "watcher"),
    )
    created = _create_debate(creator)
    assert created["status"] == "waiting"
    assert created["mode"] == "structured"
    assert created["current_phase"] == "waiting"
    discussion_id = created["id"]
    base = f"/v1/api/discussions/{discussion_id}"

    joined = alice.post(f"{base}/join", json={"role": "pros"}).json()
    assert joined["participants"][0]["is_team_leader"] is True
    assert bob.post(f"{base}/join", json={"role": "cons"}).status_code == 200
    assert watcher.post(f"{base}/observe").status_code == 200

    assert alice.post(f"{base}/start").status_code == 403
    started = creator.post(f"{base}/start").json()
    assert started["status"] == "active"
    assert started["current_phase"] == "opening_pros"
    assert started["current_phase_name"] == "Pros Opening Statement"
    assert started["phase_remaining_seconds"] == 300.0

    assert bob.post(f"{base}/messages", json={"content": "Me first"}).status_code == 403
    posted = alice.post(f"{base}/messages", json={"content": "Cleaner air for everyone."})
    assert posted.status_code == 200
    assert posted.json()["message_type"] == "opening"

    stale = creator.post(f"{base}/advance", json={"expected_phase": "opening_cons"})
    assert stale.status_code == 409
    advanced = creator.post(f"{base}/advance", json={"expected_phase": "opening_pros"}).json()
    assert advanced["current_phase"] == "opening_cons"

    current = creator.get(f"{base}/messages", params={"current_phase_only": True}).json()
    assert current == []
    assert len(creator.get(f"{base}/messages").json()) == 1

    while creator.get(base).json()["current_phase"] != "voting":
        assert creator.post(f"{base}/advance").status_code == 200

    assert alice.post(f"{base}/votes", json={"vote": "pros"}).status_code == 403
    voted = watcher.post(f"{base}/votes", json={"vote": "cons", "reasoning": "Buses exist"})
    assert voted.status_code == 200
    assert voted.json()["vote_tally"] == {"pros": 0, "cons": 1, "draw": 0}

    tally = creator.get(f"{base}/votes").json()
    assert tally["total"] == 1
    assert tally["winner"] == "cons"

    ended = creator.post(f"{base}/advance").json()
    assert ended["status"] == "ended"
    assert ended["current_phase"] == "ended"


def test_like_over_http(as_user) -> None:
    creator, alice, bob = as_user(1, "host"), as_user(2, "alice"), as_user(3, "bob")
    discussion_id = _create_debate(creator, type="free", phase_time_limit=None, time_limit=10)["id"]
    base = f"/v1/api/discussions/{discussion_id}"
    alice.post(f"{base}/join", json={"role": "participant"})
    bob.post(f"{base}/join", json={"role": "participant"})
    creator.post(f"{base}/start")

    message = alice.post(f"{base}/messages", json={"content": "Porto"}).json()
    assert message["phase"] is None
    assert message["message_type"] == "argument"

    liked = bob.post(f"/v1/api/messages/{message['id']}/like")
    assert liked.status_code == 200
    assert liked.json()["liked_by"] == ["3"]
    assert alice.post(f"/v1/api/messages/{message['id']}/like").status_code == 400

    ended = creator.post(f"{base}/end").json()
    assert ended["status"] == "ended"


def test_list_discussions_paginates(as_user, client: TestClient) -> None:
    creator = as_user(1, "host")
    for i in range(3):
        _create_debate(creator, title=f"Motion {i}")

    page = client.get("/v1/api/discussions", params={"page": 2, "limit": 2}).json()
    assert len(page["discussions"]) == 1
    assert page["pagination"]["total"] == 3
    assert page["pagination"]["total_pages"] == 2
    assert page["pagination"]["has_prev"] is True
    assert page["pagination"]["has_next"] is False


# WebSocket


def test_websocket_sends_snapshot_on_connect(as_user, client: TestClient) -> None:
    discussion_id = _create_debate(as_user(1, "host"))["id"]
    with client.websocket_connect(f"/v1/ws/discussions/{discussion_id}") as websocket:
        data = websocket.receive_json()
    assert data["type"] == "connected"
    assert data["discussion"]["id"] == discussion_id


def test_websocket_unknown_discussion(client: TestClient) -> None:
    with client.websocket_connect("/v1/ws/discussions/missing") as websocket:
        data = websocket.receive_json()
    assert data["type"] == "error"


# Auth


def test_register_login_me_logout(client: TestClient) -> None:
    registered = client.post(
        "/v1/auth/register",
        json={"email": "mina@example.com", "password": "debate2024", "username": "mina"},
    )
    assert registered.status_code == 200, registered.text
    assert registered.json()["user"]["display_name"] == "mina"
    assert ACCESS_TOKEN_COOKIE_NAME in registered.cookies

    duplicate = client.post(
        "/v1/auth/register",
        json={"email": "mina@example.com", "password": "debate2024", "username": "mina2"},
    )
    assert duplicate.status_code == 409

    me = client.get("/v1/auth/me")
    assert me.status_code == 200
    assert me.json()["email"] == "mina@example.com"

    client.post("/v1/auth/logout")
    client.cookies.clear()
    assert client.get("/v1/auth/me").status_code == 401

    bad = client.post("/v1/auth/login", json={"email": "mina@example.com", "password": "wrong1"})
    assert bad.status_code == 401
    good = client.post("/v1/auth/login", json={"email": "mina@example.com", "password": "debate2024"})
    assert good.status_code == 200
    assert good.json()["user"]["username"] == "mina"


def test_weak_password_is_rejected(client: TestClient) -> None:
    response = client.post(
        "/v1/auth/register",
        json={"email": "x@example.com", "password": "onlyletters", "username": "xx"},
    )
    assert response.status_code == 422


def test_configured_database_path_is_shared(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    db_file = tmp_path / "configured.db"
    config = get_template_config()
    config.system.database_path = str(db_file)
    (tmp_path / "debox_config.json").write_text(
        json.dumps(config.model_dump()), encoding="utf-8"
    )
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DEBOX_DB_PATH", raising=False)
    monkeypatch.setattr(api, "discussion_manager", None)
    monkeypatch.setattr(auth_endpoints, "_auth_db", None)

    users = get_auth_db()
    discussions = get_discussion_manager().service.db
    assert users.db_path == db_file
    assert discussions.db_path == db_file

    user_id = users.create_user("lee@example.com", "hash", "lee")
    with sqlite3.connect(db_file) as conn:
        row = conn.execute("SELECT email FROM users WHERE id = ?", (user_id,)).fetchone()
    assert row == ("lee@example.com",)
