"""Shared pytest fixtures for the test suite.

Fixture overview
----------------
db              fresh SQLite database in ``tmp_path`` with all migrations
client          FastAPI ``TestClient`` bound to that database
make_user       factory registering a user and returning ``(id, headers)``
admin           an ADMIN account ``(id, headers)``
fake_geocoder   geocoder answering from a fixed table through
                  ``httpx.MockTransport``; records queries and sleeps
agent_key       configures the agent key and returns the request headers
"""

from __future__ import annotations

from typing import Callable, Dict, List, Tuple

import httpx
import pytest
from fastapi.testclient import TestClient

from beauty_marketplace_api.app.core.config import settings
from beauty_marketplace_api.app.core.db import get_connection, init_db
from beauty_marketplace_api.app.main import app
from beauty_marketplace_api.app.services import geocoding_service
from beauty_marketplace_api.app.services.geocoding_service import GeocodingService

API = "/api/v1"

# Nominatim answers keyed by the lower-cased query string.
KNOWN_PLACES = {
    "akwa, douala, cameroun": ("4.0500", "9.7000"),
    "bonapriso, douala, cameroun": ("4.0300", "9.6900"),
    "douala, cameroun": ("4.0511", "9.7679"),
    "bastos, yaoundé, cameroun": ("3.8960", "11.5100"),
    "yaoundé, cameroun": ("3.8480", "11.5021"),
}


# ── Database and application ──────────────────────────────────────────────────


@pytest.fixture
def db(tmp_path, monkeypatch) -> str:
    """Point the settings at an empty database file and migrate it."""
    path = str(tmp_path / "marketplace.db")
    monkeypatch.setattr(settings, "database_url", path)
    init_db()
    return path


@pytest.fixture
def client(db) -> TestClient:
    with TestClient(app) as c:
        yield c


def set_role(user_id: int, role: str) -> None:
    conn = get_connection()
    try:
        conn.execute("UPDATE users SET role = ? WHERE id = ?", (role, user_id))
        conn.commit()
    finally:
        conn.close()


@pytest.fixture
def make_user(client) -> Callable[..., Tuple[int, Dict[str, str]]]:
    """Register and log in a user; ``role`` may also be ADMIN or CONTRACTOR."""

    def _make(email: str, role: str = "CLIENT", password: str = "secret123", **profile) -> Tuple[int, Dict[str, str]]:
        register_role = role if role in ("CLIENT", "PROVIDER") else "CLIENT"
        r = client.post(
            f"{API}/auth/register",
            json={"email": email, "password": password, "role": register_role, **profile},
        )
        assert r.status_code == 201, r.text
        user_id = r.json()["id"]
        if role != register_role:
            set_role(user_id, role)
        r = client.post(f"{API}/auth/login", json={"email": email, "password": password})
        assert r.status_code == 200, r.text
        return user_id, {"Authorization": f"Bearer {r.json()['access_token']}"}

    return _make


@pytest.fixture
def admin(make_user) -> Tuple[int, Dict[str, str]]:
    return make_user("admin@kmerbeauty.com", role="ADMIN")


@pytest.fixture
def agent_key(monkeypatch) -> Dict[str, str]:
    monkeypatch.setattr(settings, "agent_api_key", "agent-secret")
    return {"x-agent-key": "agent-secret"}


# ── Geocoding ─────────────────────────────────────────────────────────────────


class FakeNominatim:
    """Stand-in for the Nominatim search endpoint."""

    def __init__(self) -> None:
        self.queries: List[str] = []
        self.user_agents: List[str] = []
        self.status_code = 200
        self.fail_with: Exception | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if self.fail_with is not None:
            raise self.fail_with
        query = request.url.params["q"]
        self.queries.append(query)
        self.user_agents.append(request.headers.get("User-Agent", ""))
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": "unavailable"})
        hit = KNOWN_PLACES.get(query.lower())
        return httpx.Response(200, json=[{"lat": hit[0], "lon": hit[1]}] if hit else [])


@pytest.fixture
def nominatim() -> FakeNominatim:
    return FakeNominatim()


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def fake_geocoder(monkeypatch, nominatim, sleeps) -> GeocodingService:
    """Install a geocoder that never touches the network nor really sleeps."""

    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    geocoder = GeocodingService(
        client=httpx.AsyncClient(transport=httpx.MockTransport(nominatim)),
        min_interval=1.1,
        sleep=fake_sleep,
        clock=lambda: 0.0,
        base_url="https://nominatim.test",
        user_agent="KmerBeauty-Tests/1.0",
        country="Cameroun",
    )
    monkeypatch.setattr(geocoding_service, "geocoder", geocoder)
    return geocoder
