"""
Tests for application wiring: health check, migrations and routing.
"""

from __future__ import annotations

import logging

from beauty_marketplace_api.app.core.db import MIGRATIONS, get_connection, init_db
from beauty_marketplace_api.app.core.logging_config import setup_logging


class TestApp:
    def test_health(self, client) -> None:
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"

    def test_openapi_lists_domains(self, client) -> None:
        paths = client.get("/openapi.json").json()["paths"]
        for path in (
            "/api/v1/auth/login",
            "/api/v1/services/duplicates/cleanup",
            "/api/v1/providers/nearby",
            "/api/v1/bookings/agent",
            "/api/v1/bookings/{booking_id}/confirm",
            "/api/v1/reviews/therapist/{therapist_id}",
        ):
            assert path in paths


class TestMigrations:
    def test_all_versions_applied_once(self, db) -> None:
        init_db()
        conn = get_connection()
        try:
            versions = [r["version"] for r in conn.execute("SELECT version FROM migrations ORDER BY version")]
            tables = {r["name"] for r in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
        finally:
            conn.close()
        assert versions == [v for v, _ in MIGRATIONS]
        assert {"users", "services", "therapists", "salons", "bookings", "booking_items", "reviews", "audit_logs"} <= tables

    def test_foreign_keys_enforced(self, db) -> None:
        conn = get_connection()
        try:
            assert conn.execute("PRAGMA foreign_keys").fetchone()[0] == 1
        finally:
            conn.close()


class TestLogging:
    def test_configures_once_and_quiets_httpx(self, tmp_path, monkeypatch) -> None:
        root = logging.getLogger()
        httpx_logger = logging.getLogger("httpx")
        old_levels = (root.level, httpx_logger.level)
        monkeypatch.setattr(root, "handlers", [])
        httpx_logger.setLevel(logging.NOTSET)
        try:
            setup_logging("debug", str(tmp_path / "api.log"))
            assert root.level == logging.DEBUG
            assert len(root.handlers) == 2
            assert httpx_logger.level == logging.WARNING

            setup_logging("error")
            assert root.level == logging.DEBUG
            assert len(root.handlers) == 2
        finally:
            for handler in root.handlers:
                handler.close()
            root.setLevel(old_levels[0])
            httpx_logger.setLevel(old_levels[1])
