"""
Tests for the maintenance scripts and the audit trail.
"""

from __future__ import annotations

import asyncio
import logging

import pytest

import batch_geocode_zones
import check_duplicates
import check_nearby_providers
import cleanup_duplicates
import create_token
from beauty_marketplace_api.app.core.config import settings
from beauty_marketplace_api.app.core.db import get_connection
from beauty_marketplace_api.app.core.security import decode_access_token
from beauty_marketplace_api.app.services import audit_service
from beauty_marketplace_api.app.services.audit_service import AuditService

API = "/api/v1"


def seed_duplicates() -> None:
    conn = get_connection()
    try:
        for name, created_at in (("Tresses", "2024-01-01"), ("Tresses", "2024-02-01"), ("Manucure", "2024-01-01")):
            conn.execute("INSERT INTO services (name_fr, created_at) VALUES (?, ?)", (name, created_at))
        conn.commit()
    finally:
        conn.close()


def service_names() -> list:
    conn = get_connection()
    try:
        return sorted(r["name_fr"] for r in conn.execute("SELECT name_fr FROM services"))
    finally:
        conn.close()


class StubAPI:
    def __init__(self, result, error=None) -> None:
        self.result = result
        self.error = error
        self.calls = []

    def nearby_providers(self, lat, lng, **kwargs):
        self.calls.append((lat, lng, kwargs))
        return self.result, self.error


class TestDuplicateScripts:
    def test_check_duplicates(self, db, caplog) -> None:
        seed_duplicates()
        with caplog.at_level(logging.INFO, logger="check_duplicates"):
            assert check_duplicates.main() == 0
        assert "Found duplicates: [('Tresses', 2)]" in caplog.text
        assert "Total services: 3" in caplog.text

    def test_cleanup_dry_run_then_real(self, db) -> None:
        seed_duplicates()
        assert cleanup_duplicates.main(["--dry-run"]) == 0
        assert service_names() == ["Manucure", "Tresses", "Tresses"]
        assert cleanup_duplicates.main([]) == 0
        assert service_names() == ["Manucure", "Tresses"]

    def test_missing_database(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setattr(settings, "database_url", str(tmp_path / "missing.db"))
        assert check_duplicates.main() == 1
        assert cleanup_duplicates.main([]) == 1
        assert batch_geocode_zones.main() == 1


class TestOtherScripts:
    def test_batch_geocode(self, db, fake_geocoder, caplog) -> None:
        with caplog.at_level(logging.INFO, logger="batch_geocode_zones"):
            assert batch_geocode_zones.main() == 0
        assert "Updated: 0 therapists" in caplog.text

    def test_nearby(self, caplog) -> None:
        api = StubAPI([
            {"provider_type": "therapist", "id": 1, "name": "Awa Beauty", "city": "Douala", "distance_meters": 1500.0, "rating": 4.5},
            {"provider_type": "salon", "id": 2, "name": "Salon Élégance", "city": "Douala", "distance_meters": None, "rating": 0},
        ])
        with caplog.at_level(logging.INFO, logger="check_nearby_providers"):
            code = check_nearby_providers.main(
                ["--lat", "4.05", "--lng", "9.7", "--city", "Douala", "--service-id", "3"], api=api
            )
        assert code == 0
        assert api.calls == [(4.05, 9.7, {
            "radius_meters": None,
            "client_city": "Douala",
            "client_district": None,
            "filter_service_id": 3,
        })]
        assert "Results: 2 providers" in caplog.text
        assert "1.5 km" in caplog.text
        assert "same city" in caplog.text

    def test_nearby_error(self) -> None:
        api = StubAPI([], {"status_code": None, "message": "connection refused"})
        assert check_nearby_providers.main(["--lat", "4.05", "--lng", "9.7"], api=api) == 1

    def test_nearby_without_base_url(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "api_base_url", "")
        assert check_nearby_providers.main(["--lat", "4.05", "--lng", "9.7"]) == 1

    def test_create_token(self, capsys) -> None:
        assert create_token.main(["--email", "Admin@KmerBeauty.com", "--days", "2"]) == 0
        token = capsys.readouterr().out.strip()
        assert decode_access_token(token)["sub"] == "admin@kmerbeauty.com"


class TestAudit:
    def test_logs_are_admin_only(self, client, make_user, admin) -> None:
        _, headers = make_user("client@example.com")
        assert client.get(f"{API}/audit/logs", headers=headers).status_code == 403
        logs = client.get(f"{API}/audit/logs", params={"object_type": "user"}, headers=admin[1]).json()
        assert {log["details"]["email"] for log in logs if log["action"] == "create"} == {
            "admin@kmerbeauty.com",
            "client@example.com",
        }

    def test_audit_failures_are_swallowed(self, db, monkeypatch) -> None:
        def broken():
            raise RuntimeError("disk full")

        monkeypatch.setattr(audit_service, "get_connection", broken)
        asyncio.run(AuditService.log(1, "create", "booking", 1, {"x": 1}))

    def test_filter_by_object(self, db) -> None:
        for booking_id, action in ((1, "create"), (2, "create"), (1, "confirmed")):
            asyncio.run(AuditService.log(None, action, "booking", booking_id))
        logs = asyncio.run(AuditService.list_logs(object_type="booking", object_id=1))
        assert [log["action"] for log in logs] == ["confirmed", "create"]
        assert asyncio.run(AuditService.list_logs(object_id=1, limit=1, offset=1))[0]["action"] == "create"

    def test_unknown_filter(self, db) -> None:
        with pytest.raises(ValueError, match="Unknown audit filter"):
            asyncio.run(AuditService.list_logs(severity="high"))
