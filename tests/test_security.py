"""
Tests for tokens, password hashing, role helpers and the agent key guard.
"""

from __future__ import annotations

from beauty_marketplace_api.app.core.config import settings
from beauty_marketplace_api.app.core.errors import http_error
from beauty_marketplace_api.app.core.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    is_admin,
    is_provider_role,
    verify_password,
)

API = "/api/v1"


class TestTokens:
    def test_round_trip_keeps_claims(self) -> None:
        token = create_access_token({"sub": "awa@example.com"})
        payload = decode_access_token(token)
        assert payload["sub"] == "awa@example.com"
        assert "exp" in payload

    def test_tampered_signature_is_rejected(self) -> None:
        header, payload, signature = create_access_token({"sub": "awa@example.com"}).split(".")
        forged = f"{header}.{payload}.{signature[:-2]}xx"
        assert decode_access_token(forged) is None

    def test_expired_token_is_rejected(self) -> None:
        token = create_access_token({"sub": "awa@example.com"}, expires_delta=-10)
        assert decode_access_token(token) is None

    def test_garbage_is_rejected(self) -> None:
        assert decode_access_token("not-a-token") is None


class TestPasswords:
    def test_hash_and_verify(self) -> None:
        hashed = hash_password("s3cret!")
        assert hashed != "s3cret!"
        assert verify_password("s3cret!", hashed)
        assert not verify_password("wrong", hashed)

    def test_guest_without_password_cannot_log_in(self) -> None:
        assert not verify_password("anything", None)


class TestRoles:
    def test_provider_roles(self) -> None:
        assert is_provider_role("PROVIDER")
        assert is_provider_role("contractor")
        assert not is_provider_role("CLIENT")
        assert not is_provider_role(None)

    def test_is_admin(self) -> None:
        assert is_admin({"role": "admin"})
        assert not is_admin({"role": "PROVIDER"})


class TestHttpErrors:
    def test_mapping(self) -> None:
        assert http_error(ValueError("Booking 3 not found")).status_code == 404
        assert http_error(ValueError("Cannot move booking")).status_code == 400
        assert http_error(PermissionError("nope")).status_code == 403


class TestAuthentication:
    def test_missing_token(self, client) -> None:
        assert client.get(f"{API}/users/me").status_code == 401

    def test_invalid_token(self, client) -> None:
        r = client.get(f"{API}/users/me", headers={"Authorization": "Bearer nope"})
        assert r.status_code == 401

    def test_static_admin_token(self, client, admin, monkeypatch) -> None:
        monkeypatch.setattr(settings, "admin_static_token", "back-office-token")
        r = client.get(f"{API}/users", headers={"Authorization": "Bearer back-office-token"})
        assert r.status_code == 200
        assert any(u["role"] == "ADMIN" for u in r.json())

    def test_non_ascii_token_is_rejected(self, client, admin, monkeypatch) -> None:
        monkeypatch.setattr(settings, "admin_static_token", "back-office-token")
        r = client.get(f"{API}/users/me", headers={"Authorization": "Bearer jeton-é".encode("latin-1")})
        assert r.status_code == 401

    def test_disabled_user_is_locked_out(self, client, make_user, admin) -> None:
        user_id, headers = make_user("late@example.com")
        r = client.put(f"{API}/users/{user_id}", json={"disabled": True}, headers=admin[1])
        assert r.status_code == 200
        assert client.get(f"{API}/users/me", headers=headers).status_code == 401
        r = client.post(f"{API}/auth/login", json={"email": "late@example.com", "password": "secret123"})
        assert r.status_code == 401


class TestAgentKey:
    def test_not_configured(self, client, monkeypatch) -> None:
        monkeypatch.setattr(settings, "agent_api_key", "")
        r = client.get(f"{API}/bookings/agent/client/+237600000000", headers={"x-agent-key": "x"})
        assert r.status_code == 503

    def test_wrong_key(self, client, agent_key) -> None:
        r = client.get(f"{API}/bookings/agent/client/+237600000000", headers={"x-agent-key": "wrong"})
        assert r.status_code == 401

    def test_non_ascii_key(self, client, agent_key) -> None:
        r = client.get(
            f"{API}/bookings/agent/client/+237600000000", headers={"x-agent-key": "clé-agent".encode("latin-1")}
        )
        assert r.status_code == 401

    def test_right_key(self, client, agent_key) -> None:
        r = client.get(f"{API}/bookings/agent/client/+237600000000", headers=agent_key)
        assert r.status_code == 200
        assert r.json() == []
