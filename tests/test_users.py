"""
Tests for registration, login, profile updates and the role check.
"""

from __future__ import annotations

import asyncio

import pytest

from beauty_marketplace_api.app.services.user_service import UserService

API = "/api/v1"


class TestRegistration:
    def test_register_and_login(self, client) -> None:
        r = client.post(
            f"{API}/auth/register",
            json={"email": " Awa@Example.com ", "password": "secret123", "first_name": "Awa"},
        )
        assert r.status_code == 201
        body = r.json()
        assert body["email"] == "awa@example.com"
        assert body["role"] == "CLIENT"
        assert "password" not in body

        r = client.post(f"{API}/auth/login", json={"email": "awa@example.com", "password": "secret123"})
        assert r.status_code == 200
        assert r.json()["token_type"] == "bearer"

    def test_duplicate_email(self, client, make_user) -> None:
        make_user("awa@example.com")
        r = client.post(f"{API}/auth/register", json={"email": "awa@example.com", "password": "secret123"})
        assert r.status_code == 400
        assert "already registered" in r.json()["detail"]

    def test_admin_role_cannot_be_self_assigned(self, client) -> None:
        r = client.post(
            f"{API}/auth/register",
            json={"email": "x@example.com", "password": "secret123", "role": "ADMIN"},
        )
        assert r.status_code == 422

    def test_wrong_password(self, client, make_user) -> None:
        make_user("awa@example.com")
        r = client.post(f"{API}/auth/login", json={"email": "awa@example.com", "password": "nope-nope"})
        assert r.status_code == 401


class TestRoleCheck:
    def test_client(self, client, make_user) -> None:
        _, headers = make_user("client@example.com")
        r = client.get(f"{API}/users/me/role", headers=headers)
        assert r.json() == {"role": "CLIENT", "is_provider": False}

    def test_provider(self, client, make_user) -> None:
        _, headers = make_user("pro@example.com", role="PROVIDER")
        r = client.get(f"{API}/users/me/role", headers=headers)
        assert r.json() == {"role": "PROVIDER", "is_provider": True}

    def test_legacy_contractor_counts_as_provider(self, client, make_user) -> None:
        _, headers = make_user("old@example.com", role="CONTRACTOR")
        r = client.get(f"{API}/users/me/role", headers=headers)
        assert r.json() == {"role": "CONTRACTOR", "is_provider": True}

    def test_unknown_user(self, db) -> None:
        with pytest.raises(ValueError, match="not found"):
            asyncio.run(UserService.get_role(999))


class TestUserAdministration:
    def test_listing_requires_admin(self, client, make_user, admin) -> None:
        _, headers = make_user("client@example.com")
        assert client.get(f"{API}/users", headers=headers).status_code == 403
        r = client.get(f"{API}/users", params={"role": "client"}, headers=admin[1])
        assert r.status_code == 200
        assert [u["email"] for u in r.json()] == ["client@example.com"]

    def test_update_own_profile(self, client, make_user) -> None:
        user_id, headers = make_user("client@example.com")
        r = client.put(f"{API}/users/{user_id}", json={"phone": "+237699000000"}, headers=headers)
        assert r.status_code == 200
        assert r.json()["phone"] == "+237699000000"

    def test_user_cannot_promote_self(self, client, make_user) -> None:
        user_id, headers = make_user("client@example.com")
        r = client.put(f"{API}/users/{user_id}", json={"role": "ADMIN"}, headers=headers)
        assert r.status_code == 403

    def test_user_cannot_edit_others(self, client, make_user) -> None:
        _, headers = make_user("a@example.com")
        other_id, _ = make_user("b@example.com")
        r = client.put(f"{API}/users/{other_id}", json={"first_name": "X"}, headers=headers)
        assert r.status_code == 403

    def test_admin_changes_role(self, client, make_user, admin) -> None:
        user_id, _ = make_user("client@example.com")
        r = client.put(f"{API}/users/{user_id}", json={"role": "provider"}, headers=admin[1])
        assert r.status_code == 200
        assert r.json()["role"] == "PROVIDER"

    def test_admin_unknown_role(self, client, make_user, admin) -> None:
        user_id, _ = make_user("client@example.com")
        r = client.put(f"{API}/users/{user_id}", json={"role": "WIZARD"}, headers=admin[1])
        assert r.status_code == 400

    @pytest.mark.parametrize("field", ["password", "role", "disabled"])
    def test_null_for_required_field_is_rejected(self, client, make_user, admin, field) -> None:
        user_id, _ = make_user("client@example.com")
        r = client.put(f"{API}/users/{user_id}", json={field: None}, headers=admin[1])
        assert r.status_code == 422
        assert "cannot be null" in r.text
        r = client.post(f"{API}/auth/login", json={"email": "client@example.com", "password": "secret123"})
        assert r.status_code == 200

    def test_null_clears_optional_field(self, client, make_user) -> None:
        user_id, headers = make_user("client@example.com", phone="+237699000000")
        r = client.put(f"{API}/users/{user_id}", json={"phone": None}, headers=headers)
        assert r.status_code == 200
        assert r.json()["phone"] is None


class TestGuests:
    def test_find_or_create_guest_reuses_phone(self, db) -> None:
        first = asyncio.run(UserService.find_or_create_guest("+237611111111", "Mireille"))
        second = asyncio.run(UserService.find_or_create_guest("+237611111111"))
        assert first == second
        user = asyncio.run(UserService.get_user_by_id(first))
        assert user.first_name == "Mireille"
        assert user.email.endswith("@kmerbeauty.guest")
        assert user.role == "CLIENT"
