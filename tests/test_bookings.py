"""
Tests for bookings: creation, visibility, the status lifecycle and the
agent routes used by the messaging assistant.
"""

from __future__ import annotations

import sqlite3

import pytest

from beauty_marketplace_api.app.core.db import get_connection
from beauty_marketplace_api.app.services.booking_service import BookingService

API = "/api/v1"


@pytest.fixture
def market(client, make_user, admin) -> dict:
    """A catalog of two services, a therapist offering one of them and a salon."""
    admin_headers = admin[1]
    tresses = client.post(
        f"{API}/services", json={"name_fr": "Tresses", "base_price": 8000, "duration": 120}, headers=admin_headers
    ).json()["id"]
    manucure = client.post(
        f"{API}/services", json={"name_fr": "Manucure", "base_price": 4000, "duration": 45}, headers=admin_headers
    ).json()["id"]

    pro_id, pro = make_user("awa@example.com", role="PROVIDER", first_name="Awa", phone="+237690000001")
    therapist = client.post(f"{API}/therapists", json={"business_name": "Awa Beauty", "city": "Douala"}, headers=pro).json()
    client.post(
        f"{API}/therapists/{therapist['id']}/services",
        json={"service_id": tresses, "price": 10000, "duration": 150},
        headers=pro,
    )
    _, salon_owner = make_user("salon@example.com", role="PROVIDER")
    salon = client.post(f"{API}/salons", json={"name_fr": "Salon Élégance", "city": "Douala"}, headers=salon_owner).json()

    client_id, client_headers = make_user("fanta@example.com", first_name="Fanta", phone="+237690000002")
    return {
        "admin": admin_headers,
        "tresses": tresses,
        "manucure": manucure,
        "therapist": therapist["id"],
        "pro": pro,
        "pro_id": pro_id,
        "salon": salon["id"],
        "salon_owner": salon_owner,
        "client_id": client_id,
        "client": client_headers,
    }


def booking_payload(market: dict, **overrides) -> dict:
    payload = {
        "therapist_id": market["therapist"],
        "scheduled_at": "2025-06-01T10:00:00",
        "duration": 150,
        "location_type": "HOME",
        "city": "Douala",
        "quarter": "Akwa",
        "subtotal": 10000,
        "travel_fee": 1000,
        "total": 11000,
        "items": [{"service_id": market["tresses"], "service_name": "Tresses", "price": 10000, "duration": 150}],
    }
    payload.update(overrides)
    return payload


def book(client, market: dict, **overrides) -> dict:
    r = client.post(f"{API}/bookings", json=booking_payload(market, **overrides), headers=market["client"])
    assert r.status_code == 201, r.text
    return r.json()


def count_rows(table: str) -> int:
    conn = get_connection()
    try:
        return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
    finally:
        conn.close()


class TestCreate:
    def test_creates_pending_booking_with_items(self, client, market) -> None:
        booking = book(client, market)
        assert booking["status"] == "PENDING"
        assert booking["user_id"] == market["client_id"]
        assert [i["service_name"] for i in booking["items"]] == ["Tresses"]
        assert booking["provider"]["type"] == "therapist"
        assert booking["provider"]["business_name"] == "Awa Beauty"

    def test_salon_booking(self, client, market) -> None:
        booking = book(client, market, therapist_id=None, salon_id=market["salon"], location_type="SALON")
        assert booking["provider"]["type"] == "salon"
        assert booking["provider"]["name_fr"] == "Salon Élégance"

    def test_exactly_one_provider(self, client, market) -> None:
        r = client.post(
            f"{API}/bookings",
            json=booking_payload(market, salon_id=market["salon"]),
            headers=market["client"],
        )
        assert r.status_code == 422
        r = client.post(f"{API}/bookings", json=booking_payload(market, therapist_id=None), headers=market["client"])
        assert r.status_code == 422

    def test_unknown_provider(self, client, market) -> None:
        r = client.post(f"{API}/bookings", json=booking_payload(market, therapist_id=999), headers=market["client"])
        assert r.status_code == 404

    def test_bad_location_type(self, client, market) -> None:
        r = client.post(f"{API}/bookings", json=booking_payload(market, location_type="MOON"), headers=market["client"])
        assert r.status_code == 422

    def test_item_failure_removes_booking(self, client, market, monkeypatch) -> None:
        def broken(cls, conn, booking_id, items):
            raise sqlite3.IntegrityError("items rejected")

        monkeypatch.setattr(BookingService, "_insert_items", classmethod(broken))
        r = client.post(f"{API}/bookings", json=booking_payload(market), headers=market["client"])
        assert r.status_code == 400
        assert "items rejected" in r.json()["detail"]
        assert count_rows("bookings") == 0
        assert count_rows("booking_items") == 0


class TestVisibility:
    def test_get_booking(self, client, make_user, market) -> None:
        booking = book(client, market)
        url = f"{API}/bookings/{booking['id']}"
        r = client.get(url, headers=market["client"])
        assert r.status_code == 200
        assert r.json()["client"]["first_name"] == "Fanta"
        assert client.get(url, headers=market["pro"]).status_code == 200
        assert client.get(url, headers=market["admin"]).status_code == 200
        _, stranger = make_user("stranger@example.com")
        assert client.get(url, headers=stranger).status_code == 403
        assert client.get(f"{API}/bookings/999", headers=market["client"]).status_code == 404

    def test_list_own_or_all(self, client, make_user, market) -> None:
        mine = book(client, market)
        _, other = make_user("other@example.com")
        client.post(f"{API}/bookings", json=booking_payload(market), headers=other)

        assert [b["id"] for b in client.get(f"{API}/bookings", headers=market["client"]).json()] == [mine["id"]]
        assert len(client.get(f"{API}/bookings", headers=market["admin"]).json()) == 2

    def test_provider_bookings(self, client, market) -> None:
        first = book(client, market)
        second = book(client, market, scheduled_at="2025-06-02T10:00:00")
        client.patch(f"{API}/bookings/{first['id']}/confirm", headers=market["pro"])
        url = f"{API}/bookings/contractor/{market['therapist']}"

        r = client.get(url, headers=market["pro"])
        assert sorted(b["id"] for b in r.json()) == sorted([first["id"], second["id"]])
        assert all(b["client"]["first_name"] == "Fanta" for b in r.json())

        r = client.get(url, params={"status": "confirmed"}, headers=market["pro"])
        assert [b["id"] for b in r.json()] == [first["id"]]

        assert client.get(url, headers=market["salon_owner"]).status_code == 403
        assert client.get(url, headers=market["client"]).status_code == 403
        r = client.get(
            f"{API}/bookings/contractor/{market['salon']}", params={"provider_type": "salon"}, headers=market["salon_owner"]
        )
        assert r.json() == []


class TestLifecycle:
    def test_happy_path(self, client, market) -> None:
        booking_id = book(client, market)["id"]
        for action, status in (("confirm", "CONFIRMED"), ("start", "IN_PROGRESS"), ("complete", "COMPLETED")):
            r = client.patch(f"{API}/bookings/{booking_id}/{action}", headers=market["pro"])
            assert r.status_code == 200, r.text
            assert r.json()["status"] == status

        logs = client.get(f"{API}/audit/logs", params={"object_type": "booking"}, headers=market["admin"]).json()
        assert [log["action"] for log in logs] == ["completed", "in_progress", "confirmed", "create"]

    def test_invalid_transitions(self, client, market) -> None:
        booking_id = book(client, market)["id"]
        r = client.patch(f"{API}/bookings/{booking_id}/complete", headers=market["pro"])
        assert r.status_code == 400
        assert "PENDING" in r.json()["detail"]
        client.patch(f"{API}/bookings/{booking_id}/confirm", headers=market["pro"])
        assert client.patch(f"{API}/bookings/{booking_id}/confirm", headers=market["pro"]).status_code == 400

    def test_only_provider_manages(self, client, market) -> None:
        booking_id = book(client, market)["id"]
        assert client.patch(f"{API}/bookings/{booking_id}/confirm", headers=market["client"]).status_code == 403
        assert client.patch(f"{API}/bookings/{booking_id}/confirm", headers=market["salon_owner"]).status_code == 403
        assert client.patch(f"{API}/bookings/{booking_id}/confirm", headers=market["admin"]).status_code == 200

    def test_client_cancels(self, client, market) -> None:
        booking_id = book(client, market)["id"]
        r = client.patch(f"{API}/bookings/{booking_id}/cancel", json={"reason": "Empêchement"}, headers=market["client"])
        assert r.status_code == 200
        body = r.json()
        assert body["status"] == "CANCELLED"
        assert body["cancel_reason"] == "Empêchement"
        assert body["cancelled_at"]

    def test_cancel_without_body(self, client, market) -> None:
        booking_id = book(client, market)["id"]
        r = client.patch(f"{API}/bookings/{booking_id}/cancel", headers=market["client"])
        assert r.json()["status"] == "CANCELLED"

    def test_provider_cannot_cancel_as_client(self, client, market) -> None:
        booking_id = book(client, market)["id"]
        assert client.patch(f"{API}/bookings/{booking_id}/cancel", headers=market["pro"]).status_code == 403

    def test_decline_requires_reason(self, client, market) -> None:
        booking_id = book(client, market)["id"]
        url = f"{API}/bookings/{booking_id}/decline"
        assert client.patch(url, json={}, headers=market["pro"]).status_code == 422
        r = client.patch(url, json={"reason": "Indisponible"}, headers=market["pro"])
        assert (r.json()["status"], r.json()["cancel_reason"]) == ("CANCELLED", "Indisponible")

    def test_completed_booking_cannot_be_cancelled(self, client, market) -> None:
        booking_id = book(client, market)["id"]
        for action in ("confirm", "start", "complete"):
            client.patch(f"{API}/bookings/{booking_id}/{action}", headers=market["pro"])
        assert client.patch(f"{API}/bookings/{booking_id}/cancel", headers=market["client"]).status_code == 400


class TestAgentBookings:
    def agent_payload(self, market: dict, **overrides) -> dict:
        payload = {
            "customerPhone": "+237677000000",
            "customerName": "Mireille",
            "serviceIds": [market["tresses"], market["manucure"]],
            "therapistId": market["therapist"],
            "scheduledAt": "2025-06-03T09:00:00",
            "city": "Douala",
            "quarter": "Bonapriso",
            "notes": "Portail bleu",
        }
        payload.update(overrides)
        return payload

    def test_create_prices_from_offering_and_catalog(self, client, market, agent_key) -> None:
        r = client.post(f"{API}/bookings/agent", json=self.agent_payload(market), headers=agent_key)
        assert r.status_code == 201, r.text
        booking = r.json()
        # Tresses at the therapist's price, Manucure at the catalog price.
        assert [(i["service_name"], i["price"], i["duration"]) for i in booking["items"]] == [
            ("Tresses", 10000, 150),
            ("Manucure", 4000, 45),
        ]
        assert booking["subtotal"] == booking["total"] == 14000
        assert booking["duration"] == 195
        assert booking["location_type"] == "HOME"
        assert booking["status"] == "PENDING"

    def test_guest_is_reused(self, client, market, agent_key) -> None:
        first = client.post(f"{API}/bookings/agent", json=self.agent_payload(market), headers=agent_key).json()
        second = client.post(
            f"{API}/bookings/agent", json=self.agent_payload(market, serviceIds=[market["manucure"]]), headers=agent_key
        ).json()
        assert first["user_id"] == second["user_id"]

        r = client.get(f"{API}/bookings/agent/client/+237677000000", headers=agent_key)
        assert [b["id"] for b in r.json()] == [second["id"], first["id"]]

    def test_existing_account_is_used(self, client, market, agent_key) -> None:
        booking = client.post(
            f"{API}/bookings/agent", json=self.agent_payload(market, customerPhone="+237690000002"), headers=agent_key
        ).json()
        assert booking["user_id"] == market["client_id"]

    def test_unknown_service(self, client, market, agent_key) -> None:
        r = client.post(f"{API}/bookings/agent", json=self.agent_payload(market, serviceIds=[999]), headers=agent_key)
        assert r.status_code == 404

    def test_requires_services(self, client, market, agent_key) -> None:
        r = client.post(f"{API}/bookings/agent", json=self.agent_payload(market, serviceIds=[]), headers=agent_key)
        assert r.status_code == 422

    def test_modify_and_cancel(self, client, market, agent_key) -> None:
        booking_id = client.post(f"{API}/bookings/agent", json=self.agent_payload(market), headers=agent_key).json()["id"]

        r = client.patch(
            f"{API}/bookings/agent/{booking_id}",
            json={"scheduledAt": "2025-06-04T15:00:00", "street": "Rue Joss"},
            headers=agent_key,
        )
        assert r.status_code == 200
        assert (r.json()["scheduled_at"], r.json()["street"], r.json()["notes"]) == (
            "2025-06-04T15:00:00",
            "Rue Joss",
            "Portail bleu",
        )

        r = client.patch(f"{API}/bookings/agent/{booking_id}/cancel", headers=agent_key)
        assert (r.json()["status"], r.json()["cancel_reason"]) == ("CANCELLED", "Annulé via WhatsApp")

        r = client.patch(f"{API}/bookings/agent/{booking_id}", json={"notes": "trop tard"}, headers=agent_key)
        assert r.status_code == 400

    @pytest.mark.parametrize("value", [None, "  "])
    def test_modify_rejects_missing_date(self, client, market, agent_key, value) -> None:
        booking_id = client.post(f"{API}/bookings/agent", json=self.agent_payload(market), headers=agent_key).json()["id"]
        r = client.patch(f"{API}/bookings/agent/{booking_id}", json={"scheduledAt": value}, headers=agent_key)
        assert r.status_code == 422
        r = client.get(f"{API}/bookings/agent/client/+237677000000", headers=agent_key)
        assert r.json()[0]["scheduled_at"] == "2025-06-03T09:00:00"

    def test_modify_clears_notes(self, client, market, agent_key) -> None:
        booking_id = client.post(f"{API}/bookings/agent", json=self.agent_payload(market), headers=agent_key).json()["id"]
        r = client.patch(f"{API}/bookings/agent/{booking_id}", json={"notes": None}, headers=agent_key)
        assert r.status_code == 200
        assert r.json()["notes"] is None

    def test_requires_agent_key(self, client, market, agent_key) -> None:
        r = client.post(f"{API}/bookings/agent", json=self.agent_payload(market), headers=market["client"])
        assert r.status_code == 401
