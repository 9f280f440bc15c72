"""Beauty marketplace API client.

Thin ``requests`` wrapper around the REST API, used by the messaging
agent's tools and by the maintenance scripts.  Every method returns a
tuple ``(data, error)``: on success ``error`` is ``None``; on failure
``data`` is empty and ``error`` is a dictionary with ``status_code``
and ``message``.  No method raises for HTTP or network errors.

Agent operations (booking on behalf of a phone number) authenticate
with the shared agent key sent as ``x-agent-key``.  The remaining
operations are public or use an optional bearer token (``api_key``).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import requests


logger = logging.getLogger(__name__)

Error = Optional[Dict[str, Any]]

DEFAULT_CANCEL_REASON = "Annulé via WhatsApp"


class MarketplaceAPI:
    """Client for the marketplace API.

    Args:
        base_url: API root including the version prefix, e.g.
            ``http://localhost:8000/api/v1``.
        agent_key: Value sent as ``x-agent-key`` on agent routes.
        api_key: Optional bearer token sent on every request.
        session: Optional requests session.  One is created when omitted.
    """

    def __init__(
        self,
        *,
        base_url: str,
        agent_key: Optional[str] = None,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.agent_key = agent_key
        self.api_key = api_key
        self.session = session or requests.Session()

    # ------------------------------------------------------------------
    # Low level HTTP helpers
    # ------------------------------------------------------------------
    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Dict[str, Any] | None = None,
        json_body: Any | None = None,
        agent: bool = False,
    ) -> Tuple[Optional[Any], Error]:
        """Perform an HTTP request to the API.

        Args:
            method: HTTP method (``GET``, ``POST``, ``PATCH`` ...).
            path: Path relative to :attr:`base_url` (e.g. ``/services``).
            params: Query parameters; ``None`` values are dropped.
            json_body: JSON body to send.
            agent: Send the agent key header.
        Returns:
            A tuple ``(data, error)``.
        """
        url = f"{self.base_url}{path}"
        headers: Dict[str, str] = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        if agent:
            if not self.agent_key:
                return None, {"status_code": None, "message": "Agent key is not configured"}
            headers["x-agent-key"] = self.agent_key
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        try:
            logger.debug("Sending %s request to %s", method, url)
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=json_body,
                headers=headers,
                timeout=15,
            )
            response.raise_for_status()
            if response.content:
                return response.json(), None
            return None, None
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            message = ""
            if exc.response is not None:
                try:
                    err_json = exc.response.json()
                    message = err_json.get("detail") or err_json.get("message") or str(err_json)
                except ValueError:
                    message = exc.response.text
            if not message:
                message = str(exc)
            logger.error("API request failed (%s): %s", status, message)
            return None, {"status_code": status, "message": message}
        except requests.RequestException as exc:
            logger.error("API request failed: %s", exc)
            return None, {"status_code": None, "message": str(exc)}

    def _list(self, path: str, params: Dict[str, Any] | None = None, *, agent: bool = False) -> Tuple[List[Dict[str, Any]], Error]:
        data, error = self._request("GET", path, params=params, agent=agent)
        if error:
            return [], error
        return (data if isinstance(data, list) else []), None

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------
    def search_services(self, query: str, limit: int = 20) -> Tuple[List[Dict[str, Any]], Error]:
        """Search the catalog by free text (French or English)."""
        return self._list("/services/search", {"q": query, "limit": limit})

    def list_services(self, category: Optional[str] = None) -> Tuple[List[Dict[str, Any]], Error]:
        return self._list("/services", {"category": category})

    # ------------------------------------------------------------------
    # Providers
    # ------------------------------------------------------------------
    def list_therapists(
        self,
        city: Optional[str] = None,
        quarter: Optional[str] = None,
        service_id: Optional[int] = None,
    ) -> Tuple[List[Dict[str, Any]], Error]:
        return self._list("/therapists", {"city": city, "quarter": quarter, "service_id": service_id})

    def get_therapist(self, therapist_id: int) -> Tuple[Optional[Dict[str, Any]], Error]:
        return self._request("GET", f"/therapists/{therapist_id}")

    def get_therapist_services(self, therapist_id: int) -> Tuple[List[Dict[str, Any]], Error]:
        """Services offered by a therapist with their effective price and duration."""
        return self._list(f"/therapists/{therapist_id}/services")

    def nearby_providers(
        self,
        lat: float,
        lng: float,
        radius_meters: Optional[float] = None,
        client_city: Optional[str] = None,
        client_district: Optional[str] = None,
        filter_service_id: Optional[int] = None,
    ) -> Tuple[List[Dict[str, Any]], Error]:
        return self._list(
            "/providers/nearby",
            {
                "lat": lat,
                "lng": lng,
                "radius_meters": radius_meters,
                "client_city": client_city,
                "client_district": client_district,
                "filter_service_id": filter_service_id,
            },
        )

    # ------------------------------------------------------------------
    # Agent bookings
    # ------------------------------------------------------------------
    def create_booking(self, payload: Dict[str, Any]) -> Tuple[Optional[Dict[str, Any]], Error]:
        """Book for a customer.

        ``payload`` uses the agent field names: ``customerPhone``,
        ``customerName``, ``serviceIds``, ``therapistId`` or ``salonId``,
        ``scheduledAt``, ``city``, ``quarter``, ``street``, ``notes``.
        """
        return self._request("POST", "/bookings/agent", json_body=payload, agent=True)

    def get_client_bookings(self, phone: str) -> Tuple[List[Dict[str, Any]], Error]:
        return self._list(f"/bookings/agent/client/{phone}", agent=True)

    def modify_booking(self, booking_id: int, changes: Dict[str, Any]) -> Tuple[Optional[Dict[str, Any]], Error]:
        """Change ``scheduledAt``, ``notes``, ``quarter`` or ``street`` of a booking."""
        return self._request("PATCH", f"/bookings/agent/{booking_id}", json_body=changes, agent=True)

    def cancel_booking(self, booking_id: int, reason: str = DEFAULT_CANCEL_REASON) -> Tuple[Optional[Dict[str, Any]], Error]:
        return self._request("PATCH", f"/bookings/agent/{booking_id}/cancel", json_body={"reason": reason}, agent=True)

    # ------------------------------------------------------------------
    # Catalog maintenance (admin token required)
    # ------------------------------------------------------------------
    def find_duplicates(self) -> Tuple[Optional[Dict[str, Any]], Error]:
        return self._request("GET", "/services/duplicates")

    def cleanup_duplicates(self, dry_run: bool = False) -> Tuple[Optional[Dict[str, Any]], Error]:
        return self._request("POST", "/services/duplicates/cleanup", params={"dry_run": str(dry_run).lower()})
