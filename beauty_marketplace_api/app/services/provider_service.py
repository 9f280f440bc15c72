"""
Logic shared by both kinds of providers (therapists and salons).

* Offerings: the catalog services a provider performs, with optional
  price and duration overrides.
* Provider summaries embedded in booking responses.
* The nearest-provider lookup used by the search screens and the
  ``check_nearby_providers`` script.
"""

import logging
import math
from typing import Dict, List, Optional, Tuple

from beauty_marketplace_api.app.core.config import settings
from beauty_marketplace_api.app.core.db import get_connection, loads_json
from beauty_marketplace_api.app.core.security import is_admin
from beauty_marketplace_api.app.schemas.provider import NearbyProvider, OfferingCreate, OfferingRead
from beauty_marketplace_api.app.services.audit_service import AuditService


logger = logging.getLogger(__name__)

EARTH_RADIUS_METERS = 6_371_000

# provider type -> (provider table, owner column, offerings table, offerings fk)
PROVIDER_TABLES: Dict[str, Tuple[str, str, str, str]] = {
    "therapist": ("therapists", "user_id", "therapist_services", "therapist_id"),
    "salon": ("salons", "owner_id", "salon_services", "salon_id"),
}


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in meters."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlmb = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(math.sqrt(a))


def _same(a: Optional[str], b: Optional[str]) -> bool:
    return bool(a) and bool(b) and a.strip().lower() == b.strip().lower()


def _tables(provider_type: str) -> Tuple[str, str, str, str]:
    try:
        return PROVIDER_TABLES[provider_type]
    except KeyError:
        raise ValueError(f"Unknown provider type {provider_type}")


class ProviderService:
    """Operations common to therapists and salons."""

    @classmethod
    def check_owner(cls, provider_type: str, provider_id: int, current_user: dict) -> None:
        """Raise unless ``current_user`` owns the provider or is an admin.

        ``ValueError`` when the provider does not exist,
        ``PermissionError`` when the user may not manage it.
        """
        table, owner_col, _, _ = _tables(provider_type)
        conn = get_connection()
        try:
            row = conn.execute(f"SELECT {owner_col} FROM {table} WHERE id = ?", (provider_id,)).fetchone()
        finally:
            conn.close()
        if not row:
            raise ValueError(f"{provider_type.capitalize()} {provider_id} not found")
        if not is_admin(current_user) and row[owner_col] != current_user.get("user_id"):
            raise PermissionError(f"Not allowed to manage {provider_type} {provider_id}")

    @classmethod
    async def add_offering(
        cls,
        provider_type: str,
        provider_id: int,
        data: OfferingCreate,
        current_user: dict,
    ) -> OfferingRead:
        """Attach (or re-price) a catalog service for a provider."""
        cls.check_owner(provider_type, provider_id, current_user)
        _, _, offer_table, offer_fk = _tables(provider_type)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            service = cursor.execute("SELECT id FROM services WHERE id = ?", (data.service_id,)).fetchone()
            if not service:
                raise ValueError(f"Service {data.service_id} not found")
            cursor.execute(
                f"INSERT INTO {offer_table} ({offer_fk}, service_id, price, duration) VALUES (?, ?, ?, ?) "
                f"ON CONFLICT({offer_fk}, service_id) DO UPDATE SET price = excluded.price, duration = excluded.duration",
                (provider_id, data.service_id, data.price, data.duration),
            )
            conn.commit()
        finally:
            conn.close()
        await AuditService.log(
            current_user.get("user_id"),
            "create",
            f"{provider_type}_service",
            provider_id,
            {"service_id": data.service_id, "price": data.price},
        )
        offerings = await cls.list_offerings(provider_type, provider_id)
        return next(o for o in offerings if o.service_id == data.service_id)

    @classmethod
    async def list_offerings(cls, provider_type: str, provider_id: int) -> List[OfferingRead]:
        table, _, offer_table, offer_fk = _tables(provider_type)
        conn = get_connection()
        try:
            if not conn.execute(f"SELECT id FROM {table} WHERE id = ?", (provider_id,)).fetchone():
                raise ValueError(f"{provider_type.capitalize()} {provider_id} not found")
            rows = conn.execute(
                f"""
                SELECT s.id AS service_id, s.name_fr, s.name_en, s.category,
                       COALESCE(o.price, s.base_price) AS price,
                       COALESCE(o.duration, s.duration) AS duration
                FROM {offer_table} o JOIN services s ON s.id = o.service_id
                WHERE o.{offer_fk} = ?
                ORDER BY s.name_fr
                """,
                (provider_id,),
            ).fetchall()
        finally:
            conn.close()
        return [OfferingRead(**dict(r)) for r in rows]

    @classmethod
    def price_service(
        cls,
        service_id: int,
        therapist_id: Optional[int] = None,
        salon_id: Optional[int] = None,
    ) -> Tuple[str, float, int]:
        """Return ``(name, price, duration)`` for a service at a provider.

        The provider's own price and duration win; missing values fall
        back to the catalog base price and duration.
        """
        provider_type, provider_id = ("therapist", therapist_id) if therapist_id else ("salon", salon_id)
        _, _, offer_table, offer_fk = _tables(provider_type)
        conn = get_connection()
        try:
            row = conn.execute(
                f"""
                SELECT s.name_fr, s.base_price, s.duration, o.price AS o_price, o.duration AS o_duration
                FROM services s
                LEFT JOIN {offer_table} o ON o.service_id = s.id AND o.{offer_fk} = ?
                WHERE s.id = ?
                """,
                (provider_id, service_id),
            ).fetchone()
        finally:
            conn.close()
        if not row:
            raise ValueError(f"Service {service_id} not found")
        price = row["o_price"] if row["o_price"] is not None else row["base_price"]
        duration = row["o_duration"] if row["o_duration"] is not None else row["duration"]
        return row["name_fr"], float(price or 0), int(duration or 0)

    @classmethod
    def provider_summary(
        cls,
        therapist_id: Optional[int] = None,
        salon_id: Optional[int] = None,
    ) -> Optional[dict]:
        """Compact provider description embedded in booking responses."""
        conn = get_connection()
        try:
            if therapist_id:
                row = conn.execute(
                    """
                    SELECT t.id, t.user_id, t.business_name, t.profile_image, t.city, t.region, t.rating,
                           u.first_name, u.last_name, u.phone, u.email
                    FROM therapists t JOIN users u ON u.id = t.user_id
                    WHERE t.id = ?
                    """,
                    (therapist_id,),
                ).fetchone()
                if row:
                    return {"type": "therapist", **dict(row)}
            elif salon_id:
                row = conn.execute(
                    """
                    SELECT s.id, s.owner_id, s.name_fr, s.name_en, s.logo, s.cover_image, s.city, s.region,
                           s.rating, u.phone, u.email
                    FROM salons s JOIN users u ON u.id = s.owner_id
                    WHERE s.id = ?
                    """,
                    (salon_id,),
                ).fetchone()
                if row:
                    return {"type": "salon", **dict(row)}
        finally:
            conn.close()
        return None

    @classmethod
    def exists(cls, provider_type: str, provider_id: int) -> bool:
        table = _tables(provider_type)[0]
        conn = get_connection()
        try:
            return conn.execute(f"SELECT 1 FROM {table} WHERE id = ?", (provider_id,)).fetchone() is not None
        finally:
            conn.close()

    @classmethod
    def owned_provider_ids(cls, user_id: int) -> Dict[str, List[int]]:
        """Ids of the therapist profile and salons owned by ``user_id``."""
        conn = get_connection()
        try:
            therapists = conn.execute("SELECT id FROM therapists WHERE user_id = ?", (user_id,)).fetchall()
            salons = conn.execute("SELECT id FROM salons WHERE owner_id = ?", (user_id,)).fetchall()
        finally:
            conn.close()
        return {"therapist": [r["id"] for r in therapists], "salon": [r["id"] for r in salons]}

    # ------------------------------------------------------------------
    # Nearest-provider lookup
    # ------------------------------------------------------------------

    @classmethod
    async def nearby_providers(
        cls,
        lat: float,
        lng: float,
        radius_meters: Optional[float] = None,
        client_city: Optional[str] = None,
        client_district: Optional[str] = None,
        filter_service_id: Optional[int] = None,
        limit: int = 50,
    ) -> List[NearbyProvider]:
        """Active providers around ``(lat, lng)``, nearest first.

        A therapist is located by its own coordinates and every geocoded
        service zone; the closest point counts.  Providers without any
        coordinates are returned after the located ones when the client's
        city (and district, if given) matches their city or a zone.
        """
        radius = radius_meters if radius_meters is not None else settings.nearby_default_radius_meters
        conn = get_connection()
        try:
            therapist_sql = (
                "SELECT t.id, t.business_name, t.city, t.latitude, t.longitude, t.service_zones, t.rating, "
                "u.first_name, u.last_name FROM therapists t JOIN users u ON u.id = t.user_id "
                "WHERE t.is_active = 1"
            )
            salon_sql = (
                "SELECT s.id, s.name_fr, s.city, s.quarter, s.latitude, s.longitude, s.rating "
                "FROM salons s WHERE s.is_active = 1"
            )
            t_params: tuple = ()
            s_params: tuple = ()
            if filter_service_id is not None:
                therapist_sql += " AND t.id IN (SELECT therapist_id FROM therapist_services WHERE service_id = ?)"
                salon_sql += " AND s.id IN (SELECT salon_id FROM salon_services WHERE service_id = ?)"
                t_params = s_params = (filter_service_id,)
            therapists = conn.execute(therapist_sql, t_params).fetchall()
            salons = conn.execute(salon_sql, s_params).fetchall()
        finally:
            conn.close()

        located: List[NearbyProvider] = []
        text_matches: List[NearbyProvider] = []

        for row in therapists:
            zones = loads_json(row["service_zones"], []) or []
            zones = [{"city": z} if isinstance(z, str) else z for z in zones]
            points = []
            if row["latitude"] is not None and row["longitude"] is not None:
                points.append((row["latitude"], row["longitude"]))
            points.extend(
                (z["latitude"], z["longitude"])
                for z in zones
                if z.get("latitude") is not None and z.get("longitude") is not None
            )
            name = row["business_name"] or " ".join(p for p in (row["first_name"], row["last_name"]) if p)
            entry = NearbyProvider(provider_type="therapist", id=row["id"], name=name, city=row["city"], rating=row["rating"])
            if points:
                distance = min(haversine_meters(lat, lng, p[0], p[1]) for p in points)
                if distance <= radius:
                    entry.distance_meters = round(distance, 1)
                    located.append(entry)
            elif client_city:
                city_match = _same(row["city"], client_city) or any(_same(z.get("city"), client_city) for z in zones)
                district_match = not client_district or any(_same(z.get("district"), client_district) for z in zones)
                if city_match and district_match:
                    text_matches.append(entry)

        for row in salons:
            entry = NearbyProvider(provider_type="salon", id=row["id"], name=row["name_fr"], city=row["city"], rating=row["rating"])
            if row["latitude"] is not None and row["longitude"] is not None:
                distance = haversine_meters(lat, lng, row["latitude"], row["longitude"])
                if distance <= radius:
                    entry.distance_meters = round(distance, 1)
                    located.append(entry)
            elif client_city and _same(row["city"], client_city):
                if not client_district or _same(row["quarter"], client_district):
                    text_matches.append(entry)

        located.sort(key=lambda p: (p.distance_meters, -p.rating))
        text_matches.sort(key=lambda p: -p.rating)
        results = (located + text_matches)[:limit]
        logger.info(
            "Nearby lookup (%s, %s) r=%sm service=%s -> %d providers",
            lat, lng, radius, filter_service_id, len(results),
        )
        return results
