"""
Business logic for independent therapists.

A provider account owns at most one therapist profile.  Whenever the
service zones of a profile are saved they are passed through the
geocoder so that the nearest-provider lookup can use them.
"""

import logging
import sqlite3
from typing import List, Optional

from beauty_marketplace_api.app.core.db import dumps_json, get_connection, loads_json
from beauty_marketplace_api.app.schemas.provider import TherapistCreate, TherapistRead, TherapistUpdate
from beauty_marketplace_api.app.services import geocoding_service
from beauty_marketplace_api.app.services.audit_service import AuditService
from beauty_marketplace_api.app.services.provider_service import ProviderService


logger = logging.getLogger(__name__)

THERAPIST_COLUMNS = (
    "id, user_id, business_name, bio, city, region, latitude, longitude, service_zones, "
    "profile_image, rating, review_count, is_active"
)


def _row_to_therapist(row: sqlite3.Row) -> TherapistRead:
    return TherapistRead(
        id=row["id"],
        user_id=row["user_id"],
        business_name=row["business_name"],
        bio=row["bio"],
        city=row["city"],
        region=row["region"],
        latitude=row["latitude"],
        longitude=row["longitude"],
        service_zones=loads_json(row["service_zones"], []) or [],
        profile_image=row["profile_image"],
        rating=row["rating"],
        review_count=row["review_count"],
        is_active=bool(row["is_active"]),
    )


async def _enrich(zones) -> list:
    enriched = await geocoding_service.geocoder.enrich_service_zones(zones)
    return [z.model_dump(exclude_none=True) for z in enriched]


class TherapistService:
    """Service for therapist profiles."""

    @classmethod
    async def create_therapist(cls, data: TherapistCreate, current_user: dict) -> TherapistRead:
        user_id = current_user.get("user_id")
        conn = get_connection()
        try:
            existing = conn.execute("SELECT id FROM therapists WHERE user_id = ?", (user_id,)).fetchone()
        finally:
            conn.close()
        if existing:
            raise ValueError(f"User {user_id} already has a therapist profile")

        zones = await _enrich(data.service_zones)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT INTO therapists (user_id, business_name, bio, city, region, latitude, longitude, "
                "service_zones, profile_image) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    user_id,
                    data.business_name,
                    data.bio,
                    data.city,
                    data.region,
                    data.latitude,
                    data.longitude,
                    dumps_json(zones),
                    data.profile_image,
                ),
            )
            therapist_id = cursor.lastrowid
            conn.commit()
        finally:
            conn.close()
        logger.info("User %s created therapist profile %s", user_id, therapist_id)
        await AuditService.log(user_id, "create", "therapist", therapist_id, {"zones": len(zones)})
        return await cls.get_therapist(therapist_id)

    @classmethod
    async def get_therapist(cls, therapist_id: int) -> TherapistRead:
        conn = get_connection()
        try:
            row = conn.execute(f"SELECT {THERAPIST_COLUMNS} FROM therapists WHERE id = ?", (therapist_id,)).fetchone()
        finally:
            conn.close()
        if not row:
            raise ValueError(f"Therapist {therapist_id} not found")
        return _row_to_therapist(row)

    @classmethod
    async def list_therapists(
        cls,
        city: Optional[str] = None,
        quarter: Optional[str] = None,
        service_id: Optional[int] = None,
        include_inactive: bool = False,
    ) -> List[TherapistRead]:
        """List therapists, filtered by city, quarter (zone district) or service.

        A therapist matches a city when its own city or one of its zones
        is in that city.
        """
        query = f"SELECT {THERAPIST_COLUMNS} FROM therapists"
        where: List[str] = []
        params: list = []
        if not include_inactive:
            where.append("is_active = 1")
        if service_id is not None:
            where.append("id IN (SELECT therapist_id FROM therapist_services WHERE service_id = ?)")
            params.append(service_id)
        if where:
            query += " WHERE " + " AND ".join(where)
        query += " ORDER BY rating DESC, id ASC"
        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
        finally:
            conn.close()

        therapists = [_row_to_therapist(r) for r in rows]
        if city:
            c = city.strip().lower()
            therapists = [
                t for t in therapists
                if (t.city or "").lower() == c or any(z.city.lower() == c for z in t.service_zones)
            ]
        if quarter:
            q = quarter.strip().lower()
            therapists = [t for t in therapists if any((z.district or "").lower() == q for z in t.service_zones)]
        return therapists

    @classmethod
    async def update_therapist(cls, therapist_id: int, data: TherapistUpdate, current_user: dict) -> TherapistRead:
        ProviderService.check_owner("therapist", therapist_id, current_user)
        updates = data.model_dump(exclude_unset=True)
        if "service_zones" in updates:
            updates["service_zones"] = dumps_json(await _enrich(data.service_zones or []))
        if updates.get("is_active") is None:
            updates.pop("is_active", None)
        else:
            updates["is_active"] = 1 if updates["is_active"] else 0
        if updates:
            fields = ", ".join(f"{key} = ?" for key in updates)
            conn = get_connection()
            try:
                conn.execute(
                    f"UPDATE therapists SET {fields}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    tuple(updates.values()) + (therapist_id,),
                )
                conn.commit()
            finally:
                conn.close()
            await AuditService.log(
                current_user.get("user_id"), "update", "therapist", therapist_id, {"fields": sorted(updates)}
            )
        return await cls.get_therapist(therapist_id)

    @classmethod
    async def regeocode_all(cls) -> dict:
        """Geocode the zones of every therapist that still has zones without coordinates.

        Each therapist is processed independently; a failure is logged and
        counted, and the loop moves on.
        """
        conn = get_connection()
        try:
            rows = conn.execute(
                "SELECT id, business_name, service_zones FROM therapists WHERE service_zones IS NOT NULL"
            ).fetchall()
        finally:
            conn.close()
        logger.info("Found %d therapists with service zones", len(rows))

        stats = {"updated": 0, "skipped": 0, "errors": 0}
        for row in rows:
            label = row["business_name"] or row["id"]
            zones = loads_json(row["service_zones"], [])
            if not isinstance(zones, list) or not zones:
                logger.info("Therapist %s: no zones to process", label)
                stats["skipped"] += 1
                continue
            if all(
                isinstance(z, dict) and z.get("latitude") is not None and z.get("longitude") is not None
                for z in zones
            ):
                logger.info("Therapist %s: all zones already have coordinates", label)
                stats["skipped"] += 1
                continue
            try:
                enriched = await _enrich(zones)
                conn = get_connection()
                try:
                    conn.execute(
                        "UPDATE therapists SET service_zones = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                        (dumps_json(enriched), row["id"]),
                    )
                    conn.commit()
                finally:
                    conn.close()
            except Exception as e:  # noqa: BLE001
                logger.error("Therapist %s: failed to update zones: %s", label, e)
                stats["errors"] += 1
                continue
            done = sum(1 for z in enriched if z.get("latitude") is not None)
            logger.info("Therapist %s: %d/%d zones enriched", label, done, len(zones))
            stats["updated"] += 1
        stats["cache_size"] = geocoding_service.geocoder.cache_stats()["size"]
        return stats
