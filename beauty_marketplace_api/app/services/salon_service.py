"""
Business logic for salons.

Unlike therapists, a salon has a single fixed address; a provider
account may own several salons.
"""

import logging
import sqlite3
from typing import List, Optional

from beauty_marketplace_api.app.core.db import get_connection
from beauty_marketplace_api.app.schemas.provider import SalonCreate, SalonRead, SalonUpdate
from beauty_marketplace_api.app.services.audit_service import AuditService
from beauty_marketplace_api.app.services.provider_service import ProviderService


logger = logging.getLogger(__name__)

SALON_COLUMNS = (
    "id, owner_id, name_fr, name_en, city, region, quarter, latitude, longitude, logo, "
    "cover_image, rating, review_count, is_active"
)


def _row_to_salon(row: sqlite3.Row) -> SalonRead:
    data = dict(row)
    data["is_active"] = bool(data["is_active"])
    return SalonRead(**data)


class SalonService:
    """Service for salons."""

    @classmethod
    async def create_salon(cls, data: SalonCreate, current_user: dict) -> SalonRead:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT INTO salons (owner_id, name_fr, name_en, city, region, quarter, latitude, longitude, "
                "logo, cover_image) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    current_user.get("user_id"),
                    data.name_fr,
                    data.name_en,
                    data.city,
                    data.region,
                    data.quarter,
                    data.latitude,
                    data.longitude,
                    data.logo,
                    data.cover_image,
                ),
            )
            salon_id = cursor.lastrowid
            conn.commit()
        finally:
            conn.close()
        logger.info("User %s created salon %s", current_user.get("user_id"), salon_id)
        await AuditService.log(current_user.get("user_id"), "create", "salon", salon_id, {"name_fr": data.name_fr})
        return await cls.get_salon(salon_id)

    @classmethod
    async def get_salon(cls, salon_id: int) -> SalonRead:
        conn = get_connection()
        try:
            row = conn.execute(f"SELECT {SALON_COLUMNS} FROM salons WHERE id = ?", (salon_id,)).fetchone()
        finally:
            conn.close()
        if not row:
            raise ValueError(f"Salon {salon_id} not found")
        return _row_to_salon(row)

    @classmethod
    async def list_salons(
        cls,
        city: Optional[str] = None,
        quarter: Optional[str] = None,
        service_id: Optional[int] = None,
    ) -> List[SalonRead]:
        query = f"SELECT {SALON_COLUMNS} FROM salons WHERE is_active = 1"
        params: list = []
        if city:
            query += " AND LOWER(city) = LOWER(?)"
            params.append(city.strip())
        if quarter:
            query += " AND LOWER(quarter) = LOWER(?)"
            params.append(quarter.strip())
        if service_id is not None:
            query += " AND id IN (SELECT salon_id FROM salon_services WHERE service_id = ?)"
            params.append(service_id)
        query += " ORDER BY rating DESC, id ASC"
        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
        finally:
            conn.close()
        return [_row_to_salon(r) for r in rows]

    @classmethod
    async def update_salon(cls, salon_id: int, data: SalonUpdate, current_user: dict) -> SalonRead:
        ProviderService.check_owner("salon", salon_id, current_user)
        updates = data.model_dump(exclude_unset=True)
        if updates.get("is_active") is None:
            updates.pop("is_active", None)
        else:
            updates["is_active"] = 1 if updates["is_active"] else 0
        if updates:
            fields = ", ".join(f"{key} = ?" for key in updates)
            conn = get_connection()
            try:
                conn.execute(
                    f"UPDATE salons SET {fields}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    tuple(updates.values()) + (salon_id,),
                )
                conn.commit()
            finally:
                conn.close()
            await AuditService.log(current_user.get("user_id"), "update", "salon", salon_id, {"fields": sorted(updates)})
        return await cls.get_salon(salon_id)
