"""
Business logic for the services catalog.

Besides plain CRUD this module hosts the catalog maintenance routines
used by the admin console and the ``check_duplicates`` /
``cleanup_duplicates`` scripts.  Repeated seeding left several copies
of the same service (same French name); ``find_duplicates`` reports
them and ``cleanup_duplicates`` keeps the newest copy of each name and
deletes the others in fixed-size batches.  Batches are independent:
a failing batch is logged and the cleanup moves on to the next one.
"""

import logging
import sqlite3
from typing import Dict, List, Optional

from beauty_marketplace_api.app.core.config import settings
from beauty_marketplace_api.app.core.db import dumps_json, get_connection, loads_json
from beauty_marketplace_api.app.schemas.service import (
    CleanupReport,
    DuplicateGroup,
    DuplicateReport,
    ServiceCreate,
    ServiceRead,
    ServiceUpdate,
)
from beauty_marketplace_api.app.services.audit_service import AuditService


logger = logging.getLogger(__name__)

SERVICE_COLUMNS = (
    "id, name_fr, name_en, description_fr, description_en, category, "
    "base_price, duration, images, created_at"
)


def _row_to_service(row: sqlite3.Row) -> ServiceRead:
    return ServiceRead(
        id=row["id"],
        name_fr=row["name_fr"],
        name_en=row["name_en"],
        description_fr=row["description_fr"],
        description_en=row["description_en"],
        category=row["category"],
        base_price=row["base_price"],
        duration=row["duration"],
        images=loads_json(row["images"], []),
        created_at=row["created_at"],
    )


class CatalogService:
    """Service for the catalog of bookable beauty services."""

    @classmethod
    async def list_services(cls, category: Optional[str] = None) -> List[ServiceRead]:
        conn = get_connection()
        try:
            if category:
                rows = conn.execute(
                    f"SELECT {SERVICE_COLUMNS} FROM services WHERE LOWER(category) = LOWER(?) ORDER BY name_fr",
                    (category,),
                ).fetchall()
            else:
                rows = conn.execute(f"SELECT {SERVICE_COLUMNS} FROM services ORDER BY name_fr").fetchall()
        finally:
            conn.close()
        return [_row_to_service(r) for r in rows]

    @classmethod
    async def search_services(cls, query: str, limit: int = 20) -> List[ServiceRead]:
        """Case-insensitive substring search over both service names."""
        pattern = f"%{query.strip().lower()}%"
        conn = get_connection()
        try:
            rows = conn.execute(
                f"SELECT {SERVICE_COLUMNS} FROM services "
                "WHERE LOWER(name_fr) LIKE ? OR LOWER(COALESCE(name_en, '')) LIKE ? "
                "ORDER BY name_fr LIMIT ?",
                (pattern, pattern, limit),
            ).fetchall()
        finally:
            conn.close()
        return [_row_to_service(r) for r in rows]

    @classmethod
    async def get_service(cls, service_id: int) -> ServiceRead:
        conn = get_connection()
        try:
            row = conn.execute(f"SELECT {SERVICE_COLUMNS} FROM services WHERE id = ?", (service_id,)).fetchone()
        finally:
            conn.close()
        if not row:
            raise ValueError(f"Service {service_id} not found")
        return _row_to_service(row)

    @classmethod
    async def create_service(cls, data: ServiceCreate, current_user: Optional[dict] = None) -> ServiceRead:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT INTO services (name_fr, name_en, description_fr, description_en, category, "
                "base_price, duration, images) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    data.name_fr,
                    data.name_en,
                    data.description_fr,
                    data.description_en,
                    data.category,
                    data.base_price,
                    data.duration,
                    dumps_json(data.images),
                ),
            )
            service_id = cursor.lastrowid
            conn.commit()
        finally:
            conn.close()
        await AuditService.log(
            current_user.get("user_id") if current_user else None,
            "create",
            "service",
            service_id,
            {"name_fr": data.name_fr},
        )
        return await cls.get_service(service_id)

    @classmethod
    async def update_service(cls, service_id: int, data: ServiceUpdate, current_user: Optional[dict] = None) -> ServiceRead:
        updates = data.model_dump(exclude_unset=True)
        await cls.get_service(service_id)
        if updates:
            if "images" in updates:
                updates["images"] = dumps_json(updates["images"])
            fields = ", ".join(f"{key} = ?" for key in updates)
            conn = get_connection()
            try:
                conn.execute(
                    f"UPDATE services SET {fields} WHERE id = ?",
                    tuple(updates.values()) + (service_id,),
                )
                conn.commit()
            finally:
                conn.close()
            await AuditService.log(
                current_user.get("user_id") if current_user else None,
                "update",
                "service",
                service_id,
                {k: v for k, v in updates.items() if k != "images"},
            )
        return await cls.get_service(service_id)

    @classmethod
    async def delete_service(cls, service_id: int, current_user: Optional[dict] = None) -> None:
        await cls.get_service(service_id)
        conn = get_connection()
        try:
            conn.execute("DELETE FROM services WHERE id = ?", (service_id,))
            conn.commit()
        finally:
            conn.close()
        await AuditService.log(
            current_user.get("user_id") if current_user else None, "delete", "service", service_id
        )

    # ------------------------------------------------------------------
    # Catalog maintenance
    # ------------------------------------------------------------------

    @classmethod
    async def find_duplicates(cls) -> DuplicateReport:
        """Group services by French name and report names seen more than once."""
        conn = get_connection()
        try:
            rows = conn.execute("SELECT id, name_fr FROM services ORDER BY id").fetchall()
        finally:
            conn.close()

        counts: Dict[str, int] = {}
        ids_by_name: Dict[str, List[int]] = {}
        for row in rows:
            counts[row["name_fr"]] = counts.get(row["name_fr"], 0) + 1
            ids_by_name.setdefault(row["name_fr"], []).append(row["id"])

        duplicates = [DuplicateGroup(name=name, count=count) for name, count in counts.items() if count > 1]
        example_ids = ids_by_name[duplicates[0].name] if duplicates else []
        if duplicates:
            logger.info("Found %d duplicated service names", len(duplicates))
        else:
            logger.info("No duplicates found in catalog")
        return DuplicateReport(total=len(rows), duplicates=duplicates, example_ids=example_ids)

    @classmethod
    def _delete_batch(cls, ids: List[int]) -> None:
        conn = get_connection()
        try:
            placeholders = ", ".join("?" for _ in ids)
            conn.execute(f"DELETE FROM services WHERE id IN ({placeholders})", tuple(ids))
            conn.commit()
        finally:
            conn.close()

    @classmethod
    async def cleanup_duplicates(
        cls,
        dry_run: bool = False,
        batch_size: Optional[int] = None,
        current_user: Optional[dict] = None,
    ) -> CleanupReport:
        """Delete every copy of a service except the newest one per name.

        Rows are walked newest first (``created_at`` then ``id``); the
        first row seen for a name is kept.  Deletion happens in batches
        of ``batch_size`` ids without a surrounding transaction, so a
        failed batch leaves earlier batches deleted.
        """
        batch_size = batch_size or settings.cleanup_batch_size
        conn = get_connection()
        try:
            rows = conn.execute(
                "SELECT id, name_fr, created_at FROM services ORDER BY created_at DESC, id DESC"
            ).fetchall()
        finally:
            conn.close()

        kept: Dict[str, int] = {}
        to_delete: List[int] = []
        for row in rows:
            if row["name_fr"] in kept:
                to_delete.append(row["id"])
            else:
                kept[row["name_fr"]] = row["id"]

        logger.info("Found %d duplicate services to delete, keeping %d unique services", len(to_delete), len(kept))
        report = CleanupReport(found=len(to_delete), kept=len(kept), deleted=0, dry_run=dry_run)
        if dry_run or not to_delete:
            return report

        for start in range(0, len(to_delete), batch_size):
            chunk = to_delete[start:start + batch_size]
            batch_no = start // batch_size + 1
            try:
                cls._delete_batch(chunk)
            except sqlite3.Error as e:
                logger.error("Error deleting batch %d (%d items): %s", batch_no, len(chunk), e)
                report.failed_batches += 1
                continue
            report.deleted += len(chunk)
            logger.info("Deleted batch %d (%d items)", batch_no, len(chunk))

        await AuditService.log(
            current_user.get("user_id") if current_user else None,
            "cleanup",
            "service",
            None,
            report.model_dump(),
        )
        return report
