"""
Business logic for bookings.

A booking is created as ``PENDING`` together with its items and then
moves through a small lifecycle driven by the provider::

    PENDING ──confirm──> CONFIRMED ──start──> IN_PROGRESS ──complete──> COMPLETED
       │                    │
       └──cancel/decline────┴──> CANCELLED

Clients may cancel their own bookings; providers confirm, decline,
start and complete bookings made with them.  Administrators may do
everything.  The messaging agent books on behalf of customers known
only by their phone number (see ``create_agent_booking``).
"""

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Set

from beauty_marketplace_api.app.core.db import get_connection
from beauty_marketplace_api.app.core.security import is_admin
from beauty_marketplace_api.app.schemas.booking import (
    AgentBookingCreate,
    AgentBookingUpdate,
    BookingCreate,
    BookingItemBase,
    BookingItemRead,
    BookingRead,
)
from beauty_marketplace_api.app.services.audit_service import AuditService
from beauty_marketplace_api.app.services.provider_service import ProviderService
from beauty_marketplace_api.app.services.user_service import UserService


logger = logging.getLogger(__name__)

TRANSITIONS: Dict[str, Set[str]] = {
    "PENDING": {"CONFIRMED", "CANCELLED"},
    "CONFIRMED": {"IN_PROGRESS", "CANCELLED"},
    "IN_PROGRESS": {"COMPLETED"},
    "COMPLETED": set(),
    "CANCELLED": set(),
}

BOOKING_FIELDS = (
    "user_id", "therapist_id", "salon_id", "scheduled_at", "duration", "location_type",
    "quarter", "street", "landmark", "city", "region", "latitude", "longitude",
    "instructions", "subtotal", "travel_fee", "tip", "total", "notes",
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class BookingService:
    """Service for managing bookings."""

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @classmethod
    def _insert_items(cls, conn: sqlite3.Connection, booking_id: int, items: Iterable[BookingItemBase]) -> None:
        conn.executemany(
            "INSERT INTO booking_items (booking_id, service_id, service_name, price, duration) "
            "VALUES (?, ?, ?, ?, ?)",
            [(booking_id, i.service_id, i.service_name, i.price, i.duration) for i in items],
        )
        conn.commit()

    @classmethod
    def _load(cls, booking_id: int, with_client: bool = False) -> BookingRead:
        conn = get_connection()
        try:
            row = conn.execute("SELECT * FROM bookings WHERE id = ?", (booking_id,)).fetchone()
            if not row:
                raise ValueError(f"Booking {booking_id} not found")
            items = conn.execute(
                "SELECT id, booking_id, service_id, service_name, price, duration "
                "FROM booking_items WHERE booking_id = ? ORDER BY id",
                (booking_id,),
            ).fetchall()
            client = None
            if with_client:
                client_row = conn.execute(
                    "SELECT id, first_name, last_name, email, phone FROM users WHERE id = ?",
                    (row["user_id"],),
                ).fetchone()
                client = dict(client_row) if client_row else None
        finally:
            conn.close()
        data = {k: row[k] for k in row.keys() if k != "updated_at"}
        return BookingRead(
            **data,
            items=[BookingItemRead(**dict(i)) for i in items],
            provider=ProviderService.provider_summary(row["therapist_id"], row["salon_id"]),
            client=client,
        )

    @classmethod
    def is_provider_of(cls, booking: BookingRead, user_id: Optional[int]) -> bool:
        if user_id is None:
            return False
        owned = ProviderService.owned_provider_ids(user_id)
        return (
            (booking.therapist_id is not None and booking.therapist_id in owned["therapist"])
            or (booking.salon_id is not None and booking.salon_id in owned["salon"])
        )

    @classmethod
    def check_can_view(cls, booking: BookingRead, current_user: dict) -> None:
        user_id = current_user.get("user_id")
        if is_admin(current_user) or booking.user_id == user_id or cls.is_provider_of(booking, user_id):
            return
        raise PermissionError("Insufficient permissions to view this booking")

    # ------------------------------------------------------------------
    # Creation and retrieval
    # ------------------------------------------------------------------

    @classmethod
    async def create_booking(cls, data: BookingCreate, user_id: int) -> BookingRead:
        """Create a PENDING booking with its items.

        If the items cannot be stored the booking row is deleted again
        and ``ValueError`` is raised.
        """
        provider_type, provider_id = (
            ("therapist", data.therapist_id) if data.therapist_id else ("salon", data.salon_id)
        )
        if not ProviderService.exists(provider_type, provider_id):
            raise ValueError(f"{provider_type.capitalize()} {provider_id} not found")

        values = data.model_dump(exclude={"items"})
        values["user_id"] = user_id
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                f"INSERT INTO bookings ({', '.join(BOOKING_FIELDS)}, status) "
                f"VALUES ({', '.join('?' for _ in BOOKING_FIELDS)}, 'PENDING')",
                tuple(values[f] for f in BOOKING_FIELDS),
            )
            booking_id = cursor.lastrowid
            conn.commit()
            if data.items:
                try:
                    cls._insert_items(conn, booking_id, data.items)
                except sqlite3.Error as e:
                    conn.rollback()
                    conn.execute("DELETE FROM bookings WHERE id = ?", (booking_id,))
                    conn.commit()
                    logger.error("Failed to create items for booking %s, booking removed: %s", booking_id, e)
                    raise ValueError(f"Failed to create booking items: {e}")
        finally:
            conn.close()

        logger.info("User %s booked %s %s (booking %s)", user_id, provider_type, provider_id, booking_id)
        await AuditService.log(
            user_id,
            "create",
            "booking",
            booking_id,
            {provider_type + "_id": provider_id, "total": data.total, "items": len(data.items)},
        )
        return cls._load(booking_id)

    @classmethod
    async def get_booking(cls, booking_id: int, current_user: Optional[dict] = None) -> BookingRead:
        booking = cls._load(booking_id, with_client=True)
        if current_user is not None:
            cls.check_can_view(booking, current_user)
        return booking

    @classmethod
    async def list_bookings(cls, user_id: Optional[int] = None, status: Optional[str] = None) -> List[BookingRead]:
        """Bookings of ``user_id`` (all bookings when ``None``), newest first."""
        query = "SELECT id FROM bookings"
        where: List[str] = []
        params: list = []
        if user_id is not None:
            where.append("user_id = ?")
            params.append(user_id)
        if status:
            where.append("status = ?")
            params.append(status.upper())
        if where:
            query += " WHERE " + " AND ".join(where)
        query += " ORDER BY created_at DESC, id DESC"
        conn = get_connection()
        try:
            ids = [r["id"] for r in conn.execute(query, tuple(params)).fetchall()]
        finally:
            conn.close()
        return [cls._load(i) for i in ids]

    @classmethod
    async def list_for_provider(
        cls,
        provider_id: int,
        provider_type: str = "therapist",
        status: Optional[str] = None,
    ) -> List[BookingRead]:
        """Bookings made with one provider, each with its client details."""
        if not ProviderService.exists(provider_type, provider_id):
            raise ValueError(f"{provider_type.capitalize()} {provider_id} not found")
        column = "therapist_id" if provider_type == "therapist" else "salon_id"
        query = f"SELECT id FROM bookings WHERE {column} = ?"
        params: list = [provider_id]
        if status:
            query += " AND status = ?"
            params.append(status.upper())
        query += " ORDER BY created_at DESC, id DESC"
        conn = get_connection()
        try:
            ids = [r["id"] for r in conn.execute(query, tuple(params)).fetchall()]
        finally:
            conn.close()
        logger.info("Found %d bookings for %s %s", len(ids), provider_type, provider_id)
        return [cls._load(i, with_client=True) for i in ids]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @classmethod
    async def _transition(
        cls,
        booking_id: int,
        new_status: str,
        acting_user_id: Optional[int],
        reason: Optional[str] = None,
    ) -> BookingRead:
        booking = cls._load(booking_id)
        if new_status not in TRANSITIONS.get(booking.status, set()):
            raise ValueError(f"Cannot move booking {booking_id} from {booking.status} to {new_status}")
        conn = get_connection()
        try:
            if new_status == "CANCELLED":
                conn.execute(
                    "UPDATE bookings SET status = ?, cancelled_at = ?, cancel_reason = ?, "
                    "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    (new_status, _now(), reason, booking_id),
                )
            else:
                conn.execute(
                    "UPDATE bookings SET status = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    (new_status, booking_id),
                )
            conn.commit()
        finally:
            conn.close()
        logger.info("Booking %s: %s -> %s", booking_id, booking.status, new_status)
        details = {"from": booking.status, "to": new_status}
        if reason:
            details["reason"] = reason
        await AuditService.log(acting_user_id, new_status.lower(), "booking", booking_id, details)
        return cls._load(booking_id)

    @classmethod
    def _check_provider_action(cls, booking_id: int, current_user: dict) -> None:
        booking = cls._load(booking_id)
        if not is_admin(current_user) and not cls.is_provider_of(booking, current_user.get("user_id")):
            raise PermissionError("Only the booked provider can manage this booking")

    @classmethod
    async def cancel_booking(cls, booking_id: int, current_user: dict, reason: Optional[str] = None) -> BookingRead:
        """Cancel a booking as its client (or an administrator)."""
        booking = cls._load(booking_id)
        if not is_admin(current_user) and booking.user_id != current_user.get("user_id"):
            raise PermissionError("Only the client who booked can cancel this booking")
        return await cls._transition(booking_id, "CANCELLED", current_user.get("user_id"), reason)

    @classmethod
    async def confirm_booking(cls, booking_id: int, current_user: dict) -> BookingRead:
        cls._check_provider_action(booking_id, current_user)
        return await cls._transition(booking_id, "CONFIRMED", current_user.get("user_id"))

    @classmethod
    async def decline_booking(cls, booking_id: int, reason: str, current_user: dict) -> BookingRead:
        cls._check_provider_action(booking_id, current_user)
        return await cls._transition(booking_id, "CANCELLED", current_user.get("user_id"), reason)

    @classmethod
    async def start_booking(cls, booking_id: int, current_user: dict) -> BookingRead:
        cls._check_provider_action(booking_id, current_user)
        return await cls._transition(booking_id, "IN_PROGRESS", current_user.get("user_id"))

    @classmethod
    async def complete_booking(cls, booking_id: int, current_user: dict) -> BookingRead:
        cls._check_provider_action(booking_id, current_user)
        return await cls._transition(booking_id, "COMPLETED", current_user.get("user_id"))

    # ------------------------------------------------------------------
    # Agent bookings
    # ------------------------------------------------------------------

    @classmethod
    async def create_agent_booking(cls, dto: AgentBookingCreate) -> BookingRead:
        """Book on behalf of a customer identified by phone number.

        Finds or creates the customer, prices each requested service at
        the chosen provider (falling back to catalog prices) and creates
        a HOME booking whose subtotal, total and duration are the sums
        over the items.
        """
        logger.info("Creating agent booking for %s", dto.customerPhone)
        provider_type, provider_id = (
            ("therapist", dto.therapistId) if dto.therapistId else ("salon", dto.salonId)
        )
        if not ProviderService.exists(provider_type, provider_id):
            raise ValueError(f"{provider_type.capitalize()} {provider_id} not found")

        items: List[BookingItemBase] = []
        for service_id in dto.serviceIds:
            name, price, duration = ProviderService.price_service(service_id, dto.therapistId, dto.salonId)
            items.append(BookingItemBase(service_id=service_id, service_name=name, price=price, duration=duration))
        total = sum(i.price for i in items)

        user_id = await UserService.find_or_create_guest(dto.customerPhone, dto.customerName)
        booking = BookingCreate(
            therapist_id=dto.therapistId,
            salon_id=dto.salonId,
            scheduled_at=dto.scheduledAt,
            duration=sum(i.duration for i in items),
            location_type="HOME",
            quarter=dto.quarter,
            street=dto.street,
            city=dto.city,
            subtotal=total,
            total=total,
            notes=dto.notes,
            items=items,
        )
        return await cls.create_booking(booking, user_id)

    @classmethod
    async def list_by_phone(cls, phone: str) -> List[BookingRead]:
        conn = get_connection()
        try:
            rows = conn.execute("SELECT id FROM users WHERE phone = ?", (phone,)).fetchall()
        finally:
            conn.close()
        bookings: List[BookingRead] = []
        for row in rows:
            bookings.extend(await cls.list_bookings(user_id=row["id"]))
        bookings.sort(key=lambda b: (b.created_at or "", b.id), reverse=True)
        return bookings

    @classmethod
    async def modify_agent_booking(cls, booking_id: int, dto: AgentBookingUpdate) -> BookingRead:
        """Change date, notes or address of a booking that has not started."""
        booking = cls._load(booking_id)
        if booking.status not in ("PENDING", "CONFIRMED"):
            raise ValueError(f"Booking {booking_id} can no longer be modified ({booking.status})")
        mapping = {"scheduledAt": "scheduled_at", "notes": "notes", "quarter": "quarter", "street": "street"}
        updates = {mapping[k]: v for k, v in dto.model_dump(exclude_unset=True).items()}
        if updates:
            fields = ", ".join(f"{k} = ?" for k in updates)
            conn = get_connection()
            try:
                conn.execute(
                    f"UPDATE bookings SET {fields}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    tuple(updates.values()) + (booking_id,),
                )
                conn.commit()
            finally:
                conn.close()
            await AuditService.log(None, "update", "booking", booking_id, {"agent": True, **updates})
        return cls._load(booking_id)

    @classmethod
    async def cancel_agent_booking(cls, booking_id: int, reason: Optional[str] = None) -> BookingRead:
        return await cls._transition(booking_id, "CANCELLED", None, reason or "Annulé via WhatsApp")
