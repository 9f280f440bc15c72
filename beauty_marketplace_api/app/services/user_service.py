"""
Business logic for user accounts.

Covers registration, password authentication, profile updates, the
provider role check used by the web and mobile clients, and the guest
accounts the messaging agent creates for customers known only by
phone number.
"""

import logging
import sqlite3
import time
from typing import List, Optional

from beauty_marketplace_api.app.core.db import get_connection
from beauty_marketplace_api.app.core.security import (
    ROLE_CLIENT,
    hash_password,
    is_provider_role,
    verify_password,
)
from beauty_marketplace_api.app.schemas.user import UserCreate, UserRead, UserRole
from beauty_marketplace_api.app.services.audit_service import AuditService


logger = logging.getLogger(__name__)

USER_COLUMNS = "id, email, first_name, last_name, phone, role, is_verified, disabled"
VALID_ROLES = {"CLIENT", "PROVIDER", "CONTRACTOR", "ADMIN"}


def _row_to_user(row: sqlite3.Row) -> UserRead:
    return UserRead(
        id=row["id"],
        email=row["email"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        phone=row["phone"],
        role=row["role"],
        is_verified=bool(row["is_verified"]),
        disabled=bool(row["disabled"]),
    )


class UserService:
    """Service for working with user accounts."""

    @classmethod
    async def create_user(cls, data: UserCreate) -> UserRead:
        """Register a new user.

        Raises ``ValueError`` if the e-mail is already taken.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            existing = cursor.execute("SELECT id FROM users WHERE email = ?", (data.email,)).fetchone()
            if existing:
                raise ValueError(f"E-mail {data.email} is already registered")
            cursor.execute(
                "INSERT INTO users (email, phone, first_name, last_name, password, role) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    data.email,
                    data.phone,
                    data.first_name,
                    data.last_name,
                    hash_password(data.password),
                    data.role,
                ),
            )
            user_id = cursor.lastrowid
            conn.commit()
            row = cursor.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,)).fetchone()
        finally:
            conn.close()
        logger.info("Registered user %s (%s) as %s", user_id, data.email, data.role)
        await AuditService.log(None, "create", "user", user_id, {"email": data.email, "role": data.role})
        return _row_to_user(row)

    @classmethod
    async def authenticate(cls, email: str, password: str) -> Optional[UserRead]:
        """Return the user if ``password`` matches, otherwise ``None``."""
        conn = get_connection()
        try:
            row = conn.execute(
                f"SELECT {USER_COLUMNS}, password FROM users WHERE email = ?",
                (email.strip().lower(),),
            ).fetchone()
        finally:
            conn.close()
        if not row or not verify_password(password, row["password"]):
            return None
        return _row_to_user(row)

    @classmethod
    async def get_user_by_id(cls, user_id: int) -> Optional[UserRead]:
        conn = get_connection()
        try:
            row = conn.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,)).fetchone()
        finally:
            conn.close()
        return _row_to_user(row) if row else None

    @classmethod
    async def list_users(cls, role: Optional[str] = None, limit: int = 100, offset: int = 0) -> List[UserRead]:
        conn = get_connection()
        try:
            query = f"SELECT {USER_COLUMNS} FROM users"
            params: list = []
            if role:
                query += " WHERE UPPER(role) = ?"
                params.append(role.upper())
            query += " ORDER BY id ASC LIMIT ? OFFSET ?"
            params.extend([limit, offset])
            rows = conn.execute(query, tuple(params)).fetchall()
        finally:
            conn.close()
        return [_row_to_user(row) for row in rows]

    @classmethod
    async def update_user(cls, user_id: int, updates: dict, acting_user_id: Optional[int] = None) -> UserRead:
        """Update profile fields, password, role or disabled flag.

        Permission checks happen in the endpoint.  Raises ``ValueError``
        if the user does not exist or the role is unknown.
        """
        if "role" in updates:
            updates["role"] = str(updates["role"]).upper()
            if updates["role"] not in VALID_ROLES:
                raise ValueError(f"Unknown role {updates['role']}")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute("SELECT id FROM users WHERE id = ?", (user_id,)).fetchone()
            if not row:
                raise ValueError(f"User {user_id} not found")
            if updates:
                fields = []
                values = []
                for key, value in updates.items():
                    if key == "password":
                        value = hash_password(value)
                    if isinstance(value, bool):
                        value = 1 if value else 0
                    fields.append(f"{key} = ?")
                    values.append(value)
                values.append(user_id)
                cursor.execute(
                    f"UPDATE users SET {', '.join(fields)}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    tuple(values),
                )
                conn.commit()
            updated = cursor.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,)).fetchone()
        finally:
            conn.close()
        audit_details = {k: v for k, v in updates.items() if k != "password"}
        await AuditService.log(acting_user_id, "update", "user", user_id, audit_details or None)
        return _row_to_user(updated)

    @classmethod
    async def get_role(cls, user_id: int) -> UserRole:
        """Classify a user as provider or not with a single lookup."""
        conn = get_connection()
        try:
            row = conn.execute("SELECT role FROM users WHERE id = ?", (user_id,)).fetchone()
        finally:
            conn.close()
        if not row:
            raise ValueError(f"User {user_id} not found")
        role = (row["role"] or "").upper()
        return UserRole(role=role, is_provider=is_provider_role(role))

    @classmethod
    async def find_or_create_guest(cls, phone: str, name: Optional[str] = None) -> int:
        """Return the id of the user owning ``phone``, creating a guest if needed.

        Guests get a placeholder e-mail and no usable password; they can
        claim the account later through the normal sign-up flow.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute(
                "SELECT id FROM users WHERE phone = ? ORDER BY id ASC LIMIT 1",
                (phone,),
            ).fetchone()
            if row:
                logger.info("Found existing user %s for phone %s", row["id"], phone)
                return row["id"]
            placeholder = f"guest_{int(time.time() * 1000)}_{phone.lstrip('+')}@kmerbeauty.guest"
            cursor.execute(
                "INSERT INTO users (email, phone, first_name, last_name, password, role, is_verified) "
                "VALUES (?, ?, ?, '', NULL, ?, 1)",
                (placeholder, phone, name or "Guest", ROLE_CLIENT),
            )
            user_id = cursor.lastrowid
            conn.commit()
        finally:
            conn.close()
        logger.info("Created guest user %s for phone %s", user_id, phone)
        await AuditService.log(None, "create", "user", user_id, {"phone": phone, "guest": True})
        return user_id
