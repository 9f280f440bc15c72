"""
SQLite database integration and simple migration system.

This module provides functions for obtaining a database connection
(``get_connection``) and applying migrations on application start
(``init_db``).  Applied migration versions are stored in the
``migrations`` table and new migrations are executed in order.

Columns holding lists or objects (service images, therapist service
zones, audit details) are stored as JSON text; ``loads_json`` and
``dumps_json`` convert them in the service layer.
"""

import json
import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from .config import settings


MIGRATIONS: list[tuple[int, str]] = [
    # Migration 1: users, catalog and providers
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            email TEXT NOT NULL UNIQUE,
            phone TEXT,
            first_name TEXT,
            last_name TEXT,
            password TEXT,
            role TEXT NOT NULL DEFAULT 'CLIENT',
            is_verified INTEGER NOT NULL DEFAULT 0,
            disabled INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS services (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name_fr TEXT NOT NULL,
            name_en TEXT,
            description_fr TEXT,
            description_en TEXT,
            category TEXT,
            base_price REAL NOT NULL DEFAULT 0,
            duration INTEGER NOT NULL DEFAULT 60,
            images TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS therapists (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL UNIQUE,
            business_name TEXT,
            bio TEXT,
            city TEXT,
            region TEXT,
            latitude REAL,
            longitude REAL,
            service_zones TEXT,
            profile_image TEXT,
            rating REAL NOT NULL DEFAULT 0,
            review_count INTEGER NOT NULL DEFAULT 0,
            is_active INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(user_id) REFERENCES users(id)
        );

        CREATE TABLE IF NOT EXISTS salons (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            owner_id INTEGER NOT NULL,
            name_fr TEXT NOT NULL,
            name_en TEXT,
            city TEXT,
            region TEXT,
            quarter TEXT,
            latitude REAL,
            longitude REAL,
            logo TEXT,
            cover_image TEXT,
            rating REAL NOT NULL DEFAULT 0,
            review_count INTEGER NOT NULL DEFAULT 0,
            is_active INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(owner_id) REFERENCES users(id)
        );

        CREATE TABLE IF NOT EXISTS therapist_services (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            therapist_id INTEGER NOT NULL,
            service_id INTEGER NOT NULL,
            price REAL,
            duration INTEGER,
            UNIQUE(therapist_id, service_id),
            FOREIGN KEY(therapist_id) REFERENCES therapists(id) ON DELETE CASCADE,
            FOREIGN KEY(service_id) REFERENCES services(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS salon_services (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            salon_id INTEGER NOT NULL,
            service_id INTEGER NOT NULL,
            price REAL,
            duration INTEGER,
            UNIQUE(salon_id, service_id),
            FOREIGN KEY(salon_id) REFERENCES salons(id) ON DELETE CASCADE,
            FOREIGN KEY(service_id) REFERENCES services(id) ON DELETE CASCADE
        );
        """,
    ),
    # Migration 2: bookings, reviews and audit trail
    (
        2,
        """
        CREATE TABLE IF NOT EXISTS bookings (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL,
            therapist_id INTEGER,
            salon_id INTEGER,
            scheduled_at TIMESTAMP NOT NULL,
            duration INTEGER NOT NULL DEFAULT 0,
            location_type TEXT NOT NULL DEFAULT 'HOME',
            quarter TEXT,
            street TEXT,
            landmark TEXT,
            city TEXT,
            region TEXT,
            latitude REAL,
            longitude REAL,
            instructions TEXT,
            subtotal REAL NOT NULL DEFAULT 0,
            travel_fee REAL NOT NULL DEFAULT 0,
            tip REAL NOT NULL DEFAULT 0,
            total REAL NOT NULL DEFAULT 0,
            notes TEXT,
            status TEXT NOT NULL DEFAULT 'PENDING',
            cancelled_at TIMESTAMP,
            cancel_reason TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(user_id) REFERENCES users(id),
            FOREIGN KEY(therapist_id) REFERENCES therapists(id),
            FOREIGN KEY(salon_id) REFERENCES salons(id)
        );

        -- Items keep the service name so that bookings survive catalog cleanups.
        CREATE TABLE IF NOT EXISTS booking_items (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            booking_id INTEGER NOT NULL,
            service_id INTEGER,
            service_name TEXT NOT NULL,
            price REAL NOT NULL DEFAULT 0,
            duration INTEGER NOT NULL DEFAULT 0,
            FOREIGN KEY(booking_id) REFERENCES bookings(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS reviews (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL,
            therapist_id INTEGER,
            salon_id INTEGER,
            rating INTEGER NOT NULL,
            comment TEXT,
            cleanliness INTEGER,
            professionalism INTEGER,
            value INTEGER,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(user_id) REFERENCES users(id),
            FOREIGN KEY(therapist_id) REFERENCES therapists(id),
            FOREIGN KEY(salon_id) REFERENCES salons(id)
        );

        CREATE TABLE IF NOT EXISTS audit_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER,
            action TEXT NOT NULL,
            object_type TEXT,
            object_id INTEGER,
            timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            details TEXT
        );
        """,
    ),
    # Migration 3: lookup indices
    (
        3,
        """
        CREATE INDEX IF NOT EXISTS idx_users_phone ON users(phone);
        CREATE INDEX IF NOT EXISTS idx_services_name_fr ON services(name_fr);
        CREATE INDEX IF NOT EXISTS idx_bookings_user_id ON bookings(user_id);
        CREATE INDEX IF NOT EXISTS idx_bookings_therapist_id ON bookings(therapist_id);
        CREATE INDEX IF NOT EXISTS idx_bookings_salon_id ON bookings(salon_id);
        CREATE INDEX IF NOT EXISTS idx_booking_items_booking_id ON booking_items(booking_id);
        CREATE INDEX IF NOT EXISTS idx_reviews_therapist_id ON reviews(therapist_id);
        CREATE INDEX IF NOT EXISTS idx_reviews_salon_id ON reviews(salon_id);
        """,
    ),
]


def get_database_path() -> str:
    """Compute the path to the SQLite database file.

    If ``settings.database_url`` is an absolute path, use it directly.
    Otherwise resolve it relative to the project root.
    """
    db_url = settings.database_url
    if os.path.isabs(db_url):
        return db_url
    base_dir = Path(__file__).resolve().parent.parent.parent.parent
    return str((base_dir / db_url).resolve())


def get_connection() -> sqlite3.Connection:
    """Create and return a new SQLite connection.

    Rows are returned as ``sqlite3.Row`` so columns can be accessed by
    name.  Foreign key enforcement is switched on for the lifetime of
    the connection.
    """
    conn = sqlite3.connect(get_database_path())
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def get_cursor() -> Iterator[sqlite3.Cursor]:
    """Context manager that yields a cursor and closes the connection on exit."""
    conn = get_connection()
    try:
        yield conn.cursor()
        conn.commit()
    finally:
        conn.close()


def loads_json(value: Any, default: Any = None) -> Any:
    """Decode a JSON text column, returning ``default`` for NULL or garbage."""
    if value is None or value == "":
        return default
    try:
        return json.loads(value)
    except (TypeError, json.JSONDecodeError):
        return default


def dumps_json(value: Any) -> str | None:
    """Encode a value for a JSON text column (``None`` stays NULL)."""
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False)


def init_db() -> None:
    """Initialise the database and apply pending migrations.

    Creates the ``migrations`` table if it does not exist, reads the
    current schema version and applies every migration in
    ``MIGRATIONS`` with a higher version number.
    """
    with get_cursor() as cursor:
        cursor.execute(
            "CREATE TABLE IF NOT EXISTS migrations (version INTEGER PRIMARY KEY)"
        )
        cursor.execute("SELECT MAX(version) as version FROM migrations")
        row = cursor.fetchone()
        current_version = row["version"] if row and row["version"] is not None else 0

        for version, sql in MIGRATIONS:
            if version > current_version:
                cursor.executescript(sql)
                cursor.execute(
                    "INSERT INTO migrations (version) VALUES (?)", (version,)
                )
                current_version = version
