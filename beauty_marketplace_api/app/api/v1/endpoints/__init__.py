"""
Endpoint modules for API v1.

Each module defines an ``APIRouter`` for one domain (auth, services,
therapists, bookings ...); ``router.py`` aggregates them.
"""
