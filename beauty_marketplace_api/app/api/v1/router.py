"""
Top-level router for version 1 of the API.

Aggregates the domain routers.  Every router is mounted under its own
prefix; register new domains here.
"""

from fastapi import APIRouter

from .endpoints import (
    audit,
    auth,
    bookings,
    geocoding,
    providers,
    reviews,
    salons,
    services,
    therapists,
    users,
)

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(services.router, prefix="/services", tags=["services"])
router.include_router(therapists.router, prefix="/therapists", tags=["therapists"])
router.include_router(salons.router, prefix="/salons", tags=["salons"])
router.include_router(providers.router, prefix="/providers", tags=["providers"])
router.include_router(geocoding.router, prefix="/geocoding", tags=["geocoding"])
router.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
router.include_router(reviews.router, prefix="/reviews", tags=["reviews"])
router.include_router(audit.router, prefix="/audit", tags=["audit"])
