"""Add GPS coordinates to every therapist service zone that lacks them.

Requests to Nominatim are spaced by GEOCODING_MIN_INTERVAL seconds and
results are cached for the duration of the run.

Usage:
    python batch_geocode_zones.py
"""
import asyncio
import logging
import os
import sys

from beauty_marketplace_api.app.core.config import settings
from beauty_marketplace_api.app.core.db import get_database_path
from beauty_marketplace_api.app.core.logging_config import setup_logging
from beauty_marketplace_api.app.services.therapist_service import TherapistService


logger = logging.getLogger("batch_geocode_zones")


def main() -> int:
    setup_logging()
    if not settings.database_url or not os.path.exists(get_database_path()):
        logger.error("Database not found (DATABASE_URL=%r)", settings.database_url)
        return 1
    if not settings.nominatim_base_url:
        logger.error("NOMINATIM_BASE_URL is empty")
        return 1

    logger.info("Starting batch geocoding of service zones")
    stats = asyncio.run(TherapistService.regeocode_all())
    logger.info("Updated: %d therapists", stats["updated"])
    logger.info("Skipped: %d therapists", stats["skipped"])
    logger.info("Errors: %d", stats["errors"])
    logger.info("Cache size: %d unique locations", stats["cache_size"])
    return 0


if __name__ == "__main__":
    sys.exit(main())
