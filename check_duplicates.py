"""Report service names that appear more than once in the catalog.

Usage:
    python check_duplicates.py
"""
import asyncio
import logging
import os
import sys

from beauty_marketplace_api.app.core.config import settings
from beauty_marketplace_api.app.core.db import get_database_path
from beauty_marketplace_api.app.core.logging_config import setup_logging
from beauty_marketplace_api.app.services.catalog_service import CatalogService


logger = logging.getLogger("check_duplicates")


def main() -> int:
    setup_logging()
    db_path = get_database_path()
    if not settings.database_url or not os.path.exists(db_path):
        logger.error("Database not found (DATABASE_URL=%r)", settings.database_url)
        return 1

    logger.info("Checking for duplicates...")
    report = asyncio.run(CatalogService.find_duplicates())
    if report.duplicates:
        logger.info("Found duplicates: %s", [(d.name, d.count) for d in report.duplicates])
        logger.info("Example duplicate IDs for %r: %s", report.duplicates[0].name, report.example_ids)
    else:
        logger.info("No duplicates found in DB.")
    logger.info("Total services: %d", report.total)
    return 0


if __name__ == "__main__":
    sys.exit(main())
