"""Delete duplicated catalog services, keeping the newest copy of each name.

Usage:
    python cleanup_duplicates.py [--dry-run] [--batch-size N]
"""
import argparse
import asyncio
import logging
import os
import sys

from beauty_marketplace_api.app.core.config import settings
from beauty_marketplace_api.app.core.db import get_database_path
from beauty_marketplace_api.app.core.logging_config import setup_logging
from beauty_marketplace_api.app.services.catalog_service import CatalogService


logger = logging.getLogger("cleanup_duplicates")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--dry-run", action="store_true", help="only report what would be deleted")
    parser.add_argument("--batch-size", type=int, default=settings.cleanup_batch_size)
    args = parser.parse_args(argv)

    setup_logging()
    if not settings.database_url or not os.path.exists(get_database_path()):
        logger.error("Database not found (DATABASE_URL=%r)", settings.database_url)
        return 1

    logger.info("Fetching all services...")
    report = asyncio.run(CatalogService.cleanup_duplicates(dry_run=args.dry_run, batch_size=args.batch_size))
    if report.found == 0:
        logger.info("No duplicates to delete.")
    elif report.dry_run:
        logger.info("Dry run: %d services would be deleted, %d kept", report.found, report.kept)
    else:
        logger.info(
            "Cleanup complete: deleted %d/%d, kept %d, failed batches %d",
            report.deleted, report.found, report.kept, report.failed_batches,
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
