"""Print the providers a running API returns around a point.

Usage:
    python check_nearby_providers.py --lat 4.05 --lng 9.7 [--radius 30000]
        [--city Douala] [--district Akwa] [--service-id 3]
"""
import argparse
import logging
import sys

from beauty_marketplace_api.app.core.config import settings
from beauty_marketplace_api.app.core.logging_config import setup_logging
from beauty_marketplace_api.client import MarketplaceAPI


logger = logging.getLogger("check_nearby_providers")


def main(argv=None, api=None) -> int:
    parser = argparse.ArgumentParser(description="Inspect the nearest-provider lookup")
    parser.add_argument("--lat", type=float, required=True)
    parser.add_argument("--lng", type=float, required=True)
    parser.add_argument("--radius", type=float, default=None, help="radius in meters")
    parser.add_argument("--city", default=None)
    parser.add_argument("--district", default=None)
    parser.add_argument("--service-id", type=int, default=None)
    args = parser.parse_args(argv)

    setup_logging()
    if api is None:
        if not settings.api_base_url:
            logger.error("API_BASE_URL is empty")
            return 1
        api = MarketplaceAPI(base_url=settings.api_base_url)

    logger.info(
        "Testing nearby lookup at (%s, %s) radius=%s city=%s district=%s service=%s",
        args.lat, args.lng, args.radius, args.city, args.district, args.service_id,
    )
    providers, error = api.nearby_providers(
        args.lat,
        args.lng,
        radius_meters=args.radius,
        client_city=args.city,
        client_district=args.district,
        filter_service_id=args.service_id,
    )
    if error:
        logger.error("Lookup failed: %s", error["message"])
        return 1
    logger.info("Results: %d providers", len(providers))
    for p in providers:
        distance = p.get("distance_meters")
        where = f"{distance / 1000:.1f} km" if distance is not None else "same city"
        logger.info("  %s #%s %s (%s) - %s, rating %s", p["provider_type"], p["id"], p["name"], p.get("city"), where, p.get("rating"))
    return 0


if __name__ == "__main__":
    sys.exit(main())
