"""
Geocoding of provider service zones through Nominatim (OpenStreetMap).

Zones are ``{city, district}`` pairs typed by providers.  Each zone is
resolved to coordinates once per process: results are cached in memory
under a ``district|city`` key, and outbound requests are spaced by at
least ``min_interval`` seconds to respect the Nominatim usage policy
(one request per second).  Lookups that fail are logged and return
``None``; the zone is then kept without coordinates.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

import httpx

from beauty_marketplace_api.app.core.config import settings
from beauty_marketplace_api.app.schemas.provider import ServiceZone


logger = logging.getLogger(__name__)

Coordinates = Tuple[float, float]


class GeocodingService:
    """Rate limited, caching Nominatim client."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        min_interval: Optional[float] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        base_url: Optional[str] = None,
        user_agent: Optional[str] = None,
        country: Optional[str] = None,
    ) -> None:
        self.client = client
        self.min_interval = settings.geocoding_min_interval if min_interval is None else min_interval
        self.base_url = (base_url or settings.nominatim_base_url).rstrip("/")
        self.user_agent = user_agent or settings.nominatim_user_agent
        self.country = country if country is not None else settings.geocoding_country
        self._sleep = sleep
        self._clock = clock
        self._last_request: Optional[float] = None
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None
        self.cache: Dict[str, Coordinates] = {}

    @staticmethod
    def cache_key(zone: ServiceZone) -> str:
        city = (zone.city or "").strip().lower()
        district = (zone.district or "").strip().lower()
        return f"{district}|{city}" if district else city

    def build_query(self, zone: ServiceZone) -> str:
        parts = [p for p in ((zone.district or "").strip(), zone.city.strip(), self.country) if p]
        return ", ".join(parts)

    def _get_lock(self) -> asyncio.Lock:
        # asyncio locks bind to one loop; the module-level instance can see several.
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    async def _rate_limit(self) -> None:
        """Wait out ``min_interval``.  Callers hold the lock."""
        if self._last_request is not None:
            elapsed = self._clock() - self._last_request
            if elapsed < self.min_interval:
                await self._sleep(self.min_interval - elapsed)
        self._last_request = self._clock()

    async def _search(self, query: str) -> httpx.Response:
        params = {"format": "json", "q": query, "limit": "1"}
        headers = {"User-Agent": self.user_agent}
        url = f"{self.base_url}/search"
        if self.client is not None:
            return await self.client.get(url, params=params, headers=headers)
        async with httpx.AsyncClient(timeout=10.0) as client:
            return await client.get(url, params=params, headers=headers)

    async def geocode_zone(self, zone: ServiceZone) -> Optional[Coordinates]:
        """Resolve a zone to ``(lat, lon)`` or ``None``."""
        if not zone.city or not zone.city.strip():
            return None

        key = self.cache_key(zone)
        if key in self.cache:
            logger.debug("Geocoding cache hit for %s", key)
            return self.cache[key]

        # Lookups run one at a time so the spacing holds across concurrent
        # callers; a caller that waited may find its key already cached.
        async with self._get_lock():
            if key in self.cache:
                return self.cache[key]
            return await self._lookup(key, self.build_query(zone))

    async def _lookup(self, key: str, query: str) -> Optional[Coordinates]:
        try:
            await self._rate_limit()
            logger.info("Geocoding %s", query)
            response = await self._search(query)
            if response.status_code != 200:
                logger.error("Geocoding API error %s for %s", response.status_code, query)
                return None
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Error geocoding %s: %s", query, e)
            return None

        if not data:
            logger.warning("No geocoding results for %s", query)
            return None
        try:
            coords = (float(data[0]["lat"]), float(data[0]["lon"]))
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.error("Malformed geocoding result for %s: %s", query, e)
            return None
        self.cache[key] = coords
        logger.info("Geocoded %s -> (%s, %s)", query, coords[0], coords[1])
        return coords

    async def enrich_service_zones(self, zones: Optional[Iterable[Any]]) -> List[ServiceZone]:
        """Add coordinates to every zone that lacks them.

        Accepts zone objects, dicts or bare city strings.  Order and
        length are preserved; zones that cannot be geocoded are kept
        unchanged.
        """
        if not zones:
            return []
        normalised = [ServiceZone.coerce(z) for z in zones]
        enriched: List[ServiceZone] = []
        for zone in normalised:
            if zone.latitude is not None and zone.longitude is not None:
                enriched.append(zone)
                continue
            coords = await self.geocode_zone(zone)
            if coords:
                enriched.append(zone.model_copy(update={"latitude": coords[0], "longitude": coords[1]}))
            else:
                enriched.append(zone)
        logger.info(
            "Enriched %d/%d zones with coordinates",
            sum(1 for z in enriched if z.latitude is not None),
            len(enriched),
        )
        return enriched

    def cache_stats(self) -> Dict[str, Any]:
        return {"size": len(self.cache), "entries": list(self.cache.keys())}


# Shared instance so the cache and the request spacing span all API requests.
geocoder = GeocodingService()
