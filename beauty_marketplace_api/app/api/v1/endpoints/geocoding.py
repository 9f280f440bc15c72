"""
Geocoding of service zones on demand.

Lets the provider apps preview coordinates for zones before saving a
profile.  Uses the shared geocoder, so cached zones cost no request.
"""

from typing import List

from fastapi import APIRouter, Depends

from beauty_marketplace_api.app.core.security import get_current_user
from beauty_marketplace_api.app.schemas.provider import ServiceZone
from beauty_marketplace_api.app.services import geocoding_service


router = APIRouter()


@router.post("/zones", response_model=List[ServiceZone])
async def geocode_zones(
    zones: List[ServiceZone],
    current_user: dict = Depends(get_current_user),
) -> List[ServiceZone]:
    return await geocoding_service.geocoder.enrich_service_zones(zones)
