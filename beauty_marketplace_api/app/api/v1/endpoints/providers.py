"""
Provider search across therapists and salons.
"""

from typing import List, Optional

from fastapi import APIRouter, Query

from beauty_marketplace_api.app.schemas.provider import NearbyProvider
from beauty_marketplace_api.app.services.provider_service import ProviderService


router = APIRouter()


@router.get("/nearby", response_model=List[NearbyProvider])
async def nearby_providers(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius_meters: Optional[float] = Query(None, gt=0, description="Defaults to the configured radius"),
    client_city: Optional[str] = Query(None),
    client_district: Optional[str] = Query(None),
    filter_service_id: Optional[int] = Query(None),
    limit: int = Query(50, ge=1, le=200),
) -> List[NearbyProvider]:
    """Active providers around a point, nearest first.

    Providers that have no coordinates at all are appended after the
    located ones when their city (and zone district) matches the
    client's.
    """
    return await ProviderService.nearby_providers(
        lat,
        lng,
        radius_meters=radius_meters,
        client_city=client_city,
        client_district=client_district,
        filter_service_id=filter_service_id,
        limit=limit,
    )
