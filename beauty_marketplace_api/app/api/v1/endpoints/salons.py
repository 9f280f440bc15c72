"""
Endpoints for salons and the services they offer.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from beauty_marketplace_api.app.core.errors import http_error
from beauty_marketplace_api.app.core.security import ROLE_ADMIN, ROLE_PROVIDER, require_roles
from beauty_marketplace_api.app.schemas.provider import (
    OfferingCreate,
    OfferingRead,
    SalonCreate,
    SalonRead,
    SalonUpdate,
)
from beauty_marketplace_api.app.services.provider_service import ProviderService
from beauty_marketplace_api.app.services.salon_service import SalonService


router = APIRouter()


@router.post("", response_model=SalonRead, status_code=status.HTTP_201_CREATED)
async def create_salon(
    data: SalonCreate,
    current_user: dict = Depends(require_roles(ROLE_PROVIDER, ROLE_ADMIN)),
) -> SalonRead:
    return await SalonService.create_salon(data, current_user)


@router.get("", response_model=List[SalonRead])
async def list_salons(
    city: Optional[str] = Query(None),
    quarter: Optional[str] = Query(None),
    service_id: Optional[int] = Query(None),
) -> List[SalonRead]:
    return await SalonService.list_salons(city=city, quarter=quarter, service_id=service_id)


@router.get("/{salon_id}", response_model=SalonRead)
async def get_salon(salon_id: int) -> SalonRead:
    try:
        return await SalonService.get_salon(salon_id)
    except ValueError as e:
        raise http_error(e)


@router.put("/{salon_id}", response_model=SalonRead)
async def update_salon(
    salon_id: int,
    data: SalonUpdate,
    current_user: dict = Depends(require_roles(ROLE_PROVIDER, ROLE_ADMIN)),
) -> SalonRead:
    try:
        return await SalonService.update_salon(salon_id, data, current_user)
    except (ValueError, PermissionError) as e:
        raise http_error(e)


@router.get("/{salon_id}/services", response_model=List[OfferingRead])
async def list_salon_services(salon_id: int) -> List[OfferingRead]:
    try:
        return await ProviderService.list_offerings("salon", salon_id)
    except ValueError as e:
        raise http_error(e)


@router.post("/{salon_id}/services", response_model=OfferingRead, status_code=status.HTTP_201_CREATED)
async def add_salon_service(
    salon_id: int,
    data: OfferingCreate,
    current_user: dict = Depends(require_roles(ROLE_PROVIDER, ROLE_ADMIN)),
) -> OfferingRead:
    try:
        return await ProviderService.add_offering("salon", salon_id, data, current_user)
    except (ValueError, PermissionError) as e:
        raise http_error(e)
