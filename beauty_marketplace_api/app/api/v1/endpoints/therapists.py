"""
Endpoints for independent therapists and the services they offer.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from beauty_marketplace_api.app.core.errors import http_error
from beauty_marketplace_api.app.core.security import ROLE_ADMIN, ROLE_PROVIDER, require_roles
from beauty_marketplace_api.app.schemas.provider import (
    OfferingCreate,
    OfferingRead,
    TherapistCreate,
    TherapistRead,
    TherapistUpdate,
)
from beauty_marketplace_api.app.services.provider_service import ProviderService
from beauty_marketplace_api.app.services.therapist_service import TherapistService


router = APIRouter()


@router.post("", response_model=TherapistRead, status_code=status.HTTP_201_CREATED)
async def create_therapist(
    data: TherapistCreate,
    current_user: dict = Depends(require_roles(ROLE_PROVIDER, ROLE_ADMIN)),
) -> TherapistRead:
    """Create the caller's therapist profile.

    Service zones are geocoded before being stored; zones that cannot be
    resolved are kept without coordinates.
    """
    try:
        return await TherapistService.create_therapist(data, current_user)
    except (ValueError, PermissionError) as e:
        raise http_error(e)


@router.get("", response_model=List[TherapistRead])
async def list_therapists(
    city: Optional[str] = Query(None),
    quarter: Optional[str] = Query(None, description="District of a service zone"),
    service_id: Optional[int] = Query(None),
) -> List[TherapistRead]:
    return await TherapistService.list_therapists(city=city, quarter=quarter, service_id=service_id)


@router.get("/{therapist_id}", response_model=TherapistRead)
async def get_therapist(therapist_id: int) -> TherapistRead:
    try:
        return await TherapistService.get_therapist(therapist_id)
    except ValueError as e:
        raise http_error(e)


@router.put("/{therapist_id}", response_model=TherapistRead)
async def update_therapist(
    therapist_id: int,
    data: TherapistUpdate,
    current_user: dict = Depends(require_roles(ROLE_PROVIDER, ROLE_ADMIN)),
) -> TherapistRead:
    try:
        return await TherapistService.update_therapist(therapist_id, data, current_user)
    except (ValueError, PermissionError) as e:
        raise http_error(e)


@router.get("/{therapist_id}/services", response_model=List[OfferingRead])
async def list_therapist_services(therapist_id: int) -> List[OfferingRead]:
    try:
        return await ProviderService.list_offerings("therapist", therapist_id)
    except ValueError as e:
        raise http_error(e)


@router.post("/{therapist_id}/services", response_model=OfferingRead, status_code=status.HTTP_201_CREATED)
async def add_therapist_service(
    therapist_id: int,
    data: OfferingCreate,
    current_user: dict = Depends(require_roles(ROLE_PROVIDER, ROLE_ADMIN)),
) -> OfferingRead:
    try:
        return await ProviderService.add_offering("therapist", therapist_id, data, current_user)
    except (ValueError, PermissionError) as e:
        raise http_error(e)
