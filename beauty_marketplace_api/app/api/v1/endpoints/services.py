"""
Endpoints for the services catalog.

Reading the catalog is public.  Creating, editing and deleting
services, as well as the duplicate report and cleanup, are reserved to
administrators.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from beauty_marketplace_api.app.core.errors import http_error
from beauty_marketplace_api.app.core.security import ROLE_ADMIN, require_roles
from beauty_marketplace_api.app.schemas.service import (
    CleanupReport,
    DuplicateReport,
    ServiceCreate,
    ServiceRead,
    ServiceUpdate,
)
from beauty_marketplace_api.app.services.catalog_service import CatalogService


router = APIRouter()


@router.get("", response_model=List[ServiceRead])
async def list_services(category: Optional[str] = Query(None)) -> List[ServiceRead]:
    return await CatalogService.list_services(category=category)


@router.get("/search", response_model=List[ServiceRead])
async def search_services(
    q: str = Query(..., min_length=1, description="Text matched against the French and English names"),
    limit: int = Query(20, ge=1, le=100),
) -> List[ServiceRead]:
    return await CatalogService.search_services(q, limit=limit)


@router.get("/duplicates", response_model=DuplicateReport)
async def report_duplicates(current_user: dict = Depends(require_roles(ROLE_ADMIN))) -> DuplicateReport:
    """List service names that appear more than once in the catalog."""
    return await CatalogService.find_duplicates()


@router.post("/duplicates/cleanup", response_model=CleanupReport)
async def cleanup_duplicates(
    dry_run: bool = Query(False, description="Only count what would be deleted"),
    current_user: dict = Depends(require_roles(ROLE_ADMIN)),
) -> CleanupReport:
    """Keep the newest service per French name and delete the other copies."""
    return await CatalogService.cleanup_duplicates(dry_run=dry_run, current_user=current_user)


@router.get("/{service_id}", response_model=ServiceRead)
async def get_service(service_id: int) -> ServiceRead:
    try:
        return await CatalogService.get_service(service_id)
    except ValueError as e:
        raise http_error(e)


@router.post("", response_model=ServiceRead, status_code=status.HTTP_201_CREATED)
async def create_service(
    data: ServiceCreate,
    current_user: dict = Depends(require_roles(ROLE_ADMIN)),
) -> ServiceRead:
    try:
        return await CatalogService.create_service(data, current_user)
    except ValueError as e:
        raise http_error(e)


@router.put("/{service_id}", response_model=ServiceRead)
async def update_service(
    service_id: int,
    data: ServiceUpdate,
    current_user: dict = Depends(require_roles(ROLE_ADMIN)),
) -> ServiceRead:
    try:
        return await CatalogService.update_service(service_id, data, current_user)
    except ValueError as e:
        raise http_error(e)


@router.delete("/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_service(
    service_id: int,
    current_user: dict = Depends(require_roles(ROLE_ADMIN)),
) -> None:
    try:
        await CatalogService.delete_service(service_id, current_user)
    except ValueError as e:
        raise http_error(e)
