"""
Audit log endpoints for API v1.

Only administrators may read the audit trail.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from beauty_marketplace_api.app.core.security import ROLE_ADMIN, require_roles
from beauty_marketplace_api.app.services.audit_service import AuditService


router = APIRouter()


@router.get("/logs")
async def list_audit_logs(
    user_id: Optional[int] = Query(None, description="Filter by acting user ID"),
    object_type: Optional[str] = Query(None, description="Filter by object type (booking, service, review ...)"),
    object_id: Optional[int] = Query(None, description="Filter by object ID, e.g. one booking's history"),
    action: Optional[str] = Query(None, description="Filter by action (create, confirm, cleanup ...)"),
    start_date: Optional[str] = Query(None, description="Start date (ISO format)"),
    end_date: Optional[str] = Query(None, description="End date (ISO format)"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    current_user: dict = Depends(require_roles(ROLE_ADMIN)),
) -> List[dict]:
    return await AuditService.list_logs(
        user_id=user_id,
        object_type=object_type,
        object_id=object_id,
        action=action,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
