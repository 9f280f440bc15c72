"""
User endpoints for API v1.

``GET /users/me/role`` is the role check the clients call after login
to decide between the client and the provider interface.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from beauty_marketplace_api.app.core.errors import http_error
from beauty_marketplace_api.app.core.security import ROLE_ADMIN, get_current_user, is_admin, require_roles
from beauty_marketplace_api.app.schemas.user import UserRead, UserRole, UserUpdate
from beauty_marketplace_api.app.services.user_service import UserService


router = APIRouter()


@router.get("/me", response_model=UserRead)
async def read_me(current_user: dict = Depends(get_current_user)) -> UserRead:
    user = await UserService.get_user_by_id(current_user.get("user_id"))
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.get("/me/role", response_model=UserRole)
async def read_my_role(current_user: dict = Depends(get_current_user)) -> UserRole:
    """Return the caller's role and whether it is a provider role."""
    try:
        return await UserService.get_role(current_user.get("user_id"))
    except ValueError as e:
        raise http_error(e)


@router.get("", response_model=List[UserRead])
async def list_users(
    role: Optional[str] = Query(None, description="Filter by role"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    current_user: dict = Depends(require_roles(ROLE_ADMIN)),
) -> List[UserRead]:
    return await UserService.list_users(role=role, limit=limit, offset=offset)


@router.put("/{user_id}", response_model=UserRead)
async def update_user(
    user_id: int,
    data: UserUpdate,
    current_user: dict = Depends(get_current_user),
) -> UserRead:
    """Update a user profile.

    Users may edit their own profile.  Changing ``role`` or
    ``disabled`` and editing other users requires the ADMIN role.
    """
    admin = is_admin(current_user)
    if not admin and current_user.get("user_id") != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
    updates = data.model_dump(exclude_unset=True)
    if not admin and ({"role", "disabled"} & updates.keys()):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only administrators can change role or status")
    try:
        return await UserService.update_user(user_id, updates, acting_user_id=current_user.get("user_id"))
    except ValueError as e:
        raise http_error(e)
