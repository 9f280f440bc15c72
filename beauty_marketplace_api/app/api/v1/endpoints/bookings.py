"""
Booking endpoints for API v1.

Two audiences use these routes:

* signed-in clients and providers (bearer token) create bookings and
  move them through their lifecycle;
* the messaging agent (``x-agent-key`` header) books, reschedules and
  cancels on behalf of customers identified by phone number.

Agent routes are declared first so that ``/agent/...`` never reaches
the ``/{booking_id}`` routes.
"""

from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Path, Query, status

from beauty_marketplace_api.app.core.errors import http_error
from beauty_marketplace_api.app.core.security import (
    ROLE_ADMIN,
    ROLE_PROVIDER,
    get_current_user,
    is_admin,
    require_agent_key,
    require_roles,
)
from beauty_marketplace_api.app.schemas.booking import (
    AgentBookingCreate,
    AgentBookingUpdate,
    BookingCancel,
    BookingCreate,
    BookingDecline,
    BookingRead,
)
from beauty_marketplace_api.app.services.booking_service import BookingService
from beauty_marketplace_api.app.services.provider_service import ProviderService


router = APIRouter()


# ---------------------------------------------------------------------------
# Agent routes
# ---------------------------------------------------------------------------


@router.post(
    "/agent",
    response_model=BookingRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_agent_key)],
)
async def create_agent_booking(data: AgentBookingCreate) -> BookingRead:
    """Book for a customer known by phone, creating a guest account if needed."""
    try:
        return await BookingService.create_agent_booking(data)
    except ValueError as e:
        raise http_error(e)


@router.get(
    "/agent/client/{phone}",
    response_model=List[BookingRead],
    dependencies=[Depends(require_agent_key)],
)
async def agent_client_bookings(phone: str = Path(..., min_length=3)) -> List[BookingRead]:
    return await BookingService.list_by_phone(phone)


@router.patch(
    "/agent/{booking_id}",
    response_model=BookingRead,
    dependencies=[Depends(require_agent_key)],
)
async def modify_agent_booking(booking_id: int, data: AgentBookingUpdate) -> BookingRead:
    try:
        return await BookingService.modify_agent_booking(booking_id, data)
    except ValueError as e:
        raise http_error(e)


@router.patch(
    "/agent/{booking_id}/cancel",
    response_model=BookingRead,
    dependencies=[Depends(require_agent_key)],
)
async def cancel_agent_booking(booking_id: int, data: Optional[BookingCancel] = Body(None)) -> BookingRead:
    try:
        return await BookingService.cancel_agent_booking(booking_id, data.reason if data else None)
    except ValueError as e:
        raise http_error(e)


# ---------------------------------------------------------------------------
# Client and provider routes
# ---------------------------------------------------------------------------


@router.post("", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
async def create_booking(
    data: BookingCreate,
    current_user: dict = Depends(get_current_user),
) -> BookingRead:
    """Create a PENDING booking for the current user."""
    try:
        return await BookingService.create_booking(data, current_user.get("user_id"))
    except ValueError as e:
        raise http_error(e)


@router.get("", response_model=List[BookingRead])
async def list_bookings(
    status_filter: Optional[str] = Query(None, alias="status"),
    current_user: dict = Depends(get_current_user),
) -> List[BookingRead]:
    """The caller's bookings; administrators see every booking."""
    user_id = None if is_admin(current_user) else current_user.get("user_id")
    return await BookingService.list_bookings(user_id=user_id, status=status_filter)


@router.get("/contractor/{provider_id}", response_model=List[BookingRead])
async def list_provider_bookings(
    provider_id: int,
    provider_type: str = Query("therapist", pattern="^(therapist|salon)$"),
    status_filter: Optional[str] = Query(None, alias="status"),
    current_user: dict = Depends(require_roles(ROLE_PROVIDER, ROLE_ADMIN)),
) -> List[BookingRead]:
    """Bookings received by one of the caller's therapist profiles or salons."""
    try:
        ProviderService.check_owner(provider_type, provider_id, current_user)
        return await BookingService.list_for_provider(provider_id, provider_type, status_filter)
    except (ValueError, PermissionError) as e:
        raise http_error(e)


@router.get("/{booking_id}", response_model=BookingRead)
async def get_booking(booking_id: int, current_user: dict = Depends(get_current_user)) -> BookingRead:
    try:
        return await BookingService.get_booking(booking_id, current_user)
    except (ValueError, PermissionError) as e:
        raise http_error(e)


@router.patch("/{booking_id}/cancel", response_model=BookingRead)
async def cancel_booking(
    booking_id: int,
    data: Optional[BookingCancel] = Body(None),
    current_user: dict = Depends(get_current_user),
) -> BookingRead:
    try:
        return await BookingService.cancel_booking(booking_id, current_user, data.reason if data else None)
    except (ValueError, PermissionError) as e:
        raise http_error(e)


@router.patch("/{booking_id}/confirm", response_model=BookingRead)
async def confirm_booking(booking_id: int, current_user: dict = Depends(get_current_user)) -> BookingRead:
    try:
        return await BookingService.confirm_booking(booking_id, current_user)
    except (ValueError, PermissionError) as e:
        raise http_error(e)


@router.patch("/{booking_id}/decline", response_model=BookingRead)
async def decline_booking(
    booking_id: int,
    data: BookingDecline,
    current_user: dict = Depends(get_current_user),
) -> BookingRead:
    try:
        return await BookingService.decline_booking(booking_id, data.reason, current_user)
    except (ValueError, PermissionError) as e:
        raise http_error(e)


@router.patch("/{booking_id}/start", response_model=BookingRead)
async def start_booking(booking_id: int, current_user: dict = Depends(get_current_user)) -> BookingRead:
    try:
        return await BookingService.start_booking(booking_id, current_user)
    except (ValueError, PermissionError) as e:
        raise http_error(e)


@router.patch("/{booking_id}/complete", response_model=BookingRead)
async def complete_booking(booking_id: int, current_user: dict = Depends(get_current_user)) -> BookingRead:
    try:
        return await BookingService.complete_booking(booking_id, current_user)
    except (ValueError, PermissionError) as e:
        raise http_error(e)
