"""
Pydantic models for bookings.

A booking targets exactly one provider (a therapist or a salon) and
carries one or more items, each a named service with its price and
duration at booking time.  Agent bookings are created on behalf of a
customer identified only by phone number.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


BOOKING_STATUSES = ("PENDING", "CONFIRMED", "IN_PROGRESS", "COMPLETED", "CANCELLED")


class BookingItemBase(BaseModel):
    service_id: Optional[int] = None
    service_name: str = Field(..., min_length=1)
    price: float = Field(0, ge=0)
    duration: int = Field(0, ge=0)


class BookingItemRead(BookingItemBase):
    id: int
    booking_id: int


class BookingCreate(BaseModel):
    """Schema for creating a booking as an authenticated client."""

    therapist_id: Optional[int] = None
    salon_id: Optional[int] = None
    scheduled_at: str = Field(..., description="ISO 8601 date-time")
    duration: int = Field(0, ge=0)
    location_type: str = Field("HOME", description="HOME or SALON")
    quarter: Optional[str] = None
    street: Optional[str] = None
    landmark: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    instructions: Optional[str] = None
    subtotal: float = Field(0, ge=0)
    travel_fee: float = Field(0, ge=0)
    tip: float = Field(0, ge=0)
    total: float = Field(0, ge=0)
    notes: Optional[str] = None
    items: List[BookingItemBase] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_provider(self) -> "BookingCreate":
        if bool(self.therapist_id) == bool(self.salon_id):
            raise ValueError("Exactly one of therapist_id or salon_id must be provided")
        if self.location_type not in {"HOME", "SALON"}:
            raise ValueError("location_type must be HOME or SALON")
        return self


class BookingCancel(BaseModel):
    reason: Optional[str] = None


class BookingDecline(BaseModel):
    reason: str = Field(..., min_length=1)


class BookingRead(BaseModel):
    id: int
    user_id: int
    therapist_id: Optional[int] = None
    salon_id: Optional[int] = None
    scheduled_at: str
    duration: int
    location_type: str
    quarter: Optional[str] = None
    street: Optional[str] = None
    landmark: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    instructions: Optional[str] = None
    subtotal: float
    travel_fee: float
    tip: float
    total: float
    notes: Optional[str] = None
    status: str
    cancelled_at: Optional[str] = None
    cancel_reason: Optional[str] = None
    created_at: Optional[str] = None
    items: List[BookingItemRead] = Field(default_factory=list)
    provider: Optional[Dict[str, Any]] = None
    client: Optional[Dict[str, Any]] = None


class AgentBookingCreate(BaseModel):
    """Payload sent by the messaging agent (camelCase, as the agent speaks it)."""

    customerPhone: str = Field(..., min_length=3)
    customerName: Optional[str] = None
    serviceIds: List[int] = Field(..., min_length=1)
    therapistId: Optional[int] = None
    salonId: Optional[int] = None
    scheduledAt: str
    city: str
    quarter: Optional[str] = None
    street: Optional[str] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_provider(self) -> "AgentBookingCreate":
        if bool(self.therapistId) == bool(self.salonId):
            raise ValueError("Exactly one of therapistId or salonId must be provided")
        return self


class AgentBookingUpdate(BaseModel):
    scheduledAt: Optional[str] = None
    notes: Optional[str] = None
    quarter: Optional[str] = None
    street: Optional[str] = None

    @field_validator("scheduledAt")
    @classmethod
    def check_scheduled_at(cls, v: Optional[str]) -> str:
        if v is None or not v.strip():
            raise ValueError("scheduledAt cannot be null or empty")
        return v.strip()
