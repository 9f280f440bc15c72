"""
Pydantic models for providers: independent therapists and salons.

Therapists describe where they travel with a list of service zones.
Older profiles stored zones as bare city names; ``ServiceZone.coerce``
turns such strings into ``{"city": ...}`` objects.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator


class ServiceZone(BaseModel):
    city: str
    district: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @classmethod
    def coerce(cls, value: Any) -> "ServiceZone":
        if isinstance(value, str):
            return cls(city=value)
        if isinstance(value, ServiceZone):
            return value
        return cls(**value)


def _coerce_zones(v: Any) -> Any:
    if v is None:
        return v
    return [ServiceZone.coerce(z) for z in v]


class TherapistBase(BaseModel):
    business_name: Optional[str] = None
    bio: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    service_zones: List[ServiceZone] = Field(default_factory=list)
    profile_image: Optional[str] = None

    @field_validator("service_zones", mode="before")
    @classmethod
    def normalise_zones(cls, v: Any) -> Any:
        return _coerce_zones(v) or []


class TherapistCreate(TherapistBase):
    pass


class TherapistUpdate(BaseModel):
    business_name: Optional[str] = None
    bio: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    service_zones: Optional[List[ServiceZone]] = None
    profile_image: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("service_zones", mode="before")
    @classmethod
    def normalise_zones(cls, v: Any) -> Any:
        return _coerce_zones(v)

    @field_validator("is_active")
    @classmethod
    def not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class TherapistRead(TherapistBase):
    id: int
    user_id: int
    rating: float = 0
    review_count: int = 0
    is_active: bool = True


class SalonBase(BaseModel):
    name_fr: str = Field(..., min_length=1)
    name_en: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    quarter: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    logo: Optional[str] = None
    cover_image: Optional[str] = None


class SalonCreate(SalonBase):
    pass


class SalonUpdate(BaseModel):
    name_fr: Optional[str] = None
    name_en: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    quarter: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    logo: Optional[str] = None
    cover_image: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("name_fr", "is_active")
    @classmethod
    def not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class SalonRead(SalonBase):
    id: int
    owner_id: int
    rating: float = 0
    review_count: int = 0
    is_active: bool = True


class OfferingCreate(BaseModel):
    """Attach a catalog service to a provider, optionally repriced."""

    service_id: int
    price: Optional[float] = Field(None, ge=0)
    duration: Optional[int] = Field(None, ge=0)


class OfferingRead(BaseModel):
    service_id: int
    name_fr: str
    name_en: Optional[str] = None
    category: Optional[str] = None
    # Effective values: the provider override or the catalog base.
    price: float
    duration: int


class NearbyProvider(BaseModel):
    provider_type: str
    id: int
    name: Optional[str] = None
    city: Optional[str] = None
    distance_meters: Optional[float] = None
    rating: float = 0
