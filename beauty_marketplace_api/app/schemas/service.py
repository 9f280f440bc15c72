"""
Pydantic models for the services catalog.

A service is a bilingual catalog entry (French name is mandatory,
English optional) with a base price in FCFA and a duration in minutes.
Providers attach services to their profile, optionally overriding the
price and duration.
"""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class ServiceBase(BaseModel):
    name_fr: str = Field(..., min_length=1)
    name_en: Optional[str] = None
    description_fr: Optional[str] = None
    description_en: Optional[str] = None
    category: Optional[str] = None
    base_price: float = Field(0, ge=0)
    duration: int = Field(60, ge=0, description="Duration in minutes")
    images: List[str] = Field(default_factory=list)

    @field_validator("name_fr", "name_en")
    @classmethod
    def strip_names(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else None


class ServiceCreate(ServiceBase):
    pass


class ServiceUpdate(BaseModel):
    name_fr: Optional[str] = None
    name_en: Optional[str] = None
    description_fr: Optional[str] = None
    description_en: Optional[str] = None
    category: Optional[str] = None
    base_price: Optional[float] = Field(None, ge=0)
    duration: Optional[int] = Field(None, ge=0)
    images: Optional[List[str]] = None

    @field_validator("name_fr", "base_price", "duration", "images")
    @classmethod
    def not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v

    @field_validator("name_fr")
    @classmethod
    def check_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name_fr cannot be empty")
        return v


class ServiceRead(ServiceBase):
    id: int
    created_at: Optional[str] = None


class DuplicateGroup(BaseModel):
    name: str
    count: int


class DuplicateReport(BaseModel):
    """Result of a duplicate scan over the catalog."""

    total: int
    duplicates: List[DuplicateGroup]
    # Ids sharing the first duplicated name, handy for manual inspection.
    example_ids: List[int] = Field(default_factory=list)


class CleanupReport(BaseModel):
    found: int
    kept: int
    deleted: int
    failed_batches: int = 0
    dry_run: bool = False
