"""
Pydantic models for user accounts.

Clients and providers register themselves; the ADMIN role can only be
granted by another administrator.  Passwords are never returned.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class UserBase(BaseModel):
    email: str = Field(..., description="Login e-mail, unique")
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None


class UserCreate(UserBase):
    """Schema for registering a user."""

    password: str = Field(..., min_length=6)
    role: str = Field("CLIENT", description="CLIENT or PROVIDER")

    @field_validator("email")
    @classmethod
    def normalise_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Invalid e-mail address")
        return v

    @field_validator("role")
    @classmethod
    def check_role(cls, v: str) -> str:
        v = v.strip().upper()
        if v not in {"CLIENT", "PROVIDER"}:
            raise ValueError("Role must be CLIENT or PROVIDER")
        return v


class UserLogin(BaseModel):
    email: str
    password: str


class UserUpdate(BaseModel):
    """Fields a user may change on their own profile.

    ``role`` and ``disabled`` are only honoured for administrators.
    """

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    password: Optional[str] = Field(None, min_length=6)
    role: Optional[str] = None
    disabled: Optional[bool] = None

    @field_validator("password", "role", "disabled")
    @classmethod
    def not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class UserRead(UserBase):
    """Schema for reading a user from the API."""

    id: int
    role: str
    is_verified: bool = False
    disabled: bool = False

    model_config = {
        "from_attributes": True,
    }


class UserRole(BaseModel):
    role: str
    is_provider: bool


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
