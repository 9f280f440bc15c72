"""
Registration and login endpoints.

Login returns a bearer token whose ``sub`` claim is the user's e-mail.
"""

from fastapi import APIRouter, HTTPException, status

from beauty_marketplace_api.app.core.errors import http_error
from beauty_marketplace_api.app.core.security import create_access_token
from beauty_marketplace_api.app.schemas.user import Token, UserCreate, UserLogin, UserRead
from beauty_marketplace_api.app.services.user_service import UserService


router = APIRouter()


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def register(user: UserCreate) -> UserRead:
    """Register a client or provider account."""
    try:
        return await UserService.create_user(user)
    except ValueError as e:
        raise http_error(e)


@router.post("/login", response_model=Token)
async def login(credentials: UserLogin) -> Token:
    db_user = await UserService.authenticate(credentials.email, credentials.password)
    if not db_user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if db_user.disabled:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User account disabled")
    return Token(access_token=create_access_token({"sub": db_user.email}))
