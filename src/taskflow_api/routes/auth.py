"""Account and credential routes."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow_api.auth import get_current_user, get_jwks, get_token_manager
from taskflow_api.db import get_db
from taskflow_api.models import Theme, User
from taskflow_api.schemas import (
    Email,
    MessageResponse,
    UserResponse,
    UserStatsResponse,
)
from taskflow_api.services import refresh_tokens, users

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

# Served without the API prefix at the standard location
jwks_router = APIRouter(tags=["auth"])

MIN_PASSWORD_LENGTH = 6


# --- Schemas ---


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    email: Email
    password: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        return v


class LoginRequest(BaseModel):
    email: Email
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class ProfileUpdate(BaseModel):
    """Profile fields and preferences. Omitted fields are left unchanged."""

    name: str | None = Field(default=None, min_length=1, max_length=50)
    avatar: str | None = Field(default=None, max_length=512)
    theme: Theme | None = None
    notifications: bool | None = None
    auto_save: bool | None = None
    timezone: str | None = Field(default=None, max_length=64)


class AuthResponse(BaseModel):
    """Credentials issued at registration and login."""

    user: UserResponse
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int


class AccessTokenResponse(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    expires_in: int


# --- Routes ---


@jwks_router.get("/.well-known/jwks.json")
async def get_jwks_endpoint():
    """Public key set for verifying access tokens without calling the API."""
    return get_jwks()


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register(
    request: RegisterRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create an account and sign it in."""
    user = await users.create_user(db, request.name, request.email, request.password)
    pair = await refresh_tokens.issue_token_pair(db, user)
    await db.commit()
    await db.refresh(user)

    return AuthResponse(
        user=UserResponse.model_validate(user),
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        expires_in=pair.expires_in,
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    request: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    user = await users.verify_credentials(db, request.email, request.password)
    await refresh_tokens.prune_expired_tokens(db, user)
    await users.record_login(db, user)
    pair = await refresh_tokens.issue_token_pair(db, user)
    await db.commit()

    logger.info("User %s logged in", user.id)
    return AuthResponse(
        user=UserResponse.model_validate(user),
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        expires_in=pair.expires_in,
    )


@router.post("/refresh", response_model=AccessTokenResponse)
async def refresh(
    request: RefreshRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Exchange a refresh token for a new access token."""
    _, access_token = await refresh_tokens.refresh_access_token(
        db, request.refresh_token
    )
    await db.commit()
    return AccessTokenResponse(
        access_token=access_token,
        expires_in=get_token_manager().expires_in,
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: RefreshRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Invalidate the given refresh token of the current user."""
    await refresh_tokens.revoke_refresh_token(db, current_user, request.refresh_token)
    await db.commit()
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: Annotated[User, Depends(get_current_user)]):
    return current_user


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    request: ProfileUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    await users.update_profile(
        db,
        current_user,
        name=request.name,
        avatar=request.avatar,
        theme=request.theme,
        notifications=request.notifications,
        auto_save=request.auto_save,
        timezone=request.timezone,
    )
    await db.commit()
    await db.refresh(current_user)
    return current_user


@router.get("/stats", response_model=UserStatsResponse)
async def get_stats(current_user: Annotated[User, Depends(get_current_user)]):
    return current_user
