"""Refresh token lifecycle: issue, exchange, revoke and prune."""

import logging
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow_api.auth.tokens import (
    digest_token,
    generate_refresh_token,
    get_token_manager,
)
from taskflow_api.config import jwt_settings
from taskflow_api.exceptions import InvalidOrExpiredToken
from taskflow_api.models import RefreshToken, User
from taskflow_api.models.base import utc_now

logger = logging.getLogger(__name__)


@dataclass
class TokenPair:
    """Credentials handed to the client at login/registration."""

    access_token: str
    refresh_token: str
    expires_in: int  # access token lifetime, seconds


async def issue_token_pair(db: AsyncSession, user: User) -> TokenPair:
    """Mint an access token and persist a new refresh token for the user."""
    refresh_token = generate_refresh_token()
    db.add(
        RefreshToken(
            user_id=user.id,
            token_hash=digest_token(refresh_token),
            expires_at=utc_now() + timedelta(days=jwt_settings.refresh_token_ttl_days),
        )
    )
    await db.flush()

    manager = get_token_manager()
    return TokenPair(
        access_token=manager.create_access_token(user.id),
        refresh_token=refresh_token,
        expires_in=manager.expires_in,
    )


async def refresh_access_token(db: AsyncSession, refresh_token: str) -> tuple[User, str]:
    """Exchange a refresh token for a new access token.

    Returns:
        Tuple of (user, access_token)

    Raises:
        InvalidOrExpiredToken: If the token is unknown, expired, or its user
            is inactive
    """
    result = await db.execute(
        select(RefreshToken).where(RefreshToken.token_hash == digest_token(refresh_token))
    )
    stored = result.scalar_one_or_none()
    if stored is None or stored.is_expired:
        raise InvalidOrExpiredToken("Invalid or expired refresh token")

    user = await db.get(User, stored.user_id)
    if user is None or not user.is_active:
        raise InvalidOrExpiredToken("Invalid refresh token")

    user.last_active = utc_now()
    await db.flush()
    return user, get_token_manager().create_access_token(user.id)


async def revoke_refresh_token(db: AsyncSession, user: User, refresh_token: str) -> bool:
    """Invalidate a single refresh token of the user (logout).

    Returns:
        True if a token was removed
    """
    result = await db.execute(
        delete(RefreshToken).where(
            RefreshToken.user_id == user.id,
            RefreshToken.token_hash == digest_token(refresh_token),
        )
    )
    await db.flush()
    return result.rowcount > 0


async def prune_expired_tokens(db: AsyncSession, user: User) -> int:
    """Delete the user's expired refresh tokens.

    Returns:
        Number of tokens removed
    """
    result = await db.execute(
        delete(RefreshToken).where(
            RefreshToken.user_id == user.id,
            RefreshToken.expires_at <= utc_now(),
        )
    )
    if result.rowcount:
        logger.info("Pruned %d expired refresh token(s) for user %s", result.rowcount, user.id)
    return result.rowcount
