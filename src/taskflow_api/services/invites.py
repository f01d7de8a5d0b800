"""Invite token lifecycle for workspaces.

A workspace carries at most one live invite token. Generating a new token
replaces the previous one; disabling keeps the token value but stops it from
being redeemed until the next generation.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow_api.config import settings
from taskflow_api.exceptions import AlreadyOwner, InvalidOrExpiredInvite
from taskflow_api.models import User, Workspace, WorkspaceMember, WorkspaceRole
from taskflow_api.models.base import as_utc, utc_now
from taskflow_api.services import authz
from taskflow_api.services.workspaces import enroll, flush_workspace

logger = logging.getLogger(__name__)

# 32 bytes -> 256 bits of entropy, 43 url-safe characters
INVITE_TOKEN_BYTES = 32


@dataclass
class InviteInfo:
    token: str | None
    expires_at: datetime | None
    is_active: bool
    link: str | None


def build_invite_link(token: str) -> str:
    return f"{settings.frontend_url.rstrip('/')}/join/{token}"


def _info(workspace: Workspace) -> InviteInfo:
    if not workspace.is_invite_valid():
        return InviteInfo(token=None, expires_at=None, is_active=False, link=None)
    return InviteInfo(
        token=workspace.invite_token,
        expires_at=as_utc(workspace.invite_token_expiry),
        is_active=True,
        link=build_invite_link(workspace.invite_token),
    )


async def generate_invite(
    db: AsyncSession, workspace: Workspace, acting_user: User
) -> InviteInfo:
    """Issue a fresh invite token, invalidating any previous one.

    Raises:
        NotFound: If the acting user cannot see the workspace
        Forbidden: If the acting user is not a manager
    """
    authz.require_manager(
        workspace, acting_user.id, "generate invite links", authz.can_manage_invites
    )

    workspace.invite_token = secrets.token_urlsafe(INVITE_TOKEN_BYTES)
    workspace.invite_token_expiry = utc_now() + timedelta(days=settings.invite_ttl_days)
    workspace.invite_enabled = True
    await flush_workspace(db)

    logger.info("User %s generated invite for workspace %s", acting_user.id, workspace.id)
    return _info(workspace)


async def disable_invite(db: AsyncSession, workspace: Workspace, acting_user: User) -> None:
    """Stop the current token from being redeemed."""
    authz.require_manager(
        workspace, acting_user.id, "disable invite links", authz.can_manage_invites
    )

    workspace.invite_enabled = False
    await flush_workspace(db)
    logger.info("User %s disabled invite for workspace %s", acting_user.id, workspace.id)


def invite_info(workspace: Workspace, acting_user: User) -> InviteInfo:
    """Current invite state, visible to managers only."""
    authz.require_manager(
        workspace, acting_user.id, "view invite links", authz.can_manage_invites
    )
    return _info(workspace)


async def validate_invite(db: AsyncSession, token: str) -> Workspace:
    """Resolve a token to the workspace it admits to.

    Raises:
        InvalidOrExpiredInvite: If no workspace holds the token, or the token
            is disabled or expired
    """
    if not token:
        raise InvalidOrExpiredInvite()

    result = await db.execute(select(Workspace).where(Workspace.invite_token == token))
    workspace = result.scalar_one_or_none()
    if workspace is None or not workspace.is_active or not workspace.is_invite_valid():
        raise InvalidOrExpiredInvite()
    return workspace


async def redeem_invite(
    db: AsyncSession, token: str, user: User
) -> tuple[Workspace, WorkspaceMember, bool]:
    """Join the workspace behind the token.

    Redeeming again as an active member is a no-op and returns the existing
    membership.

    Returns:
        Tuple of (workspace, roster entry, whether a new membership was made)

    Raises:
        InvalidOrExpiredInvite: If the token is not redeemable
        AlreadyOwner: If the user owns the workspace
    """
    workspace = await validate_invite(db, token)

    entry = authz.active_entry(workspace, user.id)
    if entry is not None:
        return workspace, entry, False
    if authz.is_owner(workspace, user.id):
        raise AlreadyOwner()

    entry = await enroll(
        db, workspace, user, WorkspaceRole.MEMBER, added_by_id=workspace.owner_id
    )
    logger.info("User %s redeemed invite for workspace %s", user.id, workspace.id)
    return workspace, entry, True
