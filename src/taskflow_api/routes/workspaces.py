"""Workspace management routes: roster, current workspace and invite links."""

from dataclasses import asdict
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow_api.auth import get_current_user
from taskflow_api.db import get_db
from taskflow_api.exceptions import NotFound
from taskflow_api.models import User, Workspace, WorkspaceRole
from taskflow_api.schemas import (
    Email,
    MemberResponse,
    MessageResponse,
    WorkspaceDetailResponse,
    WorkspaceResponse,
    WorkspaceSummaryResponse,
)
from taskflow_api.services import authz, invites, users
from taskflow_api.services import workspaces as workspace_service

router = APIRouter(prefix="/workspaces", tags=["workspaces"])


# --- Schemas ---


class WorkspaceCreate(BaseModel):
    """Create a new workspace."""

    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    allow_self_assignment: bool = True
    require_approval: bool = False
    auto_reports: bool = True


class WorkspaceUpdate(BaseModel):
    """Update a workspace. Omitted fields are left unchanged."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    allow_self_assignment: bool | None = None
    require_approval: bool | None = None
    auto_reports: bool | None = None


class MemberAdd(BaseModel):
    """Add an existing user to the roster by email."""

    email: Email
    role: WorkspaceRole = WorkspaceRole.MEMBER


class InviteResponse(BaseModel):
    token: str | None
    expires_at: datetime | None
    is_active: bool
    link: str | None


class InvitePreviewResponse(BaseModel):
    """What a token holder sees before joining."""

    workspace_id: str
    name: str
    description: str | None
    owner_name: str
    active_members: int
    expires_at: datetime


class JoinResponse(BaseModel):
    workspace: WorkspaceResponse
    role: WorkspaceRole
    joined: bool  # False when the user was already a member


def _detail(workspace: Workspace, user: User) -> WorkspaceDetailResponse:
    return WorkspaceDetailResponse.build(workspace, authz.role_of(workspace, user.id))


# --- Routes ---


@router.post(
    "",
    response_model=WorkspaceDetailResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_workspace(
    request: WorkspaceCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Create a workspace; the caller becomes its owner."""
    workspace = await workspace_service.create_workspace(
        db,
        current_user,
        name=request.name,
        description=request.description,
        allow_self_assignment=request.allow_self_assignment,
        require_approval=request.require_approval,
        auto_reports=request.auto_reports,
    )
    await db.commit()
    return _detail(workspace, current_user)


@router.get("", response_model=list[WorkspaceSummaryResponse])
async def list_workspaces(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    """List workspaces the caller is an active member of."""
    memberships = await workspace_service.list_user_workspaces(db, current_user)
    return [
        WorkspaceSummaryResponse(
            workspace=WorkspaceResponse.model_validate(workspace),
            role=authz.role_of(workspace, current_user.id),
            joined_at=entry.joined_at,
            is_current=workspace.id == current_user.current_workspace_id,
        )
        for workspace, entry in memberships
    ]


@router.get("/current", response_model=WorkspaceDetailResponse | None)
async def get_current_workspace(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    """The caller's current workspace, or null if none is selected."""
    workspace = await workspace_service.get_current_workspace(db, current_user)
    if workspace is None:
        return None
    return _detail(workspace, current_user)


@router.get("/invites/{token}", response_model=InvitePreviewResponse)
async def preview_invite(
    token: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Check an invite token and describe the workspace behind it."""
    workspace = await invites.validate_invite(db, token)
    owner = authz.active_entry(workspace, workspace.owner_id)
    return InvitePreviewResponse(
        workspace_id=workspace.id,
        name=workspace.name,
        description=workspace.description,
        owner_name=owner.user.name if owner else "",
        active_members=workspace.active_members,
        expires_at=workspace.invite_token_expiry,
    )


@router.post("/invites/{token}/join", response_model=JoinResponse)
async def join_workspace(
    token: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Redeem an invite token. Joining twice is not an error."""
    workspace, entry, joined = await invites.redeem_invite(db, token, current_user)
    await db.commit()
    return JoinResponse(
        workspace=WorkspaceResponse.model_validate(workspace),
        role=entry.role,
        joined=joined,
    )


@router.get("/{workspace_id}", response_model=WorkspaceDetailResponse)
async def get_workspace(
    workspace_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    workspace = await workspace_service.get_workspace(db, current_user, workspace_id)
    return _detail(workspace, current_user)


@router.patch("/{workspace_id}", response_model=WorkspaceDetailResponse)
async def update_workspace(
    workspace_id: str,
    request: WorkspaceUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Update workspace details and settings (managers only)."""
    workspace = await workspace_service.get_workspace(db, current_user, workspace_id)
    await workspace_service.update_workspace(
        db,
        workspace,
        current_user,
        name=request.name,
        description=request.description,
        allow_self_assignment=request.allow_self_assignment,
        require_approval=request.require_approval,
        auto_reports=request.auto_reports,
    )
    await db.commit()
    return _detail(workspace, current_user)


@router.post(
    "/{workspace_id}/members",
    response_model=MemberResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_member(
    workspace_id: str,
    request: MemberAdd,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Add an existing user to the workspace (managers only)."""
    workspace = await workspace_service.get_workspace(db, current_user, workspace_id)
    target = await users.get_user_by_email(db, request.email, active_only=True)
    if target is None:
        raise NotFound("User not found")

    entry = await workspace_service.add_member(
        db, workspace, target, current_user, role=request.role
    )
    await db.commit()
    return MemberResponse.from_entry(entry)


@router.delete("/{workspace_id}/members/{user_id}", response_model=MessageResponse)
async def remove_member(
    workspace_id: str,
    user_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Remove a member from the workspace (managers only, never the owner)."""
    workspace = await workspace_service.get_workspace(db, current_user, workspace_id)
    await workspace_service.remove_member(db, workspace, user_id, current_user)
    await db.commit()
    return MessageResponse(message="Member removed successfully")


@router.post("/{workspace_id}/leave", response_model=MessageResponse)
async def leave_workspace(
    workspace_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    workspace = await workspace_service.get_workspace(db, current_user, workspace_id)
    await workspace_service.leave_workspace(db, workspace, current_user)
    await db.commit()
    return MessageResponse(message="Left workspace successfully")


@router.post("/{workspace_id}/current", response_model=WorkspaceDetailResponse)
async def set_current_workspace(
    workspace_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Make this workspace the caller's default context."""
    await workspace_service.set_current_workspace(db, current_user, workspace_id)
    await db.commit()
    workspace = await workspace_service.get_workspace(db, current_user, workspace_id)
    return _detail(workspace, current_user)


@router.post("/{workspace_id}/invite", response_model=InviteResponse)
async def generate_invite(
    workspace_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Issue a new invite link, replacing any previous one (managers only)."""
    workspace = await workspace_service.get_workspace(db, current_user, workspace_id)
    info = await invites.generate_invite(db, workspace, current_user)
    await db.commit()
    return InviteResponse(**asdict(info))


@router.get("/{workspace_id}/invite", response_model=InviteResponse)
async def get_invite(
    workspace_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    workspace = await workspace_service.get_workspace(db, current_user, workspace_id)
    return InviteResponse(**asdict(invites.invite_info(workspace, current_user)))


@router.delete("/{workspace_id}/invite", response_model=MessageResponse)
async def disable_invite(
    workspace_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    workspace = await workspace_service.get_workspace(db, current_user, workspace_id)
    await invites.disable_invite(db, workspace, current_user)
    await db.commit()
    return MessageResponse(message="Invite link disabled")
