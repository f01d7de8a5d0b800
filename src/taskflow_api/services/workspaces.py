"""Workspace store: workspaces, rosters and the current-workspace pointer.

Roster changes, the member stat recompute and the affected user's
current-workspace pointer are flushed together, so callers commit one
consistent state or nothing. The workspace ``version`` column turns a
concurrent roster/invite write into ``WorkspaceModified`` instead of a lost
update.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from taskflow_api.exceptions import (
    AlreadyMember,
    CannotRemoveOwner,
    Forbidden,
    NotAMember,
    NotFound,
    ValidationError,
    WorkspaceModified,
)
from taskflow_api.models import User, Workspace, WorkspaceMember, WorkspaceRole
from taskflow_api.models.base import utc_now
from taskflow_api.services import authz

logger = logging.getLogger(__name__)

ROSTER_ROLES = frozenset({WorkspaceRole.MANAGER, WorkspaceRole.MEMBER})


def recompute_member_stats(workspace: Workspace) -> None:
    """Derive member counters from the roster held in memory."""
    workspace.total_members = len(workspace.members)
    workspace.active_members = len(workspace.active_entries)


async def flush_workspace(db: AsyncSession) -> None:
    """Flush pending workspace changes, surfacing concurrent edits.

    Raises:
        WorkspaceModified: If another transaction changed the workspace row
            since it was loaded
    """
    try:
        await db.flush()
    except StaleDataError as e:
        await db.rollback()
        logger.warning("Concurrent workspace modification detected: %s", e)
        raise WorkspaceModified() from e


async def get_workspace(db: AsyncSession, user: User, workspace_id: str) -> Workspace:
    """Get a workspace visible to the user.

    Raises:
        NotFound: If the workspace does not exist or the user cannot see it
    """
    workspace = await db.get(Workspace, workspace_id)
    if workspace is None or not workspace.is_active:
        raise NotFound("Workspace not found")
    authz.require_member(workspace, user.id)
    return workspace


async def create_workspace(
    db: AsyncSession,
    owner: User,
    name: str,
    description: str | None = None,
    allow_self_assignment: bool = True,
    require_approval: bool = False,
    auto_reports: bool = True,
) -> Workspace:
    """Create a workspace owned by ``owner``.

    The owner gets an explicit manager roster entry and, if they have no
    current workspace yet, the new workspace becomes current.
    """
    name = name.strip()
    if not name:
        raise ValidationError("Workspace name is required")

    workspace = Workspace(
        name=name,
        description=description.strip() if description else None,
        owner_id=owner.id,
        allow_self_assignment=allow_self_assignment,
        require_approval=require_approval,
        auto_reports=auto_reports,
    )
    workspace.members.append(
        WorkspaceMember(
            user_id=owner.id,
            user=owner,
            role=WorkspaceRole.MANAGER,
            joined_at=utc_now(),
            added_by_id=owner.id,
            is_active=True,
        )
    )
    recompute_member_stats(workspace)
    db.add(workspace)
    await db.flush()

    if owner.current_workspace_id is None:
        owner.current_workspace_id = workspace.id
        await db.flush()

    logger.info("User %s created workspace %s", owner.id, workspace.id)
    return workspace


async def update_workspace(
    db: AsyncSession,
    workspace: Workspace,
    acting_user: User,
    name: str | None = None,
    description: str | None = None,
    allow_self_assignment: bool | None = None,
    require_approval: bool | None = None,
    auto_reports: bool | None = None,
) -> Workspace:
    """Update workspace details and settings (managers only)."""
    authz.require_manager(
        workspace,
        acting_user.id,
        "update workspace settings",
        authz.can_update_workspace,
    )

    if name is not None:
        if not name.strip():
            raise ValidationError("Workspace name is required")
        workspace.name = name.strip()
    if description is not None:
        workspace.description = description.strip()
    if allow_self_assignment is not None:
        workspace.allow_self_assignment = allow_self_assignment
    if require_approval is not None:
        workspace.require_approval = require_approval
    if auto_reports is not None:
        workspace.auto_reports = auto_reports

    await flush_workspace(db)
    return workspace


async def enroll(
    db: AsyncSession,
    workspace: Workspace,
    user: User,
    role: WorkspaceRole,
    added_by_id: str,
) -> WorkspaceMember:
    """Put the user on the roster without any permission check.

    Reactivates a previous (inactive) entry when one exists so the roster
    never holds two entries for the same user.

    Raises:
        AlreadyMember: If the user already has an active entry
    """
    if role not in ROSTER_ROLES:
        raise ValidationError(f"Invalid member role: {role}")
    if authz.is_member(workspace, user.id):
        raise AlreadyMember()

    now = utc_now()
    entry = next((m for m in workspace.members if m.user_id == user.id), None)
    if entry is not None:
        entry.role = role
        entry.joined_at = now
        entry.added_by_id = added_by_id
        entry.is_active = True
    else:
        entry = WorkspaceMember(
            user_id=user.id,
            user=user,
            role=role,
            joined_at=now,
            added_by_id=added_by_id,
            is_active=True,
        )
        workspace.members.append(entry)

    recompute_member_stats(workspace)
    if user.current_workspace_id is None:
        user.current_workspace_id = workspace.id

    await flush_workspace(db)
    logger.info(
        "User %s joined workspace %s as %s", user.id, workspace.id, role.value
    )
    return entry


async def add_member(
    db: AsyncSession,
    workspace: Workspace,
    target: User,
    acting_user: User,
    role: WorkspaceRole = WorkspaceRole.MEMBER,
) -> WorkspaceMember:
    """Add a user to the roster (managers only).

    Raises:
        NotFound: If the acting user cannot see the workspace
        Forbidden: If the acting user is not a manager
        AlreadyMember: If the target is already an active member
    """
    authz.require_manager(
        workspace, acting_user.id, "add members", authz.can_add_member
    )
    return await enroll(db, workspace, target, role, added_by_id=acting_user.id)


async def _fallback_workspace_id(
    db: AsyncSession, user_id: str, excluded_workspace_id: str
) -> str | None:
    """Earliest remaining active membership of the user, if any."""
    result = await db.execute(
        select(WorkspaceMember.workspace_id)
        .join(Workspace, WorkspaceMember.workspace_id == Workspace.id)
        .where(
            WorkspaceMember.user_id == user_id,
            WorkspaceMember.is_active.is_(True),
            WorkspaceMember.workspace_id != excluded_workspace_id,
            Workspace.is_active.is_(True),
        )
        .order_by(WorkspaceMember.joined_at)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def _deactivate(db: AsyncSession, workspace: Workspace, entry: WorkspaceMember) -> None:
    target = entry.user
    fallback_id = None
    if target.current_workspace_id == workspace.id:
        fallback_id = await _fallback_workspace_id(db, target.id, workspace.id)

    entry.is_active = False
    recompute_member_stats(workspace)
    if target.current_workspace_id == workspace.id:
        target.current_workspace_id = fallback_id

    await flush_workspace(db)


async def remove_member(
    db: AsyncSession,
    workspace: Workspace,
    target_user_id: str,
    acting_user: User,
) -> None:
    """Remove a user from the roster (managers only).

    Raises:
        NotFound: If the acting user cannot see the workspace, or the target
            is not an active member
        CannotRemoveOwner: If the target is the workspace owner
        Forbidden: If the acting user is not a manager
    """
    authz.require_member(workspace, acting_user.id)
    if not authz.can_remove_member(workspace, acting_user.id, target_user_id):
        raise Forbidden("Only managers can remove members")

    entry = authz.active_entry(workspace, target_user_id)
    if entry is None:
        raise NotFound("Member not found")

    await _deactivate(db, workspace, entry)
    logger.info(
        "User %s removed user %s from workspace %s",
        acting_user.id,
        target_user_id,
        workspace.id,
    )


async def leave_workspace(db: AsyncSession, workspace: Workspace, user: User) -> None:
    """Remove the user's own membership.

    Raises:
        CannotRemoveOwner: If the user owns the workspace
    """
    authz.require_member(workspace, user.id)
    if authz.is_owner(workspace, user.id):
        raise CannotRemoveOwner("The workspace owner cannot leave the workspace")

    entry = authz.active_entry(workspace, user.id)
    await _deactivate(db, workspace, entry)
    logger.info("User %s left workspace %s", user.id, workspace.id)


async def set_current_workspace(
    db: AsyncSession, user: User, workspace_id: str
) -> WorkspaceMember:
    """Point the user's default context at one of their workspaces.

    Raises:
        NotAMember: If the user has no active membership in the workspace
    """
    result = await db.execute(
        select(WorkspaceMember)
        .join(Workspace, WorkspaceMember.workspace_id == Workspace.id)
        .where(
            WorkspaceMember.user_id == user.id,
            WorkspaceMember.workspace_id == workspace_id,
            WorkspaceMember.is_active.is_(True),
            Workspace.is_active.is_(True),
        )
    )
    entry = result.scalars().first()
    if entry is None:
        raise NotAMember()

    user.current_workspace_id = workspace_id
    await db.flush()
    return entry


async def get_current_workspace(db: AsyncSession, user: User) -> Workspace | None:
    """The user's current workspace, or None if unset."""
    if user.current_workspace_id is None:
        return None
    workspace = await db.get(Workspace, user.current_workspace_id)
    if workspace is None or not authz.can_view(workspace, user.id):
        return None
    return workspace


async def list_user_workspaces(
    db: AsyncSession, user: User
) -> list[tuple[Workspace, WorkspaceMember]]:
    """All workspaces the user is an active member of, oldest membership first."""
    result = await db.execute(
        select(Workspace, WorkspaceMember)
        .join(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id)
        .where(
            WorkspaceMember.user_id == user.id,
            WorkspaceMember.is_active.is_(True),
            Workspace.is_active.is_(True),
        )
        .order_by(WorkspaceMember.joined_at)
    )
    return [(workspace, entry) for workspace, entry in result.unique().all()]
