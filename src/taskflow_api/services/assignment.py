"""Workspace gating for new tasks and sessions.

Resolves which workspace new work belongs to and who it is assigned to,
enforcing that the assignee is on the workspace roster.
"""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from taskflow_api.exceptions import (
    AssigneeNotInWorkspace,
    Forbidden,
    NoWorkspaceContext,
)
from taskflow_api.models import User, Workspace, WorkType
from taskflow_api.services import authz
from taskflow_api.services.workspaces import get_current_workspace, get_workspace


@dataclass
class Assignment:
    workspace: Workspace
    assignee_id: str
    work_type: WorkType


async def resolve_workspace(
    db: AsyncSession, user: User, workspace_id: str | None = None
) -> Workspace:
    """Explicit workspace if given, else the user's current one.

    Raises:
        NotFound: If an explicit workspace is not visible to the user
        NoWorkspaceContext: If neither is available
    """
    if workspace_id:
        return await get_workspace(db, user, workspace_id)

    workspace = await get_current_workspace(db, user)
    if workspace is None:
        raise NoWorkspaceContext()
    return workspace


async def resolve_assignment(
    db: AsyncSession,
    user: User,
    workspace_id: str | None = None,
    assigned_to_id: str | None = None,
    work_type: WorkType | None = None,
) -> Assignment:
    """Validate where and to whom a new piece of work goes.

    Raises:
        NotFound: If an explicit workspace is not visible to the user
        NoWorkspaceContext: If no workspace can be determined
        AssigneeNotInWorkspace: If the assignee is not an active member
        Forbidden: If self-assignment is disabled and the user is not a manager
    """
    workspace = await resolve_workspace(db, user, workspace_id)

    assignee_id = assigned_to_id or user.id
    if assignee_id != user.id:
        if not authz.is_member(workspace, assignee_id):
            raise AssigneeNotInWorkspace()
    elif not workspace.allow_self_assignment and not authz.is_manager(
        workspace, user.id
    ):
        raise Forbidden("Self-assignment is disabled in this workspace")

    if work_type is None:
        work_type = (
            WorkType.INDIVIDUAL if assignee_id == user.id else WorkType.COLLABORATIVE
        )
    return Assignment(workspace=workspace, assignee_id=assignee_id, work_type=work_type)
