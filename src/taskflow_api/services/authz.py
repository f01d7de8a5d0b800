"""Workspace membership authorization.

Pure decisions over a workspace whose roster is already loaded. Nothing here
touches the database. Every role check in the application goes through this
module so ownership and roster roles are always evaluated the same way.
"""

from collections.abc import Callable

from taskflow_api.exceptions import CannotRemoveOwner, Forbidden, NotFound
from taskflow_api.models import Workspace, WorkspaceMember, WorkspaceRole

MANAGING_ROLES = frozenset({WorkspaceRole.OWNER, WorkspaceRole.MANAGER})


def active_entry(workspace: Workspace, user_id: str) -> WorkspaceMember | None:
    """Get the user's active roster entry, if any."""
    for member in workspace.members:
        if member.user_id == user_id and member.is_active:
            return member
    return None


def is_owner(workspace: Workspace, user_id: str) -> bool:
    return workspace.owner_id == user_id


def is_member(workspace: Workspace, user_id: str) -> bool:
    """True iff the user has an active roster entry."""
    return active_entry(workspace, user_id) is not None


def role_of(workspace: Workspace, user_id: str) -> WorkspaceRole | None:
    """Effective role of a user.

    The owner is reported as OWNER regardless of the roster entry.
    """
    if is_owner(workspace, user_id):
        return WorkspaceRole.OWNER
    entry = active_entry(workspace, user_id)
    return entry.role if entry else None


def is_manager(workspace: Workspace, user_id: str) -> bool:
    return role_of(workspace, user_id) in MANAGING_ROLES


def can_view(workspace: Workspace, user_id: str) -> bool:
    return is_owner(workspace, user_id) or is_member(workspace, user_id)


def can_manage_invites(workspace: Workspace, user_id: str) -> bool:
    return is_manager(workspace, user_id)


def can_add_member(workspace: Workspace, user_id: str) -> bool:
    return is_manager(workspace, user_id)


def can_update_workspace(workspace: Workspace, user_id: str) -> bool:
    return is_manager(workspace, user_id)


def can_remove_member(workspace: Workspace, acting_user_id: str, target_id: str) -> bool:
    """Whether the acting user may remove the target.

    Raises:
        CannotRemoveOwner: If the target is the workspace owner
    """
    if is_owner(workspace, target_id):
        raise CannotRemoveOwner()
    return is_manager(workspace, acting_user_id)


def require_member(workspace: Workspace, user_id: str) -> WorkspaceRole:
    """Require the user can see the workspace.

    Non-members get NotFound so workspace existence is not leaked.
    """
    role = role_of(workspace, user_id)
    if role is None:
        raise NotFound("Workspace not found")
    return role


def require_manager(
    workspace: Workspace,
    user_id: str,
    action: str,
    allowed: Callable[[Workspace, str], bool] = is_manager,
) -> WorkspaceRole:
    """Require the user may perform a managers-only action.

    Args:
        action: Description used in the error message
        allowed: The ``can_*`` predicate of the action

    Raises:
        NotFound: If the user is not a member at all
        Forbidden: If the predicate denies the user
    """
    role = require_member(workspace, user_id)
    if not allowed(workspace, user_id):
        raise Forbidden(f"Only managers can {action}")
    return role
