"""Domain errors raised by the service layer.

Each error carries the HTTP status it maps to and a stable machine-readable
code. The application installs a single handler that renders them as
``{"detail": ..., "code": ...}``.
"""

from fastapi import status


class TaskflowError(Exception):
    """Base exception for domain failures."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "internal_error"
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(TaskflowError):
    """Malformed or missing input the caller can correct."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"
    default_message = "Invalid request"


class NotFound(TaskflowError):
    """Entity is absent or not visible to the caller."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_message = "Not found"


class Forbidden(TaskflowError):
    """Entity exists but the caller lacks the required role."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    default_message = "Not authorized"


class Conflict(TaskflowError):
    """Request conflicts with current state."""

    status_code = status.HTTP_409_CONFLICT
    code = "conflict"
    default_message = "Conflict"


class InvalidCredentials(TaskflowError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "invalid_credentials"
    default_message = "Invalid credentials"


class InvalidOrExpiredToken(TaskflowError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "invalid_or_expired_token"
    default_message = "Invalid or expired token"


class InternalError(TaskflowError):
    pass


# --- Identity ---


class DuplicateEmail(Conflict):
    code = "duplicate_email"
    default_message = "User already exists with this email"


# --- Membership ---


class AlreadyMember(Conflict):
    code = "already_member"
    default_message = "User is already a member of this workspace"


class WorkspaceModified(Conflict):
    code = "workspace_modified"
    default_message = "Workspace was modified concurrently, please retry"


class CannotRemoveOwner(Forbidden):
    code = "cannot_remove_owner"
    default_message = "Cannot remove workspace owner"


class NotAMember(Forbidden):
    code = "not_a_member"
    default_message = "You are not a member of this workspace"


# --- Invites ---


class InvalidOrExpiredInvite(ValidationError):
    code = "invalid_or_expired_invite"
    default_message = "Invalid or expired invite link"


class AlreadyOwner(ValidationError):
    code = "already_owner"
    default_message = "You are the owner of this workspace"


# --- Assignment ---


class NoWorkspaceContext(ValidationError):
    code = "no_workspace_context"
    default_message = "No workspace selected. Create or join a workspace first"


class AssigneeNotInWorkspace(ValidationError):
    code = "assignee_not_in_workspace"
    default_message = "Assignee is not a member of this workspace"
