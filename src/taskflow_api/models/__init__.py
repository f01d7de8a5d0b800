"""Database models."""

from taskflow_api.models.base import Base, TimestampMixin
from taskflow_api.models.enums import (
    DifficultyLevel,
    Priority,
    Theme,
    UserRole,
    WorkspaceRole,
    WorkStatus,
    WorkType,
)
from taskflow_api.models.refresh_token import RefreshToken
from taskflow_api.models.task import Task, TaskCompletionReport
from taskflow_api.models.user import User
from taskflow_api.models.work_session import (
    SessionTask,
    SessionTaskReport,
    WorkSession,
)
from taskflow_api.models.workspace import Workspace
from taskflow_api.models.workspace_member import WorkspaceMember

__all__ = [
    "Base",
    "DifficultyLevel",
    "Priority",
    "RefreshToken",
    "SessionTask",
    "SessionTaskReport",
    "Task",
    "TaskCompletionReport",
    "Theme",
    "TimestampMixin",
    "User",
    "UserRole",
    "WorkSession",
    "WorkStatus",
    "WorkType",
    "Workspace",
    "WorkspaceMember",
    "WorkspaceRole",
]
