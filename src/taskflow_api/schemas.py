"""Pydantic schemas for API request/response models."""

import math
from datetime import datetime
from typing import Annotated

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
)

from taskflow_api.models import (
    DifficultyLevel,
    Priority,
    Theme,
    UserRole,
    Workspace,
    WorkspaceMember,
    WorkspaceRole,
    WorkStatus,
    WorkType,
)


class MessageResponse(BaseModel):
    message: str


class Pagination(BaseModel):
    """Pagination block of list responses."""

    current: int
    total: int  # number of pages
    has_next: bool
    has_prev: bool
    total_items: int

    @classmethod
    def build(cls, page: int, limit: int, total_items: int) -> "Pagination":
        pages = math.ceil(total_items / limit) if limit else 0
        return cls(
            current=page,
            total=pages,
            has_next=page < pages,
            has_prev=page > 1,
            total_items=total_items,
        )


# --- User Schemas ---


def _strip(value):
    return value.strip() if isinstance(value, str) else value


# Accounts are keyed by the lower-cased address
Email = Annotated[EmailStr, BeforeValidator(_strip), AfterValidator(str.lower)]


class UserResponse(BaseModel):
    """Schema for user response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    avatar: str | None
    role: UserRole
    is_active: bool
    email_verified: bool
    last_login: datetime | None
    current_workspace_id: str | None
    theme: Theme
    notifications: bool
    auto_save: bool
    timezone: str
    created_at: datetime


class UserStatsResponse(BaseModel):
    """Derived counters of a user."""

    model_config = ConfigDict(from_attributes=True)

    total_tasks: int
    completed_tasks: int
    total_sessions: int
    completed_sessions: int
    total_focus_time: int  # minutes
    streak: int
    last_active: datetime


# --- Workspace Schemas ---


class MemberResponse(BaseModel):
    """Active roster entry with the member's public profile."""

    user_id: str
    name: str
    email: str
    avatar: str | None
    role: WorkspaceRole
    joined_at: datetime
    added_by_id: str | None

    @classmethod
    def from_entry(cls, entry: WorkspaceMember) -> "MemberResponse":
        return cls(
            user_id=entry.user_id,
            name=entry.user.name,
            email=entry.user.email,
            avatar=entry.user.avatar,
            role=entry.role,
            joined_at=entry.joined_at,
            added_by_id=entry.added_by_id,
        )


class WorkspaceResponse(BaseModel):
    """Schema for workspace response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str | None
    owner_id: str
    allow_self_assignment: bool
    require_approval: bool
    auto_reports: bool
    total_tasks: int
    completed_tasks: int
    total_sessions: int
    completed_sessions: int
    total_members: int
    active_members: int
    productivity: int
    created_at: datetime
    updated_at: datetime


class WorkspaceDetailResponse(WorkspaceResponse):
    """Workspace with the active roster and the caller's role."""

    role: WorkspaceRole
    members: list[MemberResponse]

    @classmethod
    def build(cls, workspace: Workspace, role: WorkspaceRole) -> "WorkspaceDetailResponse":
        base = WorkspaceResponse.model_validate(workspace)
        return cls(
            **base.model_dump(),
            role=role,
            members=[MemberResponse.from_entry(m) for m in workspace.active_entries],
        )


class WorkspaceSummaryResponse(BaseModel):
    """One of the caller's workspaces."""

    workspace: WorkspaceResponse
    role: WorkspaceRole
    joined_at: datetime
    is_current: bool


# --- Task Schemas ---


class TaskCreate(BaseModel):
    """Schema for creating a task."""

    name: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    priority: Priority = Priority.MEDIUM
    category: str | None = Field(default=None, max_length=50)
    tags: list[str] = []
    due_date: datetime | None = None
    estimated_time: int | None = Field(default=None, ge=0)
    workspace_id: str | None = None
    assigned_to: str | None = None
    task_type: WorkType | None = None


class TaskUpdate(BaseModel):
    """Schema for updating a task. Omitted fields are left unchanged."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    priority: Priority | None = None
    status: WorkStatus | None = None
    category: str | None = Field(default=None, max_length=50)
    tags: list[str] | None = None
    due_date: datetime | None = None
    estimated_time: int | None = Field(default=None, ge=0)
    actual_time: int | None = Field(default=None, ge=0)
    timer_seconds: int | None = Field(default=None, ge=0)

    @field_validator("priority", "status", "tags", "timer_seconds")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class TaskCompletionReportCreate(BaseModel):
    is_completed: bool = True
    completion_percentage: int | None = Field(default=None, ge=0, le=100)
    quality_rating: int | None = Field(default=None, ge=1, le=5)
    difficulty_level: DifficultyLevel | None = None
    reason: str | None = None
    notes: str | None = None
    next_steps: str | None = None
    time_spent: int | None = Field(default=None, ge=0)  # seconds


class TaskCompletionReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    completed_at: datetime
    is_completed: bool
    completion_percentage: int | None
    quality_rating: int | None
    difficulty_level: DifficultyLevel | None
    reason: str | None
    notes: str | None
    next_steps: str | None
    time_spent: int | None


class TaskResponse(BaseModel):
    """Schema for task response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    workspace_id: str
    assigned_to_id: str
    assigned_by_id: str
    task_type: WorkType
    name: str
    description: str | None
    priority: Priority
    status: WorkStatus
    category: str | None
    tags: list[str]
    due_date: datetime | None
    estimated_time: int | None
    actual_time: int | None
    timer_seconds: int
    completed_at: datetime | None
    completion_rate: int
    completion_reports: list[TaskCompletionReportResponse]
    created_at: datetime
    updated_at: datetime


class TaskListResponse(BaseModel):
    """Schema for paginated task list."""

    tasks: list[TaskResponse]
    pagination: Pagination


# --- Session Schemas ---


class SessionEntryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    duration: int = Field(gt=0)  # minutes
    priority: Priority = Priority.MEDIUM
    task_id: str | None = None


class SessionCreate(BaseModel):
    """Schema for creating a session."""

    name: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    tasks: list[SessionEntryCreate]
    workspace_id: str | None = None
    assigned_to: str | None = None
    session_type: WorkType | None = None


class SessionUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    status: WorkStatus | None = None


class SessionTaskComplete(BaseModel):
    """Outcome of a single session entry."""

    is_completed: bool = True
    completion_percentage: int | None = Field(default=100, ge=0, le=100)
    reason: str | None = None
    notes: str | None = None
    was_delayed: bool = False
    task_status: str | None = "Completed"


class SessionReportCreate(BaseModel):
    actual_time: int | None = Field(default=None, ge=0)  # seconds
    session_completed: bool = False


class SessionEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    position: int
    task_id: str | None
    name: str
    duration: int
    priority: Priority
    completed: bool
    completed_at: datetime | None
    was_delayed: bool
    task_status: str | None


class SessionTaskReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    session_task_id: str | None
    task_name: str
    is_completed: bool
    completion_percentage: int | None
    reason: str | None
    notes: str | None
    was_delayed: bool
    task_status: str | None
    reported_at: datetime


class SessionResponse(BaseModel):
    """Schema for session response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    workspace_id: str
    assigned_to_id: str
    assigned_by_id: str
    session_type: WorkType
    name: str
    description: str | None
    status: WorkStatus
    total_time: int
    actual_time: int | None
    completed_tasks: int
    completion_rate: int
    efficiency: int
    started_at: datetime | None
    completed_at: datetime | None
    entries: list[SessionEntryResponse]
    reports: list[SessionTaskReportResponse]
    created_at: datetime
    updated_at: datetime


class SessionListResponse(BaseModel):
    """Schema for paginated session list."""

    sessions: list[SessionResponse]
    pagination: Pagination


class SessionTaskCompleteResponse(BaseModel):
    session: SessionResponse
    report: SessionTaskReportResponse


class SessionAnalyticsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_sessions: int
    completed_sessions: int
    total_planned_time: int
    total_actual_time: int
    avg_completion_rate: float
    status_breakdown: dict[str, int]

