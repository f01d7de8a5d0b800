"""Enumeration types for database models."""

import enum


class UserRole(str, enum.Enum):
    """Global role of a user account."""

    USER = "user"
    ADMIN = "admin"


class Theme(str, enum.Enum):
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


class WorkspaceRole(str, enum.Enum):
    """Role of a user within a workspace.

    Roster entries only ever store MANAGER or MEMBER. OWNER is reported by
    the authorization engine for the workspace owner and outranks MANAGER.
    """

    OWNER = "owner"
    MANAGER = "manager"  # Can manage members and invites
    MEMBER = "member"  # Participates in tasks and sessions


class Priority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class WorkStatus(str, enum.Enum):
    """Lifecycle status shared by tasks and sessions."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class WorkType(str, enum.Enum):
    """Whether work is personal or assigned within a team."""

    INDIVIDUAL = "individual"
    COLLABORATIVE = "collaborative"


class DifficultyLevel(str, enum.Enum):
    EASIER = "easier"
    AS_EXPECTED = "as-expected"
    HARDER = "harder"
