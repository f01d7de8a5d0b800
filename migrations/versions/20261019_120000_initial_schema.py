"""Initial schema: users, workspaces with rosters, tasks and work sessions.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19 12:00:00

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Shared between tables, so created explicitly once
user_role = postgresql.ENUM("user", "admin", name="userrole", create_type=False)
theme = postgresql.ENUM("light", "dark", "system", name="theme", create_type=False)
workspace_role = postgresql.ENUM(
    "owner", "manager", "member", name="workspacerole", create_type=False
)
priority = postgresql.ENUM(
    "low", "medium", "high", "urgent", name="priority", create_type=False
)
work_status = postgresql.ENUM(
    "pending",
    "in-progress",
    "completed",
    "cancelled",
    name="workstatus",
    create_type=False,
)
work_type = postgresql.ENUM(
    "individual", "collaborative", name="worktype", create_type=False
)
difficulty_level = postgresql.ENUM(
    "easier", "as-expected", "harder", name="difficultylevel", create_type=False
)

ENUMS = (
    user_role,
    theme,
    workspace_role,
    priority,
    work_status,
    work_type,
    difficulty_level,
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def _ownership() -> list[sa.Column]:
    """Creator, workspace and assignment columns shared by tasks and sessions."""
    return [
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "workspace_id",
            sa.String(36),
            sa.ForeignKey("workspaces.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "assigned_to_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "assigned_by_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Create the full schema."""
    bind = op.get_bind()
    for enum in ENUMS:
        enum.create(bind, checkfirst=True)

    # Users (current_workspace_id FK added after workspaces exist)
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), unique=True, nullable=False, index=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("avatar", sa.String(512), nullable=True),
        sa.Column("role", user_role, nullable=False, server_default="user"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column(
            "email_verified", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        sa.Column("current_workspace_id", sa.String(36), nullable=True),
        sa.Column("theme", theme, nullable=False, server_default="light"),
        sa.Column(
            "notifications", sa.Boolean, nullable=False, server_default=sa.true()
        ),
        sa.Column("auto_save", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("timezone", sa.String(64), nullable=False, server_default="UTC"),
        sa.Column("total_tasks", sa.Integer, nullable=False, server_default="0"),
        sa.Column("completed_tasks", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_sessions", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "completed_sessions", sa.Integer, nullable=False, server_default="0"
        ),
        sa.Column("total_focus_time", sa.Integer, nullable=False, server_default="0"),
        sa.Column("streak", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "last_active",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        *_timestamps(),
    )

    op.create_table(
        "refresh_tokens",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("token_hash", sa.String(64), unique=True, nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    op.create_table(
        "workspaces",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column(
            "owner_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="RESTRICT"),
            nullable=False,
            index=True,
        ),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("version", sa.Integer, nullable=False),
        sa.Column(
            "allow_self_assignment",
            sa.Boolean,
            nullable=False,
            server_default=sa.true(),
        ),
        sa.Column(
            "require_approval", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column(
            "auto_reports", sa.Boolean, nullable=False, server_default=sa.true()
        ),
        sa.Column("total_tasks", sa.Integer, nullable=False, server_default="0"),
        sa.Column("completed_tasks", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_sessions", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "completed_sessions", sa.Integer, nullable=False, server_default="0"
        ),
        sa.Column("total_members", sa.Integer, nullable=False, server_default="0"),
        sa.Column("active_members", sa.Integer, nullable=False, server_default="0"),
        sa.Column("invite_token", sa.String(64), unique=True, nullable=True),
        sa.Column("invite_token_expiry", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "invite_enabled", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        *_timestamps(),
    )

    op.create_foreign_key(
        "fk_users_current_workspace_id",
        "users",
        "workspaces",
        ["current_workspace_id"],
        ["id"],
        ondelete="SET NULL",
    )

    # Roster: at most one active entry per workspace+user
    op.create_table(
        "workspace_members",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "workspace_id",
            sa.String(36),
            sa.ForeignKey("workspaces.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("role", workspace_role, nullable=False, server_default="member"),
        sa.Column(
            "joined_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "added_by_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
    )
    op.create_index(
        "ix_workspace_member_active",
        "workspace_members",
        ["workspace_id", "user_id"],
        unique=True,
        postgresql_where=sa.text("is_active"),
    )

    op.create_table(
        "tasks",
        sa.Column("id", sa.String(36), primary_key=True),
        *_ownership(),
        sa.Column("task_type", work_type, nullable=False, server_default="individual"),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("priority", priority, nullable=False, server_default="medium"),
        sa.Column("status", work_status, nullable=False, server_default="pending"),
        sa.Column("category", sa.String(50), nullable=True),
        sa.Column("tags", sa.JSON, nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("estimated_time", sa.Integer, nullable=True),
        sa.Column("actual_time", sa.Integer, nullable=True),
        sa.Column("timer_seconds", sa.Integer, nullable=False, server_default="0"),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_tasks_status", "tasks", ["status"])
    op.create_index("ix_tasks_assignee_status", "tasks", ["assigned_to_id", "status"])
    op.create_index(
        "ix_tasks_workspace_created", "tasks", ["workspace_id", "created_at"]
    )

    op.create_table(
        "task_completion_reports",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "task_id",
            sa.String(36),
            sa.ForeignKey("tasks.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "completed_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "is_completed", sa.Boolean, nullable=False, server_default=sa.true()
        ),
        sa.Column("completion_percentage", sa.Integer, nullable=True),
        sa.Column("quality_rating", sa.Integer, nullable=True),
        sa.Column("difficulty_level", difficulty_level, nullable=True),
        sa.Column("reason", sa.Text, nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("next_steps", sa.Text, nullable=True),
        sa.Column("time_spent", sa.Integer, nullable=True),
    )

    op.create_table(
        "work_sessions",
        sa.Column("id", sa.String(36), primary_key=True),
        *_ownership(),
        sa.Column(
            "session_type", work_type, nullable=False, server_default="individual"
        ),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("status", work_status, nullable=False, server_default="pending"),
        sa.Column("total_time", sa.Integer, nullable=False, server_default="0"),
        sa.Column("actual_time", sa.Integer, nullable=True),
        sa.Column("completed_tasks", sa.Integer, nullable=False, server_default="0"),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_work_sessions_workspace_id", "work_sessions", ["workspace_id"])
    op.create_index(
        "ix_work_sessions_assigned_to_id", "work_sessions", ["assigned_to_id"]
    )
    op.create_index("ix_work_sessions_status", "work_sessions", ["status"])

    op.create_table(
        "session_tasks",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "session_id",
            sa.String(36),
            sa.ForeignKey("work_sessions.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("position", sa.Integer, nullable=False),
        sa.Column(
            "task_id",
            sa.String(36),
            sa.ForeignKey("tasks.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("duration", sa.Integer, nullable=False),
        sa.Column("priority", priority, nullable=False, server_default="medium"),
        sa.Column("completed", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "was_delayed", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column("task_status", sa.String(32), nullable=True),
    )

    op.create_table(
        "session_task_reports",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "session_id",
            sa.String(36),
            sa.ForeignKey("work_sessions.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "session_task_id",
            sa.String(36),
            sa.ForeignKey("session_tasks.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("task_name", sa.String(200), nullable=False),
        sa.Column("is_completed", sa.Boolean, nullable=False),
        sa.Column("completion_percentage", sa.Integer, nullable=True),
        sa.Column("reason", sa.Text, nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column(
            "was_delayed", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column("task_status", sa.String(32), nullable=True),
        sa.Column(
            "reported_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )


def downgrade() -> None:
    """Drop the full schema."""
    op.drop_table("session_task_reports")
    op.drop_table("session_tasks")
    op.drop_table("work_sessions")
    op.drop_table("task_completion_reports")
    op.drop_table("tasks")
    op.drop_index("ix_workspace_member_active", table_name="workspace_members")
    op.drop_table("workspace_members")
    op.drop_constraint(
        "fk_users_current_workspace_id", "users", type_="foreignkey"
    )
    op.drop_table("workspaces")
    op.drop_table("refresh_tokens")
    op.drop_table("users")

    bind = op.get_bind()
    for enum in reversed(ENUMS):
        enum.drop(bind, checkfirst=True)
