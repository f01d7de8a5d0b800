"""WorkspaceMember model for user-workspace relationships."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskflow_api.models.base import Base, generate_uuid, utc_now
from taskflow_api.models.enums import WorkspaceRole

if TYPE_CHECKING:
    from taskflow_api.models.user import User
    from taskflow_api.models.workspace import Workspace


class WorkspaceMember(Base):
    """Roster entry linking a user to a workspace with a role.

    This table is the single record of which workspaces a user belongs to.
    Removing a member deactivates the entry instead of deleting it; a user
    appears at most once among the *active* entries of a workspace.
    """

    __tablename__ = "workspace_members"
    __table_args__ = (
        # Partial unique index: one active entry per workspace+user
        Index(
            "ix_workspace_member_active",
            "workspace_id",
            "user_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )
    workspace_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role: Mapped[WorkspaceRole] = mapped_column(
        Enum(WorkspaceRole, values_callable=lambda e: [x.value for x in e]),
        nullable=False,
        default=WorkspaceRole.MEMBER,
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )
    added_by_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Relationships
    workspace: Mapped[Workspace] = relationship(back_populates="members")
    user: Mapped[User] = relationship(foreign_keys=[user_id], lazy="joined")
