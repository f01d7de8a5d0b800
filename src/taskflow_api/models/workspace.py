"""Workspace model: the tenant boundary for tasks and sessions."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskflow_api.models.base import (
    Base,
    TimestampMixin,
    as_utc,
    generate_uuid,
    utc_now,
)

if TYPE_CHECKING:
    from taskflow_api.models.workspace_member import WorkspaceMember


class Workspace(Base, TimestampMixin):
    """Shared workspace owned by exactly one user.

    The roster (``members``) always contains an explicit manager entry for the
    owner. ``version`` is bumped on every ORM flush that touches the row, so
    two managers mutating the roster or the invite token at the same time
    cannot silently overwrite each other.
    """

    __tablename__ = "workspaces"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    # Immutable after creation
    owner_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Settings
    allow_self_assignment: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    require_approval: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    auto_reports: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Stats (derived counters, see taskflow_api.services.stats)
    total_tasks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed_tasks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_sessions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed_sessions: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    total_members: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    active_members: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Shareable invite link (at most one live token per workspace)
    invite_token: Mapped[str | None] = mapped_column(
        String(64),
        unique=True,
        nullable=True,
    )
    invite_token_expiry: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    invite_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    # Relationships
    members: Mapped[list[WorkspaceMember]] = relationship(
        back_populates="workspace",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="WorkspaceMember.joined_at",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def productivity(self) -> int:
        """Percentage of created tasks that have been completed."""
        if not self.total_tasks:
            return 0
        return round(self.completed_tasks * 100 / self.total_tasks)

    @property
    def active_entries(self) -> list[WorkspaceMember]:
        return [m for m in self.members if m.is_active]

    def is_invite_valid(self, now: datetime | None = None) -> bool:
        """A token is valid iff present, enabled and unexpired."""
        if not self.invite_token or not self.invite_enabled:
            return False
        if self.invite_token_expiry is None:
            return False
        return (now or utc_now()) < as_utc(self.invite_token_expiry)
