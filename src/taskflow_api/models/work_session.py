"""WorkSession model: a planned, timed block of tasks."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskflow_api.models.base import Base, TimestampMixin, generate_uuid, utc_now
from taskflow_api.models.enums import Priority, WorkStatus, WorkType


class WorkSession(Base, TimestampMixin):
    """Ordered set of task entries tracked to completion.

    Each completed entry produces one ``SessionTaskReport``.
    """

    __tablename__ = "work_sessions"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    workspace_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    assigned_to_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    assigned_by_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    session_type: Mapped[WorkType] = mapped_column(
        Enum(WorkType, values_callable=lambda e: [x.value for x in e]),
        nullable=False,
        default=WorkType.INDIVIDUAL,
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    status: Mapped[WorkStatus] = mapped_column(
        Enum(WorkStatus, values_callable=lambda e: [x.value for x in e]),
        nullable=False,
        default=WorkStatus.PENDING,
        index=True,
    )
    # Seconds
    total_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    actual_time: Mapped[int | None] = mapped_column(Integer)
    completed_tasks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationships
    entries: Mapped[list[SessionTask]] = relationship(
        back_populates="session",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="SessionTask.position",
    )
    reports: Mapped[list[SessionTaskReport]] = relationship(
        back_populates="session",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="SessionTaskReport.reported_at",
    )

    @property
    def completion_rate(self) -> int:
        if not self.entries:
            return 0
        return round(self.completed_tasks * 100 / len(self.entries))

    @property
    def efficiency(self) -> int:
        """Planned time as a percentage of time actually spent."""
        if not self.total_time or not self.actual_time:
            return 0
        return round(self.total_time * 100 / self.actual_time)


class SessionTask(Base):
    """One planned entry of a session."""

    __tablename__ = "session_tasks"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )
    session_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("work_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    # Optional link to a standalone task
    task_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("tasks.id", ondelete="SET NULL"),
        nullable=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    # Minutes
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    priority: Mapped[Priority] = mapped_column(
        Enum(Priority, values_callable=lambda e: [x.value for x in e]),
        nullable=False,
        default=Priority.MEDIUM,
    )
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    was_delayed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    task_status: Mapped[str | None] = mapped_column(String(32))

    session: Mapped[WorkSession] = relationship(back_populates="entries")


class SessionTaskReport(Base):
    """IMMUTABLE append-only record of one entry-completion event."""

    __tablename__ = "session_task_reports"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )
    session_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("work_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    session_task_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("session_tasks.id", ondelete="SET NULL"),
        nullable=True,
    )
    task_name: Mapped[str] = mapped_column(String(200), nullable=False)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False)
    completion_percentage: Mapped[int | None] = mapped_column(Integer)
    reason: Mapped[str | None] = mapped_column(Text)
    notes: Mapped[str | None] = mapped_column(Text)
    was_delayed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    task_status: Mapped[str | None] = mapped_column(String(32))
    reported_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )

    session: Mapped[WorkSession] = relationship(back_populates="reports")
