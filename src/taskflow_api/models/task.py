"""Task model and its completion reports."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskflow_api.models.base import Base, TimestampMixin, generate_uuid, utc_now
from taskflow_api.models.enums import DifficultyLevel, Priority, WorkStatus, WorkType


class Task(Base, TimestampMixin):
    """A unit of work bound to one workspace and one assignee.

    ``workspace_id`` is set at creation and never changes.
    """

    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_assignee_status", "assigned_to_id", "status"),
        Index("ix_tasks_workspace_created", "workspace_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )
    # Creator
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
    )
    assigned_to_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    assigned_by_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    task_type: Mapped[WorkType] = mapped_column(
        Enum(WorkType, values_callable=lambda e: [x.value for x in e]),
        nullable=False,
        default=WorkType.INDIVIDUAL,
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    priority: Mapped[Priority] = mapped_column(
        Enum(Priority, values_callable=lambda e: [x.value for x in e]),
        nullable=False,
        default=Priority.MEDIUM,
    )
    status: Mapped[WorkStatus] = mapped_column(
        Enum(WorkStatus, values_callable=lambda e: [x.value for x in e]),
        nullable=False,
        default=WorkStatus.PENDING,
        index=True,
    )
    category: Mapped[str | None] = mapped_column(String(50))
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    # Minutes
    estimated_time: Mapped[int | None] = mapped_column(Integer)
    actual_time: Mapped[int | None] = mapped_column(Integer)
    timer_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationships
    completion_reports: Mapped[list[TaskCompletionReport]] = relationship(
        back_populates="task",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="TaskCompletionReport.completed_at",
    )

    @property
    def completion_rate(self) -> int:
        """Average completion percentage over all reports."""
        if not self.completion_reports:
            return 0
        total = sum(r.completion_percentage or 0 for r in self.completion_reports)
        return round(total / len(self.completion_reports))


class TaskCompletionReport(Base):
    """IMMUTABLE append-only outcome record for a task."""

    __tablename__ = "task_completion_reports"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )
    task_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    completion_percentage: Mapped[int | None] = mapped_column(Integer)
    quality_rating: Mapped[int | None] = mapped_column(Integer)
    difficulty_level: Mapped[DifficultyLevel | None] = mapped_column(
        Enum(DifficultyLevel, values_callable=lambda e: [x.value for x in e])
    )
    reason: Mapped[str | None] = mapped_column(Text)
    notes: Mapped[str | None] = mapped_column(Text)
    next_steps: Mapped[str | None] = mapped_column(Text)
    # Seconds
    time_spent: Mapped[int | None] = mapped_column(Integer)

    task: Mapped[Task] = relationship(back_populates="completion_reports")
