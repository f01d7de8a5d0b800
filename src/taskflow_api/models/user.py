"""User model."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from taskflow_api.models.base import Base, TimestampMixin, generate_uuid, utc_now
from taskflow_api.models.enums import Theme, UserRole


class User(Base, TimestampMixin):
    """User account.

    Workspace membership lives in the workspace roster (``WorkspaceMember``);
    the user row only points at the workspace used as default context.
    Stat columns are derived counters and must only be changed through
    ``taskflow_api.services.stats``.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    avatar: Mapped[str | None] = mapped_column(String(512))
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, values_callable=lambda e: [x.value for x in e]),
        nullable=False,
        default=UserRole.USER,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    email_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Default context for workspace-scoped queries (must be an active membership)
    current_workspace_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey(
            "workspaces.id",
            ondelete="SET NULL",
            use_alter=True,
            name="fk_users_current_workspace_id",
        ),
        nullable=True,
    )

    # Preferences
    theme: Mapped[Theme] = mapped_column(
        Enum(Theme, values_callable=lambda e: [x.value for x in e]),
        nullable=False,
        default=Theme.LIGHT,
    )
    notifications: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    auto_save: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC")

    # Stats
    total_tasks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed_tasks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_sessions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed_sessions: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    # Minutes
    total_focus_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_active: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )
