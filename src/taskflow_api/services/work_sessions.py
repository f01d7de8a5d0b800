"""Work session service: planned blocks of task entries and their reports."""

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow_api.exceptions import Forbidden, NotFound, ValidationError
from taskflow_api.models import (
    Priority,
    SessionTask,
    SessionTaskReport,
    User,
    WorkSession,
    WorkStatus,
    WorkType,
)
from taskflow_api.models.base import utc_now
from taskflow_api.services import authz, stats
from taskflow_api.services.assignment import resolve_assignment
from taskflow_api.services.workspaces import get_workspace

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {
    "created_at": WorkSession.created_at,
    "updated_at": WorkSession.updated_at,
    "name": WorkSession.name,
    "started_at": WorkSession.started_at,
    "completed_at": WorkSession.completed_at,
}

UPDATABLE_FIELDS = frozenset({"name", "description"})


@dataclass
class PlannedEntry:
    name: str
    duration: int  # minutes
    priority: Priority = Priority.MEDIUM
    task_id: str | None = None


@dataclass
class SessionAnalytics:
    total_sessions: int = 0
    completed_sessions: int = 0
    total_planned_time: int = 0
    total_actual_time: int = 0
    avg_completion_rate: float = 0.0
    status_breakdown: dict[str, int] = field(default_factory=dict)


def _involves(session: WorkSession, user_id: str) -> bool:
    return user_id in (session.user_id, session.assigned_to_id)


async def create_session(
    db: AsyncSession,
    user: User,
    name: str,
    entries: list[PlannedEntry],
    description: str | None = None,
    workspace_id: str | None = None,
    assigned_to_id: str | None = None,
    session_type: WorkType | None = None,
) -> WorkSession:
    """Create a session with at least one planned entry.

    Raises:
        ValidationError: If the name is blank or no entries are given
        NoWorkspaceContext: If no workspace is given and none is current
        AssigneeNotInWorkspace: If the assignee is not an active member
    """
    if not name or not name.strip():
        raise ValidationError("Session name is required")
    if not entries:
        raise ValidationError("Session must have at least one task")

    assignment = await resolve_assignment(
        db,
        user,
        workspace_id=workspace_id,
        assigned_to_id=assigned_to_id,
        work_type=session_type,
    )

    session = WorkSession(
        user_id=user.id,
        workspace_id=assignment.workspace.id,
        assigned_to_id=assignment.assignee_id,
        assigned_by_id=user.id,
        session_type=assignment.work_type,
        name=name.strip(),
        description=description.strip() if description else None,
        status=WorkStatus.PENDING,
        total_time=sum(entry.duration for entry in entries) * 60,
        completed_tasks=0,
        reports=[],
    )
    for position, entry in enumerate(entries):
        session.entries.append(
            SessionTask(
                position=position,
                task_id=entry.task_id,
                name=entry.name,
                duration=entry.duration,
                priority=entry.priority,
                completed=False,
            )
        )
    db.add(session)
    await db.flush()
    await stats.session_created(db, session.workspace_id, session.assigned_to_id)

    logger.info(
        "User %s created session %s in workspace %s for %s",
        user.id,
        session.id,
        session.workspace_id,
        session.assigned_to_id,
    )
    return session


async def list_sessions(
    db: AsyncSession,
    user: User,
    status: WorkStatus | None = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    page: int = 1,
    limit: int = 10,
) -> tuple[list[WorkSession], int]:
    """Sessions the user created or is assigned, filtered and paginated."""
    if sort_by not in SORTABLE_FIELDS:
        raise ValidationError(f"Cannot sort by {sort_by}")

    conditions = [
        or_(WorkSession.user_id == user.id, WorkSession.assigned_to_id == user.id)
    ]
    if status is not None:
        conditions.append(WorkSession.status == status)

    total_result = await db.execute(
        select(func.count()).select_from(WorkSession).where(*conditions)
    )
    total = total_result.scalar() or 0

    sort_column = SORTABLE_FIELDS[sort_by]
    order = sort_column.asc() if sort_order == "asc" else sort_column.desc()
    result = await db.execute(
        select(WorkSession)
        .where(*conditions)
        .order_by(order, WorkSession.id)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def list_workspace_sessions(
    db: AsyncSession, user: User, workspace_id: str
) -> list[WorkSession]:
    workspace = await get_workspace(db, user, workspace_id)
    result = await db.execute(
        select(WorkSession)
        .where(WorkSession.workspace_id == workspace.id)
        .order_by(WorkSession.created_at.desc())
    )
    return list(result.scalars().all())


async def get_session(db: AsyncSession, user: User, session_id: str) -> WorkSession:
    """Get a session the user created or is assigned.

    Raises:
        NotFound: If the session does not exist or does not involve the user
    """
    session = await db.get(WorkSession, session_id)
    if session is None or not _involves(session, user.id):
        raise NotFound("Session not found")
    return session


async def set_session_status(
    db: AsyncSession, session: WorkSession, new_status: WorkStatus
) -> bool:
    """Move a session to ``new_status``.

    Returns:
        True if the session crossed the completed boundary (either way)
    """
    if new_status == WorkStatus.COMPLETED:
        result = await db.execute(
            update(WorkSession)
            .where(
                WorkSession.id == session.id,
                WorkSession.status != WorkStatus.COMPLETED,
            )
            .values(status=WorkStatus.COMPLETED, completed_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        transitioned = result.rowcount == 1
        if transitioned:
            await stats.session_completed(
                db, session.workspace_id, session.assigned_to_id
            )
    else:
        result = await db.execute(
            update(WorkSession)
            .where(
                WorkSession.id == session.id,
                WorkSession.status == WorkStatus.COMPLETED,
            )
            .values(status=new_status, completed_at=None)
            .execution_options(synchronize_session=False)
        )
        transitioned = result.rowcount == 1
        if transitioned:
            await stats.session_reopened(
                db, session.workspace_id, session.assigned_to_id
            )
        else:
            await db.execute(
                update(WorkSession)
                .where(WorkSession.id == session.id)
                .values(status=new_status)
                .execution_options(synchronize_session=False)
            )

    await db.refresh(session)
    return transitioned


async def update_session(
    db: AsyncSession, session: WorkSession, changes: dict[str, Any]
) -> WorkSession:
    """Apply field changes; a ``status`` change goes through the completion guard."""
    for name, value in changes.items():
        if name in UPDATABLE_FIELDS:
            if name == "name" and (value is None or not value.strip()):
                raise ValidationError("Session name is required")
            setattr(session, name, value)
    await db.flush()

    new_status = changes.get("status")
    if new_status is not None:
        await set_session_status(db, session, WorkStatus(new_status))
    return session


async def start_session(db: AsyncSession, session: WorkSession) -> WorkSession:
    if session.status == WorkStatus.COMPLETED:
        raise ValidationError("Session is already completed")
    session.status = WorkStatus.IN_PROGRESS
    session.started_at = utc_now()
    await db.flush()
    return session


async def complete_session_task(
    db: AsyncSession,
    session: WorkSession,
    index: int,
    is_completed: bool = True,
    completion_percentage: int | None = 100,
    reason: str | None = None,
    notes: str | None = None,
    was_delayed: bool = False,
    task_status: str | None = "Completed",
) -> SessionTaskReport:
    """Record the outcome of one entry and finish the session when all are done.

    Marking a done entry of a completed session as not completed reopens
    the session.

    Raises:
        ValidationError: If ``index`` does not address an entry
    """
    if index < 0 or index >= len(session.entries):
        raise ValidationError("Invalid task index")

    now = utc_now()
    entry = session.entries[index]
    reopens_entry = entry.completed and not is_completed
    entry.completed = is_completed
    entry.completed_at = now
    entry.was_delayed = was_delayed
    entry.task_status = task_status

    report = SessionTaskReport(
        session_task_id=entry.id,
        task_name=entry.name,
        is_completed=is_completed,
        completion_percentage=completion_percentage,
        reason=reason,
        notes=notes,
        was_delayed=was_delayed,
        task_status=task_status,
        reported_at=now,
    )
    session.reports.append(report)
    session.completed_tasks = sum(1 for e in session.entries if e.completed)
    await db.flush()

    if session.completed_tasks == len(session.entries):
        await set_session_status(db, session, WorkStatus.COMPLETED)
    elif reopens_entry and session.status == WorkStatus.COMPLETED:
        await set_session_status(db, session, WorkStatus.IN_PROGRESS)
    return report


async def add_session_report(
    db: AsyncSession,
    session: WorkSession,
    actual_time: int | None = None,
    session_completed: bool = False,
) -> WorkSession:
    """Record time actually spent (seconds) and optionally finish the session.

    Focus time on the assignee moves by the difference to any previously
    reported time, so repeated reports do not add up.
    """
    if actual_time is not None:
        previous = stats.seconds_to_minutes(session.actual_time)
        session.actual_time = actual_time
        await db.flush()
        await stats.focus_time_recorded(
            db,
            session.assigned_to_id,
            stats.seconds_to_minutes(actual_time) - previous,
        )

    if session_completed:
        await set_session_status(db, session, WorkStatus.COMPLETED)
    return session


async def delete_session(db: AsyncSession, user: User, session_id: str) -> None:
    """Delete a session (creator or a workspace manager)."""
    session = await db.get(WorkSession, session_id)
    if session is None:
        raise NotFound("Session not found")

    if session.user_id != user.id:
        workspace = await get_workspace(db, user, session.workspace_id)
        if not authz.is_manager(workspace, user.id):
            if _involves(session, user.id):
                raise Forbidden(
                    "Only the creator or a manager can delete this session"
                )
            raise NotFound("Session not found")

    was_completed = session.status == WorkStatus.COMPLETED
    focus_minutes = stats.seconds_to_minutes(session.actual_time)
    workspace_id, assignee_id = session.workspace_id, session.assigned_to_id
    await db.delete(session)
    await db.flush()
    await stats.session_deleted(
        db, workspace_id, assignee_id, was_completed, focus_minutes
    )
    logger.info("User %s deleted session %s", user.id, session_id)


async def session_analytics(db: AsyncSession, user: User) -> SessionAnalytics:
    """Totals over the sessions assigned to the user."""
    result = await db.execute(
        select(WorkSession).where(WorkSession.assigned_to_id == user.id)
    )
    sessions = result.scalars().all()

    analytics = SessionAnalytics()
    for session in sessions:
        analytics.total_sessions += 1
        if session.status == WorkStatus.COMPLETED:
            analytics.completed_sessions += 1
        analytics.total_planned_time += session.total_time or 0
        analytics.total_actual_time += session.actual_time or 0
        key = session.status.value
        analytics.status_breakdown[key] = analytics.status_breakdown.get(key, 0) + 1

    if sessions:
        analytics.avg_completion_rate = round(
            sum(s.completion_rate for s in sessions) / len(sessions), 2
        )
    return analytics
