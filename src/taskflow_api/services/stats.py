"""Aggregate counter events for workspaces and users.

Workspace and user stat columns are derived from task and session records.
Every code path that creates, completes, reopens or deletes work records the
matching event here, so the dependent counters on both rows move together.

All changes are single ``UPDATE ... SET col = col + n`` statements; callers
never write a counter from a previously loaded value, so concurrent requests
cannot lose an increment. In-memory copies of the rows are not synchronized;
refresh them if the new values are needed.
"""

import logging

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow_api.models import User, Workspace
from taskflow_api.models.base import utc_now

logger = logging.getLogger(__name__)


async def _apply(
    db: AsyncSession,
    workspace_id: str | None,
    user_id: str | None,
    workspace_deltas: dict[str, int],
    user_deltas: dict[str, int],
) -> None:
    if workspace_id is not None and workspace_deltas:
        await db.execute(
            update(Workspace)
            .where(Workspace.id == workspace_id)
            .values(
                {
                    getattr(Workspace, name): getattr(Workspace, name) + delta
                    for name, delta in workspace_deltas.items()
                }
            )
            .execution_options(synchronize_session=False)
        )

    if user_id is not None:
        values = {
            getattr(User, name): getattr(User, name) + delta
            for name, delta in user_deltas.items()
        }
        values[User.last_active] = utc_now()
        await db.execute(
            update(User)
            .where(User.id == user_id)
            .values(values)
            .execution_options(synchronize_session=False)
        )

    logger.debug(
        "Counters updated workspace=%s user=%s workspace_deltas=%s user_deltas=%s",
        workspace_id,
        user_id,
        workspace_deltas,
        user_deltas,
    )


async def task_created(db: AsyncSession, workspace_id: str, assignee_id: str) -> None:
    await _apply(
        db, workspace_id, assignee_id, {"total_tasks": 1}, {"total_tasks": 1}
    )


async def task_completed(
    db: AsyncSession, workspace_id: str, assignee_id: str
) -> None:
    """Record a not-completed -> completed transition of a task."""
    await _apply(
        db, workspace_id, assignee_id, {"completed_tasks": 1}, {"completed_tasks": 1}
    )


async def task_reopened(db: AsyncSession, workspace_id: str, assignee_id: str) -> None:
    """Record a completed -> not-completed transition of a task."""
    await _apply(
        db,
        workspace_id,
        assignee_id,
        {"completed_tasks": -1},
        {"completed_tasks": -1},
    )


async def task_deleted(
    db: AsyncSession,
    workspace_id: str,
    assignee_id: str,
    was_completed: bool,
) -> None:
    deltas = {"total_tasks": -1}
    if was_completed:
        deltas["completed_tasks"] = -1
    await _apply(db, workspace_id, assignee_id, deltas, dict(deltas))


async def session_created(
    db: AsyncSession, workspace_id: str, assignee_id: str
) -> None:
    await _apply(
        db, workspace_id, assignee_id, {"total_sessions": 1}, {"total_sessions": 1}
    )


async def session_completed(
    db: AsyncSession, workspace_id: str, assignee_id: str
) -> None:
    """Record a not-completed -> completed transition of a session."""
    await _apply(
        db,
        workspace_id,
        assignee_id,
        {"completed_sessions": 1},
        {"completed_sessions": 1},
    )


async def session_reopened(
    db: AsyncSession, workspace_id: str, assignee_id: str
) -> None:
    """Record a completed -> not-completed transition of a session."""
    await _apply(
        db,
        workspace_id,
        assignee_id,
        {"completed_sessions": -1},
        {"completed_sessions": -1},
    )


async def session_deleted(
    db: AsyncSession,
    workspace_id: str,
    assignee_id: str,
    was_completed: bool,
    focus_minutes: int = 0,
) -> None:
    """Record removal of a session along with any focus time it contributed."""
    workspace_deltas = {"total_sessions": -1}
    user_deltas = {"total_sessions": -1}
    if was_completed:
        workspace_deltas["completed_sessions"] = -1
        user_deltas["completed_sessions"] = -1
    if focus_minutes:
        user_deltas["total_focus_time"] = -focus_minutes
    await _apply(db, workspace_id, assignee_id, workspace_deltas, user_deltas)


async def focus_time_recorded(db: AsyncSession, user_id: str, minutes: int) -> None:
    """Add (or with negative minutes, take back) focus time on a user's stats."""
    if not minutes:
        return
    await _apply(db, None, user_id, {}, {"total_focus_time": minutes})


def seconds_to_minutes(seconds: int | None) -> int:
    return round((seconds or 0) / 60)
