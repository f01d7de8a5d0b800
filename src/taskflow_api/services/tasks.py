"""Task service: creation through the assignment layer, queries and updates.

Status changes into or out of ``completed`` go through a conditional UPDATE so
the completion counters move exactly once per real transition, however many
times a client repeats the request.
"""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import case, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow_api.exceptions import Forbidden, NotFound, ValidationError
from taskflow_api.models import (
    DifficultyLevel,
    Priority,
    Task,
    TaskCompletionReport,
    User,
    WorkStatus,
    WorkType,
)
from taskflow_api.models.base import utc_now
from taskflow_api.services import authz, stats
from taskflow_api.services.assignment import resolve_assignment
from taskflow_api.services.workspaces import get_workspace

logger = logging.getLogger(__name__)

PRIORITY_RANK = {
    Priority.LOW: 0,
    Priority.MEDIUM: 1,
    Priority.HIGH: 2,
    Priority.URGENT: 3,
}

SORTABLE_FIELDS = {
    "created_at": Task.created_at,
    "updated_at": Task.updated_at,
    "due_date": Task.due_date,
    "name": Task.name,
    "priority": case(
        {p.value: rank for p, rank in PRIORITY_RANK.items()}, value=Task.priority
    ),
}

UPDATABLE_FIELDS = frozenset(
    {
        "name",
        "description",
        "priority",
        "category",
        "tags",
        "due_date",
        "estimated_time",
        "actual_time",
        "timer_seconds",
    }
)


def _involves(task: Task, user_id: str) -> bool:
    return user_id in (task.user_id, task.assigned_to_id)


async def create_task(
    db: AsyncSession,
    user: User,
    name: str,
    description: str | None = None,
    priority: Priority = Priority.MEDIUM,
    category: str | None = None,
    tags: list[str] | None = None,
    due_date: datetime | None = None,
    estimated_time: int | None = None,
    workspace_id: str | None = None,
    assigned_to_id: str | None = None,
    task_type: WorkType | None = None,
) -> Task:
    """Create a task in the resolved workspace.

    Nothing is written unless the workspace and assignee checks pass.

    Raises:
        NoWorkspaceContext: If no workspace is given and none is current
        AssigneeNotInWorkspace: If the assignee is not an active member
    """
    if not name or not name.strip():
        raise ValidationError("Task name is required")

    assignment = await resolve_assignment(
        db,
        user,
        workspace_id=workspace_id,
        assigned_to_id=assigned_to_id,
        work_type=task_type,
    )

    task = Task(
        user_id=user.id,
        workspace_id=assignment.workspace.id,
        assigned_to_id=assignment.assignee_id,
        assigned_by_id=user.id,
        task_type=assignment.work_type,
        name=name.strip(),
        description=description.strip() if description else None,
        priority=priority,
        status=WorkStatus.PENDING,
        category=category,
        tags=tags or [],
        due_date=due_date,
        estimated_time=estimated_time,
        completion_reports=[],
    )
    db.add(task)
    await db.flush()
    await stats.task_created(db, task.workspace_id, task.assigned_to_id)

    logger.info(
        "User %s created task %s in workspace %s for %s",
        user.id,
        task.id,
        task.workspace_id,
        task.assigned_to_id,
    )
    return task


async def list_tasks(
    db: AsyncSession,
    user: User,
    status: WorkStatus | None = None,
    priority: Priority | None = None,
    category: str | None = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Task], int]:
    """Tasks the user created or is assigned, filtered and paginated.

    Returns:
        Tuple of (tasks on the requested page, total matching tasks)
    """
    if sort_by not in SORTABLE_FIELDS:
        raise ValidationError(f"Cannot sort by {sort_by}")

    conditions = [or_(Task.user_id == user.id, Task.assigned_to_id == user.id)]
    if status is not None:
        conditions.append(Task.status == status)
    if priority is not None:
        conditions.append(Task.priority == priority)
    if category:
        conditions.append(Task.category == category)

    total_result = await db.execute(
        select(func.count()).select_from(Task).where(*conditions)
    )
    total = total_result.scalar() or 0

    sort_column = SORTABLE_FIELDS[sort_by]
    order = sort_column.asc() if sort_order == "asc" else sort_column.desc()
    result = await db.execute(
        select(Task)
        .where(*conditions)
        .order_by(order, Task.id)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def list_workspace_tasks(
    db: AsyncSession, user: User, workspace_id: str
) -> list[Task]:
    """All tasks of a workspace, newest first (members only)."""
    workspace = await get_workspace(db, user, workspace_id)
    result = await db.execute(
        select(Task)
        .where(Task.workspace_id == workspace.id)
        .order_by(Task.created_at.desc())
    )
    return list(result.scalars().all())


async def get_task(db: AsyncSession, user: User, task_id: str) -> Task:
    """Get a task the user created or is assigned.

    Raises:
        NotFound: If the task does not exist or does not involve the user
    """
    task = await db.get(Task, task_id)
    if task is None or not _involves(task, user.id):
        raise NotFound("Task not found")
    return task


async def set_task_status(db: AsyncSession, task: Task, new_status: WorkStatus) -> bool:
    """Move a task to ``new_status``.

    Returns:
        True if the task crossed the completed boundary (either way) and
        the counters were adjusted
    """
    if new_status == WorkStatus.COMPLETED:
        result = await db.execute(
            update(Task)
            .where(Task.id == task.id, Task.status != WorkStatus.COMPLETED)
            .values(status=WorkStatus.COMPLETED, completed_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        transitioned = result.rowcount == 1
        if transitioned:
            await stats.task_completed(db, task.workspace_id, task.assigned_to_id)
    else:
        result = await db.execute(
            update(Task)
            .where(Task.id == task.id, Task.status == WorkStatus.COMPLETED)
            .values(status=new_status, completed_at=None)
            .execution_options(synchronize_session=False)
        )
        transitioned = result.rowcount == 1
        if transitioned:
            await stats.task_reopened(db, task.workspace_id, task.assigned_to_id)
        else:
            await db.execute(
                update(Task)
                .where(Task.id == task.id)
                .values(status=new_status)
                .execution_options(synchronize_session=False)
            )

    await db.refresh(task)
    return transitioned


async def update_task(
    db: AsyncSession,
    task: Task,
    changes: dict[str, Any],
) -> Task:
    """Apply field changes; a ``status`` change goes through the completion guard."""
    for field, value in changes.items():
        if field in UPDATABLE_FIELDS:
            if field == "name" and (value is None or not value.strip()):
                raise ValidationError("Task name is required")
            setattr(task, field, value)
    await db.flush()

    new_status = changes.get("status")
    if new_status is not None:
        await set_task_status(db, task, WorkStatus(new_status))
    return task


async def delete_task(db: AsyncSession, user: User, task_id: str) -> None:
    """Delete a task (creator or a workspace manager).

    Raises:
        NotFound: If the task is not visible to the user
        Forbidden: If the user is only the assignee
    """
    task = await db.get(Task, task_id)
    if task is None:
        raise NotFound("Task not found")

    is_manager = False
    if task.user_id != user.id:
        workspace = await get_workspace(db, user, task.workspace_id)
        is_manager = authz.is_manager(workspace, user.id)
        if not is_manager:
            if _involves(task, user.id):
                raise Forbidden("Only the creator or a manager can delete this task")
            raise NotFound("Task not found")

    was_completed = task.status == WorkStatus.COMPLETED
    workspace_id, assignee_id = task.workspace_id, task.assigned_to_id
    await db.delete(task)
    await db.flush()
    await stats.task_deleted(db, workspace_id, assignee_id, was_completed)
    logger.info("User %s deleted task %s", user.id, task_id)


async def add_completion_report(
    db: AsyncSession,
    task: Task,
    is_completed: bool = True,
    completion_percentage: int | None = None,
    quality_rating: int | None = None,
    difficulty_level: DifficultyLevel | None = None,
    reason: str | None = None,
    notes: str | None = None,
    next_steps: str | None = None,
    time_spent: int | None = None,
) -> TaskCompletionReport:
    """Append an outcome report; ``time_spent`` (seconds) counts as focus time."""
    report = TaskCompletionReport(
        is_completed=is_completed,
        completion_percentage=completion_percentage,
        quality_rating=quality_rating,
        difficulty_level=difficulty_level,
        reason=reason,
        notes=notes,
        next_steps=next_steps,
        time_spent=time_spent,
        completed_at=utc_now(),
    )
    task.completion_reports.append(report)

    minutes = stats.seconds_to_minutes(time_spent)
    if time_spent:
        task.actual_time = (task.actual_time or 0) + minutes
    await db.flush()

    await stats.focus_time_recorded(db, task.assigned_to_id, minutes)
    return report
