"""Task routes."""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow_api.auth import get_current_user
from taskflow_api.db import get_db
from taskflow_api.models import Priority, User, WorkStatus
from taskflow_api.schemas import (
    MessageResponse,
    Pagination,
    TaskCompletionReportCreate,
    TaskCreate,
    TaskListResponse,
    TaskResponse,
    TaskUpdate,
)
from taskflow_api.services import tasks as task_service

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("", response_model=TaskListResponse)
async def list_tasks(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    status: WorkStatus | None = None,
    priority: Priority | None = None,
    category: str | None = None,
    sort_by: Literal[
        "created_at", "updated_at", "due_date", "priority", "name"
    ] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
):
    """List tasks the caller created or is assigned."""
    tasks, total = await task_service.list_tasks(
        db,
        current_user,
        status=status,
        priority=priority,
        category=category,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    return TaskListResponse(
        tasks=[TaskResponse.model_validate(t) for t in tasks],
        pagination=Pagination.build(page, limit, total),
    )


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    request: TaskCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Create a task in the given (or the caller's current) workspace."""
    task = await task_service.create_task(
        db,
        current_user,
        name=request.name,
        description=request.description,
        priority=request.priority,
        category=request.category,
        tags=request.tags,
        due_date=request.due_date,
        estimated_time=request.estimated_time,
        workspace_id=request.workspace_id,
        assigned_to_id=request.assigned_to,
        task_type=request.task_type,
    )
    await db.commit()
    await db.refresh(task)
    return task


@router.get("/workspace/{workspace_id}", response_model=list[TaskResponse])
async def list_workspace_tasks(
    workspace_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    """All tasks of a workspace (members only)."""
    return await task_service.list_workspace_tasks(db, current_user, workspace_id)


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return await task_service.get_task(db, current_user, task_id)


@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: str,
    request: TaskUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    task = await task_service.get_task(db, current_user, task_id)
    await task_service.update_task(db, task, request.model_dump(exclude_unset=True))
    await db.commit()
    await db.refresh(task)
    return task


@router.delete("/{task_id}", response_model=MessageResponse)
async def delete_task(
    task_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Delete a task (creator or a workspace manager)."""
    await task_service.delete_task(db, current_user, task_id)
    await db.commit()
    return MessageResponse(message="Task deleted successfully")


@router.post(
    "/{task_id}/reports",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_completion_report(
    task_id: str,
    request: TaskCompletionReportCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Append a completion report to a task."""
    task = await task_service.get_task(db, current_user, task_id)
    await task_service.add_completion_report(db, task, **request.model_dump())
    await db.commit()
    await db.refresh(task)
    return task
