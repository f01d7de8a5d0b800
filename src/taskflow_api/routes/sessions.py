"""Work session routes."""

from dataclasses import asdict
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow_api.auth import get_current_user
from taskflow_api.db import get_db
from taskflow_api.models import User, WorkStatus
from taskflow_api.schemas import (
    MessageResponse,
    Pagination,
    SessionAnalyticsResponse,
    SessionCreate,
    SessionListResponse,
    SessionReportCreate,
    SessionResponse,
    SessionTaskComplete,
    SessionTaskCompleteResponse,
    SessionTaskReportResponse,
    SessionUpdate,
)
from taskflow_api.services import work_sessions as session_service
from taskflow_api.services.work_sessions import PlannedEntry

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.get("", response_model=SessionListResponse)
async def list_sessions(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    status: WorkStatus | None = None,
    sort_by: Literal[
        "created_at", "updated_at", "name", "started_at", "completed_at"
    ] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
):
    """List sessions the caller created or is assigned."""
    sessions, total = await session_service.list_sessions(
        db,
        current_user,
        status=status,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    return SessionListResponse(
        sessions=[SessionResponse.model_validate(s) for s in sessions],
        pagination=Pagination.build(page, limit, total),
    )


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    request: SessionCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Create a session in the given (or the caller's current) workspace."""
    session = await session_service.create_session(
        db,
        current_user,
        name=request.name,
        description=request.description,
        entries=[PlannedEntry(**entry.model_dump()) for entry in request.tasks],
        workspace_id=request.workspace_id,
        assigned_to_id=request.assigned_to,
        session_type=request.session_type,
    )
    await db.commit()
    await db.refresh(session)
    return session


@router.get("/analytics", response_model=SessionAnalyticsResponse)
async def get_analytics(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    analytics = await session_service.session_analytics(db, current_user)
    return SessionAnalyticsResponse(**asdict(analytics))


@router.get("/workspace/{workspace_id}", response_model=list[SessionResponse])
async def list_workspace_sessions(
    workspace_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    """All sessions of a workspace (members only)."""
    return await session_service.list_workspace_sessions(
        db, current_user, workspace_id
    )


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return await session_service.get_session(db, current_user, session_id)


@router.put("/{session_id}", response_model=SessionResponse)
async def update_session(
    session_id: str,
    request: SessionUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    session = await session_service.get_session(db, current_user, session_id)
    await session_service.update_session(
        db, session, request.model_dump(exclude_unset=True)
    )
    await db.commit()
    await db.refresh(session)
    return session


@router.delete("/{session_id}", response_model=MessageResponse)
async def delete_session(
    session_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    await session_service.delete_session(db, current_user, session_id)
    await db.commit()
    return MessageResponse(message="Session deleted successfully")


@router.post("/{session_id}/start", response_model=SessionResponse)
async def start_session(
    session_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    session = await session_service.get_session(db, current_user, session_id)
    await session_service.start_session(db, session)
    await db.commit()
    await db.refresh(session)
    return session


@router.post(
    "/{session_id}/tasks/{index}/complete",
    response_model=SessionTaskCompleteResponse,
)
async def complete_session_task(
    session_id: str,
    index: int,
    request: SessionTaskComplete,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Record the outcome of the entry at ``index``."""
    session = await session_service.get_session(db, current_user, session_id)
    report = await session_service.complete_session_task(
        db, session, index, **request.model_dump()
    )
    await db.commit()
    await db.refresh(session)
    return SessionTaskCompleteResponse(
        session=SessionResponse.model_validate(session),
        report=SessionTaskReportResponse.model_validate(report),
    )


@router.post("/{session_id}/report", response_model=SessionResponse)
async def add_session_report(
    session_id: str,
    request: SessionReportCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Record time actually spent and optionally finish the session."""
    session = await session_service.get_session(db, current_user, session_id)
    await session_service.add_session_report(
        db,
        session,
        actual_time=request.actual_time,
        session_completed=request.session_completed,
    )
    await db.commit()
    await db.refresh(session)
    return session
