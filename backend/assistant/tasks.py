"""Tasks router: user-scoped CRUD."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, model_validator

from .auth import get_current_user_id
from .database import get_db_connection
from .services.tasks_service import create_task, delete_task, list_tasks, update_task

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


class TaskCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)


class TaskUpdateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    completed: bool | None = None

    @model_validator(mode="after")
    def check_not_empty(self) -> "TaskUpdateRequest":
        if self.title is None and self.completed is None:
            raise ValueError("At least one field must be provided")
        return self


class TaskResponse(BaseModel):
    id: UUID
    user_id: UUID
    title: str
    completed: bool
    created_at: datetime


@router.get("", response_model=list[TaskResponse])
async def list_tasks_endpoint(
    pending: bool = Query(default=False),
    user_id: UUID = Depends(get_current_user_id),
    connection: Any = Depends(get_db_connection),
) -> list[TaskResponse]:
    rows = await list_tasks(connection, user_id, pending_only=pending)
    return [TaskResponse(**row) for row in rows]


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task_endpoint(
    payload: TaskCreateRequest,
    user_id: UUID = Depends(get_current_user_id),
    connection: Any = Depends(get_db_connection),
) -> TaskResponse:
    try:
        row = await create_task(connection, user_id, payload.title)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return TaskResponse(**row)


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task_endpoint(
    task_id: UUID,
    payload: TaskUpdateRequest,
    user_id: UUID = Depends(get_current_user_id),
    connection: Any = Depends(get_db_connection),
) -> TaskResponse:
    """Rename a task and/or toggle its completed flag."""
    try:
        row = await update_task(
            connection,
            user_id,
            task_id,
            payload.model_dump(exclude_unset=True),
        )
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return TaskResponse(**row)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task_endpoint(
    task_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    connection: Any = Depends(get_db_connection),
):
    try:
        await delete_task(connection, user_id, task_id)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
