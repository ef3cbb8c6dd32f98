"""Service layer for user-scoped task CRUD."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from uuid import UUID

if TYPE_CHECKING:
    from psycopg import AsyncConnection
else:
    AsyncConnection = Any

MAX_TITLE_LENGTH = 200
_TASK_COLUMNS = "id, user_id, title, completed, created_at"


def _clean_title(value: Any) -> str:
    title = str(value or "").strip()
    if not title:
        raise ValueError("title is required")
    if len(title) > MAX_TITLE_LENGTH:
        raise ValueError(f"title must be at most {MAX_TITLE_LENGTH} characters")
    return title


async def list_tasks(
    connection: AsyncConnection,
    user_id: UUID,
    *,
    pending_only: bool = False,
) -> list[dict[str, Any]]:
    """List the user's tasks, newest first."""
    sql = f"""
    SELECT {_TASK_COLUMNS}
    FROM tasks
    WHERE user_id = %s
    """
    if pending_only:
        sql += " AND completed = FALSE"
    sql += " ORDER BY created_at DESC"

    async with connection.cursor() as cursor:
        await cursor.execute(sql, (user_id,))
        return await cursor.fetchall()


async def create_task(
    connection: AsyncConnection,
    user_id: UUID,
    title: str,
) -> dict[str, Any]:
    clean = _clean_title(title)

    async with connection.cursor() as cursor:
        await cursor.execute(
            f"""
            INSERT INTO tasks (user_id, title)
            VALUES (%s, %s)
            RETURNING {_TASK_COLUMNS}
            """,
            (user_id, clean),
        )
        return await cursor.fetchone()


async def update_task(
    connection: AsyncConnection,
    user_id: UUID,
    task_id: UUID,
    patch: dict[str, Any],
) -> dict[str, Any]:
    """Apply a partial update (`title` and/or `completed`) to one owned task."""
    updates: list[str] = []
    params: list[Any] = []

    if patch.get("title") is not None:
        updates.append("title = %s")
        params.append(_clean_title(patch["title"]))

    if patch.get("completed") is not None:
        updates.append("completed = %s")
        params.append(bool(patch["completed"]))

    if not updates:
        raise ValueError("At least one field must be provided")

    params.extend([task_id, user_id])

    async with connection.cursor() as cursor:
        await cursor.execute(
            f"""
            UPDATE tasks
            SET {', '.join(updates)}
            WHERE id = %s
              AND user_id = %s
            RETURNING {_TASK_COLUMNS}
            """,
            tuple(params),
        )
        row = await cursor.fetchone()

    if row is None:
        raise LookupError("Task not found")

    return row


async def delete_task(
    connection: AsyncConnection,
    user_id: UUID,
    task_id: UUID,
) -> None:
    async with connection.cursor() as cursor:
        await cursor.execute(
            """
            DELETE FROM tasks
            WHERE id = %s
              AND user_id = %s
            RETURNING id
            """,
            (task_id, user_id),
        )
        row = await cursor.fetchone()

    if row is None:
        raise LookupError("Task not found")
