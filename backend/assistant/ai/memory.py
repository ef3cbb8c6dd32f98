"""Persistent chat history for `/api/ai/chat`.

One flat, append-only thread per user. Reads return the most recent turns in
chronological order; writes store a user/assistant pair atomically so the
pair is never split or reordered.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from uuid import UUID

from assistant.ai.messages import ChatMessage, Role

if TYPE_CHECKING:
    from psycopg import AsyncConnection
else:
    AsyncConnection = Any

HISTORY_LIMIT = 10


async def append_turns(
    connection: AsyncConnection,
    user_id: UUID,
    turns: list[ChatMessage],
) -> None:
    """Persist turns in the given order inside one transaction."""
    for turn in turns:
        if not turn.content.strip():
            raise ValueError("Message content cannot be empty")

    async with connection.transaction():
        async with connection.cursor() as cursor:
            for turn in turns:
                await cursor.execute(
                    """
                    INSERT INTO chat_messages (user_id, role, content)
                    VALUES (%s, %s, %s)
                    """,
                    (user_id, turn.role.value, turn.content),
                )


async def load_recent_turns(
    connection: AsyncConnection,
    user_id: UUID,
    limit: int = HISTORY_LIMIT,
) -> list[dict[str, Any]]:
    """Load up to `limit` most recent turns, oldest first."""
    if limit < 1:
        return []

    async with connection.cursor() as cursor:
        await cursor.execute(
            """
            SELECT id, role, content, created_at
            FROM chat_messages
            WHERE user_id = %s
            ORDER BY created_at DESC, seq DESC
            LIMIT %s
            """,
            (user_id, limit),
        )
        rows = await cursor.fetchall()

    # Storage order is newest-first; prompts need chronological order.
    ordered = list(reversed(rows))
    return [
        {
            "id": row["id"],
            "role": Role(row["role"]),
            "content": row["content"],
            "created_at": row.get("created_at"),
        }
        for row in ordered
    ]
