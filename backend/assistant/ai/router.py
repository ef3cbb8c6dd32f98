"""FastAPI router for the authenticated AI assistant actions."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from assistant.ai.assistant import (
    Conversation,
    analyze_budget,
    prioritize_tasks,
    suggest_action,
)
from assistant.ai.groq_client import GroqClient, GroqError, GroqUpstreamError
from assistant.ai.memory import HISTORY_LIMIT, append_turns, load_recent_turns
from assistant.auth import get_current_user_id
from assistant.database import get_db_connection
from assistant.dependencies import require_chat_client
from assistant.services.expenses_service import get_expense_summary
from assistant.services.tasks_service import list_tasks

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["ai"])

UPSTREAM_FAILURE_DETAIL = "AI service unavailable"


class AIChatRequest(BaseModel):
    message: str = Field(min_length=1, max_length=2000)


class AIChatResponse(BaseModel):
    response: str


class AISuggestionResponse(BaseModel):
    suggestion: str


class AIBudgetResponse(BaseModel):
    analysis: str


class AIPrioritizeResponse(BaseModel):
    priorities: str


class ChatTurnResponse(BaseModel):
    role: str
    content: str
    created_at: datetime | None = None


def _upstream_failure(exc: GroqError, user_id: UUID) -> HTTPException:
    # Provider detail stays in the server log; clients get a generic message.
    extra: dict[str, Any] = {"user_id": user_id, "error_type": type(exc).__name__}
    if isinstance(exc, GroqUpstreamError):
        extra["status_code"] = exc.status_code
        logger.warning("Groq returned an error: %s", exc.body[:500], extra=extra)
    else:
        logger.warning("Groq call failed: %s", exc, extra=extra)
    return HTTPException(status_code=502, detail=UPSTREAM_FAILURE_DETAIL)


@router.post("/suggest", response_model=AISuggestionResponse)
async def ai_suggest(
    user_id: UUID = Depends(get_current_user_id),
    client: GroqClient = Depends(require_chat_client),
    connection: Any = Depends(get_db_connection),
) -> AISuggestionResponse:
    """Suggest what to focus on next from tasks, spending and the time of day."""
    tasks = await list_tasks(connection, user_id)
    summary = await get_expense_summary(connection, user_id)

    try:
        suggestion = await suggest_action(client, tasks, summary)
    except GroqError as exc:
        raise _upstream_failure(exc, user_id) from exc

    return AISuggestionResponse(suggestion=suggestion)


@router.post("/budget", response_model=AIBudgetResponse)
async def ai_budget(
    user_id: UUID = Depends(get_current_user_id),
    client: GroqClient = Depends(require_chat_client),
    connection: Any = Depends(get_db_connection),
) -> AIBudgetResponse:
    summary = await get_expense_summary(connection, user_id)

    try:
        analysis = await analyze_budget(client, summary)
    except GroqError as exc:
        raise _upstream_failure(exc, user_id) from exc

    return AIBudgetResponse(analysis=analysis)


@router.post("/prioritize", response_model=AIPrioritizeResponse)
async def ai_prioritize(
    user_id: UUID = Depends(get_current_user_id),
    client: GroqClient = Depends(require_chat_client),
    connection: Any = Depends(get_db_connection),
) -> AIPrioritizeResponse:
    tasks = await list_tasks(connection, user_id, pending_only=True)

    try:
        priorities = await prioritize_tasks(client, tasks)
    except GroqError as exc:
        raise _upstream_failure(exc, user_id) from exc

    return AIPrioritizeResponse(priorities=priorities)


@router.post("/chat", response_model=AIChatResponse)
async def ai_chat(
    payload: AIChatRequest,
    user_id: UUID = Depends(get_current_user_id),
    client: GroqClient = Depends(require_chat_client),
    connection: Any = Depends(get_db_connection),
) -> AIChatResponse:
    """
    Free-form chat with the last few stored turns as context.

    Example request:
    {"message": "How should I plan my afternoon?"}

    The user turn and the assistant reply are stored together only after the
    model answers, so a failed call leaves no half-written exchange behind.
    """
    message_text = payload.message.strip()
    if not message_text:
        raise HTTPException(status_code=422, detail="message must not be empty")

    history = await load_recent_turns(connection, user_id, limit=HISTORY_LIMIT)
    conversation = Conversation.from_history(history)

    try:
        reply = await conversation.send(client, message_text)
    except GroqError as exc:
        raise _upstream_failure(exc, user_id) from exc

    await append_turns(connection, user_id, conversation.messages[-2:])

    return AIChatResponse(response=reply)


@router.get("/chat/history", response_model=list[ChatTurnResponse])
async def ai_chat_history(
    user_id: UUID = Depends(get_current_user_id),
    connection: Any = Depends(get_db_connection),
) -> list[ChatTurnResponse]:
    """Most recent stored turns, oldest first."""
    turns = await load_recent_turns(connection, user_id, limit=HISTORY_LIMIT)
    return [
        ChatTurnResponse(
            role=turn["role"].value,
            content=turn["content"],
            created_at=turn["created_at"],
        )
        for turn in turns
    ]
