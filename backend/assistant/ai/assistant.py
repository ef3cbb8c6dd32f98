"""Assistant actions: turn stored tasks, expenses and chat history into prompts.

Every function takes an already-constructed client and plain data, so the
same code serves the HTTP routes and the tests.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from assistant.ai.groq_client import GroqClient, GroqEmptyResponseError
from assistant.ai.messages import ChatMessage, Role
from assistant.ai.prompt import (
    ALL_TASKS_DONE_REPLY,
    BUDGET_SYSTEM_PROMPT,
    CHAT_SYSTEM_PROMPT,
    NO_EXPENSES_REPLY,
    PRIORITIZE_SYSTEM_PROMPT,
    SUGGESTION_SYSTEM_PROMPT,
    build_budget_prompt,
    build_prioritize_prompt,
    build_suggestion_prompt,
    clip_text,
)


def _now() -> datetime:
    """Wrapper for deterministic tests."""
    return datetime.now().astimezone()


def build_suggestion_messages(
    tasks: list[dict[str, Any]],
    summary: dict[str, Any],
    now: datetime | None = None,
) -> list[ChatMessage]:
    return [
        ChatMessage.system(SUGGESTION_SYSTEM_PROMPT),
        ChatMessage.user(build_suggestion_prompt(tasks, summary, now or _now())),
    ]


async def suggest_action(
    client: GroqClient,
    tasks: list[dict[str, Any]],
    summary: dict[str, Any],
    now: datetime | None = None,
) -> str:
    return await client.chat(build_suggestion_messages(tasks, summary, now))


async def analyze_budget(client: GroqClient, summary: dict[str, Any]) -> str:
    """Budget review; answers without calling the model when nothing is tracked."""
    if not summary.get("categories"):
        return NO_EXPENSES_REPLY

    return await client.chat([
        ChatMessage.system(BUDGET_SYSTEM_PROMPT),
        ChatMessage.user(build_budget_prompt(summary)),
    ])


async def prioritize_tasks(
    client: GroqClient,
    tasks: list[dict[str, Any]],
    now: datetime | None = None,
) -> str:
    """Suggest an order for incomplete tasks; completed ones are never sent."""
    pending = [task for task in tasks if not task.get("completed")]
    if not pending:
        return ALL_TASKS_DONE_REPLY

    return await client.chat([
        ChatMessage.system(PRIORITIZE_SYSTEM_PROMPT),
        ChatMessage.user(build_prioritize_prompt(pending, now or _now())),
    ])


class Conversation:
    """
    Growing free-form chat sequence.

    The first `send` seeds exactly one system message at position 0. Each
    `send` appends the user turn, calls the model, then appends the reply.
    If the call fails or the reply is blank, the user turn is dropped again,
    leaving the sequence as it was before the call.
    """

    def __init__(
        self,
        messages: list[ChatMessage] | None = None,
        system_prompt: str = CHAT_SYSTEM_PROMPT,
    ) -> None:
        self.messages: list[ChatMessage] = list(messages or [])
        self.system_prompt = system_prompt

    @classmethod
    def from_history(
        cls,
        turns: list[dict[str, Any]],
        system_prompt: str = CHAT_SYSTEM_PROMPT,
    ) -> Conversation:
        """Seed from stored turns that are already in chronological order."""
        conversation = cls(system_prompt=system_prompt)
        conversation._seed()
        for turn in turns:
            role = Role(turn["role"])
            if role is Role.SYSTEM:
                continue
            conversation.messages.append(ChatMessage(role, clip_text(str(turn["content"]))))
        return conversation

    @property
    def is_seeded(self) -> bool:
        return bool(self.messages) and self.messages[0].role is Role.SYSTEM

    def _seed(self) -> None:
        if not self.is_seeded:
            self.messages.insert(0, ChatMessage.system(self.system_prompt))

    async def send(self, client: GroqClient, user_input: str) -> str:
        self._seed()
        self.messages.append(ChatMessage.user(user_input))
        try:
            reply = await client.chat(list(self.messages))
            if not reply.strip():
                raise GroqEmptyResponseError("Empty completion from AI")
        except Exception:
            self.messages.pop()
            raise

        self.messages.append(ChatMessage.assistant(reply))
        return reply
