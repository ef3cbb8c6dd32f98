"""Prompt constants and context formatting for the AI assistant."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

SUGGESTION_SYSTEM_PROMPT = """
You are a helpful personal productivity assistant.
Provide brief, actionable suggestions based on the user's tasks and spending.
Keep responses concise (2-3 sentences max). Use emojis sparingly.
Consider the time of day when making suggestions.
""".strip()

BUDGET_SYSTEM_PROMPT = """
You are a financial advisor assistant.
Analyze the user's spending and provide:
1. A brief summary of their spending patterns
2. One specific area they could reduce spending
3. One positive observation about their finances
Keep the response under 100 words. Use emojis for visual appeal.
""".strip()

PRIORITIZE_SYSTEM_PROMPT = """
You are a productivity expert.
Analyze the tasks and suggest a priority order.
Consider the time of day and task types.
Provide brief reasoning (1 sentence per task).
Format: numbered list with task name and reason.
""".strip()

CHAT_SYSTEM_PROMPT = (
    "You are a helpful personal assistant. Help the user with productivity, "
    "task management, and financial advice. Be concise and friendly."
)

NO_TASKS_TEXT = "No tasks yet."
NO_EXPENSES_TEXT = "No expenses tracked yet."
NO_EXPENSES_REPLY = "📊 No expenses to analyze yet. Add some expenses first!"
ALL_TASKS_DONE_REPLY = "✅ All tasks completed! Great job!"

# Upper bounds that keep prompts small regardless of how much data a user has.
MAX_PROMPT_TASKS = 25
MAX_PROMPT_CATEGORIES = 15
MAX_TURN_CHARS = 4000


def clip_text(value: str, max_len: int = MAX_TURN_CHARS) -> str:
    if len(value) <= max_len:
        return value
    return f"{value[: max_len - 1]}…"


def _money(value: Decimal | float) -> str:
    return f"${Decimal(str(value)):.2f}"


def format_suggestion_time(now: datetime) -> str:
    return now.strftime("%H:%M on %A, %B %d")


def format_prioritize_time(now: datetime) -> str:
    return now.strftime("%H:%M on %A")


def format_task_list(tasks: list[dict[str, Any]]) -> str:
    if not tasks:
        return NO_TASKS_TEXT

    lines = [
        f"- {task['title']} ({'done' if task.get('completed') else 'pending'})"
        for task in tasks[:MAX_PROMPT_TASKS]
    ]
    hidden = len(tasks) - MAX_PROMPT_TASKS
    if hidden > 0:
        lines.append(f"- ...and {hidden} more")
    return "\n".join(lines)


def format_category_lines(categories: list[tuple[str, Decimal]], indent: str = "") -> str:
    lines = [
        f"{indent}- {name}: {_money(amount)}"
        for name, amount in categories[:MAX_PROMPT_CATEGORIES]
    ]
    hidden = len(categories) - MAX_PROMPT_CATEGORIES
    if hidden > 0:
        lines.append(f"{indent}- ...and {hidden} more categories")
    return "\n".join(lines)


def format_spending(summary: dict[str, Any]) -> str:
    categories = summary.get("categories") or []
    if not categories:
        return NO_EXPENSES_TEXT

    return (
        f"Total: {_money(summary['total_spending'])}\n"
        "Categories:\n"
        f"{format_category_lines(categories, indent='  ')}"
    )


def build_suggestion_prompt(
    tasks: list[dict[str, Any]],
    summary: dict[str, Any],
    now: datetime,
) -> str:
    return (
        f"Current time: {format_suggestion_time(now)}\n\n"
        f"My tasks:\n{format_task_list(tasks)}\n\n"
        f"My spending:\n{format_spending(summary)}\n\n"
        "What should I focus on next?"
    )


def build_budget_prompt(summary: dict[str, Any]) -> str:
    return (
        f"Total spending: {_money(summary['total_spending'])}\n\n"
        f"Breakdown:\n{format_category_lines(summary['categories'])}"
    )


def build_prioritize_prompt(pending_tasks: list[dict[str, Any]], now: datetime) -> str:
    task_lines = "\n".join(
        f"{task['id']}. {task['title']}"
        for task in pending_tasks[:MAX_PROMPT_TASKS]
    )
    return (
        f"Current time: {format_prioritize_time(now)}\n\n"
        f"Pending tasks:\n{task_lines}\n\n"
        "Suggest priority order:"
    )
