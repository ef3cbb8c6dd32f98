"""Service layer for user-scoped expenses and spending summaries."""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import TYPE_CHECKING, Any
from uuid import UUID

if TYPE_CHECKING:
    from psycopg import AsyncConnection
else:
    AsyncConnection = Any

MONEY_QUANT = Decimal("0.01")
MAX_CATEGORY_LENGTH = 80
_EXPENSE_COLUMNS = "id, user_id, category, amount, created_at"


def quantize_amount(value: Decimal) -> Decimal:
    """Normalize money values to NUMERIC(12,2) precision."""
    return value.quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


async def list_expenses(
    connection: AsyncConnection,
    user_id: UUID,
) -> list[dict[str, Any]]:
    """List the user's expenses, newest first."""
    async with connection.cursor() as cursor:
        await cursor.execute(
            f"""
            SELECT {_EXPENSE_COLUMNS}
            FROM expenses
            WHERE user_id = %s
            ORDER BY created_at DESC
            """,
            (user_id,),
        )
        return await cursor.fetchall()


async def create_expense(
    connection: AsyncConnection,
    user_id: UUID,
    category: str,
    amount: Decimal,
) -> dict[str, Any]:
    clean_category = str(category or "").strip()
    if not clean_category:
        raise ValueError("category is required")
    if len(clean_category) > MAX_CATEGORY_LENGTH:
        raise ValueError(f"category must be at most {MAX_CATEGORY_LENGTH} characters")

    normalized = quantize_amount(Decimal(str(amount)))
    if normalized <= Decimal("0.00"):
        raise ValueError("amount must be greater than 0")

    async with connection.cursor() as cursor:
        await cursor.execute(
            f"""
            INSERT INTO expenses (user_id, category, amount)
            VALUES (%s, %s, %s)
            RETURNING {_EXPENSE_COLUMNS}
            """,
            (user_id, clean_category, normalized),
        )
        return await cursor.fetchone()


async def delete_expense(
    connection: AsyncConnection,
    user_id: UUID,
    expense_id: UUID,
) -> None:
    async with connection.cursor() as cursor:
        await cursor.execute(
            """
            DELETE FROM expenses
            WHERE id = %s
              AND user_id = %s
            RETURNING id
            """,
            (expense_id, user_id),
        )
        row = await cursor.fetchone()

    if row is None:
        raise LookupError("Expense not found")


async def get_expense_summary(
    connection: AsyncConnection,
    user_id: UUID,
) -> dict[str, Any]:
    """
    Total spending plus per-category totals, largest category first.

    Returns `{"total_spending": Decimal, "categories": [(name, Decimal), ...]}`.
    """
    async with connection.cursor() as cursor:
        await cursor.execute(
            """
            SELECT category, SUM(amount) AS total
            FROM expenses
            WHERE user_id = %s
            GROUP BY category
            ORDER BY SUM(amount) DESC, category ASC
            """,
            (user_id,),
        )
        rows = await cursor.fetchall()

    categories = [
        (str(row["category"]), quantize_amount(Decimal(str(row["total"]))))
        for row in rows
    ]
    total = quantize_amount(sum((amount for _, amount in categories), Decimal("0.00")))

    return {
        "total_spending": total,
        "categories": categories,
    }
