"""Expenses router: user-scoped CRUD and a spending summary."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_serializer, field_validator

from .auth import get_current_user_id
from .database import get_db_connection
from .services.expenses_service import (
    create_expense,
    delete_expense,
    get_expense_summary,
    list_expenses,
)

router = APIRouter(prefix="/api/expenses", tags=["expenses"])

Amount = Annotated[Decimal, Field(gt=Decimal("0"), max_digits=12, decimal_places=2)]


def _money(value: Decimal) -> str:
    return str(value.quantize(Decimal("0.01")))


class ExpenseCreateRequest(BaseModel):
    category: str = Field(min_length=1, max_length=80)
    amount: Amount

    @field_validator("category", mode="before")
    @classmethod
    def clean_category(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value


class ExpenseResponse(BaseModel):
    id: UUID
    user_id: UUID
    category: str
    amount: Decimal
    created_at: datetime

    @field_serializer("amount")
    def serialize_amount(self, value: Decimal) -> str:
        return _money(value)


class CategoryTotal(BaseModel):
    category: str
    amount: Decimal

    @field_serializer("amount")
    def serialize_amount(self, value: Decimal) -> str:
        return _money(value)


class BudgetSummaryResponse(BaseModel):
    total_spending: Decimal
    categories: list[CategoryTotal]

    @field_serializer("total_spending")
    def serialize_total(self, value: Decimal) -> str:
        return _money(value)


@router.get("", response_model=list[ExpenseResponse])
async def list_expenses_endpoint(
    user_id: UUID = Depends(get_current_user_id),
    connection: Any = Depends(get_db_connection),
) -> list[ExpenseResponse]:
    rows = await list_expenses(connection, user_id)
    return [ExpenseResponse(**row) for row in rows]


@router.post("", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def create_expense_endpoint(
    payload: ExpenseCreateRequest,
    user_id: UUID = Depends(get_current_user_id),
    connection: Any = Depends(get_db_connection),
) -> ExpenseResponse:
    try:
        row = await create_expense(connection, user_id, payload.category, payload.amount)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return ExpenseResponse(**row)


@router.get("/summary", response_model=BudgetSummaryResponse)
async def expense_summary_endpoint(
    user_id: UUID = Depends(get_current_user_id),
    connection: Any = Depends(get_db_connection),
) -> BudgetSummaryResponse:
    summary = await get_expense_summary(connection, user_id)
    return BudgetSummaryResponse(
        total_spending=summary["total_spending"],
        categories=[
            CategoryTotal(category=name, amount=amount)
            for name, amount in summary["categories"]
        ],
    )


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_expense_endpoint(
    expense_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    connection: Any = Depends(get_db_connection),
):
    try:
        await delete_expense(connection, user_id, expense_id)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
