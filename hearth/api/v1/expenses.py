"""
Expense API endpoints
"""
from datetime import date as date_type

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from hearth.api.deps import get_current_user, get_db
from hearth.application.expenses import CreateExpenseUseCase
from hearth.application.household_access import HouseholdAuthorizationService
from hearth.infrastructure.db.models import Expense, User
from hearth.utils.validation import validate_and_normalize_amount


router = APIRouter(prefix="/api/v1/expenses", tags=["expenses"])


class CreateExpenseRequest(BaseModel):
    household_id: int
    category_id: int
    amount: str  # "12.50" or "12,50"
    date: date_type
    description: str | None = None

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: str) -> str:
        """Dot or comma separator, at most 2 decimals"""
        return validate_and_normalize_amount(v, max_decimal_places=2)


class ExpenseResponse(BaseModel):
    expense_id: int
    household_id: int
    category_id: int
    amount: str
    date: date_type
    description: str | None


@router.post("", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
def create_expense(
    req: CreateExpenseRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Log an expense for the current user"""
    HouseholdAuthorizationService(db).ensure_member(user.id, req.household_id)

    expense_id = CreateExpenseUseCase(db).execute(
        household_id=req.household_id,
        user_id=user.id,
        category_id=req.category_id,
        amount=req.amount,
        date=req.date,
        description=req.description,
    )

    expense = db.get(Expense, expense_id)
    return ExpenseResponse(
        expense_id=expense.id,
        household_id=expense.household_id,
        category_id=expense.category_id,
        amount=str(expense.amount),
        date=expense.date,
        description=expense.description,
    )
