"""
Tests for CreateExpenseUseCase
"""
from datetime import date, datetime
from decimal import Decimal

import pytest

from hearth.application.expenses import CreateExpenseUseCase
from hearth.domain.errors import NotFoundError, ValidationError
from hearth.domain.events import ExpenseLogged
from hearth.infrastructure.db.models import BudgetCategory, Expense, HouseholdMember


@pytest.fixture
def published(dispatcher):
    events = []
    dispatcher.subscribe(ExpenseLogged, lambda db, event: events.append(event))
    return events


@pytest.fixture
def use_case(db_session, dispatcher):
    return CreateExpenseUseCase(db_session, dispatcher=dispatcher)


def test_creates_expense_and_updates_spending(db_session, use_case, household, category, published, now):
    bob_user, bob = household["users"][1], household["members"][1]

    expense_id = use_case.execute(
        household_id=household["household"].id,
        user_id=bob_user.id,
        category_id=category.id,
        amount="12.50",
        date=date(2026, 3, 10),
        description="Weekly shop",
        now=now,
    )

    expense = db_session.get(Expense, expense_id)
    assert expense.amount == Decimal("12.50")
    assert expense.description == "Weekly shop"

    db_session.expire_all()
    member = db_session.get(HouseholdMember, bob.id)
    assert member.monthly_expenditure == Decimal("12.50")
    assert member.lifetime_expenditure == Decimal("12.50")
    assert member.last_expenditure_update == now

    assert published == [ExpenseLogged(user_id=bob_user.id, household_id=household["household"].id,
                                       category="Groceries")]


def test_monthly_rollover(db_session, use_case, household, category):
    bob_user, bob = household["users"][1], household["members"][1]
    bob.monthly_expenditure = Decimal("80.00")
    bob.lifetime_expenditure = Decimal("80.00")
    bob.last_expenditure_update = datetime(2026, 2, 27, 4, 0)
    db_session.commit()

    use_case.execute(household["household"].id, bob_user.id, category.id, Decimal("5"),
                     date(2026, 3, 2), now=datetime(2026, 3, 2, 4, 0))

    db_session.expire_all()
    member = db_session.get(HouseholdMember, bob.id)
    assert member.monthly_expenditure == Decimal("5.00")
    assert member.lifetime_expenditure == Decimal("85.00")


@pytest.mark.parametrize("amount", ["0", "-3.00"])
def test_amount_must_be_positive(use_case, household, category, published, amount):
    with pytest.raises(ValidationError):
        use_case.execute(household["household"].id, household["users"][1].id, category.id,
                         amount, date(2026, 3, 10))
    assert published == []


def test_category_of_another_household(db_session, use_case, household, other_household):
    foreign = BudgetCategory(household_id=other_household["household"].id, name="Fuel")
    db_session.add(foreign)
    db_session.commit()

    with pytest.raises(NotFoundError):
        use_case.execute(household["household"].id, household["users"][1].id, foreign.id,
                         "10.00", date(2026, 3, 10))


def test_user_outside_household(db_session, use_case, household, category, other_household):
    with pytest.raises(NotFoundError):
        use_case.execute(household["household"].id, other_household["user"].id, category.id,
                         "10.00", date(2026, 3, 10))
    assert db_session.query(Expense).count() == 0
