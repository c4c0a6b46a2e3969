"""
Expense use cases
"""
import logging
from datetime import date as date_type, datetime
from decimal import InvalidOperation

from sqlalchemy.orm import Session

from hearth.application.event_dispatch import EventDispatcher, get_dispatcher
from hearth.application.expenditure import record_expenditure
from hearth.config import Settings, get_settings
from hearth.domain.errors import NotFoundError, ValidationError
from hearth.domain.events import ExpenseLogged
from hearth.infrastructure.db.concurrency import run_with_optimistic_retry
from hearth.infrastructure.db.models import BudgetCategory, Expense
from hearth.infrastructure.repositories.members import HouseholdMemberRepository
from hearth.utils.clock import local_tz, utcnow
from hearth.utils.money import format_money, quantize_money, to_decimal

logger = logging.getLogger(__name__)


class CreateExpenseUseCase:
    """
    Use case: log an expense for a household member

    After commit publishes ExpenseLogged so matching quests advance.
    """

    def __init__(self, db: Session, dispatcher: EventDispatcher | None = None,
                 settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()
        self.dispatcher = dispatcher or get_dispatcher()
        self.members = HouseholdMemberRepository(db)

    def execute(
        self,
        household_id: int,
        user_id: int,
        category_id: int,
        amount,
        date: date_type,
        description: str | None = None,
        now: datetime | None = None,
    ) -> int:
        """
        Create the expense and add it to the member's spending

        Args:
            household_id: household the expense belongs to
            user_id: who spent
            category_id: budget category of the household
            amount: positive amount (str / Decimal / int)
            date: expense date
            description: free text
            now: timestamp override (tests)

        Returns:
            expense_id

        Raises:
            ValidationError: amount <= 0
            NotFoundError: user not in the household, or unknown category
        """
        now = now or utcnow()
        try:
            amount = quantize_money(to_decimal(amount))
        except InvalidOperation:
            raise ValidationError(f"Invalid expense amount: {amount!r}")
        if amount <= 0:
            raise ValidationError("Expense amount must be positive")

        category = self.db.query(BudgetCategory).filter(
            BudgetCategory.id == category_id,
            BudgetCategory.household_id == household_id,
        ).first()
        if category is None:
            raise NotFoundError(f"Budget category {category_id} not found in household {household_id}")
        category_name = category.name

        member = self.members.get_by_user(user_id, household_id)
        if member is None:
            raise NotFoundError(f"User {user_id} is not a member of household {household_id}")
        member_id = member.id
        tz = local_tz(self.settings.TIMEZONE)

        def _create() -> int:
            locked = self.members.get(member_id, for_update=True)
            expense = Expense(
                household_id=household_id,
                user_id=user_id,
                category_id=category_id,
                amount=amount,
                date=date,
                description=description,
                created_at=now,
            )
            self.db.add(expense)
            record_expenditure(locked, amount, amount, now, tz)
            self.db.flush()
            return expense.id

        expense_id = run_with_optimistic_retry(self.db, _create, description="expense logging")
        logger.info("Expense %d logged: member %d, %s in '%s'",
                    expense_id, member_id, format_money(amount), category_name)

        self.dispatcher.publish(
            self.db, ExpenseLogged(user_id=user_id, household_id=household_id, category=category_name)
        )
        return expense_id
