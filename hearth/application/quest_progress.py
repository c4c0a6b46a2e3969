"""
QuestProgressService - advances quests from domain events.

Rules:
  expense_logged   → +QUEST_PROGRESS_INCREMENT on active quests of category
                     "expense", the expense's budget category, or "any"
  receipt_scanned  → +QUEST_PROGRESS_INCREMENT on active quests of category
                     "receipt" or "any"

Only in-progress quests whose period window (day / week / time limit) is
still open advance. One event can advance several quests.
"""
import logging
from datetime import datetime

from sqlalchemy.orm import Session

from hearth.application.event_dispatch import EventDispatcher
from hearth.application.member_quests import MemberQuestService
from hearth.config import Settings, get_settings
from hearth.domain.errors import NotFoundError
from hearth.domain.events import ExpenseLogged, ReceiptScanned
from hearth.domain.quest import CATEGORY_EXPENSE, CATEGORY_RECEIPT, matches_action
from hearth.infrastructure.db.concurrency import run_with_optimistic_retry
from hearth.infrastructure.repositories.members import HouseholdMemberRepository
from hearth.infrastructure.repositories.quests import MemberQuestRepository
from hearth.utils.clock import utcnow

logger = logging.getLogger(__name__)


class QuestProgressService:
    def __init__(self, db: Session, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()
        self.members = HouseholdMemberRepository(db)
        self.member_quests = MemberQuestRepository(db)
        self.quest_service = MemberQuestService(db, self.settings)

    def handle_expense_logged(self, user_id: int, household_id: int, category: str,
                              now: datetime | None = None) -> int:
        """
        Returns:
            number of quests advanced
        """
        categories = {CATEGORY_EXPENSE}
        if category:
            categories.add(category.strip().lower())
        categories.discard(CATEGORY_RECEIPT)
        return self._advance(user_id, household_id, categories, now, "expense_logged")

    def handle_receipt_scanned(self, user_id: int, household_id: int,
                               now: datetime | None = None) -> int:
        """
        Returns:
            number of quests advanced
        """
        return self._advance(user_id, household_id, {CATEGORY_RECEIPT}, now, "receipt_scanned")

    def _advance(self, user_id: int, household_id: int, categories: set[str],
                 now: datetime | None, reason: str) -> int:
        now = now or utcnow()
        member = self.members.get_by_user(user_id, household_id)
        if member is None:
            raise NotFoundError(f"User {user_id} is not a member of household {household_id}")
        member_id = member.id
        increment = self.settings.QUEST_PROGRESS_INCREMENT

        def _run() -> int:
            advanced = 0
            for mq, quest in self.member_quests.list_active(member_id):
                if not matches_action(quest.category, categories):
                    continue
                if not self.quest_service.window_open(mq, quest, now):
                    continue
                if self.quest_service.apply_progress(mq, quest, mq.progress + increment, now):
                    advanced += 1
            return advanced

        advanced = run_with_optimistic_retry(self.db, _run, description=f"{reason} quest progress")
        logger.info("%s: advanced %d quest(s) for member %d", reason, advanced, member_id)
        return advanced


# ------------------------------------------------------------------
# Event subscribers
# ------------------------------------------------------------------

def on_expense_logged(db: Session, event: ExpenseLogged) -> None:
    QuestProgressService(db).handle_expense_logged(event.user_id, event.household_id, event.category)


def on_receipt_scanned(db: Session, event: ReceiptScanned) -> None:
    QuestProgressService(db).handle_receipt_scanned(event.user_id, event.household_id)


def register_quest_handlers(dispatcher: EventDispatcher) -> None:
    dispatcher.subscribe(ExpenseLogged, on_expense_logged)
    dispatcher.subscribe(ReceiptScanned, on_receipt_scanned)
