"""
Tests for QuestProgressService (event entry points of the quest state machine)
"""
from datetime import timedelta

import pytest

from hearth.application.member_quests import MemberQuestService
from hearth.application.quest_progress import QuestProgressService
from hearth.domain.errors import NotFoundError


@pytest.fixture
def bob(household):
    return household["members"][1]


@pytest.fixture
def assigned(db_session, bob, quests, now):
    """Bob holds every catalog quest, assigned at `now`"""
    service = MemberQuestService(db_session)
    for quest in quests.values():
        service.assign_quest(bob.id, quest.id, now=now)
    return service


def progress_of(service, member, quest):
    return service.get_member_quest(member.id, quest.id).progress


class TestExpenseLogged:
    def test_advances_matching_categories(self, db_session, household, bob, quests, assigned, now):
        progress = QuestProgressService(db_session)

        advanced = progress.handle_expense_logged(
            household["users"][1].id, household["household"].id, "Groceries", now=now
        )

        # expense: log_expense, track_3, one_off, sprint; budget category: groceries; any: anything
        assert advanced == 6
        assert progress_of(assigned, bob, quests["log_expense"]) == 1
        assert progress_of(assigned, bob, quests["groceries"]) == 1
        assert progress_of(assigned, bob, quests["anything"]) == 1
        assert progress_of(assigned, bob, quests["scan_receipt"]) == 0

    def test_reaching_target_completes(self, db_session, household, bob, quests, assigned, now):
        progress = QuestProgressService(db_session)
        for _ in range(3):
            progress.handle_expense_logged(household["users"][1].id, household["household"].id, "Transport", now=now)

        view = assigned.get_member_quest(bob.id, quests["track_3"].id)
        assert (view.status, view.progress) == ("completed", 3)

    def test_completed_quests_stay_at_target(self, db_session, household, bob, quests, assigned, now):
        progress = QuestProgressService(db_session)
        for _ in range(5):
            progress.handle_expense_logged(household["users"][1].id, household["household"].id, "Transport", now=now)

        assert progress_of(assigned, bob, quests["track_3"]) == 3
        assert progress_of(assigned, bob, quests["log_expense"]) == 1

    def test_expired_windows_do_not_advance(self, db_session, household, bob, quests, assigned, now):
        next_day = now + timedelta(days=1)
        QuestProgressService(db_session).handle_expense_logged(
            household["users"][1].id, household["household"].id, "Groceries", now=next_day
        )

        assert progress_of(assigned, bob, quests["log_expense"]) == 0  # daily, closed
        assert progress_of(assigned, bob, quests["sprint"]) == 0  # one hour limit
        assert progress_of(assigned, bob, quests["groceries"]) == 1  # same week

    def test_category_named_receipt_is_not_a_scan(self, db_session, household, bob, quests, assigned, now):
        QuestProgressService(db_session).handle_expense_logged(
            household["users"][1].id, household["household"].id, "Receipt", now=now
        )
        assert progress_of(assigned, bob, quests["scan_receipt"]) == 0

    def test_user_outside_household(self, db_session, household, other_household):
        with pytest.raises(NotFoundError):
            QuestProgressService(db_session).handle_expense_logged(
                other_household["user"].id, household["household"].id, "Groceries"
            )

    def test_no_active_quests(self, db_session, household):
        assert QuestProgressService(db_session).handle_expense_logged(
            household["users"][1].id, household["household"].id, "Groceries"
        ) == 0


class TestReceiptScanned:
    def test_advances_receipt_and_any_quests(self, db_session, household, bob, quests, assigned, now):
        advanced = QuestProgressService(db_session).handle_receipt_scanned(
            household["users"][1].id, household["household"].id, now=now
        )

        assert advanced == 2
        view = assigned.get_member_quest(bob.id, quests["scan_receipt"].id)
        assert (view.status, view.progress) == ("completed", 1)
        assert progress_of(assigned, bob, quests["anything"]) == 1
        assert progress_of(assigned, bob, quests["log_expense"]) == 0

    def test_claimed_quests_are_skipped(self, db_session, household, bob, quests, assigned, now):
        QuestProgressService(db_session).handle_receipt_scanned(
            household["users"][1].id, household["household"].id, now=now
        )
        assigned.claim_quest(bob.id, quests["scan_receipt"].id, now=now)

        advanced = QuestProgressService(db_session).handle_receipt_scanned(
            household["users"][1].id, household["household"].id, now=now
        )

        assert advanced == 1
        assert assigned.get_member_quest(bob.id, quests["scan_receipt"].id).status == "claimed"
