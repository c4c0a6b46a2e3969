"""
Tests for EventDispatcher: ordering, per-handler transactions, failure isolation,
and the default quest subscribers.
"""
import logging

from hearth.application.event_dispatch import EventDispatcher, get_dispatcher
from hearth.application.member_quests import MemberQuestService
from hearth.application.quest_progress import (
    on_expense_logged,
    on_receipt_scanned,
    register_quest_handlers,
)
from hearth.domain.events import ExpenseLogged, ReceiptScanned
from hearth.infrastructure.db.models import HouseholdMember


def test_handlers_run_in_subscription_order(db_session):
    calls = []
    dispatcher = EventDispatcher()
    dispatcher.subscribe(ExpenseLogged, lambda db, e: calls.append("first"))
    dispatcher.subscribe(ExpenseLogged, lambda db, e: calls.append("second"))
    dispatcher.subscribe(ReceiptScanned, lambda db, e: calls.append("other event"))

    handled = dispatcher.publish(db_session, ExpenseLogged(user_id=1, household_id=1, category="food"))

    assert handled == 2
    assert calls == ["first", "second"]


def test_no_subscribers(db_session):
    assert EventDispatcher().publish(db_session, ReceiptScanned(user_id=1, household_id=1)) == 0


def test_failing_handler_is_rolled_back_and_isolated(db_session, household, caplog):
    member_id = household["members"][0].id

    def broken(db, event):
        db.get(HouseholdMember, member_id).xp = 999
        db.flush()
        raise RuntimeError("boom")

    def healthy(db, event):
        db.get(HouseholdMember, member_id).streak = 4

    dispatcher = EventDispatcher()
    dispatcher.subscribe(ReceiptScanned, broken)
    dispatcher.subscribe(ReceiptScanned, healthy)

    with caplog.at_level(logging.ERROR, logger="hearth.application.event_dispatch"):
        handled = dispatcher.publish(db_session, ReceiptScanned(user_id=1, household_id=1))

    assert handled == 1
    db_session.expire_all()
    member = db_session.get(HouseholdMember, member_id)
    assert member.xp == 0
    assert member.streak == 4
    assert "failed for receipt_scanned" in caplog.text
    assert "boom" in caplog.text


def test_unknown_user_in_handler_does_not_raise(db_session, household, other_household):
    dispatcher = EventDispatcher()
    register_quest_handlers(dispatcher)

    handled = dispatcher.publish(
        db_session,
        ExpenseLogged(user_id=other_household["user"].id, household_id=household["household"].id, category="food"),
    )
    assert handled == 0


def test_quest_handlers_advance_quests(db_session, household, quests):
    bob_user = household["users"][1]
    bob = household["members"][1]
    service = MemberQuestService(db_session)
    service.assign_quest(bob.id, quests["log_expense"].id)
    service.assign_quest(bob.id, quests["scan_receipt"].id)

    dispatcher = EventDispatcher()
    register_quest_handlers(dispatcher)
    dispatcher.publish(db_session, ExpenseLogged(bob_user.id, household["household"].id, "Groceries"))
    dispatcher.publish(db_session, ReceiptScanned(bob_user.id, household["household"].id))

    assert service.get_member_quest(bob.id, quests["log_expense"].id).status == "completed"
    assert service.get_member_quest(bob.id, quests["scan_receipt"].id).status == "completed"


def test_default_dispatcher_has_quest_handlers():
    dispatcher = get_dispatcher()
    assert dispatcher is get_dispatcher()
    assert dispatcher.handlers_for(ExpenseLogged) == [on_expense_logged]
    assert dispatcher.handlers_for(ReceiptScanned) == [on_receipt_scanned]
