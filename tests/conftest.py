"""
Pytest fixtures for testing
"""
from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from hearth.application.event_dispatch import EventDispatcher
from hearth.infrastructure.db.models import (
    Badge, BudgetCategory, Household, HouseholdMember, Quest, Receipt, ReceiptItem, User,
)
from hearth.infrastructure.db.session import Base, enable_sqlite_foreign_keys

# 2026-03-10 12:00 Asia/Singapore (a Tuesday)
NOW = datetime(2026, 3, 10, 4, 0, 0)


@pytest.fixture
def db_engine():
    """Create in-memory SQLite engine for tests, with foreign keys enforced."""
    engine = create_engine("sqlite:///:memory:")
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine) -> Session:
    """Create database session for tests"""
    SessionLocal = sessionmaker(bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def dispatcher():
    """Empty dispatcher; tests subscribe what they need"""
    return EventDispatcher()


@pytest.fixture
def household(db_session):
    """Household with a parent (Alice) and two members (Bob, Cara)"""
    users = [
        User(email="alice@example.com", display_name="Alice"),
        User(email="bob@example.com", display_name="Bob"),
        User(email="cara@example.com", display_name="Cara"),
    ]
    db_session.add_all(users)
    db_session.flush()

    home = Household(name="Home", parent_user_id=users[0].id)
    db_session.add(home)
    db_session.flush()

    members = [
        HouseholdMember(household_id=home.id, user_id=users[0].id, role="Parent"),
        HouseholdMember(household_id=home.id, user_id=users[1].id),
        HouseholdMember(household_id=home.id, user_id=users[2].id),
    ]
    db_session.add_all(members)
    db_session.commit()
    return {"household": home, "users": users, "members": members}


@pytest.fixture
def other_household(db_session):
    """Unrelated household with one member"""
    user = User(email="zed@example.com", display_name="Zed")
    db_session.add(user)
    db_session.flush()
    home = Household(name="Elsewhere", parent_user_id=user.id)
    db_session.add(home)
    db_session.flush()
    member = HouseholdMember(household_id=home.id, user_id=user.id, role="Parent")
    db_session.add(member)
    db_session.commit()
    return {"household": home, "user": user, "member": member}


@pytest.fixture
def receipt(db_session, household):
    """Receipt uploaded by Alice with two lines: 2 x pizza (20.00), 3 x soda (10.00)"""
    rec = Receipt(
        user_id=household["users"][0].id,
        household_id=household["household"].id,
        merchant_name="Corner Bistro",
        total_amount=Decimal("30.00"),
    )
    db_session.add(rec)
    db_session.flush()
    pizza = ReceiptItem(receipt_id=rec.id, item_name="Pizza", quantity=2,
                        total_price=Decimal("20.00"), line_number=1)
    soda = ReceiptItem(receipt_id=rec.id, item_name="Soda", quantity=3,
                       total_price=Decimal("10.00"), line_number=2)
    db_session.add_all([pizza, soda])
    db_session.commit()
    return {"receipt": rec, "pizza": pizza, "soda": soda}


@pytest.fixture
def category(db_session, household):
    cat = BudgetCategory(household_id=household["household"].id, name="Groceries")
    db_session.add(cat)
    db_session.commit()
    return cat


@pytest.fixture
def quests(db_session):
    """Small catalog: one of each shape used by the tests"""
    catalog = {
        "log_expense": Quest(code="log_expense", type="daily", title="Log an expense",
                             xp_reward=10, target=1, category="expense", is_repeatable=True),
        "track_3": Quest(code="track_3", type="daily", title="Track 3 expenses",
                         xp_reward=25, target=3, category="expense", is_repeatable=True),
        "scan_receipt": Quest(code="scan_receipt", type="weekly", title="Scan a receipt",
                              xp_reward=15, target=1, category="receipt", is_repeatable=True),
        "groceries": Quest(code="groceries", type="weekly", title="Log groceries",
                           xp_reward=20, target=2, category="groceries"),
        "anything": Quest(code="anything", type="daily", title="Do anything",
                          xp_reward=5, target=5, category="any"),
        "one_off": Quest(code="one_off", type="daily", title="One-off",
                         xp_reward=100, target=1, category="expense", is_repeatable=False),
        "sprint": Quest(code="sprint", type="timed", title="Sprint", xp_reward=30, target=2,
                        category="expense", time_limit_seconds=3600),
    }
    db_session.add_all(catalog.values())
    db_session.commit()
    return catalog


@pytest.fixture
def badges(db_session):
    catalog = {
        "first_quest": Badge(code="first_quest", name="First Steps",
                             milestone_kind="quests_completed", threshold=1),
        "xp_100": Badge(code="xp_100", name="Centurion", milestone_kind="xp", threshold=100),
        "streak_2": Badge(code="streak_2", name="Two in a row", milestone_kind="streak", threshold=2),
    }
    db_session.add_all(catalog.values())
    db_session.commit()
    return catalog
