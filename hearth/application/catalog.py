"""
Quest and badge reference catalog

Seeded once per database (each seeder is a no-op when its table has rows).
Quest codes are stable identifiers; titles may change freely.
"""
import logging

from sqlalchemy.orm import Session

from hearth.domain.progression import MILESTONE_QUESTS_COMPLETED, MILESTONE_STREAK, MILESTONE_XP
from hearth.domain.quest import (
    CATEGORY_EXPENSE,
    CATEGORY_RECEIPT,
    QUEST_TYPE_DAILY,
    QUEST_TYPE_WEEKLY,
)
from hearth.infrastructure.db.models import Badge, Quest

logger = logging.getLogger(__name__)


QUEST_CATALOG = [
    # Daily - easy
    {
        "code": "daily_log_expense",
        "type": QUEST_TYPE_DAILY,
        "title": "Log Your First Expense",
        "description": "Track a purchase by logging an expense today",
        "xp_reward": 10,
        "target": 1,
        "difficulty": "easy",
        "category": CATEGORY_EXPENSE,
        "is_repeatable": True,
    },
    {
        "code": "daily_scan_receipt",
        "type": QUEST_TYPE_DAILY,
        "title": "Scan a Receipt",
        "description": "Use the receipt scanner to log an expense",
        "xp_reward": 15,
        "target": 1,
        "difficulty": "easy",
        "category": CATEGORY_RECEIPT,
        "is_repeatable": True,
    },
    # Daily - medium
    {
        "code": "daily_track_3",
        "type": QUEST_TYPE_DAILY,
        "title": "Track 3 Expenses",
        "description": "Log at least 3 expenses today",
        "xp_reward": 25,
        "target": 3,
        "difficulty": "medium",
        "category": CATEGORY_EXPENSE,
        "is_repeatable": True,
    },
    # Weekly
    {
        "code": "weekly_track_10",
        "type": QUEST_TYPE_WEEKLY,
        "title": "Weekly Expense Tracker",
        "description": "Log 10 expenses this week",
        "xp_reward": 50,
        "target": 10,
        "difficulty": "medium",
        "category": CATEGORY_EXPENSE,
        "is_repeatable": True,
    },
    {
        "code": "weekly_receipt_master",
        "type": QUEST_TYPE_WEEKLY,
        "title": "Receipt Master",
        "description": "Scan 5 receipts this week",
        "xp_reward": 75,
        "target": 5,
        "difficulty": "medium",
        "category": CATEGORY_RECEIPT,
        "is_repeatable": True,
    },
    {
        "code": "weekly_budget_champion",
        "type": QUEST_TYPE_WEEKLY,
        "title": "Budget Champion",
        "description": "Log 20 expenses this week",
        "xp_reward": 100,
        "target": 20,
        "difficulty": "hard",
        "category": CATEGORY_EXPENSE,
        "is_repeatable": True,
    },
]

BADGE_CATALOG = [
    {"code": "first_quest", "name": "First Steps", "description": "Claim your first quest",
     "icon": "flag", "milestone_kind": MILESTONE_QUESTS_COMPLETED, "threshold": 1},
    {"code": "quest_10", "name": "Quest Regular", "description": "Claim 10 quests",
     "icon": "medal", "milestone_kind": MILESTONE_QUESTS_COMPLETED, "threshold": 10},
    {"code": "streak_7", "name": "On Fire", "description": "Claim quests 7 days in a row",
     "icon": "flame", "milestone_kind": MILESTONE_STREAK, "threshold": 7},
    {"code": "xp_500", "name": "Rising Star", "description": "Earn 500 XP",
     "icon": "star", "milestone_kind": MILESTONE_XP, "threshold": 500},
]


def seed_quests(db: Session) -> int:
    """
    Insert the quest catalog if the quests table is empty

    Returns:
        number of quests inserted
    """
    if db.query(Quest).first() is not None:
        logger.info("Quests already seeded")
        return 0
    db.add_all([Quest(**entry) for entry in QUEST_CATALOG])
    db.commit()
    logger.info("Seeded %d quests", len(QUEST_CATALOG))
    return len(QUEST_CATALOG)


def seed_badges(db: Session) -> int:
    if db.query(Badge).first() is not None:
        logger.info("Badges already seeded")
        return 0
    db.add_all([Badge(**entry) for entry in BADGE_CATALOG])
    db.commit()
    logger.info("Seeded %d badges", len(BADGE_CATALOG))
    return len(BADGE_CATALOG)
