"""
SQLAlchemy ORM models (households, receipts, quests)

Cascade deletes live in the foreign keys (ON DELETE CASCADE); the code never
walks an ORM object graph to delete children.
"""
from datetime import date as date_type, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean, CheckConstraint, Date, DateTime, ForeignKey, Integer, Numeric,
    String, Text, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from hearth.infrastructure.db.session import Base
from hearth.utils.clock import utcnow

MONEY = Numeric(precision=18, scale=2)


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(150), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class Household(Base):
    """Root aggregate for access checks: members, budgets and receipts hang off it."""
    __tablename__ = "households"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    parent_user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class HouseholdMember(Base):
    """
    A user's membership in a household, with spending and progression counters

    Expenditure fields are written only by receipt assignment and expense
    logging; XP/streak/quest counters only by the quest claim flow.
    version_id guards every write against lost updates.
    """
    __tablename__ = "household_members"

    id: Mapped[int] = mapped_column(primary_key=True)
    household_id: Mapped[int] = mapped_column(
        ForeignKey("households.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="Member")  # Parent, Member
    joined_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    monthly_expenditure: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    lifetime_expenditure: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    last_expenditure_update: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_quest_claimed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    quests_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}
    __table_args__ = (
        UniqueConstraint("household_id", "user_id", name="uq_household_member_user"),
    )


class BudgetCategory(Base):
    __tablename__ = "budget_categories"

    id: Mapped[int] = mapped_column(primary_key=True)
    household_id: Mapped[int] = mapped_column(
        ForeignKey("households.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)


class Expense(Base):
    __tablename__ = "expenses"

    id: Mapped[int] = mapped_column(primary_key=True)
    household_id: Mapped[int] = mapped_column(
        ForeignKey("households.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    category_id: Mapped[int] = mapped_column(
        ForeignKey("budget_categories.id", ondelete="CASCADE"), nullable=False
    )
    receipt_id: Mapped[int | None] = mapped_column(
        ForeignKey("receipts.id", ondelete="SET NULL"), nullable=True
    )
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


# ============================================================================
# Receipts
# ============================================================================


class Receipt(Base):
    """Uploaded receipt; OCR fills merchant/date/total and its items."""
    __tablename__ = "receipts"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    household_id: Mapped[int] = mapped_column(
        ForeignKey("households.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="REVIEW_REQUIRED")
    merchant_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    receipt_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    total_amount: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    uploaded_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


class ReceiptItem(Base):
    __tablename__ = "receipt_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    receipt_id: Mapped[int] = mapped_column(
        ForeignKey("receipts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_name: Mapped[str] = mapped_column(String(500), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    unit_price: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    total_price: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    line_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_manually_added: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    ocr_confidence: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_receipt_items_quantity"),
        CheckConstraint("total_price >= 0", name="ck_receipt_items_total_price"),
    )


class ReceiptItemAssignment(Base):
    """
    Share of one receipt item attributed to one member

    All amounts are computed by the apportionment engine, never taken from
    the client. Rows are replaced wholesale on re-assignment.
    """
    __tablename__ = "receipt_item_assignments"

    id: Mapped[int] = mapped_column(primary_key=True)
    receipt_item_id: Mapped[int] = mapped_column(
        ForeignKey("receipt_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    household_member_id: Mapped[int] = mapped_column(
        ForeignKey("household_members.id", ondelete="CASCADE"), nullable=False, index=True
    )
    assigned_quantity: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=4), nullable=False, default=Decimal("1")
    )
    base_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    service_charge_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    gst_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    total_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("receipt_item_id", "household_member_id", name="uq_assignment_item_member"),
    )


# ============================================================================
# Quests & badges (catalog + per-member state)
# ============================================================================


class Quest(Base):
    """Catalog entry, read-only at runtime (seeded once)."""
    __tablename__ = "quests"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False, default="daily")  # daily, weekly, timed
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    xp_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    target: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    difficulty: Mapped[str] = mapped_column(String(16), nullable=False, default="easy")
    category: Mapped[str] = mapped_column(String(32), nullable=False, default="expense")
    time_limit_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_repeatable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class MemberQuest(Base):
    """Per-member progress on a quest: in-progress -> completed -> claimed."""
    __tablename__ = "member_quests"

    household_member_id: Mapped[int] = mapped_column(
        ForeignKey("household_members.id", ondelete="CASCADE"), primary_key=True
    )
    quest_id: Mapped[int] = mapped_column(
        ForeignKey("quests.id", ondelete="CASCADE"), primary_key=True
    )
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="in-progress")
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    assigned_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    start_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}


class Badge(Base):
    __tablename__ = "badges"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    icon: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    # quests_completed, streak, xp
    milestone_kind: Mapped[str] = mapped_column(String(32), nullable=False)
    threshold: Mapped[int] = mapped_column(Integer, nullable=False)


class MemberBadge(Base):
    """Earned badge. Created once, never updated."""
    __tablename__ = "member_badges"

    household_member_id: Mapped[int] = mapped_column(
        ForeignKey("household_members.id", ondelete="CASCADE"), primary_key=True
    )
    badge_id: Mapped[int] = mapped_column(
        ForeignKey("badges.id", ondelete="CASCADE"), primary_key=True
    )
    earned_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
