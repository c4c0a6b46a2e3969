"""
Member expenditure counters

Only receipt assignment and expense logging call this; nothing else writes
monthly_expenditure / lifetime_expenditure.
"""
from datetime import datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

from hearth.infrastructure.db.models import HouseholdMember
from hearth.utils.clock import local_date, same_month


def record_expenditure(member: HouseholdMember, delta: Decimal, current_month_amount: Decimal,
                       now: datetime, tz: ZoneInfo) -> None:
    """
    Apply an expenditure change to a member (caller flushes/commits)

    Args:
        member: member row (versioned)
        delta: change of the member's recorded spending, may be negative
        current_month_amount: what the monthly counter holds after a month
            rollover, i.e. the part of this write that belongs to the new month
        now: write time (naive UTC)
        tz: timezone months are counted in

    The monthly counter restarts when the last update happened in an earlier
    calendar month; otherwise it moves by `delta` like the lifetime counter.
    """
    rolled_over = (
        member.last_expenditure_update is not None
        and not same_month(local_date(member.last_expenditure_update, tz), local_date(now, tz))
    )
    if rolled_over:
        member.monthly_expenditure = current_month_amount
    else:
        member.monthly_expenditure = (member.monthly_expenditure or Decimal("0")) + delta
    member.lifetime_expenditure = (member.lifetime_expenditure or Decimal("0")) + delta
    member.last_expenditure_update = now
