"""
Quest rules - statuses, transitions and period windows.

Lifecycle of a member quest:

    in-progress --(progress >= target | forced complete)--> completed
    completed   --(explicit claim)--------------------------> claimed

No transition goes backwards and nothing leaves `claimed`, except that a
repeatable quest can be re-assigned, which starts a fresh in-progress run.
"""
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from hearth.utils.clock import local_date, week_start

STATUS_IN_PROGRESS = "in-progress"
STATUS_COMPLETED = "completed"
STATUS_CLAIMED = "claimed"

QUEST_TYPE_DAILY = "daily"
QUEST_TYPE_WEEKLY = "weekly"
QUEST_TYPE_TIMED = "timed"

# Action categories; a quest with CATEGORY_ANY advances on every action
CATEGORY_EXPENSE = "expense"
CATEGORY_RECEIPT = "receipt"
CATEGORY_ANY = "any"


def clamp_progress(progress: int, target: int) -> int:
    """Keep progress inside [0, target]."""
    return max(0, min(progress, target))


def can_transition(current: str, new: str) -> bool:
    """Forward-only transitions; claimed is terminal."""
    allowed = {
        STATUS_IN_PROGRESS: {STATUS_COMPLETED},
        STATUS_COMPLETED: {STATUS_CLAIMED},
        STATUS_CLAIMED: set(),
    }
    return new in allowed.get(current, set())


def period_key(quest_type: str, moment: datetime, tz: ZoneInfo, start_weekday: int = 1) -> date | None:
    """
    Calendar period a timestamp falls in, for period-bound quest types.

    Returns:
        local date for daily quests, first day of the week for weekly quests,
        None for quest types without a calendar period
    """
    day = local_date(moment, tz)
    if quest_type == QUEST_TYPE_DAILY:
        return day
    if quest_type == QUEST_TYPE_WEEKLY:
        return week_start(day, start_weekday)
    return None


def is_window_open(
    quest_type: str,
    assigned_at: datetime,
    now: datetime,
    tz: ZoneInfo,
    start_weekday: int = 1,
    start_time: datetime | None = None,
    time_limit_seconds: int | None = None,
) -> bool:
    """
    Whether a member quest can still make progress at `now`.

    daily  - `now` is on the same local day as the assignment
    weekly - `now` is in the same local week (weeks begin on start_weekday)
    timed  - start_time (or assigned_at) + time limit has not passed;
             no time limit means the window never closes
    """
    if quest_type == QUEST_TYPE_TIMED:
        if not time_limit_seconds:
            return True
        started = start_time or assigned_at
        return now < started + timedelta(seconds=time_limit_seconds)

    assigned_period = period_key(quest_type, assigned_at, tz, start_weekday)
    if assigned_period is None:
        return True
    return assigned_period == period_key(quest_type, now, tz, start_weekday)


def matches_action(quest_category: str, action_categories: set[str]) -> bool:
    """Category-agnostic quests match every action."""
    category = (quest_category or "").strip().lower()
    return category == CATEGORY_ANY or category in action_categories
