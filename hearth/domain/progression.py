"""
Member progression rules: XP levels, claim streaks, badge milestones.

Level formula: level N requires 100 * N² XP to complete.
  Level 1 → 2:  100 XP
  Level 2 → 3:  400 XP
  Level 3 → 4:  900 XP
  ...
"""
from datetime import datetime
from zoneinfo import ZoneInfo

from hearth.utils.clock import local_date

MILESTONE_QUESTS_COMPLETED = "quests_completed"
MILESTONE_STREAK = "streak"
MILESTONE_XP = "xp"


def compute_level(total_xp: int) -> tuple[int, int, int]:
    """
    Derive level, current_level_xp, xp_to_next_level from total_xp.

    Returns:
        (level, current_level_xp, xp_to_next_level)
    """
    level = 1
    accumulated = 0
    while True:
        needed = 100 * level * level
        if total_xp < accumulated + needed:
            break
        accumulated += needed
        level += 1
    return level, total_xp - accumulated, 100 * level * level


def next_streak(current_streak: int, last_claimed_at: datetime | None,
                now: datetime, tz: ZoneInfo) -> int:
    """
    Streak after a claim at `now`.

    Counts consecutive local calendar days with at least one claim:
    same day keeps the streak, the next day extends it, a gap restarts at 1.
    """
    if last_claimed_at is None:
        return 1
    gap = (local_date(now, tz) - local_date(last_claimed_at, tz)).days
    if gap <= 0:
        return max(current_streak, 1)
    if gap == 1:
        return current_streak + 1
    return 1


def milestone_value(kind: str, *, quests_completed: int, streak: int, xp: int) -> int:
    """Current counter a badge milestone of `kind` is measured against."""
    if kind == MILESTONE_QUESTS_COMPLETED:
        return quests_completed
    if kind == MILESTONE_STREAK:
        return streak
    if kind == MILESTONE_XP:
        return xp
    raise ValueError(f"Unknown milestone kind: {kind}")
