"""
Tests for quest rules: transitions, clamping, period windows, category matching.

Timestamps are naive UTC; windows are evaluated in Asia/Singapore (UTC+8).
"""
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from hearth.domain.quest import (
    CATEGORY_ANY,
    QUEST_TYPE_DAILY,
    QUEST_TYPE_TIMED,
    QUEST_TYPE_WEEKLY,
    STATUS_CLAIMED,
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    can_transition,
    clamp_progress,
    is_window_open,
    matches_action,
    period_key,
)

SGT = ZoneInfo("Asia/Singapore")
# Tuesday 2026-03-10, 12:00 local
ASSIGNED = datetime(2026, 3, 10, 4, 0)


class TestTransitions:
    @pytest.mark.parametrize("current,new", [
        (STATUS_IN_PROGRESS, STATUS_COMPLETED),
        (STATUS_COMPLETED, STATUS_CLAIMED),
    ])
    def test_forward_transitions_allowed(self, current, new):
        assert can_transition(current, new)

    @pytest.mark.parametrize("current,new", [
        (STATUS_IN_PROGRESS, STATUS_CLAIMED),
        (STATUS_COMPLETED, STATUS_IN_PROGRESS),
        (STATUS_CLAIMED, STATUS_COMPLETED),
        (STATUS_CLAIMED, STATUS_IN_PROGRESS),
        ("unknown", STATUS_COMPLETED),
    ])
    def test_other_transitions_rejected(self, current, new):
        assert not can_transition(current, new)


@pytest.mark.parametrize("progress,expected", [(-3, 0), (0, 0), (2, 2), (5, 5), (9, 5)])
def test_clamp_progress(progress, expected):
    assert clamp_progress(progress, 5) == expected


class TestDailyWindow:
    def test_open_until_local_midnight(self):
        last_minute = datetime(2026, 3, 10, 15, 59)  # 23:59 SGT
        assert is_window_open(QUEST_TYPE_DAILY, ASSIGNED, last_minute, SGT)

    def test_closed_on_next_local_day(self):
        next_day = datetime(2026, 3, 10, 16, 0)  # 00:00 SGT on the 11th
        assert not is_window_open(QUEST_TYPE_DAILY, ASSIGNED, next_day, SGT)

    def test_period_key_uses_local_date(self):
        assert period_key(QUEST_TYPE_DAILY, datetime(2026, 3, 10, 17, 0), SGT) == date(2026, 3, 11)


class TestWeeklyWindow:
    def test_open_through_sunday(self):
        sunday_night = datetime(2026, 3, 15, 15, 59)  # Sun 23:59 SGT
        assert is_window_open(QUEST_TYPE_WEEKLY, ASSIGNED, sunday_night, SGT)

    def test_closed_on_monday(self):
        monday = datetime(2026, 3, 15, 16, 0)  # Mon 00:00 SGT
        assert not is_window_open(QUEST_TYPE_WEEKLY, ASSIGNED, monday, SGT)

    def test_sunday_week_start(self):
        sunday = datetime(2026, 3, 14, 16, 0)  # Sun 00:00 SGT
        assert not is_window_open(QUEST_TYPE_WEEKLY, ASSIGNED, sunday, SGT, start_weekday=7)
        assert period_key(QUEST_TYPE_WEEKLY, ASSIGNED, SGT, start_weekday=7) == date(2026, 3, 8)


class TestTimedWindow:
    def test_open_before_limit(self):
        now = ASSIGNED + timedelta(minutes=59)
        assert is_window_open(QUEST_TYPE_TIMED, ASSIGNED, now, SGT,
                              start_time=ASSIGNED, time_limit_seconds=3600)

    def test_closed_at_limit(self):
        now = ASSIGNED + timedelta(hours=1)
        assert not is_window_open(QUEST_TYPE_TIMED, ASSIGNED, now, SGT,
                                  start_time=ASSIGNED, time_limit_seconds=3600)

    def test_no_limit_never_closes(self):
        assert is_window_open(QUEST_TYPE_TIMED, ASSIGNED, ASSIGNED + timedelta(days=365), SGT)

    def test_falls_back_to_assigned_at(self):
        now = ASSIGNED + timedelta(minutes=30)
        assert is_window_open(QUEST_TYPE_TIMED, ASSIGNED, now, SGT, time_limit_seconds=3600)


class TestMatchesAction:
    def test_exact_category(self):
        assert matches_action("expense", {"expense", "groceries"})

    def test_category_is_case_insensitive(self):
        assert matches_action("Groceries", {"expense", "groceries"})

    def test_any_matches_everything(self):
        assert matches_action(CATEGORY_ANY, {"receipt"})

    def test_other_category_does_not_match(self):
        assert not matches_action("receipt", {"expense"})
