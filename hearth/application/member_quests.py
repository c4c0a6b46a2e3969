"""
Member quest use cases - the quest state machine

    assign   -> in-progress (progress 0)
    progress -> completed when progress reaches the target
    complete -> completed in one step
    claim    -> claimed; grants XP and the quest counter exactly once

Expected "not eligible" outcomes (unknown pair, claim before completion,
second claim) return False. Every write runs through
run_with_optimistic_retry, so two concurrent claims of the same quest cannot
both grant XP.
"""
import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hearth.application.badges import BadgeService
from hearth.config import Settings, get_settings
from hearth.domain.errors import ConflictError, NotFoundError
from hearth.domain.progression import compute_level, next_streak
from hearth.domain.quest import (
    QUEST_TYPE_TIMED,
    STATUS_CLAIMED,
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    can_transition,
    clamp_progress,
    is_window_open,
)
from hearth.infrastructure.db.concurrency import run_with_optimistic_retry
from hearth.infrastructure.db.models import Household, HouseholdMember, MemberQuest, Quest
from hearth.infrastructure.repositories.members import HouseholdMemberRepository
from hearth.infrastructure.repositories.quests import MemberQuestRepository, QuestRepository
from hearth.utils.clock import local_tz, utcnow

logger = logging.getLogger(__name__)


@dataclass
class MemberQuestView:
    household_member_id: int
    quest_id: int
    status: str
    progress: int
    assigned_at: datetime
    start_time: datetime | None
    completed_at: datetime | None
    claimed_at: datetime | None
    title: str
    description: str
    xp_reward: int
    category: str
    type: str
    difficulty: str
    target: int
    is_repeatable: bool

    @classmethod
    def build(cls, mq: MemberQuest, quest: Quest) -> "MemberQuestView":
        return cls(
            household_member_id=mq.household_member_id,
            quest_id=mq.quest_id,
            status=mq.status,
            progress=mq.progress,
            assigned_at=mq.assigned_at,
            start_time=mq.start_time,
            completed_at=mq.completed_at,
            claimed_at=mq.claimed_at,
            title=quest.title,
            description=quest.description,
            xp_reward=quest.xp_reward,
            category=quest.category,
            type=quest.type,
            difficulty=quest.difficulty,
            target=quest.target,
            is_repeatable=quest.is_repeatable,
        )


@dataclass
class ProgressionView:
    household_member_id: int
    xp: int
    level: int
    current_level_xp: int
    xp_to_next_level: int
    streak: int
    quests_completed: int
    badges: list[dict]


@dataclass
class LeaderboardEntry:
    rank: int
    household_member_id: int
    user_id: int
    display_name: str | None
    role: str
    xp: int
    level: int
    streak: int
    quests_completed: int


class MemberQuestService:
    def __init__(self, db: Session, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()
        self.tz = local_tz(self.settings.TIMEZONE)
        self.members = HouseholdMemberRepository(db)
        self.quests = QuestRepository(db)
        self.member_quests = MemberQuestRepository(db)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_member_quest(self, member_id: int, quest_id: int) -> MemberQuestView | None:
        row = self.member_quests.get_with_quest(member_id, quest_id)
        if row is None:
            return None
        return MemberQuestView.build(*row)

    def list_member_quests(self, member_id: int) -> list[MemberQuestView]:
        return [MemberQuestView.build(mq, quest) for mq, quest in self.member_quests.list_for_member(member_id)]

    def get_progression(self, member_id: int) -> ProgressionView:
        """XP, level, streak and badges of a member."""
        member = self._require_member(member_id)
        level, current_level_xp, xp_to_next_level = compute_level(member.xp)
        return ProgressionView(
            household_member_id=member.id,
            xp=member.xp,
            level=level,
            current_level_xp=current_level_xp,
            xp_to_next_level=xp_to_next_level,
            streak=member.streak,
            quests_completed=member.quests_completed,
            badges=BadgeService(self.db).list_member_badges(member.id),
        )

    def list_household_progression(self, household_id: int) -> list[LeaderboardEntry]:
        """
        Household leaderboard: members ranked by XP, then quests completed

        Raises:
            NotFoundError: unknown household
        """
        if self.db.get(Household, household_id) is None:
            raise NotFoundError(f"Household {household_id} not found")
        return [
            LeaderboardEntry(
                rank=rank,
                household_member_id=member.id,
                user_id=user.id,
                display_name=user.display_name,
                role=member.role,
                xp=member.xp,
                level=compute_level(member.xp)[0],
                streak=member.streak,
                quests_completed=member.quests_completed,
            )
            for rank, (member, user) in enumerate(self.members.list_ranked(household_id), start=1)
        ]

    # ------------------------------------------------------------------
    # Assignment
    # ------------------------------------------------------------------

    def assign_quest(self, member_id: int, quest_id: int, now: datetime | None = None) -> MemberQuestView:
        """
        Start a quest for a member

        Raises:
            NotFoundError: unknown member or quest
            ConflictError: quest already active, or claimed and not repeatable
        """
        now = now or utcnow()
        self._require_member(member_id)
        quest = self.quests.get(quest_id)
        if quest is None:
            raise NotFoundError(f"Quest {quest_id} not found")

        def _assign() -> MemberQuestView:
            mq = self.member_quests.get(member_id, quest_id, for_update=True)
            if mq is None:
                mq = MemberQuest(
                    household_member_id=member_id,
                    quest_id=quest_id,
                    status=STATUS_IN_PROGRESS,
                    progress=0,
                    assigned_at=now,
                    start_time=now if quest.type == QUEST_TYPE_TIMED else None,
                )
                self.member_quests.add(mq)
            elif self._can_restart(mq, quest, now):
                mq.status = STATUS_IN_PROGRESS
                mq.progress = 0
                mq.assigned_at = now
                mq.start_time = now if quest.type == QUEST_TYPE_TIMED else None
                mq.completed_at = None
                mq.claimed_at = None
                self.db.flush()
            else:
                raise ConflictError(f"Quest {quest_id} is already assigned to member {member_id}")
            return MemberQuestView.build(mq, quest)

        try:
            view = run_with_optimistic_retry(self.db, _assign, description="quest assignment")
        except IntegrityError:
            # concurrent first assignment of the same pair
            raise ConflictError(f"Quest {quest_id} is already assigned to member {member_id}")

        logger.info("Quest %d assigned to member %d", quest_id, member_id)
        return view

    def assign_default_quests(self, member_id: int, now: datetime | None = None) -> list[MemberQuestView]:
        """Assign every catalog quest the member does not hold yet."""
        self._require_member(member_id)
        held = {mq.quest_id for mq, _ in self.member_quests.list_for_member(member_id)}
        return [
            self.assign_quest(member_id, quest.id, now=now)
            for quest in self.quests.list_all()
            if quest.id not in held
        ]

    def _can_restart(self, mq: MemberQuest, quest: Quest, now: datetime) -> bool:
        if not quest.is_repeatable:
            return False
        if mq.status == STATUS_CLAIMED:
            return True
        # repeatable run that lapsed unfinished
        return mq.status == STATUS_IN_PROGRESS and not self.window_open(mq, quest, now)

    # ------------------------------------------------------------------
    # Progress / completion
    # ------------------------------------------------------------------

    def update_progress(self, member_id: int, quest_id: int, progress: int,
                        now: datetime | None = None) -> bool:
        """
        Set progress (clamped to [0, target]) and complete the quest on target

        Returns:
            False if the member quest does not exist or is already claimed
        """
        now = now or utcnow()

        def _update() -> bool:
            mq = self.member_quests.get(member_id, quest_id, for_update=True)
            if mq is None:
                return False
            return self.apply_progress(mq, self.quests.get(mq.quest_id), progress, now)

        return run_with_optimistic_retry(self.db, _update, description="quest progress")

    def apply_progress(self, mq: MemberQuest, quest: Quest, progress: int, now: datetime) -> bool:
        """
        In-session progress update (no commit) shared with the event handlers
        """
        if mq.status == STATUS_CLAIMED:
            return False

        clamped = clamp_progress(progress, quest.target)
        # a completed quest never slides back below its recorded progress
        mq.progress = max(mq.progress, clamped) if mq.status == STATUS_COMPLETED else clamped
        if (mq.status == STATUS_IN_PROGRESS and mq.progress >= quest.target
                and can_transition(mq.status, STATUS_COMPLETED)):
            mq.status = STATUS_COMPLETED
            mq.completed_at = now
            logger.info("Quest %d completed by member %d", quest.id, mq.household_member_id)
        self.db.flush()
        return True

    def complete_quest(self, member_id: int, quest_id: int, now: datetime | None = None) -> bool:
        """
        Force a quest to completed (the action satisfied it in one step)

        Returns:
            False if the member quest does not exist or is already claimed
        """
        now = now or utcnow()

        def _complete() -> bool:
            mq = self.member_quests.get(member_id, quest_id, for_update=True)
            if mq is None or mq.status == STATUS_CLAIMED:
                return False
            if mq.status == STATUS_IN_PROGRESS:
                quest = self.quests.get(mq.quest_id)
                mq.progress = quest.target
                mq.status = STATUS_COMPLETED
                mq.completed_at = now
                self.db.flush()
            return True

        return run_with_optimistic_retry(self.db, _complete, description="quest completion")

    def window_open(self, mq: MemberQuest, quest: Quest, now: datetime) -> bool:
        return is_window_open(
            quest.type,
            mq.assigned_at,
            now,
            self.tz,
            start_weekday=self.settings.WEEK_START,
            start_time=mq.start_time,
            time_limit_seconds=quest.time_limit_seconds,
        )

    # ------------------------------------------------------------------
    # Claim
    # ------------------------------------------------------------------

    def claim_quest(self, member_id: int, quest_id: int, now: datetime | None = None) -> bool:
        """
        Claim a completed quest: +xp_reward, +1 quests_completed, streak, badges

        Returns:
            True once per completed run; False when not found, not completed
            yet, or already claimed (member XP is untouched in that case)
        """
        now = now or utcnow()

        def _claim() -> tuple[int, list[str]] | None:
            mq = self.member_quests.get(member_id, quest_id, for_update=True)
            if mq is None or not can_transition(mq.status, STATUS_CLAIMED):
                return None
            quest = self.quests.get(mq.quest_id)
            member = self.members.get(member_id, for_update=True)

            mq.status = STATUS_CLAIMED
            mq.claimed_at = now

            member.xp += quest.xp_reward
            member.quests_completed += 1
            member.streak = next_streak(member.streak, member.last_quest_claimed_at, now, self.tz)
            member.last_quest_claimed_at = now
            self.db.flush()

            awarded = BadgeService(self.db).evaluate_milestones(member, now=now)
            return quest.xp_reward, awarded

        result = run_with_optimistic_retry(self.db, _claim, description="quest claim")
        if result is None:
            return False

        xp_reward, awarded = result
        logger.info("Quest %d claimed by member %d: +%d XP, badges=%s",
                    quest_id, member_id, xp_reward, awarded or "-")
        return True

    def _require_member(self, member_id: int) -> HouseholdMember:
        member = self.members.get(member_id)
        if member is None:
            raise NotFoundError(f"Household member {member_id} not found")
        return member
