"""
Quest, member quest and badge repositories
"""
from typing import List, Optional

from sqlalchemy.orm import Session

from hearth.domain.quest import STATUS_IN_PROGRESS
from hearth.infrastructure.db.models import Badge, MemberBadge, MemberQuest, Quest


class QuestRepository:
    """Read-only access to the quest catalog"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, quest_id: int) -> Optional[Quest]:
        return self.db.query(Quest).filter(Quest.id == quest_id).first()

    def list_all(self) -> List[Quest]:
        return self.db.query(Quest).order_by(Quest.id.asc()).all()


class MemberQuestRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, member_id: int, quest_id: int, for_update: bool = False) -> Optional[MemberQuest]:
        query = self.db.query(MemberQuest).filter(
            MemberQuest.household_member_id == member_id,
            MemberQuest.quest_id == quest_id,
        )
        if for_update:
            query = query.with_for_update()
        return query.first()

    def get_with_quest(self, member_id: int, quest_id: int) -> Optional[tuple[MemberQuest, Quest]]:
        return (
            self.db.query(MemberQuest, Quest)
            .join(Quest, Quest.id == MemberQuest.quest_id)
            .filter(
                MemberQuest.household_member_id == member_id,
                MemberQuest.quest_id == quest_id,
            )
            .first()
        )

    def list_for_member(self, member_id: int) -> List[tuple[MemberQuest, Quest]]:
        return (
            self.db.query(MemberQuest, Quest)
            .join(Quest, Quest.id == MemberQuest.quest_id)
            .filter(MemberQuest.household_member_id == member_id)
            .order_by(MemberQuest.assigned_at.asc(), Quest.id.asc())
            .all()
        )

    def list_active(self, member_id: int) -> List[tuple[MemberQuest, Quest]]:
        """In-progress quests of a member, joined with their catalog entry"""
        return (
            self.db.query(MemberQuest, Quest)
            .join(Quest, Quest.id == MemberQuest.quest_id)
            .filter(
                MemberQuest.household_member_id == member_id,
                MemberQuest.status == STATUS_IN_PROGRESS,
            )
            .order_by(Quest.id.asc())
            .all()
        )

    def add(self, member_quest: MemberQuest) -> None:
        self.db.add(member_quest)
        self.db.flush()


class BadgeRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, badge_id: int) -> Optional[Badge]:
        return self.db.query(Badge).filter(Badge.id == badge_id).first()

    def list_all(self) -> List[Badge]:
        return self.db.query(Badge).order_by(Badge.threshold.asc(), Badge.id.asc()).all()

    def has_badge(self, member_id: int, badge_id: int) -> bool:
        self.db.flush()
        return self.db.query(MemberBadge).filter(
            MemberBadge.household_member_id == member_id,
            MemberBadge.badge_id == badge_id,
        ).first() is not None

    def add_member_badge(self, member_badge: MemberBadge) -> None:
        self.db.add(member_badge)
        self.db.flush()

    def list_for_member(self, member_id: int) -> List[tuple[MemberBadge, Badge]]:
        return (
            self.db.query(MemberBadge, Badge)
            .join(Badge, Badge.id == MemberBadge.badge_id)
            .filter(MemberBadge.household_member_id == member_id)
            .order_by(MemberBadge.earned_at.asc(), Badge.id.asc())
            .all()
        )
