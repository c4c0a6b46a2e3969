"""
Household member repository
"""
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from hearth.infrastructure.db.models import HouseholdMember, User


class HouseholdMemberRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, member_id: int, for_update: bool = False) -> Optional[HouseholdMember]:
        query = self.db.query(HouseholdMember).filter(HouseholdMember.id == member_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def get_many(self, member_ids: Iterable[int], for_update: bool = False) -> dict[int, HouseholdMember]:
        """
        Members by ID (missing IDs are absent from the result)

        Rows are locked in ID order when for_update is set, so two writers
        touching overlapping member sets cannot deadlock each other.
        """
        ids = sorted(set(member_ids))
        if not ids:
            return {}
        query = (
            self.db.query(HouseholdMember)
            .filter(HouseholdMember.id.in_(ids))
            .order_by(HouseholdMember.id.asc())
        )
        if for_update:
            query = query.with_for_update()
        return {member.id: member for member in query.all()}

    def get_by_user(self, user_id: int, household_id: int) -> Optional[HouseholdMember]:
        return (
            self.db.query(HouseholdMember)
            .filter(
                HouseholdMember.user_id == user_id,
                HouseholdMember.household_id == household_id,
            )
            .first()
        )

    def list_ranked(self, household_id: int) -> list[tuple[HouseholdMember, User]]:
        """Members with their users, highest XP first (then quests completed, then ID)"""
        return (
            self.db.query(HouseholdMember, User)
            .join(User, User.id == HouseholdMember.user_id)
            .filter(HouseholdMember.household_id == household_id)
            .order_by(
                HouseholdMember.xp.desc(),
                HouseholdMember.quests_completed.desc(),
                HouseholdMember.id.asc(),
            )
            .all()
        )
