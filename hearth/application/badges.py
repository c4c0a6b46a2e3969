"""
Badge awarding - idempotent grants and milestone evaluation
"""
import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hearth.domain.errors import NotFoundError
from hearth.domain.progression import milestone_value
from hearth.infrastructure.db.models import Badge, HouseholdMember, MemberBadge
from hearth.infrastructure.repositories.members import HouseholdMemberRepository
from hearth.infrastructure.repositories.quests import BadgeRepository
from hearth.utils.clock import utcnow

logger = logging.getLogger(__name__)


class BadgeService:
    """
    Grants badges at most once per (member, badge)

    The existence check runs before every insert; the composite primary key
    of member_badges catches the race two concurrent grants could still hit.
    """

    def __init__(self, db: Session):
        self.db = db
        self.badges = BadgeRepository(db)
        self.members = HouseholdMemberRepository(db)

    def award_badge(self, member_id: int, badge_id: int, now: datetime | None = None) -> bool:
        """
        Grant a badge and commit

        Returns:
            True if the badge was granted now, False if the member already had it

        Raises:
            NotFoundError: unknown member or badge
        """
        if self.members.get(member_id) is None:
            raise NotFoundError(f"Household member {member_id} not found")
        badge = self.badges.get(badge_id)
        if badge is None:
            raise NotFoundError(f"Badge {badge_id} not found")

        try:
            granted = self.grant(member_id, badge, now or utcnow())
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return False
        return granted

    def grant(self, member_id: int, badge: Badge, now: datetime) -> bool:
        """Insert the member badge unless it exists (caller commits)"""
        if self.badges.has_badge(member_id, badge.id):
            return False
        self.badges.add_member_badge(MemberBadge(
            household_member_id=member_id,
            badge_id=badge.id,
            earned_at=now,
        ))
        logger.info("Badge %s awarded to member %d", badge.code, member_id)
        return True

    def evaluate_milestones(self, member: HouseholdMember, now: datetime | None = None) -> list[str]:
        """
        Grant every badge whose milestone the member has reached (caller commits)

        Returns:
            codes of the badges granted by this call
        """
        now = now or utcnow()
        awarded = []
        for badge in self.badges.list_all():
            value = milestone_value(
                badge.milestone_kind,
                quests_completed=member.quests_completed,
                streak=member.streak,
                xp=member.xp,
            )
            if value >= badge.threshold and self.grant(member.id, badge, now):
                awarded.append(badge.code)
        return awarded

    def list_member_badges(self, member_id: int) -> list[dict]:
        return [
            {
                "badge_id": badge.id,
                "code": badge.code,
                "name": badge.name,
                "description": badge.description,
                "icon": badge.icon,
                "earned_at": member_badge.earned_at,
            }
            for member_badge, badge in self.badges.list_for_member(member_id)
        ]
