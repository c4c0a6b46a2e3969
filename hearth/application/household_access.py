"""
Household access checks

The receipt, expense and quest use cases trust their inputs; the web layer
asks this service first whether the current user may act in a household.
"""
from typing import Optional

from sqlalchemy.orm import Session

from hearth.domain.errors import AuthorizationError
from hearth.infrastructure.db.models import HouseholdMember
from hearth.infrastructure.repositories.members import HouseholdMemberRepository


class HouseholdAuthorizationService:
    def __init__(self, db: Session):
        self.db = db
        self.members = HouseholdMemberRepository(db)

    def get_member_for_user(self, user_id: int, household_id: int) -> Optional[HouseholdMember]:
        return self.members.get_by_user(user_id, household_id)

    def ensure_member(self, user_id: int, household_id: int) -> HouseholdMember:
        """
        Raises:
            AuthorizationError: the user does not belong to the household
        """
        member = self.get_member_for_user(user_id, household_id)
        if member is None:
            raise AuthorizationError(f"User {user_id} is not a member of household {household_id}")
        return member
