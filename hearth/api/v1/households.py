"""
Household API endpoints
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from hearth.api.deps import get_current_user, get_db
from hearth.application.household_access import HouseholdAuthorizationService
from hearth.application.member_quests import MemberQuestService
from hearth.domain.errors import NotFoundError
from hearth.infrastructure.db.models import Household, User


router = APIRouter(prefix="/api/v1/households", tags=["households"])


class LeaderboardEntryResponse(BaseModel):
    rank: int
    member_id: int
    user_id: int
    display_name: str | None
    role: str
    xp: int
    level: int
    streak: int
    quests_completed: int


@router.get("/{household_id}/leaderboard", response_model=list[LeaderboardEntryResponse])
def get_leaderboard(
    household_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Members ranked by XP, then quests completed"""
    if db.get(Household, household_id) is None:
        raise NotFoundError(f"Household {household_id} not found")
    HouseholdAuthorizationService(db).ensure_member(user.id, household_id)

    return [
        LeaderboardEntryResponse(
            rank=entry.rank,
            member_id=entry.household_member_id,
            user_id=entry.user_id,
            display_name=entry.display_name,
            role=entry.role,
            xp=entry.xp,
            level=entry.level,
            streak=entry.streak,
            quests_completed=entry.quests_completed,
        )
        for entry in MemberQuestService(db).list_household_progression(household_id)
    ]
