"""
Member quest and progression API endpoints
"""
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from hearth.api.deps import get_current_user, get_db
from hearth.application.household_access import HouseholdAuthorizationService
from hearth.application.member_quests import MemberQuestService, MemberQuestView
from hearth.domain.errors import NotFoundError
from hearth.infrastructure.db.models import User
from hearth.infrastructure.repositories.members import HouseholdMemberRepository


router = APIRouter(prefix="/api/v1/members", tags=["quests"])


# === Request/Response models ===

class ProgressRequest(BaseModel):
    progress: int

    @field_validator("progress")
    @classmethod
    def validate_progress(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Progress cannot be negative")
        return v


class MemberQuestResponse(BaseModel):
    quest_id: int
    title: str
    description: str
    type: str
    category: str
    difficulty: str
    xp_reward: int
    target: int
    is_repeatable: bool
    status: str
    progress: int
    assigned_at: datetime
    start_time: datetime | None
    completed_at: datetime | None
    claimed_at: datetime | None


class QuestActionResponse(BaseModel):
    success: bool  # False: not eligible (missing, not completed yet, already claimed)
    quest: MemberQuestResponse | None


class BadgeResponse(BaseModel):
    badge_id: int
    code: str
    name: str
    description: str
    icon: str
    earned_at: datetime


class ProgressionResponse(BaseModel):
    member_id: int
    xp: int
    level: int
    current_level_xp: int
    xp_to_next_level: int
    streak: int
    quests_completed: int
    badges: list[BadgeResponse]


# === Helpers ===

def _authorize_member(db: Session, member_id: int, user: User) -> None:
    """The caller must belong to the member's household"""
    member = HouseholdMemberRepository(db).get(member_id)
    if member is None:
        raise NotFoundError(f"Household member {member_id} not found")
    HouseholdAuthorizationService(db).ensure_member(user.id, member.household_id)


def _quest_response(view: MemberQuestView | None) -> MemberQuestResponse | None:
    if view is None:
        return None
    return MemberQuestResponse(
        quest_id=view.quest_id,
        title=view.title,
        description=view.description,
        type=view.type,
        category=view.category,
        difficulty=view.difficulty,
        xp_reward=view.xp_reward,
        target=view.target,
        is_repeatable=view.is_repeatable,
        status=view.status,
        progress=view.progress,
        assigned_at=view.assigned_at,
        start_time=view.start_time,
        completed_at=view.completed_at,
        claimed_at=view.claimed_at,
    )


def _action_response(service: MemberQuestService, member_id: int, quest_id: int,
                     success: bool) -> QuestActionResponse:
    return QuestActionResponse(
        success=success,
        quest=_quest_response(service.get_member_quest(member_id, quest_id)),
    )


# === Endpoints ===

@router.get("/{member_id}/quests", response_model=list[MemberQuestResponse])
def list_member_quests(
    member_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Quests of a member with catalog details"""
    _authorize_member(db, member_id, user)
    return [_quest_response(v) for v in MemberQuestService(db).list_member_quests(member_id)]


@router.post("/{member_id}/quests/{quest_id}/assign", response_model=MemberQuestResponse)
def assign_quest(
    member_id: int,
    quest_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    _authorize_member(db, member_id, user)
    return _quest_response(MemberQuestService(db).assign_quest(member_id, quest_id))


@router.post("/{member_id}/quests/{quest_id}/progress", response_model=QuestActionResponse)
def update_quest_progress(
    member_id: int,
    quest_id: int,
    req: ProgressRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    _authorize_member(db, member_id, user)
    service = MemberQuestService(db)
    success = service.update_progress(member_id, quest_id, req.progress)
    return _action_response(service, member_id, quest_id, success)


@router.post("/{member_id}/quests/{quest_id}/complete", response_model=QuestActionResponse)
def complete_quest(
    member_id: int,
    quest_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    _authorize_member(db, member_id, user)
    service = MemberQuestService(db)
    success = service.complete_quest(member_id, quest_id)
    return _action_response(service, member_id, quest_id, success)


@router.post("/{member_id}/quests/{quest_id}/claim", response_model=QuestActionResponse)
def claim_quest(
    member_id: int,
    quest_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Claim a completed quest (XP is granted once)"""
    _authorize_member(db, member_id, user)
    service = MemberQuestService(db)
    success = service.claim_quest(member_id, quest_id)
    return _action_response(service, member_id, quest_id, success)


@router.get("/{member_id}/progression", response_model=ProgressionResponse)
def get_progression(
    member_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """XP, level, streak and earned badges"""
    _authorize_member(db, member_id, user)
    view = MemberQuestService(db).get_progression(member_id)
    return ProgressionResponse(
        member_id=view.household_member_id,
        xp=view.xp,
        level=view.level,
        current_level_xp=view.current_level_xp,
        xp_to_next_level=view.xp_to_next_level,
        streak=view.streak,
        quests_completed=view.quests_completed,
        badges=[BadgeResponse(**badge) for badge in view.badges],
    )
