"""
Reward endpoints.

Athletes earn one star per completed session. Stars are normally written
when a reflection is submitted; this endpoint backfills any completed
session that never got one.
"""

import logging

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel

from ...infrastructure.supabase.client import BackendError
from ...infrastructure.supabase.schemas import BackendResponseError
from ..dependencies import CurrentUser, RewardRepositoryDep, TrainingSessionRepositoryDep

logger = logging.getLogger(__name__)

router = APIRouter()


class AwardedSession(BaseModel):
    id: str
    scheduled_date: str


class AwardStarsResponse(BaseModel):
    success: bool = True
    message: str
    stars_awarded: int
    total_completed: int
    sessions: list[AwardedSession]


@router.post(
    "/award-missing-stars",
    response_model=AwardStarsResponse,
    summary="Backfill stars",
    description="Award a star for every completed session that doesn't have one",
)
async def award_missing_stars(
    user: CurrentUser,
    sessions: TrainingSessionRepositoryDep,
    rewards: RewardRepositoryDep,
) -> AwardStarsResponse:
    try:
        completed = sessions.list_completed(user.id)
        starred = rewards.starred_session_ids(user.id)
        missing = [s for s in completed if s.id not in starred]
        awarded = rewards.award(user.id, [s.id for s in missing])
    except (BackendError, BackendResponseError) as e:
        logger.error(
            "Error awarding stars",
            extra={"user_id": user.id, "error": str(e)}
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to award stars",
        )

    if awarded:
        message = f"Awarded {awarded} star(s) for completed sessions"
    else:
        message = "All completed sessions already have stars"

    return AwardStarsResponse(
        message=message,
        stars_awarded=awarded,
        total_completed=len(completed),
        sessions=[AwardedSession(id=s.id, scheduled_date=s.scheduled_date) for s in missing],
    )
