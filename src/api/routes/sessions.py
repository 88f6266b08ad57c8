"""
Training session API endpoints.

Sessions are concrete, dated occurrences of an athlete's weekly schedule.
This router exposes:
- A pure preview of what a set of rules would produce over a date range
- Generation of the next horizon of sessions for the signed-in athlete
- The current step of one session (check-in, training, reflection)

Generation always goes through SessionGenerator, so the preview, the
athlete endpoint, and the nightly cron job agree on what a schedule means.
"""

import logging
from datetime import date, datetime

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field, model_validator

from ...config.settings import get_settings
from ...core.scheduling.generator import NoScheduleError
from ...core.scheduling.materializer import materialize
from ...core.scheduling.models import DateRange, MatchPolicy, ScheduleRule
from ...core.scheduling.session_state import get_button_config, get_session_state
from ...infrastructure.supabase.client import BackendError, RecordNotFoundError
from ...infrastructure.supabase.schemas import BackendResponseError
from ..dependencies import (
    CurrentUser,
    SessionGeneratorDep,
    TrainingSessionRepositoryDep,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class ScheduleRuleModel(BaseModel):
    """One weekly rule in a preview request."""
    day_of_week: int = Field(description="0 = Sunday .. 6 = Saturday")
    start_time: str = Field(description="Start time, HH:MM or HH:MM:SS")
    end_time: str = Field(description="End time, HH:MM or HH:MM:SS")
    session_type: str = Field("regular", description="Session label")


class MaterializeRequest(BaseModel):
    """Rules and the inclusive date range to expand them over."""
    rules: list[ScheduleRuleModel] = Field(default_factory=list)
    start_date: date = Field(description="First date, YYYY-MM-DD")
    end_date: date = Field(description="Last date, YYYY-MM-DD")
    policy: MatchPolicy = Field(
        MatchPolicy.ALL,
        description="'all' emits one session per matching rule; 'first' only the first",
    )

    @model_validator(mode="after")
    def check_range_length(self) -> "MaterializeRequest":
        # An inverted range has length 0 and passes through as an empty preview
        limit = get_settings().max_materialize_days
        days = DateRange(start_date=self.start_date, end_date=self.end_date).length
        if days > limit:
            raise ValueError(f"Date range covers {days} days; at most {limit} allowed")
        return self


class SessionRecordItem(BaseModel):
    scheduled_date: str
    start_time: str
    end_time: str
    session_type: str
    status: str


class MaterializeResponse(BaseModel):
    sessions: list[SessionRecordItem]
    count: int


class GenerateResponse(BaseModel):
    success: bool = True
    message: str
    created: int = Field(description="Sessions inserted by this run")
    skipped: int = Field(description="Slots that already had a session")
    start_date: str
    end_date: str


class ButtonConfigItem(BaseModel):
    text: str
    href: str
    description: str
    disabled: bool
    icon: str
    variant: str


class SessionStateResponse(BaseModel):
    session_id: str
    state: str
    has_checkin: bool
    button: ButtonConfigItem


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/materialize",
    response_model=MaterializeResponse,
    summary="Preview sessions",
    description="Expand weekly rules over a date range without storing anything",
)
async def materialize_sessions(request: MaterializeRequest) -> MaterializeResponse:
    """
    Pure preview of session generation.

    An inverted range or an empty rule list yields an empty result,
    not an error.
    """
    rules = [
        ScheduleRule(
            day_of_week=rule.day_of_week,
            start_time=rule.start_time,
            end_time=rule.end_time,
            session_type=rule.session_type,
        )
        for rule in request.rules
    ]
    date_range = DateRange(start_date=request.start_date, end_date=request.end_date)

    records = materialize(rules, date_range, request.policy)

    return MaterializeResponse(
        sessions=[
            SessionRecordItem(
                scheduled_date=r.scheduled_date,
                start_time=r.start_time,
                end_time=r.end_time,
                session_type=r.session_type,
                status=r.status,
            )
            for r in records
        ],
        count=len(records),
    )


@router.post(
    "/generate",
    response_model=GenerateResponse,
    summary="Generate my sessions",
    description="Create the next horizon of sessions from the signed-in athlete's schedule",
)
async def generate_sessions(
    user: CurrentUser,
    generator: SessionGeneratorDep,
) -> GenerateResponse:
    """
    Generate sessions for the signed-in athlete.

    Safe to call repeatedly: slots that already have a session are skipped.
    """
    today = date.today()

    try:
        result = generator.generate_for_athlete(user.id, today)
    except NoScheduleError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except (BackendError, BackendResponseError) as e:
        logger.error(
            "Error generating sessions",
            extra={"user_id": user.id, "error": str(e)}
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate sessions",
        )

    window = generator.window(today)
    return GenerateResponse(
        message="Sessions generated successfully",
        created=result.created,
        skipped=result.skipped,
        start_date=window.start_date.isoformat(),
        end_date=window.end_date.isoformat(),
    )


@router.get(
    "/{session_id}/state",
    response_model=SessionStateResponse,
    summary="Session state",
    description="Where the athlete is in a session's check-in, training, reflection flow",
)
async def get_state(
    session_id: str,
    user: CurrentUser,
    repository: TrainingSessionRepositoryDep,
) -> SessionStateResponse:
    """
    Compute the session's state and the dashboard button for it.

    Returns 404 for sessions that don't exist or belong to someone else.
    """
    try:
        session = repository.get(session_id)
        if session.athlete_id != user.id:
            raise RecordNotFoundError("Session not found")
        has_checkin = repository.has_checkin(session_id)
    except RecordNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Session not found",
        )
    except (BackendError, BackendResponseError) as e:
        logger.error(
            "Error loading session",
            extra={"session_id": session_id, "error": str(e)}
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load session",
        )

    state = get_session_state(session.to_slot(), has_checkin, datetime.now())
    button = get_button_config(state, session_id)

    return SessionStateResponse(
        session_id=session_id,
        state=state.value,
        has_checkin=has_checkin,
        button=ButtonConfigItem(
            text=button.text,
            href=button.href,
            description=button.description,
            disabled=button.disabled,
            icon=button.icon,
            variant=button.variant,
        ),
    )
