"""
Scheduled job endpoints.

Called by the platform scheduler, not by users. Authorized with a shared
bearer secret and run with the service role key so they can see every
athlete's schedule.
"""

import logging
from datetime import date, datetime, timezone

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel

from ...infrastructure.supabase.client import BackendError
from ...infrastructure.supabase.repositories import TrainingSessionRepository
from ...infrastructure.supabase.schemas import BackendResponseError
from ..dependencies import CronAuthorized, ServiceClientDep, ServiceSessionGeneratorDep

logger = logging.getLogger(__name__)

router = APIRouter()


class CronGenerateResponse(BaseModel):
    success: bool = True
    message: str
    timestamp: str
    athletes: int
    created: int
    cleanup_ok: bool


@router.get(
    "/generate-sessions",
    response_model=CronGenerateResponse,
    summary="Generate sessions for all athletes",
    description="Nightly job: generate upcoming sessions, then prune old ones",
)
async def cron_generate_sessions(
    _: CronAuthorized,
    generator: ServiceSessionGeneratorDep,
    client: ServiceClientDep,
) -> CronGenerateResponse:
    """
    Generate sessions for every athlete with a schedule.

    Cleanup runs afterwards; a cleanup failure is logged but doesn't fail
    the job, since the new sessions are already stored.
    """
    try:
        results = generator.generate_for_all(date.today())
    except (BackendError, BackendResponseError) as e:
        logger.error("Cron session generation failed", extra={"error": str(e)})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate sessions",
        )

    cleanup_ok = True
    try:
        TrainingSessionRepository(client).cleanup_old_sessions()
    except (BackendError, BackendResponseError) as e:
        cleanup_ok = False
        logger.warning("Session cleanup failed", extra={"error": str(e)})

    return CronGenerateResponse(
        message="Sessions generated successfully",
        timestamp=datetime.now(timezone.utc).isoformat(),
        athletes=len(results),
        created=sum(r.created for r in results),
        cleanup_ok=cleanup_ok,
    )
