"""
User lookup endpoints.

Coaches and athletes find each other by sharing user codes (ATH-XXXX,
COA-XXXX, PAR-XXXX). Lookup returns just enough of the profile to show
who the code belongs to before sending a connection request.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel

from ...core.connections.codes import format_user_code, validate_user_code_format
from ...infrastructure.supabase.client import BackendError
from ...infrastructure.supabase.schemas import BackendResponseError
from ..dependencies import CurrentUser, ProfileRepositoryDep

logger = logging.getLogger(__name__)

router = APIRouter()


class PublicProfile(BaseModel):
    """Profile fields safe to show another user."""
    id: str
    first_name: str
    last_name: Optional[str] = None
    role: str
    user_code: Optional[str] = None


class LookupResponse(BaseModel):
    user: PublicProfile


@router.get(
    "/lookup",
    response_model=LookupResponse,
    summary="Look up a user by code",
)
async def lookup_user(
    user: CurrentUser,
    profiles: ProfileRepositoryDep,
    code: Optional[str] = Query(None, description="User code, e.g. ATH-7K2M"),
) -> LookupResponse:
    if not code:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Code parameter is required",
        )

    if not validate_user_code_format(code):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid code format. Expected format: ATH-XXXX, COA-XXXX, or PAR-XXXX",
        )

    try:
        profile = profiles.find_by_user_code(format_user_code(code))
    except (BackendError, BackendResponseError) as e:
        logger.error("User lookup failed", extra={"error": str(e)})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )

    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found with this code",
        )

    if profile.id == user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This is your own code",
        )

    return LookupResponse(user=PublicProfile(
        id=profile.id,
        first_name=profile.first_name,
        last_name=profile.last_name,
        role=profile.role.value,
        user_code=profile.user_code,
    ))
