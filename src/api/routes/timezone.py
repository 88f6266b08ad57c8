"""
Timezone detection endpoint.

Guesses the caller's timezone from their IP so the dashboard can pre-fill
profile settings. Never fails: an unresolvable IP answers with the
server's timezone and fallback=true.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Header
from pydantic import BaseModel

from ...infrastructure.geolocation.client import client_ip_from_headers
from ..dependencies import GeolocationClientDep

logger = logging.getLogger(__name__)

router = APIRouter()


class TimezoneResponse(BaseModel):
    timezone: str
    detected: bool
    fallback: bool
    error: Optional[str] = None


@router.get(
    "/detect-timezone",
    response_model=TimezoneResponse,
    summary="Detect timezone from IP",
)
async def detect_timezone(
    geolocation: GeolocationClientDep,
    x_forwarded_for: Annotated[Optional[str], Header()] = None,
    x_real_ip: Annotated[Optional[str], Header()] = None,
) -> TimezoneResponse:
    client_ip = client_ip_from_headers(x_forwarded_for, x_real_ip)
    result = await geolocation.detect_timezone(client_ip)

    logger.debug(
        "Timezone detection",
        extra={"client_ip": client_ip, "timezone": result.timezone, "fallback": result.fallback}
    )

    return TimezoneResponse(
        timezone=result.timezone,
        detected=result.detected,
        fallback=result.fallback,
        error=result.error,
    )
