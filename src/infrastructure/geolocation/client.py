"""
IP geolocation client for timezone detection.

Asks a free IP geolocation service (ip-api.com by default) which timezone a
client IP is in. Detection is best-effort: any failure falls back to the
server's local timezone and says so in the result, so callers never have
to handle an exception here.

Mock mode returns a fixed timezone, enabling local development offline.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_CLIENT_IP = "127.0.0.1"


@dataclass(frozen=True)
class TimezoneResult:
    """Outcome of a detection attempt."""
    timezone: str
    detected: bool
    fallback: bool
    error: Optional[str] = None


class GeolocationPayload(BaseModel):
    """The fields we request from ip-api."""
    model_config = ConfigDict(extra="ignore")

    status: Optional[str] = None
    timezone: Optional[str] = None
    message: Optional[str] = None


class GeolocationClient(Protocol):
    async def detect_timezone(self, client_ip: str) -> TimezoneResult:
        """Timezone for the IP, or the local fallback."""
        ...


def client_ip_from_headers(forwarded_for: Optional[str], real_ip: Optional[str]) -> str:
    """First hop of X-Forwarded-For, else X-Real-IP, else loopback."""
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    if real_ip and real_ip.strip():
        return real_ip.strip()
    return DEFAULT_CLIENT_IP


def local_timezone_name() -> str:
    """Name of the server's local timezone, as best the platform reports it."""
    tz = datetime.now().astimezone().tzinfo
    name = getattr(tz, "key", None) or (tz.tzname(None) if tz else None)
    return name or time.tzname[0] or "UTC"


def fallback_result(error: Optional[str] = None) -> TimezoneResult:
    return TimezoneResult(timezone=local_timezone_name(), detected=False, fallback=True, error=error)


class IpApiClient:
    """Timezone lookup against the ip-api JSON endpoint."""

    def __init__(
        self,
        base_url: str = "http://ip-api.com",
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def detect_timezone(self, client_ip: str) -> TimezoneResult:
        url = f"{self._base_url}/json/{client_ip}"

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.get(url, params={"fields": "status,message,timezone"})
                response.raise_for_status()
                payload = GeolocationPayload.model_validate(response.json())
        except (httpx.HTTPError, ValueError, ValidationError) as e:
            logger.error(
                "Timezone detection failed",
                extra={"client_ip": client_ip, "error": str(e)}
            )
            return fallback_result(error="Failed to detect timezone from IP")

        if payload.status == "fail" or not payload.timezone:
            logger.info(
                "Timezone not resolvable for IP",
                extra={"client_ip": client_ip, "reason": payload.message}
            )
            return fallback_result()

        return TimezoneResult(timezone=payload.timezone, detected=True, fallback=False)


class MockGeolocationClient:
    """Answers every lookup with the same timezone."""

    def __init__(self, timezone: str = "UTC") -> None:
        self._timezone = timezone
        self.lookups: list[str] = []

    async def detect_timezone(self, client_ip: str) -> TimezoneResult:
        self.lookups.append(client_ip)
        return TimezoneResult(timezone=self._timezone, detected=True, fallback=False)


def create_geolocation_client(
    base_url: str = "http://ip-api.com",
    timeout: float = 5.0,
    mock_mode: bool = False,
) -> GeolocationClient:
    if mock_mode:
        return MockGeolocationClient()
    return IpApiClient(base_url=base_url, timeout=timeout)
