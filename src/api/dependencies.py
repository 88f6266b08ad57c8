"""
FastAPI dependency injection.

Dependencies provide instances of services, clients, and configuration
to route handlers. Using dependency injection means:
- Routes don't instantiate their own dependencies (easier to test)
- Dependencies can be mocked for testing
- Configuration is resolved once and passed down

Each dependency is a function that FastAPI calls when needed.
"""

import logging
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from ..config.settings import BackendConfig, Settings, get_backend_config, get_settings
from ..core.scheduling.generator import SessionGenerator
from ..infrastructure.geolocation.client import GeolocationClient, create_geolocation_client
from ..infrastructure.supabase.client import (
    AuthenticationError,
    BackendClient,
    BackendError,
    create_supabase_client,
)
from ..infrastructure.supabase.repositories import (
    ConnectionRepository,
    ProfileRepository,
    RewardRepository,
    ScheduleRepository,
    TrainingSessionRepository,
)
from ..infrastructure.supabase.schemas import AuthUser

logger = logging.getLogger(__name__)

ACCESS_TOKEN_COOKIE = "sb-access-token"

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)

# Global mock instances (shared across requests so data persists in mock mode)
_mock_backend_client = None
_mock_geolocation_client = None


def reset_mock_clients() -> None:
    """Drop shared mock instances (for test isolation)."""
    global _mock_backend_client, _mock_geolocation_client
    _mock_backend_client = None
    _mock_geolocation_client = None


# ---------------------------------------------------------------------------
# Backend Clients
# ---------------------------------------------------------------------------

def _shared_mock_backend() -> BackendClient:
    global _mock_backend_client
    if _mock_backend_client is None:
        _mock_backend_client = create_supabase_client(mock_mode=True)
        logger.info("Created shared mock Supabase client")
    return _mock_backend_client


def get_backend_client(
    settings: Annotated[Settings, Depends(get_settings)],
    config: Annotated[BackendConfig, Depends(get_backend_config)],
) -> BackendClient:
    """
    Provide a backend client authorized with the anon key.

    In mock mode every request shares one in-memory client.
    """
    if settings.supabase_mock_mode:
        return _shared_mock_backend()

    return create_supabase_client(config=config, timeout=settings.supabase_timeout_seconds)


def get_service_client(
    settings: Annotated[Settings, Depends(get_settings)],
    config: Annotated[BackendConfig, Depends(get_backend_config)],
) -> BackendClient:
    """
    Provide a backend client authorized with the service role key.

    Only for jobs that act on every athlete (the cron endpoint).
    """
    if settings.supabase_mock_mode:
        return _shared_mock_backend()

    if not config.service_role_key:
        logger.warning("Service role key not configured; falling back to anon key")

    return create_supabase_client(
        config=config,
        use_service_role=True,
        timeout=settings.supabase_timeout_seconds,
    )


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

def get_access_token(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
) -> Optional[str]:
    """Bearer token from the Authorization header, else the session cookie."""
    if token:
        return token
    return request.cookies.get(ACCESS_TOKEN_COOKIE)


def require_access_token(
    token: Annotated[Optional[str], Depends(get_access_token)],
) -> str:
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return token


def get_current_user(
    token: Annotated[str, Depends(require_access_token)],
    client: Annotated[BackendClient, Depends(get_backend_client)],
) -> AuthUser:
    """
    Resolve the signed-in user from their access token.

    Raises 401 if the backend rejects the token.
    """
    try:
        return client.get_user(token)
    except AuthenticationError:
        logger.warning("Rejected access token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except BackendError as e:
        logger.error("Failed to verify session", extra={"error": str(e)})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )


def get_user_client(
    token: Annotated[str, Depends(require_access_token)],
    client: Annotated[BackendClient, Depends(get_backend_client)],
) -> BackendClient:
    """Backend client acting as the signed-in user (row-level security applies)."""
    return client.with_access_token(token)


def verify_cron_secret(
    settings: Annotated[Settings, Depends(get_settings)],
    authorization: Annotated[Optional[str], Header()] = None,
) -> None:
    """
    Check the cron bearer secret.

    With no secret configured the check is skipped, as in local development.
    """
    if settings.cron_secret and authorization != f"Bearer {settings.cron_secret}":
        logger.warning("Cron request with invalid secret")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )


# ---------------------------------------------------------------------------
# Repositories and Services
# ---------------------------------------------------------------------------

def get_profile_repository(
    client: Annotated[BackendClient, Depends(get_user_client)],
) -> ProfileRepository:
    return ProfileRepository(client)


def get_connection_repository(
    client: Annotated[BackendClient, Depends(get_user_client)],
) -> ConnectionRepository:
    return ConnectionRepository(client)


def get_training_session_repository(
    client: Annotated[BackendClient, Depends(get_user_client)],
) -> TrainingSessionRepository:
    return TrainingSessionRepository(client)


def get_reward_repository(
    client: Annotated[BackendClient, Depends(get_user_client)],
) -> RewardRepository:
    return RewardRepository(client)


def get_session_generator(
    settings: Annotated[Settings, Depends(get_settings)],
    client: Annotated[BackendClient, Depends(get_user_client)],
) -> SessionGenerator:
    """Generator scoped to the signed-in user's data."""
    return SessionGenerator(ScheduleRepository(client), horizon_days=settings.session_horizon_days)


def get_service_session_generator(
    settings: Annotated[Settings, Depends(get_settings)],
    client: Annotated[BackendClient, Depends(get_service_client)],
) -> SessionGenerator:
    """Generator that can see every athlete's schedule."""
    return SessionGenerator(ScheduleRepository(client), horizon_days=settings.session_horizon_days)


def get_geolocation_client(
    settings: Annotated[Settings, Depends(get_settings)],
) -> GeolocationClient:
    global _mock_geolocation_client

    if settings.geolocation_mock_mode:
        if _mock_geolocation_client is None:
            _mock_geolocation_client = create_geolocation_client(mock_mode=True)
        return _mock_geolocation_client

    return create_geolocation_client(
        base_url=settings.geolocation_base_url,
        timeout=settings.geolocation_timeout_seconds,
    )


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
SettingsDep = Annotated[Settings, Depends(get_settings)]
BackendConfigDep = Annotated[BackendConfig, Depends(get_backend_config)]
BackendClientDep = Annotated[BackendClient, Depends(get_backend_client)]
ServiceClientDep = Annotated[BackendClient, Depends(get_service_client)]
AccessTokenDep = Annotated[str, Depends(require_access_token)]
CurrentUser = Annotated[AuthUser, Depends(get_current_user)]
ProfileRepositoryDep = Annotated[ProfileRepository, Depends(get_profile_repository)]
ConnectionRepositoryDep = Annotated[ConnectionRepository, Depends(get_connection_repository)]
TrainingSessionRepositoryDep = Annotated[TrainingSessionRepository, Depends(get_training_session_repository)]
RewardRepositoryDep = Annotated[RewardRepository, Depends(get_reward_repository)]
SessionGeneratorDep = Annotated[SessionGenerator, Depends(get_session_generator)]
ServiceSessionGeneratorDep = Annotated[SessionGenerator, Depends(get_service_session_generator)]
GeolocationClientDep = Annotated[GeolocationClient, Depends(get_geolocation_client)]
CronAuthorized = Annotated[None, Depends(verify_cron_secret)]
