"""
Authentication endpoints.

Thin layer over Supabase auth: the backend owns users, passwords, and
tokens. These endpoints validate input, call the auth API, and shape the
response. Sign-in also sets the access token cookie so browser clients
don't have to manage the bearer header themselves.

The callback endpoint finishes email confirmation: it exchanges the one-time
code, creates the profile row for brand-new users, and tries to generate
their first week of sessions.
"""

import logging
from datetime import date
from typing import Annotated, Optional

from fastapi import APIRouter, Cookie, HTTPException, Query, Request, Response, status
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, ConfigDict, Field

from ...core.connections.models import Role
from ...core.scheduling.generator import NoScheduleError, SessionGenerator
from ...infrastructure.supabase.client import AuthenticationError, BackendError
from ...infrastructure.supabase.repositories import ProfileRepository, ScheduleRepository
from ...infrastructure.supabase.schemas import BackendResponseError
from ..dependencies import (
    ACCESS_TOKEN_COOKIE,
    AccessTokenDep,
    BackendClientDep,
    SettingsDep,
)

logger = logging.getLogger(__name__)

router = APIRouter()

CODE_VERIFIER_COOKIE = "sb-code-verifier"


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class LoginRequest(BaseModel):
    email: str = Field(min_length=1, description="Account email")
    password: str = Field(min_length=1, description="Account password")


class SignupRequest(BaseModel):
    """New account details. Accepts camelCase names from the web client."""
    model_config = ConfigDict(populate_by_name=True)

    email: str = Field(min_length=1)
    password: str = Field(min_length=1)
    first_name: str = Field(min_length=1, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    role: Role


class ResetPasswordRequest(BaseModel):
    email: str = Field(min_length=1)


class UpdatePasswordRequest(BaseModel):
    password: str = Field(min_length=1)


class UserSummary(BaseModel):
    id: str
    email: Optional[str] = None
    role: Optional[str] = None


class LoginResponse(BaseModel):
    success: bool = True
    user: UserSummary
    access_token: str
    refresh_token: str
    expires_in: Optional[int] = None


class SignupResponse(BaseModel):
    success: bool = True
    user: UserSummary


class MessageResponse(BaseModel):
    success: bool = True
    message: str


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Sign in",
    description="Sign in with email and password",
)
async def login(
    request: LoginRequest,
    response: Response,
    client: BackendClientDep,
) -> LoginResponse:
    """
    Sign in and report the user's role.

    The role comes from the profile row; users who haven't got one yet
    are treated as athletes.
    """
    try:
        session = client.sign_in_with_password(request.email, request.password)
    except AuthenticationError as e:
        logger.info("Login rejected", extra={"reason": str(e)})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e) or "Invalid login credentials",
        )
    except BackendError as e:
        logger.error("Login failed", extra={"error": str(e)})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Login failed",
        )

    role = Role.ATHLETE.value
    try:
        profiles = ProfileRepository(client.with_access_token(session.access_token))
        profile = profiles.find(session.user.id)
        if profile is not None:
            role = profile.role.value
    except (BackendError, BackendResponseError) as e:
        logger.warning(
            "Could not load profile at login",
            extra={"user_id": session.user.id, "error": str(e)}
        )

    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        session.access_token,
        max_age=session.expires_in,
        httponly=True,
        samesite="lax",
    )

    logger.info("User signed in", extra={"user_id": session.user.id, "role": role})

    return LoginResponse(
        user=UserSummary(id=session.user.id, email=session.user.email, role=role),
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_in=session.expires_in,
    )


@router.post(
    "/signup",
    response_model=SignupResponse,
    summary="Create account",
    description="Register a new athlete, coach, or parent",
)
async def signup(
    request: SignupRequest,
    http_request: Request,
    client: BackendClientDep,
    settings: SettingsDep,
) -> SignupResponse:
    """
    Register with Supabase auth.

    Name and role travel as user metadata; the profile row is created when
    the confirmation link brings the user back through /callback.
    """
    origin = http_request.headers.get("origin") or settings.site_url
    metadata = {
        "first_name": request.first_name,
        "last_name": request.last_name,
        "role": request.role.value,
    }

    try:
        user = client.sign_up(
            request.email,
            request.password,
            metadata,
            redirect_to=f"{origin.rstrip('/')}/auth/callback",
        )
    except AuthenticationError as e:
        logger.info("Sign-up rejected", extra={"reason": str(e)})
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e) or "Sign-up rejected",
        )
    except BackendError as e:
        logger.error("Sign-up failed", extra={"error": str(e)})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create user",
        )

    if user.already_registered:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="An account with this email already exists. Please sign in instead.",
        )

    logger.info("User created", extra={"user_id": user.id, "role": request.role.value})

    return SignupResponse(user=UserSummary(id=user.id, email=user.email))


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Sign out",
)
async def logout(
    response: Response,
    token: AccessTokenDep,
    client: BackendClientDep,
) -> MessageResponse:
    try:
        client.sign_out(token)
    except AuthenticationError:
        # Token already invalid; the client is signed out either way
        logger.info("Sign-out with expired token")
    except BackendError as e:
        logger.error("Sign-out failed", extra={"error": str(e)})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to sign out",
        )

    response.delete_cookie(ACCESS_TOKEN_COOKIE)
    return MessageResponse(message="Signed out")


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    summary="Send password reset email",
)
async def reset_password(
    request: ResetPasswordRequest,
    client: BackendClientDep,
    settings: SettingsDep,
) -> MessageResponse:
    try:
        client.reset_password_for_email(
            request.email,
            redirect_to=f"{settings.site_url.rstrip('/')}/auth/update-password",
        )
    except BackendError as e:
        logger.error("Password reset failed", extra={"error": str(e)})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to send reset email. Please try again.",
        )

    return MessageResponse(message="Password reset email sent successfully")


@router.post(
    "/update-password",
    response_model=MessageResponse,
    summary="Set a new password",
)
async def update_password(
    request: UpdatePasswordRequest,
    token: AccessTokenDep,
    client: BackendClientDep,
    settings: SettingsDep,
) -> MessageResponse:
    if len(request.password) < settings.min_password_length:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Password must be at least {settings.min_password_length} characters long",
        )

    try:
        client.update_user_password(token, request.password)
    except AuthenticationError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    except BackendError as e:
        logger.error("Password update failed", extra={"error": str(e)})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update password. Please try again.",
        )

    return MessageResponse(message="Password updated successfully")


@router.get(
    "/callback",
    summary="Email confirmation callback",
    description="Exchange a confirmation code for a session and finish account setup",
    response_class=RedirectResponse,
    status_code=status.HTTP_303_SEE_OTHER,
)
async def auth_callback(
    client: BackendClientDep,
    settings: SettingsDep,
    code: Annotated[Optional[str], Query()] = None,
    code_verifier: Annotated[Optional[str], Cookie(alias=CODE_VERIFIER_COOKIE)] = None,
) -> RedirectResponse:
    """
    Finish sign-up after the user clicks the confirmation link.

    New users get a profile built from their sign-up metadata and a first
    round of session generation. Generation failing never blocks the
    redirect; an athlete without a schedule yet is the normal case.
    """
    site = settings.site_url.rstrip("/")

    if not code:
        return _redirect(f"{site}/auth/auth-code-error")

    try:
        session = client.exchange_code_for_session(code, code_verifier)
    except (BackendError, BackendResponseError) as e:
        logger.warning("Code exchange failed", extra={"error": str(e)})
        return _redirect(f"{site}/auth/auth-code-error")

    user_client = client.with_access_token(session.access_token)
    profiles = ProfileRepository(user_client)
    user = session.user

    try:
        existing = profiles.find(user.id)
        if existing is not None:
            return _redirect(f"{site}/auth/login?message=already_confirmed")

        metadata = user.user_metadata
        profiles.create(
            user_id=user.id,
            email=user.email,
            first_name=metadata.get("first_name") or "User",
            last_name=metadata.get("last_name"),
            role=_role_from_metadata(metadata),
        )
    except (BackendError, BackendResponseError) as e:
        logger.error(
            "Error creating profile",
            extra={"user_id": user.id, "error": str(e)}
        )
        return _redirect(f"{site}/auth/login?error=profile_creation_failed")

    generator = SessionGenerator(ScheduleRepository(user_client), horizon_days=settings.session_horizon_days)
    try:
        generator.generate_for_athlete(user.id, date.today())
    except NoScheduleError:
        logger.info("No schedule yet for new user", extra={"user_id": user.id})
    except (BackendError, BackendResponseError) as e:
        logger.error(
            "Error generating sessions for new user",
            extra={"user_id": user.id, "error": str(e)}
        )

    return _redirect(f"{site}/auth/login?message=profile_created")


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)


def _role_from_metadata(metadata: dict) -> Role:
    try:
        return Role(metadata.get("role") or Role.ATHLETE.value)
    except ValueError:
        return Role.ATHLETE
