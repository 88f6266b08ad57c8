"""
Typed shapes of backend responses.

Every payload that crosses the backend boundary is validated into one of
these models. A payload that doesn't fit raises BackendResponseError instead
of quietly defaulting fields, so a schema drift in the database shows up
as a clear error rather than as wrong data on a dashboard.
"""

from typing import Any, Optional, Sequence, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.core.connections.models import Connection, ConnectionStatus, Role
from src.core.scheduling.models import ScheduleRule
from src.core.scheduling.session_state import SessionSlot


class BackendResponseError(Exception):
    """Raised when a backend payload doesn't match the expected schema."""
    pass


class _Row(BaseModel):
    model_config = ConfigDict(extra="ignore")


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

class AuthUser(_Row):
    id: str
    email: Optional[str] = None
    user_metadata: dict[str, Any] = Field(default_factory=dict)
    identities: Optional[list[dict[str, Any]]] = None
    email_confirmed_at: Optional[str] = None

    @property
    def already_registered(self) -> bool:
        """Sign-up returns an identity-less user when the email is taken."""
        return self.identities is not None and len(self.identities) == 0


class AuthSession(_Row):
    access_token: str
    refresh_token: str = ""
    expires_in: Optional[int] = None
    user: AuthUser


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

class ProfileRow(_Row):
    id: str
    email: Optional[str] = None
    first_name: str = ""
    last_name: Optional[str] = None
    role: Role = Role.ATHLETE
    user_code: Optional[str] = None
    timezone: Optional[str] = None

    @property
    def full_name(self) -> str:
        if not self.first_name:
            return "User"
        if not self.last_name:
            return self.first_name
        return f"{self.first_name} {self.last_name}"


class ScheduleRow(_Row):
    id: Optional[str] = None
    athlete_id: str
    day_of_week: int
    start_time: str
    end_time: str
    session_type: str = "regular"

    def to_rule(self) -> ScheduleRule:
        return ScheduleRule(
            day_of_week=self.day_of_week,
            start_time=self.start_time,
            end_time=self.end_time,
            session_type=self.session_type,
        )


class TrainingSessionRow(_Row):
    id: str
    athlete_id: str
    scheduled_date: str
    start_time: str
    end_time: str
    session_type: str = "regular"
    status: str = "scheduled"
    absence_reason: Optional[str] = None

    def to_slot(self) -> SessionSlot:
        return SessionSlot(
            id=self.id,
            status=self.status,
            scheduled_date=self.scheduled_date,
            start_time=self.start_time,
            end_time=self.end_time,
        )


class ConnectionRow(_Row):
    id: str
    coach_id: str
    athlete_id: str
    status: ConnectionStatus
    initiated_by: Optional[str] = None
    request_message: Optional[str] = None
    created_at: Optional[str] = None
    responded_at: Optional[str] = None
    is_active: Optional[bool] = None

    def to_connection(self) -> Connection:
        return Connection(
            id=self.id,
            coach_id=self.coach_id,
            athlete_id=self.athlete_id,
            status=self.status,
            initiated_by=self.initiated_by,
        )


class StarRow(_Row):
    user_id: str
    session_id: str
    stars_earned: int = 1


# ---------------------------------------------------------------------------
# Decoding helpers
# ---------------------------------------------------------------------------

RowModel = TypeVar("RowModel", bound=BaseModel)


def decode_row(model: type[RowModel], payload: Any, source: str) -> RowModel:
    """Validate one payload, raising BackendResponseError on mismatch."""
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise BackendResponseError(
            f"Unexpected {source} payload: {e.error_count()} validation error(s)"
        ) from e


def decode_rows(model: type[RowModel], payload: Any, source: str) -> list[RowModel]:
    """Validate a list payload, raising BackendResponseError on mismatch."""
    if not isinstance(payload, Sequence) or isinstance(payload, (str, bytes)):
        raise BackendResponseError(f"Expected a list from {source}, got {type(payload).__name__}")
    return [decode_row(model, item, source) for item in payload]
