"""
Session state machine.

Decides which step of a training session the athlete is on (check-in,
training, reflection) from the session's calendar slot, its stored status,
and whether a pre-training check-in exists. Pure: the caller supplies `now`.

Times are wall-clock values in the athlete's local calendar; no timezone
conversion happens here.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum

from .models import SessionStatus

CHECKIN_WINDOW = timedelta(hours=1)


class SessionState(Enum):
    AWAITING_CHECKIN = "awaiting_checkin"
    CHECKIN_AVAILABLE = "checkin_available"
    CHECKIN_COMPLETED = "checkin_completed"
    TRAINING_AVAILABLE = "training_available"
    TRAINING_ACTIVE = "training_active"
    REFLECTION_AVAILABLE = "reflection_available"
    COMPLETED = "completed"
    ABSENT = "absent"
    OVERDUE = "overdue"


@dataclass(frozen=True)
class SessionSlot:
    """The parts of a training session the state machine looks at."""
    id: str
    status: str
    scheduled_date: str
    start_time: str
    end_time: str

    @property
    def starts_at(self) -> datetime:
        return _combine(self.scheduled_date, self.start_time)

    @property
    def ends_at(self) -> datetime:
        return _combine(self.scheduled_date, self.end_time)

    @property
    def checkin_opens_at(self) -> datetime:
        return self.starts_at - CHECKIN_WINDOW


@dataclass(frozen=True)
class SessionButtonConfig:
    """What the dashboard's primary action should look like."""
    text: str
    href: str
    description: str
    disabled: bool
    icon: str
    variant: str


def _combine(day: str, clock: str) -> datetime:
    # Seconds are dropped: the dashboards only schedule to the minute
    hour, minute = (int(part) for part in clock.split(":")[:2])
    return datetime.combine(date.fromisoformat(day), time(hour, minute))


def get_session_state(slot: SessionSlot, has_checkin: bool, now: datetime) -> SessionState:
    """Determine where the athlete is in the session flow."""
    if slot.status == SessionStatus.COMPLETED.value:
        return SessionState.COMPLETED
    if slot.status in (SessionStatus.ABSENT.value, SessionStatus.CANCELLED.value):
        return SessionState.ABSENT

    starts_at = slot.starts_at
    ends_at = slot.ends_at

    if now > ends_at:
        # A checked-in athlete still owes a reflection once the slot ends
        if has_checkin:
            return SessionState.REFLECTION_AVAILABLE
        return SessionState.OVERDUE

    if not has_checkin:
        if slot.checkin_opens_at <= now <= ends_at:
            return SessionState.CHECKIN_AVAILABLE
        return SessionState.AWAITING_CHECKIN

    if now < starts_at:
        return SessionState.CHECKIN_COMPLETED

    if slot.status == SessionStatus.IN_PROGRESS.value:
        return SessionState.TRAINING_ACTIVE
    return SessionState.TRAINING_AVAILABLE


def get_button_config(state: SessionState, session_id: str) -> SessionButtonConfig:
    """Map a state to the action the dashboard offers."""
    base = f"/dashboard/athlete/sessions/{session_id}"
    configs = {
        SessionState.AWAITING_CHECKIN: SessionButtonConfig(
            text="Start Pre-Training Check-in",
            href=f"{base}/checkin",
            description="Check-in available 1 hour before session",
            disabled=True,
            icon="clock",
            variant="disabled",
        ),
        SessionState.CHECKIN_AVAILABLE: SessionButtonConfig(
            text="Start Pre-Training Check-in",
            href=f"{base}/checkin",
            description="Complete your pre-training check-in",
            disabled=False,
            icon="check",
            variant="primary",
        ),
        SessionState.CHECKIN_COMPLETED: SessionButtonConfig(
            text="Review Check-in",
            href=f"{base}/checkin",
            description="Check-in completed. You can review or update before session starts.",
            disabled=False,
            icon="check",
            variant="secondary",
        ),
        SessionState.TRAINING_AVAILABLE: SessionButtonConfig(
            text="Start Training",
            href=f"{base}/training",
            description="Ready to start training",
            disabled=False,
            icon="rocket",
            variant="primary",
        ),
        SessionState.TRAINING_ACTIVE: SessionButtonConfig(
            text="Continue Training",
            href=f"{base}/training",
            description="Training in progress",
            disabled=False,
            icon="rocket",
            variant="primary",
        ),
        SessionState.REFLECTION_AVAILABLE: SessionButtonConfig(
            text="Complete Reflection",
            href=f"{base}/reflection",
            description="Session complete - add your reflection",
            disabled=False,
            icon="check",
            variant="primary",
        ),
        SessionState.COMPLETED: SessionButtonConfig(
            text="View Reflection",
            href=f"{base}/reflection",
            description="Session completed",
            disabled=False,
            icon="eye",
            variant="secondary",
        ),
        SessionState.ABSENT: SessionButtonConfig(
            text="Marked Absent",
            href="#",
            description="This session was marked as absent",
            disabled=True,
            icon="x",
            variant="disabled",
        ),
        SessionState.OVERDUE: SessionButtonConfig(
            text="Session Overdue",
            href="#",
            description="Session time has passed",
            disabled=True,
            icon="clock",
            variant="warning",
        ),
    }
    return configs[state]
