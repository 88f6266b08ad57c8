"""
Domain models for training schedules and sessions.

These models represent the core business concepts. They have no dependencies
on external frameworks, databases, or APIs. The same ScheduleRule works
whether it came from a table row or a request body.
"""

import re
from dataclasses import dataclass
from datetime import date, time, timedelta
from enum import Enum
from typing import Iterator

# HH:MM[:SS], ignoring any fraction or UTC offset that follows
_TIME_PREFIX = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?")


class SessionStatus(Enum):
    """Lifecycle of a concrete training session."""
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ABSENT = "absent"


class SessionType(Enum):
    """
    Session labels the dashboards know about.

    Rules carry session_type as a plain string so unknown labels
    pass through untouched.
    """
    REGULAR = "regular"
    COMPETITION = "competition"
    EXTRA = "extra"


class MatchPolicy(Enum):
    """How many rules may produce a session on the same date."""
    ALL = "all"      # One record per matching rule
    FIRST = "first"  # Only the first matching rule per date


@dataclass(frozen=True)
class ScheduleRule:
    """
    A recurring weekly template.

    day_of_week uses 0 = Sunday .. 6 = Saturday. Values outside that
    range are accepted and simply never match a date.
    """
    day_of_week: int
    start_time: str
    end_time: str
    session_type: str = SessionType.REGULAR.value


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar bounds, date-only."""
    start_date: date
    end_date: date

    @classmethod
    def parse(cls, start: str, end: str) -> "DateRange":
        """Build from ISO strings. Malformed input raises ValueError."""
        return cls(start_date=date.fromisoformat(start), end_date=date.fromisoformat(end))

    @classmethod
    def days_ahead(cls, start: date, days: int) -> "DateRange":
        """The range [start, start + days]."""
        return cls(start_date=start, end_date=start + timedelta(days=days))

    @property
    def is_empty(self) -> bool:
        return self.start_date > self.end_date

    @property
    def length(self) -> int:
        """Number of dates covered, 0 if inverted."""
        return max((self.end_date - self.start_date).days + 1, 0)

    def days(self) -> Iterator[date]:
        """Every date in the range, ascending. Nothing if inverted."""
        # Offsets from start, so a range ending on date.max never steps past it
        for offset in range(self.length):
            yield self.start_date + timedelta(days=offset)


@dataclass(frozen=True)
class SessionRecord:
    """One concrete, dated occurrence of a scheduled activity."""
    scheduled_date: str  # YYYY-MM-DD
    start_time: str
    end_time: str
    session_type: str
    status: str = SessionStatus.SCHEDULED.value

    def to_row(self, athlete_id: str) -> dict:
        """Row shape for the training_sessions table."""
        return {
            "athlete_id": athlete_id,
            "scheduled_date": self.scheduled_date,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "session_type": self.session_type,
            "status": self.status,
        }

    @property
    def slot_key(self) -> tuple[str, str, str]:
        """Identity of a slot within one athlete's calendar."""
        return (self.scheduled_date, _normalize_time(self.start_time), self.session_type)


def weekday_index(day: date) -> int:
    """Weekday with Sunday = 0, matching day_of_week on schedule rules."""
    # date.weekday() is Monday = 0
    return (day.weekday() + 1) % 7


def _normalize_time(value: str) -> str:
    """
    Canonical HH:MM:SS for a time of day.

    '18:00', '18:00:00', '18:00:00.000' and the timetz form '18:00:00+00'
    all name the same slot. Values that don't parse are compared as given.
    """
    match = _TIME_PREFIX.match(value.strip())
    if match is None:
        return value
    hours, minutes, seconds = match.groups()
    try:
        parsed = time(int(hours), int(minutes), int(seconds or 0))
    except ValueError:
        return value
    return parsed.strftime("%H:%M:%S")
