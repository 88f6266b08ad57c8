"""
Training schedule logic.

Contains the schedule domain models, the materializer that expands weekly
rules into dated sessions, the generation service, and the session state
machine.
"""

from .generator import GenerationResult, NoScheduleError, ScheduleStore, SessionGenerator
from .materializer import materialize
from .models import (
    DateRange,
    MatchPolicy,
    ScheduleRule,
    SessionRecord,
    SessionStatus,
    SessionType,
    weekday_index,
)
from .session_state import (
    SessionButtonConfig,
    SessionSlot,
    SessionState,
    get_button_config,
    get_session_state,
)

__all__ = [
    "DateRange",
    "GenerationResult",
    "MatchPolicy",
    "NoScheduleError",
    "ScheduleRule",
    "ScheduleStore",
    "SessionButtonConfig",
    "SessionGenerator",
    "SessionRecord",
    "SessionSlot",
    "SessionState",
    "SessionStatus",
    "SessionType",
    "get_button_config",
    "get_session_state",
    "materialize",
    "weekday_index",
]
