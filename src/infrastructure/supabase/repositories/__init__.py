"""
Repository pattern implementations for Supabase.

Repositories translate between domain models and table rows.
"""

from .connections import ConnectionRepository
from .profiles import ProfileRepository
from .rewards import RewardRepository
from .schedules import ScheduleRepository
from .sessions import TrainingSessionRepository

__all__ = [
    "ConnectionRepository",
    "ProfileRepository",
    "RewardRepository",
    "ScheduleRepository",
    "TrainingSessionRepository",
]
