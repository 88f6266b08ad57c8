"""
Training session repository.

Read access to concrete sessions and their check-ins, plus the store-side
cleanup procedure the nightly job calls.
"""

import logging

from ..client import BackendClient, Filter, RecordNotFoundError
from ..schemas import TrainingSessionRow, decode_rows

logger = logging.getLogger(__name__)

SESSIONS_TABLE = "training_sessions"
CHECKINS_TABLE = "pre_training_checkins"
CLEANUP_FUNCTION = "cleanup_old_sessions"


class TrainingSessionRepository:

    def __init__(self, client: BackendClient) -> None:
        self._client = client

    def get(self, session_id: str) -> TrainingSessionRow:
        rows = self._client.select(SESSIONS_TABLE, [Filter.eq("id", session_id)], limit=1)
        sessions = decode_rows(TrainingSessionRow, rows, SESSIONS_TABLE)
        if not sessions:
            raise RecordNotFoundError("Session not found")
        return sessions[0]

    def has_checkin(self, session_id: str) -> bool:
        rows = self._client.select(
            CHECKINS_TABLE, [Filter.eq("session_id", session_id)], columns="id", limit=1,
        )
        return bool(rows)

    def list_completed(self, athlete_id: str) -> list[TrainingSessionRow]:
        """Completed sessions, newest first."""
        rows = self._client.select(
            SESSIONS_TABLE,
            [Filter.eq("athlete_id", athlete_id), Filter.eq("status", "completed")],
            order="scheduled_date",
            ascending=False,
        )
        return decode_rows(TrainingSessionRow, rows, SESSIONS_TABLE)

    def ping(self) -> None:
        """Cheapest query that proves the table answers."""
        self._client.select(SESSIONS_TABLE, columns="id", limit=1)

    def cleanup_old_sessions(self) -> None:
        """Run the store-side retention procedure."""
        self._client.rpc(CLEANUP_FUNCTION)
        logger.info("Ran session cleanup")
