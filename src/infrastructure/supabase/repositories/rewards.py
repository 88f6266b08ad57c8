"""
Reward repository.

Athletes earn a star for every completed session, stored in user_stars.
"""

import logging
from datetime import datetime, timezone

from ..client import BackendClient, Filter
from ..schemas import StarRow, decode_rows

logger = logging.getLogger(__name__)

TABLE = "user_stars"


class RewardRepository:

    def __init__(self, client: BackendClient) -> None:
        self._client = client

    def starred_session_ids(self, user_id: str) -> set[str]:
        rows = self._client.select(TABLE, [Filter.eq("user_id", user_id)])
        return {star.session_id for star in decode_rows(StarRow, rows, TABLE)}

    def award(self, user_id: str, session_ids: list[str], stars: int = 1) -> int:
        """One star row per session. Returns how many were written."""
        if not session_ids:
            return 0

        earned_at = datetime.now(timezone.utc).isoformat()
        self._client.insert(TABLE, [
            {"user_id": user_id, "session_id": session_id, "stars_earned": stars, "earned_at": earned_at}
            for session_id in session_ids
        ])

        logger.info("Awarded stars", extra={"user_id": user_id, "count": len(session_ids)})
        return len(session_ids)
