"""
Schedule repository.

Reads weekly rules from training_schedules and writes generated sessions to
training_sessions. Implements the ScheduleStore protocol the session
generator depends on.
"""

import logging
from collections import OrderedDict

from src.core.scheduling.models import DateRange, ScheduleRule, SessionRecord
from ..client import BackendClient, Filter
from ..schemas import ScheduleRow, TrainingSessionRow, decode_rows

logger = logging.getLogger(__name__)

SCHEDULES_TABLE = "training_schedules"
SESSIONS_TABLE = "training_sessions"


class ScheduleRepository:
    """
    Backend-backed ScheduleStore.

    Rules keep the order the table returns them in (by creation time), which
    decides precedence when the generator runs with MatchPolicy.FIRST.
    """

    def __init__(self, client: BackendClient) -> None:
        self._client = client

    def list_rules(self, athlete_id: str) -> list[ScheduleRule]:
        rows = self._client.select(
            SCHEDULES_TABLE,
            [Filter.eq("athlete_id", athlete_id)],
            order="created_at",
        )
        return [row.to_rule() for row in decode_rows(ScheduleRow, rows, SCHEDULES_TABLE)]

    def list_rules_by_athlete(self) -> dict[str, list[ScheduleRule]]:
        rows = self._client.select(SCHEDULES_TABLE, order="created_at")

        grouped: "OrderedDict[str, list[ScheduleRule]]" = OrderedDict()
        for row in decode_rows(ScheduleRow, rows, SCHEDULES_TABLE):
            grouped.setdefault(row.athlete_id, []).append(row.to_rule())
        return dict(grouped)

    def existing_slots(self, athlete_id: str, date_range: DateRange) -> set[tuple[str, str, str]]:
        rows = self._client.select(
            SESSIONS_TABLE,
            [
                Filter.eq("athlete_id", athlete_id),
                Filter.gte("scheduled_date", date_range.start_date.isoformat()),
                Filter.lte("scheduled_date", date_range.end_date.isoformat()),
            ],
        )
        sessions = decode_rows(TrainingSessionRow, rows, SESSIONS_TABLE)
        return {
            SessionRecord(
                scheduled_date=s.scheduled_date,
                start_time=s.start_time,
                end_time=s.end_time,
                session_type=s.session_type,
                status=s.status,
            ).slot_key
            for s in sessions
        }

    def insert_sessions(self, athlete_id: str, records: list[SessionRecord]) -> int:
        if not records:
            return 0

        inserted = self._client.insert(SESSIONS_TABLE, [r.to_row(athlete_id) for r in records])

        logger.debug(
            "Inserted sessions",
            extra={"athlete_id": athlete_id, "count": len(records)}
        )
        return len(inserted) if inserted else len(records)
