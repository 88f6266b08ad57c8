"""
Session generation service.

Turns each athlete's weekly schedule into concrete training sessions for
the coming days. This is the only place sessions are generated; both the
per-athlete endpoint and the nightly cron job go through it.

The service depends on a ScheduleStore protocol rather than on the backend
client, so it can be tested with an in-memory store.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Protocol

from .materializer import materialize
from .models import DateRange, MatchPolicy, ScheduleRule, SessionRecord

logger = logging.getLogger(__name__)


class NoScheduleError(Exception):
    """Raised when an athlete has no schedule rules to generate from."""
    pass


class ScheduleStore(Protocol):
    """
    Persistence the generator needs.

    Implemented by ScheduleRepository over the backend, and by
    lightweight fakes in tests.
    """

    def list_rules(self, athlete_id: str) -> list[ScheduleRule]:
        """Schedule rules for one athlete, in stored order."""
        ...

    def list_rules_by_athlete(self) -> dict[str, list[ScheduleRule]]:
        """Schedule rules for every athlete that has any."""
        ...

    def existing_slots(self, athlete_id: str, date_range: DateRange) -> set[tuple[str, str, str]]:
        """slot_key of every session already stored in the range."""
        ...

    def insert_sessions(self, athlete_id: str, records: list[SessionRecord]) -> int:
        """Bulk-insert sessions, returning how many were written."""
        ...


@dataclass
class GenerationResult:
    """Outcome of generating sessions for one athlete."""
    athlete_id: str
    created: int = 0
    skipped: int = 0


class SessionGenerator:
    """
    Generates sessions from schedules over a rolling horizon.

    Generation is repeatable: sessions already present for a slot are
    skipped, so running the cron job twice in a day is harmless.
    """

    def __init__(
        self,
        store: ScheduleStore,
        horizon_days: int = 7,
        policy: MatchPolicy = MatchPolicy.ALL,
    ) -> None:
        self._store = store
        self._horizon_days = horizon_days
        self._policy = policy

    def window(self, today: date) -> DateRange:
        """The dates a run starting today covers."""
        return DateRange.days_ahead(today, self._horizon_days)

    def generate_for_athlete(self, athlete_id: str, today: date) -> GenerationResult:
        """
        Generate the next horizon of sessions for one athlete.

        Raises NoScheduleError if the athlete has no schedule rules.
        """
        rules = self._store.list_rules(athlete_id)
        if not rules:
            raise NoScheduleError("No training schedule found for this athlete")

        return self._generate(athlete_id, rules, self.window(today))

    def generate_for_all(self, today: date) -> list[GenerationResult]:
        """Generate sessions for every athlete with a schedule."""
        date_range = self.window(today)
        results = []

        for athlete_id, rules in self._store.list_rules_by_athlete().items():
            results.append(self._generate(athlete_id, rules, date_range))

        logger.info(
            "Generated sessions for all athletes",
            extra={
                "athletes": len(results),
                "created": sum(r.created for r in results),
                "start_date": date_range.start_date.isoformat(),
                "end_date": date_range.end_date.isoformat(),
            }
        )

        return results

    def plan_for_athlete(self, athlete_id: str, today: date) -> list[SessionRecord]:
        """
        Sessions a run starting today would insert, without writing them.

        Raises NoScheduleError if the athlete has no schedule rules.
        """
        rules = self._store.list_rules(athlete_id)
        if not rules:
            raise NoScheduleError("No training schedule found for this athlete")

        _, new_records = self._plan(athlete_id, rules, self.window(today))
        return new_records

    def _plan(
        self,
        athlete_id: str,
        rules: list[ScheduleRule],
        date_range: DateRange,
    ) -> tuple[list[SessionRecord], list[SessionRecord]]:
        """All materialized records, and those whose slot is still free."""
        records = materialize(rules, date_range, self._policy)
        existing = self._store.existing_slots(athlete_id, date_range)

        new_records = []
        seen = set(existing)
        for record in records:
            if record.slot_key in seen:
                continue
            seen.add(record.slot_key)
            new_records.append(record)

        return records, new_records

    def _generate(
        self,
        athlete_id: str,
        rules: list[ScheduleRule],
        date_range: DateRange,
    ) -> GenerationResult:
        records, new_records = self._plan(athlete_id, rules, date_range)

        created = self._store.insert_sessions(athlete_id, new_records) if new_records else 0

        logger.info(
            "Generated sessions",
            extra={
                "athlete_id": athlete_id,
                "created": created,
                "skipped": len(records) - len(new_records),
            }
        )

        return GenerationResult(
            athlete_id=athlete_id,
            created=created,
            skipped=len(records) - len(new_records),
        )
