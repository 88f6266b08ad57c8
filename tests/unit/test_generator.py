"""
Unit tests for the session generation service.

The generator is exercised against an in-memory ScheduleStore so the
tests cover deduplication and horizon logic without a backend.
"""

from datetime import date

import pytest

from src.core.scheduling.generator import NoScheduleError, SessionGenerator
from src.core.scheduling.models import DateRange, MatchPolicy, ScheduleRule, SessionRecord


class InMemoryScheduleStore:
    """Minimal ScheduleStore holding rules and sessions in dicts."""

    def __init__(self, rules: dict[str, list[ScheduleRule]]):
        self.rules = rules
        self.sessions: dict[str, list[SessionRecord]] = {}

    def list_rules(self, athlete_id):
        return list(self.rules.get(athlete_id, []))

    def list_rules_by_athlete(self):
        return {athlete: rules for athlete, rules in self.rules.items() if rules}

    def existing_slots(self, athlete_id, date_range: DateRange):
        start, end = date_range.start_date.isoformat(), date_range.end_date.isoformat()
        return {
            record.slot_key
            for record in self.sessions.get(athlete_id, [])
            if start <= record.scheduled_date <= end
        }

    def insert_sessions(self, athlete_id, records):
        self.sessions.setdefault(athlete_id, []).extend(records)
        return len(records)


MONDAY = date(2024, 1, 1)


@pytest.fixture
def store():
    return InMemoryScheduleStore({
        "athlete-a": [
            ScheduleRule(day_of_week=1, start_time="17:00", end_time="18:30"),
            ScheduleRule(day_of_week=4, start_time="17:00", end_time="18:30"),
        ],
        "athlete-b": [
            ScheduleRule(day_of_week=6, start_time="09:00", end_time="11:00", session_type="competition"),
        ],
        "athlete-c": [],
    })


class TestGenerateForAthlete:

    def test_creates_sessions_within_horizon(self, store):
        """Seven days ahead from a Monday covers two Mondays and one Thursday."""
        generator = SessionGenerator(store, horizon_days=7)

        result = generator.generate_for_athlete("athlete-a", MONDAY)

        assert result.created == 3
        assert result.skipped == 0
        assert [r.scheduled_date for r in store.sessions["athlete-a"]] == [
            "2024-01-01", "2024-01-04", "2024-01-08",
        ]

    def test_second_run_creates_nothing(self, store):
        generator = SessionGenerator(store, horizon_days=7)

        generator.generate_for_athlete("athlete-a", MONDAY)
        again = generator.generate_for_athlete("athlete-a", MONDAY)

        assert again.created == 0
        assert again.skipped == 3
        assert len(store.sessions["athlete-a"]) == 3

    def test_existing_session_with_seconds_is_not_duplicated(self, store):
        """A stored '17:00:00' occupies the same slot as a rule's '17:00'."""
        store.sessions["athlete-a"] = [SessionRecord("2024-01-01", "17:00:00", "18:30:00", "regular")]
        generator = SessionGenerator(store, horizon_days=0)

        result = generator.generate_for_athlete("athlete-a", MONDAY)

        assert result.created == 0
        assert result.skipped == 1

    def test_missing_schedule_raises(self, store):
        generator = SessionGenerator(store)
        with pytest.raises(NoScheduleError):
            generator.generate_for_athlete("athlete-c", MONDAY)

    def test_first_policy_keeps_one_per_day(self):
        store = InMemoryScheduleStore({"athlete": [
            ScheduleRule(day_of_week=1, start_time="06:00", end_time="07:00"),
            ScheduleRule(day_of_week=1, start_time="17:00", end_time="18:00"),
        ]})
        generator = SessionGenerator(store, horizon_days=0, policy=MatchPolicy.FIRST)

        result = generator.generate_for_athlete("athlete", MONDAY)

        assert result.created == 1
        assert store.sessions["athlete"][0].start_time == "06:00"

    def test_duplicate_rules_produce_one_session(self):
        """Two identical rules map to one slot."""
        rule = ScheduleRule(day_of_week=1, start_time="06:00", end_time="07:00")
        store = InMemoryScheduleStore({"athlete": [rule, rule]})

        result = SessionGenerator(store, horizon_days=0).generate_for_athlete("athlete", MONDAY)

        assert result.created == 1
        assert result.skipped == 1


    def test_stored_timetz_value_is_not_duplicated(self, store):
        """A start time read back as '17:00:00+00' occupies the rule's '17:00' slot."""
        store.sessions["athlete-a"] = [SessionRecord("2024-01-01", "17:00:00+00", "18:30:00+00", "regular")]
        generator = SessionGenerator(store, horizon_days=0)

        result = generator.generate_for_athlete("athlete-a", MONDAY)

        assert result.created == 0
        assert len(store.sessions["athlete-a"]) == 1


class TestPlanForAthlete:
    """Planning reports what a run would insert without writing it."""

    def test_plan_excludes_stored_slots(self, store):
        store.sessions["athlete-a"] = [SessionRecord("2024-01-01", "17:00:00", "18:30:00", "regular")]
        generator = SessionGenerator(store, horizon_days=7)

        planned = generator.plan_for_athlete("athlete-a", MONDAY)

        assert [r.scheduled_date for r in planned] == ["2024-01-04", "2024-01-08"]
        assert len(store.sessions["athlete-a"]) == 1

    def test_plan_matches_what_generation_creates(self, store):
        generator = SessionGenerator(store, horizon_days=7)

        planned = generator.plan_for_athlete("athlete-a", MONDAY)
        result = generator.generate_for_athlete("athlete-a", MONDAY)

        assert result.created == len(planned)
        assert store.sessions["athlete-a"] == planned

    def test_plan_without_schedule_raises(self, store):
        with pytest.raises(NoScheduleError):
            SessionGenerator(store).plan_for_athlete("athlete-c", MONDAY)


class TestGenerateForAll:

    def test_generates_for_every_athlete_with_rules(self, store):
        generator = SessionGenerator(store, horizon_days=7)

        results = generator.generate_for_all(MONDAY)

        by_athlete = {r.athlete_id: r.created for r in results}
        assert by_athlete == {"athlete-a": 3, "athlete-b": 1}
        assert "athlete-c" not in store.sessions

    def test_window_spans_horizon(self, store):
        window = SessionGenerator(store, horizon_days=7).window(MONDAY)
        assert window == DateRange(date(2024, 1, 1), date(2024, 1, 8))
