"""
Unit tests for the session state machine.

`now` is always passed explicitly, so every case is deterministic.
"""

from datetime import datetime

import pytest

from src.core.scheduling.session_state import (
    SessionSlot,
    SessionState,
    get_button_config,
    get_session_state,
)


def slot(status="scheduled", start="18:00", end="19:30"):
    return SessionSlot(
        id="session-1",
        status=status,
        scheduled_date="2024-01-03",
        start_time=start,
        end_time=end,
    )


def at(hour, minute=0):
    return datetime(2024, 1, 3, hour, minute)


class TestStoredStatus:
    """Terminal statuses win regardless of time."""

    def test_completed(self):
        assert get_session_state(slot("completed"), False, at(10)) is SessionState.COMPLETED

    @pytest.mark.parametrize("status", ["absent", "cancelled"])
    def test_absent_or_cancelled(self, status):
        assert get_session_state(slot(status), True, at(18, 30)) is SessionState.ABSENT


class TestWithoutCheckin:

    def test_too_early_to_check_in(self):
        assert get_session_state(slot(), False, at(16, 59)) is SessionState.AWAITING_CHECKIN

    def test_check_in_opens_an_hour_before_start(self):
        assert get_session_state(slot(), False, at(17, 0)) is SessionState.CHECKIN_AVAILABLE

    def test_check_in_still_open_during_session(self):
        assert get_session_state(slot(), False, at(19, 0)) is SessionState.CHECKIN_AVAILABLE

    def test_overdue_after_end(self):
        assert get_session_state(slot(), False, at(19, 31)) is SessionState.OVERDUE


class TestWithCheckin:

    def test_before_start(self):
        assert get_session_state(slot(), True, at(17, 30)) is SessionState.CHECKIN_COMPLETED

    def test_training_available_once_started(self):
        assert get_session_state(slot(), True, at(18, 0)) is SessionState.TRAINING_AVAILABLE

    def test_training_active_when_in_progress(self):
        assert get_session_state(slot("in_progress"), True, at(18, 15)) is SessionState.TRAINING_ACTIVE

    def test_reflection_after_end(self):
        assert get_session_state(slot(), True, at(20)) is SessionState.REFLECTION_AVAILABLE

    def test_seconds_in_stored_times_are_ignored(self):
        state = get_session_state(slot(start="18:00:00", end="19:30:00"), True, at(18, 0))
        assert state is SessionState.TRAINING_AVAILABLE


class TestButtonConfig:

    def test_every_state_has_a_button(self):
        for state in SessionState:
            assert get_button_config(state, "abc").text

    def test_checkin_link(self):
        button = get_button_config(SessionState.CHECKIN_AVAILABLE, "abc")
        assert button.href == "/dashboard/athlete/sessions/abc/checkin"
        assert not button.disabled

    def test_overdue_is_disabled(self):
        button = get_button_config(SessionState.OVERDUE, "abc")
        assert button.disabled
        assert button.href == "#"
