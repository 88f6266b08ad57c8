"""
Unit tests for the Supabase client layer.

Filters are checked both ways: as PostgREST query params and as
in-memory predicates for the mock. The HTTP client runs against an
httpx.MockTransport, so no network is involved.
"""

import json

import httpx
import pytest

from src.config.settings import BackendConfig
from src.core.connections.models import Role
from src.infrastructure.supabase.client import (
    AuthenticationError,
    BackendError,
    Filter,
    MockSupabaseClient,
    SupabaseClient,
)
from src.infrastructure.supabase.schemas import (
    BackendResponseError,
    ConnectionRow,
    TrainingSessionRow,
    decode_rows,
)
from src.infrastructure.supabase.repositories import ProfileRepository
from src.infrastructure.supabase.repositories import profiles as profiles_module
from src.infrastructure.supabase.repositories.profiles import UserCodeExhaustedError

CONFIG = BackendConfig(
    url="https://project.supabase.co",
    anon_key="anon",
    service_role_key="service",
)


# ---------------------------------------------------------------------------
# Filter Tests
# ---------------------------------------------------------------------------

class TestFilterParams:
    """Filters translate into PostgREST query parameters."""

    def test_eq(self):
        assert Filter.eq("athlete_id", "abc").to_param() == ("athlete_id", "eq.abc")

    def test_in(self):
        assert Filter.is_in("status", ["pending", "active"]).to_param() == ("status", "in.(pending,active)")

    def test_range(self):
        assert Filter.gte("scheduled_date", "2024-01-01").to_param() == ("scheduled_date", "gte.2024-01-01")
        assert Filter.lte("scheduled_date", "2024-01-08").to_param() == ("scheduled_date", "lte.2024-01-08")

    def test_or(self):
        f = Filter.any_of(Filter.eq("coach_id", "u1"), Filter.eq("athlete_id", "u1"))
        assert f.to_param() == ("or", "(coach_id.eq.u1,athlete_id.eq.u1)")

    def test_bool_value(self):
        assert Filter.eq("is_active", True).to_param() == ("is_active", "eq.true")


class TestFilterMatching:
    """The mock backend evaluates filters in memory."""

    row = {"user_code": "ATH-ABCD", "status": "pending", "scheduled_date": "2024-01-05"}

    def test_ilike_is_case_insensitive(self):
        assert Filter.ilike("user_code", "ath-abcd").matches(self.row)

    def test_in(self):
        assert Filter.is_in("status", ["pending", "active"]).matches(self.row)
        assert not Filter.is_in("status", ["active"]).matches(self.row)

    def test_date_bounds(self):
        assert Filter.gte("scheduled_date", "2024-01-01").matches(self.row)
        assert not Filter.lte("scheduled_date", "2024-01-04").matches(self.row)

    def test_missing_column_fails_range(self):
        assert not Filter.gte("created_at", "2024-01-01").matches(self.row)


# ---------------------------------------------------------------------------
# HTTP Client Tests
# ---------------------------------------------------------------------------

def client_with(handler, **kwargs) -> SupabaseClient:
    return SupabaseClient(CONFIG, transport=httpx.MockTransport(handler), **kwargs)


class TestSupabaseClient:

    def test_select_builds_query(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = request.url
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(200, json=[{"id": "1"}])

        client = client_with(handler).with_access_token("user-token")
        rows = client.select(
            "training_sessions",
            [Filter.eq("athlete_id", "a1")],
            order="scheduled_date",
            ascending=False,
            limit=5,
        )

        assert rows == [{"id": "1"}]
        assert seen["url"].path == "/rest/v1/training_sessions"
        assert seen["url"].params["athlete_id"] == "eq.a1"
        assert seen["url"].params["order"] == "scheduled_date.desc"
        assert seen["url"].params["limit"] == "5"
        assert seen["auth"] == "Bearer user-token"

    def test_service_role_key_used_without_token(self):
        seen = {}

        def handler(request):
            seen["apikey"] = request.headers["apikey"]
            return httpx.Response(200, json=[])

        client_with(handler, use_service_role=True).select("training_schedules")

        assert seen["apikey"] == "service"

    def test_insert_asks_for_representation(self):
        seen = {}

        def handler(request):
            seen["prefer"] = request.headers["Prefer"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json=[{"id": "new"}])

        rows = client_with(handler).insert("profiles", [{"first_name": "Ana"}])

        assert rows == [{"id": "new"}]
        assert seen["prefer"] == "return=representation"
        assert seen["body"] == [{"first_name": "Ana"}]

    def test_rest_error_raises_backend_error(self):
        def handler(request):
            return httpx.Response(500, json={"message": "boom"})

        with pytest.raises(BackendError, match="boom"):
            client_with(handler).select("profiles")

    def test_rejected_credentials_raise_authentication_error(self):
        def handler(request):
            return httpx.Response(400, json={"error_description": "Invalid login credentials"})

        with pytest.raises(AuthenticationError, match="Invalid login credentials"):
            client_with(handler).sign_in_with_password("a@b.c", "wrong")

    def test_connection_failure_raises_backend_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(BackendError):
            client_with(handler).rpc("cleanup_old_sessions")

    def test_malformed_auth_payload_raises_response_error(self):
        def handler(request):
            return httpx.Response(200, json={"unexpected": True})

        with pytest.raises(BackendResponseError):
            client_with(handler).get_user("token")


# ---------------------------------------------------------------------------
# Schema Tests
# ---------------------------------------------------------------------------

class TestRowDecoding:

    def test_unknown_status_is_rejected(self):
        """Schema drift surfaces as an error instead of a default."""
        rows = [{"id": "1", "coach_id": "c", "athlete_id": "a", "status": "archived"}]
        with pytest.raises(BackendResponseError):
            decode_rows(ConnectionRow, rows, "coach_athletes")

    def test_non_list_payload_is_rejected(self):
        with pytest.raises(BackendResponseError):
            decode_rows(TrainingSessionRow, {"id": "1"}, "training_sessions")

    def test_extra_columns_are_ignored(self):
        rows = decode_rows(TrainingSessionRow, [{
            "id": "1",
            "athlete_id": "a",
            "scheduled_date": "2024-01-03",
            "start_time": "18:00:00",
            "end_time": "19:30:00",
            "notes": "ignored",
        }], "training_sessions")
        assert rows[0].status == "scheduled"


# ---------------------------------------------------------------------------
# Mock Client Tests
# ---------------------------------------------------------------------------

class TestMockSupabaseClient:

    def test_sign_up_with_taken_email_has_no_identities(self):
        client = MockSupabaseClient()
        client.sign_up("a@b.c", "secret1", {})

        again = client.sign_up("A@B.C", "secret1", {})

        assert again.already_registered

    def test_sign_in_round_trip(self):
        client = MockSupabaseClient()
        user = client.sign_up("a@b.c", "secret1", {"role": "coach"})

        session = client.sign_in_with_password("a@b.c", "secret1")

        assert client.get_user(session.access_token).id == user.id

    def test_sign_in_with_wrong_password(self):
        client = MockSupabaseClient()
        client.sign_up("a@b.c", "secret1", {})
        with pytest.raises(AuthenticationError):
            client.sign_in_with_password("a@b.c", "nope")

    def test_order_puts_missing_values_last(self):
        """Rows lacking the order column sort after the rest without comparing None."""
        client = MockSupabaseClient()
        client.insert("training_sessions", [
            {"name": "no-date-1"},
            {"name": "late", "scheduled_date": "2024-01-05"},
            {"name": "no-date-2"},
            {"name": "early", "scheduled_date": "2024-01-01"},
        ])

        rows = client.select("training_sessions", order="scheduled_date")

        assert [r["name"] for r in rows[:2]] == ["early", "late"]
        assert {r["name"] for r in rows[2:]} == {"no-date-1", "no-date-2"}

    def test_update_matches_filters(self):
        client = MockSupabaseClient()
        client.insert("coach_athletes", [{"status": "pending"}, {"status": "active"}])

        updated = client.update("coach_athletes", {"status": "rejected"}, [Filter.eq("status", "pending")])

        assert len(updated) == 1
        statuses = sorted(r["status"] for r in client.select("coach_athletes"))
        assert statuses == ["active", "rejected"]


# ---------------------------------------------------------------------------
# Repository Tests
# ---------------------------------------------------------------------------

class TestProfileUserCodes:
    """New profiles get a user code nobody else holds."""

    def test_retries_past_a_taken_code(self, monkeypatch):
        client = MockSupabaseClient()
        client.insert("profiles", [{"id": "existing", "first_name": "Ana", "user_code": "ATH-AAAA"}])
        codes = iter(["ATH-AAAA", "ATH-BBBB"])
        monkeypatch.setattr(profiles_module, "generate_user_code", lambda role: next(codes))

        profile = ProfileRepository(client).create("new", "ben@example.com", "Ben")

        assert profile.user_code == "ATH-BBBB"

    def test_every_attempt_taken_raises(self, monkeypatch):
        client = MockSupabaseClient()
        client.insert("profiles", [{"id": "existing", "first_name": "Ana", "user_code": "ATH-AAAA"}])
        monkeypatch.setattr(profiles_module, "generate_user_code", lambda role: "ATH-AAAA")

        with pytest.raises(UserCodeExhaustedError):
            ProfileRepository(client).create("new", "ben@example.com", "Ben", role=Role.ATHLETE)

        assert [p["id"] for p in client.select("profiles")] == ["existing"]
