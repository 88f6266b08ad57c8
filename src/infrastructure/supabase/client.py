"""
Supabase backend client.

Wraps the two Supabase HTTP APIs the application uses:
- GoTrue (``/auth/v1``): sign in, sign up, sessions, password reset
- PostgREST (``/rest/v1``): table reads/writes and RPC functions

Requests go through httpx directly rather than a full SDK; the surface we
need is small and explicit. Includes a mock mode with in-memory tables and
users for local development and tests.

Repositories never build URLs themselves. They describe what they want with
Filter objects and the client translates those into PostgREST query params
(or evaluates them in memory, for the mock).
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Protocol, Sequence
from uuid import uuid4

import httpx

from src.config.settings import BackendConfig
from .schemas import AuthSession, AuthUser, BackendResponseError, decode_row

logger = logging.getLogger(__name__)


class BackendError(Exception):
    """Raised when a backend call fails for reasons other than bad credentials."""
    pass


class AuthenticationError(BackendError):
    """Raised when credentials or tokens are rejected."""
    pass


class RecordNotFoundError(BackendError):
    """Raised when a lookup that expects exactly one row finds none."""
    pass


# ---------------------------------------------------------------------------
# Query Filters
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Filter:
    """
    One condition on a table query.

    ops: eq, neq, ilike, in, gte, lte, lt, gt, or. For ``or``, value is a
    sequence of Filters on other columns, any of which may match.
    """
    column: str
    op: str
    value: Any

    @classmethod
    def eq(cls, column: str, value: Any) -> "Filter":
        return cls(column, "eq", value)

    @classmethod
    def ilike(cls, column: str, pattern: str) -> "Filter":
        return cls(column, "ilike", pattern)

    @classmethod
    def is_in(cls, column: str, values: Iterable[Any]) -> "Filter":
        return cls(column, "in", tuple(values))

    @classmethod
    def gte(cls, column: str, value: Any) -> "Filter":
        return cls(column, "gte", value)

    @classmethod
    def lte(cls, column: str, value: Any) -> "Filter":
        return cls(column, "lte", value)

    @classmethod
    def any_of(cls, *filters: "Filter") -> "Filter":
        return cls("", "or", tuple(filters))

    def to_param(self) -> tuple[str, str]:
        """PostgREST query parameter for this condition."""
        if self.op == "or":
            inner = ",".join(f"{f.column}.{f._operand()}" for f in self.value)
            return "or", f"({inner})"
        return self.column, self._operand()

    def _operand(self) -> str:
        if self.op == "in":
            return f"in.({','.join(str(v) for v in self.value)})"
        return f"{self.op}.{_format_value(self.value)}"

    def matches(self, row: dict) -> bool:
        """Evaluate against an in-memory row (mock backend)."""
        if self.op == "or":
            return any(f.matches(row) for f in self.value)

        actual = row.get(self.column)
        if self.op == "eq":
            return _comparable(actual) == _comparable(self.value)
        if self.op == "neq":
            return _comparable(actual) != _comparable(self.value)
        if self.op == "in":
            return _comparable(actual) in {_comparable(v) for v in self.value}
        if self.op == "ilike":
            return actual is not None and _like_to_regex(self.value).match(str(actual)) is not None
        if actual is None:
            return False
        if self.op == "gte":
            return actual >= self.value
        if self.op == "lte":
            return actual <= self.value
        if self.op == "gt":
            return actual > self.value
        if self.op == "lt":
            return actual < self.value
        raise ValueError(f"Unsupported filter op: {self.op}")


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if hasattr(value, "value"):  # Enum
        return str(value.value)
    return str(value)


def _comparable(value: Any) -> Any:
    if hasattr(value, "value") and not isinstance(value, (str, int, float, bool)):
        return value.value
    return value


def _like_to_regex(pattern: str) -> re.Pattern:
    escaped = re.escape(pattern).replace("%", ".*").replace("_", ".")
    return re.compile(f"^{escaped}$", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Client Protocol
# ---------------------------------------------------------------------------

class BackendClient(Protocol):
    """
    Operations the application needs from the hosted backend.

    Using a protocol means repositories and routes accept either the real
    client or the in-memory mock.
    """

    def with_access_token(self, access_token: Optional[str]) -> "BackendClient": ...

    # Auth
    def sign_in_with_password(self, email: str, password: str) -> AuthSession: ...
    def sign_up(
        self,
        email: str,
        password: str,
        metadata: dict,
        redirect_to: Optional[str] = None,
    ) -> AuthUser: ...
    def sign_out(self, access_token: str) -> None: ...
    def get_user(self, access_token: str) -> AuthUser: ...
    def reset_password_for_email(self, email: str, redirect_to: Optional[str] = None) -> None: ...
    def update_user_password(self, access_token: str, password: str) -> None: ...
    def exchange_code_for_session(self, code: str, code_verifier: Optional[str] = None) -> AuthSession: ...

    # Data
    def select(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        columns: str = "*",
        order: Optional[str] = None,
        ascending: bool = True,
        limit: Optional[int] = None,
    ) -> list[dict]: ...
    def insert(self, table: str, rows: Sequence[dict]) -> list[dict]: ...
    def update(self, table: str, values: dict, filters: Sequence[Filter]) -> list[dict]: ...
    def delete(self, table: str, filters: Sequence[Filter]) -> list[dict]: ...
    def rpc(self, name: str, params: Optional[dict] = None) -> Any: ...


# ---------------------------------------------------------------------------
# HTTP Client
# ---------------------------------------------------------------------------

class SupabaseClient:
    """
    Supabase client over httpx.

    Table requests are authorized with the user's access token when one is
    set (so row-level security applies), otherwise with the configured key.
    """

    def __init__(
        self,
        config: BackendConfig,
        access_token: Optional[str] = None,
        use_service_role: bool = False,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._config = config
        self._access_token = access_token
        self._use_service_role = use_service_role
        self._timeout = timeout
        self._transport = transport

    def with_access_token(self, access_token: Optional[str]) -> "SupabaseClient":
        return SupabaseClient(
            self._config,
            access_token=access_token,
            use_service_role=self._use_service_role,
            timeout=self._timeout,
            transport=self._transport,
        )

    # -----------------------------------------------------------------------
    # Auth
    # -----------------------------------------------------------------------

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        payload = self._auth_request(
            "POST", "/token", params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        return decode_row(AuthSession, payload, "sign-in")

    def sign_up(
        self,
        email: str,
        password: str,
        metadata: dict,
        redirect_to: Optional[str] = None,
    ) -> AuthUser:
        params = {"redirect_to": redirect_to} if redirect_to else None
        payload = self._auth_request(
            "POST", "/signup", params=params,
            json={"email": email, "password": password, "data": metadata},
        )
        # With auto-confirm enabled the response is a session wrapping the user
        if isinstance(payload, dict) and "access_token" in payload and "user" in payload:
            payload = payload["user"]
        return decode_row(AuthUser, payload, "sign-up")

    def sign_out(self, access_token: str) -> None:
        self._auth_request("POST", "/logout", token=access_token)

    def get_user(self, access_token: str) -> AuthUser:
        payload = self._auth_request("GET", "/user", token=access_token)
        return decode_row(AuthUser, payload, "user")

    def reset_password_for_email(self, email: str, redirect_to: Optional[str] = None) -> None:
        params = {"redirect_to": redirect_to} if redirect_to else None
        self._auth_request("POST", "/recover", params=params, json={"email": email})

    def update_user_password(self, access_token: str, password: str) -> None:
        self._auth_request("PUT", "/user", token=access_token, json={"password": password})

    def exchange_code_for_session(self, code: str, code_verifier: Optional[str] = None) -> AuthSession:
        body = {"auth_code": code}
        if code_verifier:
            body["code_verifier"] = code_verifier
        payload = self._auth_request("POST", "/token", params={"grant_type": "pkce"}, json=body)
        return decode_row(AuthSession, payload, "code exchange")

    # -----------------------------------------------------------------------
    # Data
    # -----------------------------------------------------------------------

    def select(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        columns: str = "*",
        order: Optional[str] = None,
        ascending: bool = True,
        limit: Optional[int] = None,
    ) -> list[dict]:
        params = [("select", columns)] + [f.to_param() for f in filters]
        if order:
            params.append(("order", f"{order}.{'asc' if ascending else 'desc'}"))
        if limit is not None:
            params.append(("limit", str(limit)))
        return self._rest_request("GET", f"/{table}", params=params)

    def insert(self, table: str, rows: Sequence[dict]) -> list[dict]:
        return self._rest_request(
            "POST", f"/{table}", json=list(rows),
            headers={"Prefer": "return=representation"},
        )

    def update(self, table: str, values: dict, filters: Sequence[Filter]) -> list[dict]:
        return self._rest_request(
            "PATCH", f"/{table}", params=[f.to_param() for f in filters], json=values,
            headers={"Prefer": "return=representation"},
        )

    def delete(self, table: str, filters: Sequence[Filter]) -> list[dict]:
        return self._rest_request(
            "DELETE", f"/{table}", params=[f.to_param() for f in filters],
            headers={"Prefer": "return=representation"},
        )

    def rpc(self, name: str, params: Optional[dict] = None) -> Any:
        return self._rest_request("POST", f"/rpc/{name}", json=params or {})

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    def _api_key(self) -> str:
        if self._use_service_role:
            return self._config.privileged_key
        return self._config.anon_key

    def _headers(self, token: Optional[str]) -> dict[str, str]:
        return {
            "apikey": self._api_key(),
            "Authorization": f"Bearer {token or self._api_key()}",
            "Accept": "application/json",
        }

    def _auth_request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        params: Optional[dict] = None,
        json: Any = None,
    ) -> Any:
        url = f"{self._config.url}/auth/v1{path}"
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.request(
                    method, url, params=params, json=json, headers=self._headers(token),
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            detail = _extract_detail(e.response)
            logger.warning(
                "Auth request rejected",
                extra={"path": path, "status_code": e.response.status_code, "detail": detail}
            )
            if e.response.status_code in (400, 401, 403, 422):
                raise AuthenticationError(detail or "Authentication failed") from e
            raise BackendError(f"Auth request failed ({e.response.status_code})") from e
        except httpx.HTTPError as e:
            logger.error("Auth request failed", extra={"path": path, "error": str(e)})
            raise BackendError(f"Auth service unavailable: {e}") from e

        return _json_or_none(response, path)

    def _rest_request(
        self,
        method: str,
        path: str,
        params: Optional[list[tuple[str, str]]] = None,
        json: Any = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        url = f"{self._config.url}/rest/v1{path}"
        request_headers = self._headers(self._access_token)
        if headers:
            request_headers.update(headers)

        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.request(method, url, params=params, json=json, headers=request_headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            detail = _extract_detail(e.response)
            logger.error(
                "Backend request rejected",
                extra={"path": path, "method": method, "status_code": e.response.status_code, "detail": detail}
            )
            raise BackendError(detail or f"Backend request failed ({e.response.status_code})") from e
        except httpx.HTTPError as e:
            logger.error("Backend request failed", extra={"path": path, "method": method, "error": str(e)})
            raise BackendError(f"Backend unavailable: {e}") from e

        payload = _json_or_none(response, path)
        return [] if payload is None and method != "POST" else payload


def _json_or_none(response: httpx.Response, path: str) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError as e:
        raise BackendResponseError(f"Non-JSON response from {path}") from e


def _extract_detail(response: httpx.Response) -> Optional[str]:
    """Best human-readable message from a Supabase error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or None
    if isinstance(body, dict):
        for key in ("error_description", "msg", "message", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return None


# ---------------------------------------------------------------------------
# Mock Client for Local Development
# ---------------------------------------------------------------------------

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _sort_key(value: Any) -> tuple[bool, Any]:
    """Nulls last, as PostgREST orders ascending; never compares None to None."""
    return (value is None, value if value is not None else "")


@dataclass
class _MockUser:
    id: str
    email: str
    password: str
    user_metadata: dict = field(default_factory=dict)
    email_confirmed_at: Optional[str] = None

    def to_auth_user(self, identities: Optional[list] = None) -> AuthUser:
        return AuthUser(
            id=self.id,
            email=self.email,
            user_metadata=dict(self.user_metadata),
            identities=identities if identities is not None else [{"provider": "email"}],
            email_confirmed_at=self.email_confirmed_at,
        )


class MockSupabaseClient:
    """
    In-memory Supabase stand-in for local development.

    Stores rows in plain dicts keyed by table, and users/tokens in memory.
    This enables exercising the full API without a Supabase project.

    Not suitable for production, but perfect for:
    - Local development
    - Unit and API tests
    - CI environments
    """

    def __init__(self, auto_confirm: bool = True) -> None:
        # In-memory storage: {table_name: [row, ...]}
        self._tables: dict[str, list[dict]] = {}
        self._users: dict[str, _MockUser] = {}  # keyed by lowercased email
        self._tokens: dict[str, str] = {}  # access token -> user id
        self._auth_codes: dict[str, str] = {}  # auth code -> user id
        self._auto_confirm = auto_confirm
        self.sent_emails: list[dict] = []
        self.rpc_calls: list[tuple[str, dict]] = []

        logger.info("Initialized mock Supabase client (in-memory)")

    def with_access_token(self, access_token: Optional[str]) -> "MockSupabaseClient":
        # Row-level security isn't emulated; all callers share storage
        return self

    # -----------------------------------------------------------------------
    # Auth
    # -----------------------------------------------------------------------

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        user = self._users.get(email.lower())
        if user is None or user.password != password:
            raise AuthenticationError("Invalid login credentials")
        if user.email_confirmed_at is None:
            raise AuthenticationError("Email not confirmed")
        return self._issue_session(user)

    def sign_up(
        self,
        email: str,
        password: str,
        metadata: dict,
        redirect_to: Optional[str] = None,
    ) -> AuthUser:
        existing = self._users.get(email.lower())
        if existing is not None:
            # Mirrors Supabase: a taken email comes back with no identities
            return existing.to_auth_user(identities=[])

        if len(password) < 6:
            raise AuthenticationError("Password should be at least 6 characters")

        user = _MockUser(
            id=str(uuid4()),
            email=email,
            password=password,
            user_metadata=dict(metadata),
            email_confirmed_at=_now_iso() if self._auto_confirm else None,
        )
        self._users[email.lower()] = user
        if not self._auto_confirm:
            self.sent_emails.append({"type": "confirmation", "email": email, "redirect_to": redirect_to})

        logger.debug("Mock sign-up", extra={"user_id": user.id})
        return user.to_auth_user()

    def sign_out(self, access_token: str) -> None:
        if self._tokens.pop(access_token, None) is None:
            raise AuthenticationError("Invalid token")

    def get_user(self, access_token: str) -> AuthUser:
        user = self._user_for_token(access_token)
        return user.to_auth_user()

    def reset_password_for_email(self, email: str, redirect_to: Optional[str] = None) -> None:
        # Supabase doesn't reveal whether the address exists
        self.sent_emails.append({"type": "recovery", "email": email, "redirect_to": redirect_to})

    def update_user_password(self, access_token: str, password: str) -> None:
        user = self._user_for_token(access_token)
        user.password = password

    def exchange_code_for_session(self, code: str, code_verifier: Optional[str] = None) -> AuthSession:
        user_id = self._auth_codes.pop(code, None)
        if user_id is None:
            raise AuthenticationError("Invalid or expired auth code")
        user = self._user_by_id(user_id)
        user.email_confirmed_at = user.email_confirmed_at or _now_iso()
        return self._issue_session(user)

    # Helper methods for testing
    def issue_auth_code(self, user_id: str) -> str:
        """Create a one-time code as the confirmation email link would."""
        code = uuid4().hex
        self._auth_codes[code] = user_id
        return code

    def _issue_session(self, user: _MockUser) -> AuthSession:
        token = f"mock-access-{uuid4().hex}"
        self._tokens[token] = user.id
        return AuthSession(
            access_token=token,
            refresh_token=f"mock-refresh-{uuid4().hex}",
            expires_in=3600,
            user=user.to_auth_user(),
        )

    def _user_for_token(self, access_token: str) -> _MockUser:
        user_id = self._tokens.get(access_token)
        if user_id is None:
            raise AuthenticationError("Invalid or expired token")
        return self._user_by_id(user_id)

    def _user_by_id(self, user_id: str) -> _MockUser:
        for user in self._users.values():
            if user.id == user_id:
                return user
        raise AuthenticationError("User not found")

    # -----------------------------------------------------------------------
    # Data
    # -----------------------------------------------------------------------

    def select(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        columns: str = "*",
        order: Optional[str] = None,
        ascending: bool = True,
        limit: Optional[int] = None,
    ) -> list[dict]:
        rows = [row for row in self._table(table) if all(f.matches(row) for f in filters)]
        if order:
            rows.sort(key=lambda row: _sort_key(row.get(order)), reverse=not ascending)
        if limit is not None:
            rows = rows[:limit]
        return [self._project(row, columns) for row in rows]

    def insert(self, table: str, rows: Sequence[dict]) -> list[dict]:
        inserted = []
        for row in rows:
            stored = {"id": str(uuid4()), "created_at": _now_iso(), **row}
            self._table(table).append(stored)
            inserted.append(dict(stored))
        return inserted

    def update(self, table: str, values: dict, filters: Sequence[Filter]) -> list[dict]:
        updated = []
        for row in self._table(table):
            if all(f.matches(row) for f in filters):
                row.update(values)
                row["updated_at"] = _now_iso()
                updated.append(dict(row))
        return updated

    def delete(self, table: str, filters: Sequence[Filter]) -> list[dict]:
        kept, removed = [], []
        for row in self._table(table):
            (removed if all(f.matches(row) for f in filters) else kept).append(row)
        self._tables[table] = kept
        return removed

    def rpc(self, name: str, params: Optional[dict] = None) -> Any:
        self.rpc_calls.append((name, params or {}))
        logger.debug("Mock rpc", extra={"function": name})
        return None

    def _table(self, table: str) -> list[dict]:
        return self._tables.setdefault(table, [])

    @staticmethod
    def _project(row: dict, columns: str) -> dict:
        if columns.strip() == "*":
            return dict(row)
        wanted = [c.strip() for c in columns.split(",") if c.strip()]
        return {c: row.get(c) for c in wanted}

    def _clear(self) -> None:
        """Clear all mock storage (for test cleanup)."""
        self._tables.clear()
        self._users.clear()
        self._tokens.clear()
        self._auth_codes.clear()
        self.sent_emails.clear()
        self.rpc_calls.clear()


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_supabase_client(
    config: Optional[BackendConfig] = None,
    mock_mode: bool = False,
    use_service_role: bool = False,
    timeout: float = 10.0,
) -> BackendClient:
    """
    Create a backend client based on configuration.

    Args:
        config: Resolved backend config (required if not mock_mode)
        mock_mode: If True, return an in-memory client
        use_service_role: Authorize table calls with the service role key
        timeout: HTTP timeout in seconds
    """
    if mock_mode:
        return MockSupabaseClient()

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return SupabaseClient(config, use_service_role=use_service_role, timeout=timeout)
