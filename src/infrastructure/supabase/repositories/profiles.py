"""
Profile repository.

Profiles extend auth users with a display name, role, and shareable user
code. Supabase auth owns the user; this table owns everything else.
"""

import logging
from typing import Optional

from src.core.connections.codes import format_user_code, generate_user_code
from src.core.connections.models import Role
from ..client import BackendClient, BackendError, Filter, RecordNotFoundError
from ..schemas import ProfileRow, decode_row, decode_rows

logger = logging.getLogger(__name__)

TABLE = "profiles"
_CODE_ATTEMPTS = 5


class UserCodeExhaustedError(BackendError):
    """Raised when every generated user code collides with an existing one."""
    pass


class ProfileRepository:
    """Reads and creates rows in the profiles table."""

    def __init__(self, client: BackendClient) -> None:
        self._client = client

    def find(self, user_id: str) -> Optional[ProfileRow]:
        rows = self._client.select(TABLE, [Filter.eq("id", user_id)], limit=1)
        profiles = decode_rows(ProfileRow, rows, TABLE)
        return profiles[0] if profiles else None

    def get(self, user_id: str) -> ProfileRow:
        """Load a profile, raising RecordNotFoundError if absent."""
        profile = self.find(user_id)
        if profile is None:
            raise RecordNotFoundError("Profile not found")
        return profile

    def find_by_user_code(self, code: str) -> Optional[ProfileRow]:
        """Case-insensitive lookup by user code."""
        rows = self._client.select(TABLE, [Filter.ilike("user_code", code)], limit=1)
        profiles = decode_rows(ProfileRow, rows, TABLE)
        return profiles[0] if profiles else None

    def find_many(self, user_ids: list[str]) -> dict[str, ProfileRow]:
        if not user_ids:
            return {}
        rows = self._client.select(TABLE, [Filter.is_in("id", sorted(set(user_ids)))])
        return {profile.id: profile for profile in decode_rows(ProfileRow, rows, TABLE)}

    def create(
        self,
        user_id: str,
        email: Optional[str],
        first_name: str,
        last_name: Optional[str] = None,
        role: Role = Role.ATHLETE,
    ) -> ProfileRow:
        """Insert a profile with a fresh user code."""
        rows = self._client.insert(TABLE, [{
            "id": user_id,
            "email": email,
            "first_name": first_name,
            "last_name": last_name,
            "role": role.value,
            "user_code": self._unused_code(role),
        }])

        if not rows:
            raise RecordNotFoundError("Profile insert returned no row")

        logger.info("Created profile", extra={"user_id": user_id, "role": role.value})
        return decode_row(ProfileRow, rows[0], TABLE)

    def _unused_code(self, role: Role) -> str:
        """A user code no other profile holds, or UserCodeExhaustedError."""
        for _ in range(_CODE_ATTEMPTS):
            code = format_user_code(generate_user_code(role))
            if self.find_by_user_code(code) is None:
                return code

        logger.error(
            "Every generated user code was taken",
            extra={"role": role.value, "attempts": _CODE_ATTEMPTS}
        )
        raise UserCodeExhaustedError(
            f"Could not find a free user code after {_CODE_ATTEMPTS} attempts"
        )
