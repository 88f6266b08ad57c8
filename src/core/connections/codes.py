"""
User codes.

Every profile has a short shareable code such as ``ATH-XK7M``. The prefix
encodes the role; the suffix avoids characters that are easy to misread
(O, 0, I, 1, L).
"""

import re
import secrets
from typing import Optional

from .models import Role

USER_CODE_PATTERN = re.compile(r"^(ATH|COA|PAR)-[A-HJ-NP-Z2-9]{4}$", re.IGNORECASE)
_PREFIX_PATTERN = re.compile(r"^(ATH|COA|PAR)-")
# Stricter than the pattern: new codes also avoid L
CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
CODE_SUFFIX_LENGTH = 4

_PREFIX_BY_ROLE = {
    Role.ATHLETE: "ATH",
    Role.COACH: "COA",
    Role.PARENT: "PAR",
}
_ROLE_BY_PREFIX = {prefix: role for role, prefix in _PREFIX_BY_ROLE.items()}


def validate_user_code_format(code: str) -> bool:
    return bool(USER_CODE_PATTERN.match(code))


def format_user_code(code: str) -> str:
    return code.upper()


def prefix_for_role(role: Role) -> str:
    return _PREFIX_BY_ROLE[role]


def role_from_prefix(prefix: str) -> Optional[Role]:
    return _ROLE_BY_PREFIX.get(prefix.upper())


def extract_prefix(code: str) -> Optional[str]:
    match = _PREFIX_PATTERN.match(code.upper())
    return match.group(1) if match else None


def generate_user_code(role: Role) -> str:
    """A fresh random code for a new profile. Uniqueness is checked by the caller."""
    suffix = "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_SUFFIX_LENGTH))
    return f"{prefix_for_role(role)}-{suffix}"
