"""
Coach/athlete connections and user codes.
"""

from .codes import (
    extract_prefix,
    format_user_code,
    generate_user_code,
    prefix_for_role,
    role_from_prefix,
    validate_user_code_format,
)
from .models import (
    Connection,
    ConnectionAction,
    ConnectionPermissionError,
    ConnectionStateError,
    ConnectionStatus,
    InvalidConnectionError,
    Role,
    resolve_pair,
    respond,
    response_message,
)

__all__ = [
    "Connection",
    "ConnectionAction",
    "ConnectionPermissionError",
    "ConnectionStateError",
    "ConnectionStatus",
    "InvalidConnectionError",
    "Role",
    "extract_prefix",
    "format_user_code",
    "generate_user_code",
    "prefix_for_role",
    "resolve_pair",
    "respond",
    "response_message",
    "role_from_prefix",
    "validate_user_code_format",
]
