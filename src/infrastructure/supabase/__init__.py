"""
Supabase integration: HTTP client, in-memory mock, row schemas, repositories.
"""

from .client import (
    AuthenticationError,
    BackendClient,
    BackendError,
    Filter,
    MockSupabaseClient,
    RecordNotFoundError,
    SupabaseClient,
    create_supabase_client,
)
from .schemas import BackendResponseError

__all__ = [
    "AuthenticationError",
    "BackendClient",
    "BackendError",
    "BackendResponseError",
    "Filter",
    "MockSupabaseClient",
    "RecordNotFoundError",
    "SupabaseClient",
    "create_supabase_client",
]
