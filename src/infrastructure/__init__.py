"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- supabase: Auth, tables, and RPC on the hosted backend
- geolocation: IP-based timezone lookup

These wrappers translate between external formats and our domain models.
"""
