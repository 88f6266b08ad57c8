"""
Application configuration using Pydantic settings.

Configuration comes from environment variables with sensible defaults.
Supports mock modes for local development.
"""

from .settings import (
    BackendConfig,
    ConfigurationError,
    Settings,
    get_backend_config,
    get_settings,
)

__all__ = [
    "BackendConfig",
    "ConfigurationError",
    "Settings",
    "get_backend_config",
    "get_settings",
]
