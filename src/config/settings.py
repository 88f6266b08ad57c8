"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables with sensible defaults.
Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

Backend credentials are special: the deployment platform exposes them under
several historical names, so they are resolved through an ordered list of
named sources into a single BackendConfig built once at startup.

Mock modes enable local development without external services.
"""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Mapping, Optional, Sequence

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


SUPABASE_URL_ENV_VARS = (
    "ATHLETEMIND_PUBLIC_SUPABASE_URL",
    "NEXT_PUBLIC_SUPABASE_URL",
    "ATHLETEMIND_PUBLICSUPABASE_URL",
    "SUPABASE_URL",
)

SUPABASE_ANON_KEY_ENV_VARS = (
    "ATHLETEMIND_PUBLIC_SUPABASE_ANON_KEY",
    "NEXT_PUBLIC_SUPABASE_ANON_KEY",
    "ATHLETEMIND_PUBLICSUPABASE_ANON_KEY",
    "SUPABASE_ANON_KEY",
)

SUPABASE_SERVICE_KEY_ENV_VARS = (
    "SUPABASE_SERVICE_ROLE_KEY",
    "SUPABASE_SERVICE_KEY",
)


class ConfigurationError(Exception):
    """Raised when a required setting cannot be resolved from any source."""
    pass


@dataclass(frozen=True)
class ConfigSource:
    """A named place a setting may come from."""
    name: str
    lookup: Callable[[], Optional[str]]


def env_sources(
    names: Sequence[str],
    environ: Optional[Mapping[str, str]] = None,
) -> list[ConfigSource]:
    """Build one source per environment variable, preserving order."""
    env = os.environ if environ is None else environ
    return [ConfigSource(name=name, lookup=lambda n=name: env.get(n)) for name in names]


def resolve_setting(label: str, sources: Sequence[ConfigSource]) -> tuple[str, str]:
    """
    Return (source_name, value) for the first source with a non-empty value.

    Raises ConfigurationError naming every source tried, so a misconfigured
    deployment tells you exactly which variables it looked at.
    """
    for source in sources:
        value = source.lookup()
        if value and value.strip():
            logger.debug(
                "Resolved setting",
                extra={"setting": label, "source": source.name}
            )
            return source.name, value.strip()

    tried = ", ".join(source.name for source in sources)
    raise ConfigurationError(f"{label} not found. Tried: {tried}")


@dataclass(frozen=True)
class BackendConfig:
    """
    Resolved connection details for the hosted backend.

    Constructed once at process start and passed to the collaborators
    that talk to the backend.
    """
    url: str
    anon_key: str
    service_role_key: Optional[str] = None
    url_source: str = ""
    anon_key_source: str = ""

    @property
    def privileged_key(self) -> str:
        """Service role key when available (cron jobs), else the anon key."""
        return self.service_role_key or self.anon_key


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    For lists (like cors_origins), use comma-separated values in env.
    """

    # API Configuration
    api_title: str = "AthleteMind API"
    api_version: str = "v1"

    # Supabase Configuration
    supabase_url: str = Field(
        default="",
        description="Backend URL. Last resort after the platform-specific variables."
    )
    supabase_anon_key: str = Field(
        default="",
        description="Public anon key. Last resort after the platform-specific variables."
    )
    supabase_service_role_key: str = Field(
        default="",
        description="Service role key used by the cron endpoint to bypass row-level security."
    )
    supabase_timeout_seconds: float = Field(
        default=10.0,
        description="HTTP timeout for backend calls"
    )
    supabase_mock_mode: bool = Field(
        default=False,
        description="Use an in-memory backend instead of Supabase. Enables local dev without a project."
    )

    # Geolocation Configuration
    geolocation_base_url: str = Field(
        default="http://ip-api.com",
        description="Base URL of the IP geolocation service"
    )
    geolocation_timeout_seconds: float = Field(
        default=5.0,
        description="HTTP timeout for geolocation lookups"
    )
    geolocation_mock_mode: bool = Field(
        default=False,
        description="Use a fixed-answer geolocation client instead of calling the service."
    )

    # Application Behavior
    site_url: str = Field(
        default="http://localhost:3000",
        description="Frontend origin used in email redirect links"
    )
    cron_secret: str = Field(
        default="",
        description="Bearer secret required by the cron endpoint. Empty disables the check."
    )
    session_horizon_days: int = Field(
        default=7,
        ge=0,
        description="How many days ahead sessions are generated from schedules"
    )
    max_materialize_days: int = Field(
        default=366,
        ge=1,
        description="Longest date range the session preview endpoint will expand"
    )
    min_password_length: int = Field(
        default=6,
        description="Minimum accepted password length on password update"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins. Use * for development only."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def url_sources(self, environ: Optional[Mapping[str, str]] = None) -> list[ConfigSource]:
        """Resolution order for the backend URL."""
        return env_sources(SUPABASE_URL_ENV_VARS, environ) + [
            ConfigSource(name="settings.supabase_url", lookup=lambda: self.supabase_url),
        ]

    def anon_key_sources(self, environ: Optional[Mapping[str, str]] = None) -> list[ConfigSource]:
        """Resolution order for the anon key."""
        return env_sources(SUPABASE_ANON_KEY_ENV_VARS, environ) + [
            ConfigSource(name="settings.supabase_anon_key", lookup=lambda: self.supabase_anon_key),
        ]

    def service_key_sources(self, environ: Optional[Mapping[str, str]] = None) -> list[ConfigSource]:
        """Resolution order for the service role key."""
        return env_sources(SUPABASE_SERVICE_KEY_ENV_VARS, environ) + [
            ConfigSource(
                name="settings.supabase_service_role_key",
                lookup=lambda: self.supabase_service_role_key,
            ),
        ]

    def build_backend_config(self, environ: Optional[Mapping[str, str]] = None) -> BackendConfig:
        """
        Resolve backend credentials from their ordered sources.

        The service role key is optional; URL and anon key are not.
        """
        url_source, url = resolve_setting("Supabase URL", self.url_sources(environ))
        key_source, anon_key = resolve_setting("Supabase anon key", self.anon_key_sources(environ))

        try:
            _, service_key = resolve_setting(
                "Supabase service role key", self.service_key_sources(environ)
            )
        except ConfigurationError:
            service_key = None

        return BackendConfig(
            url=url.rstrip("/"),
            anon_key=anon_key,
            service_role_key=service_key,
            url_source=url_source,
            anon_key_source=key_source,
        )

    def validate_required_fields(self) -> list[str]:
        """
        Validate that required fields are set based on mock mode settings.

        Returns list of missing required fields.
        This is separate from Pydantic validation because requirements
        depend on whether we're in mock mode.
        """
        if self.supabase_mock_mode:
            return []

        missing = []
        try:
            resolve_setting("Supabase URL", self.url_sources())
        except ConfigurationError:
            missing.append("SUPABASE_URL")
        try:
            resolve_setting("Supabase anon key", self.anon_key_sources())
        except ConfigurationError:
            missing.append("SUPABASE_ANON_KEY")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache means we only load settings once per process.
    For tests, you can call get_settings.cache_clear() to reset.
    """
    return Settings()


MOCK_BACKEND_CONFIG = BackendConfig(
    url="http://localhost:54321",
    anon_key="mock-anon-key",
    service_role_key="mock-service-role-key",
    url_source="mock",
    anon_key_source="mock",
)


@lru_cache()
def get_backend_config() -> BackendConfig:
    """
    Get the backend config resolved once per process.

    In mock mode nothing is resolved; a fixed local config is returned.
    Raises ConfigurationError when real credentials are missing.
    """
    settings = get_settings()
    if settings.supabase_mock_mode:
        return MOCK_BACKEND_CONFIG
    return settings.build_backend_config()
