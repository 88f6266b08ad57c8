"""
Unit tests for configuration resolution.

Environment lookups are given explicit mappings so the tests never depend
on the machine's environment.
"""

import pytest

from src.config.settings import (
    ConfigSource,
    ConfigurationError,
    Settings,
    env_sources,
    resolve_setting,
)


class TestResolveSetting:

    def test_first_non_empty_source_wins(self):
        sources = env_sources(["A", "B", "C"], {"A": "", "B": "from-b", "C": "from-c"})
        assert resolve_setting("URL", sources) == ("B", "from-b")

    def test_whitespace_counts_as_empty(self):
        sources = env_sources(["A", "B"], {"A": "   ", "B": "value"})
        assert resolve_setting("URL", sources) == ("B", "value")

    def test_fails_naming_every_source(self):
        sources = env_sources(["A", "B"], {})
        with pytest.raises(ConfigurationError, match="Tried: A, B"):
            resolve_setting("Supabase URL", sources)

    def test_sources_are_only_consulted_until_a_hit(self):
        calls = []

        def lookup(name, value):
            def inner():
                calls.append(name)
                return value
            return inner

        sources = [
            ConfigSource("first", lookup("first", "x")),
            ConfigSource("second", lookup("second", "y")),
        ]
        resolve_setting("key", sources)

        assert calls == ["first"]


class TestBuildBackendConfig:

    def make_settings(self, **overrides):
        # Explicit empty fields and _env_file=None keep the host environment out
        fields = {"supabase_url": "", "supabase_anon_key": "", "supabase_service_role_key": ""}
        fields.update(overrides)
        return Settings(_env_file=None, **fields)

    def test_platform_variable_preferred_over_generic(self):
        environ = {
            "NEXT_PUBLIC_SUPABASE_URL": "https://next.supabase.co/",
            "SUPABASE_URL": "https://generic.supabase.co",
            "SUPABASE_ANON_KEY": "anon",
        }

        config = self.make_settings().build_backend_config(environ)

        assert config.url == "https://next.supabase.co"
        assert config.url_source == "NEXT_PUBLIC_SUPABASE_URL"
        assert config.anon_key_source == "SUPABASE_ANON_KEY"

    def test_settings_field_is_last_resort(self):
        settings = self.make_settings(supabase_url="https://field.supabase.co", supabase_anon_key="k")

        config = settings.build_backend_config({})

        assert config.url_source == "settings.supabase_url"
        assert config.service_role_key is None
        assert config.privileged_key == "k"

    def test_service_key_is_picked_up(self):
        environ = {"SUPABASE_URL": "https://x", "SUPABASE_ANON_KEY": "anon", "SUPABASE_SERVICE_KEY": "svc"}

        config = self.make_settings().build_backend_config(environ)

        assert config.privileged_key == "svc"

    def test_missing_url_fails_fast(self):
        with pytest.raises(ConfigurationError, match="Supabase URL"):
            self.make_settings().build_backend_config({"SUPABASE_ANON_KEY": "anon"})

    def test_cors_origins_list(self):
        settings = self.make_settings(cors_origins="http://a.test, http://b.test")
        assert settings.cors_origins_list == ["http://a.test", "http://b.test"]
