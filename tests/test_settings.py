"""Configuration settings behaviour tests."""

from __future__ import annotations

import pytest

from app.config import Settings


def test_cors_origins_parsed_from_comma_separated_string() -> None:
    """Origins should be split, trimmed and de-duplicated."""

    settings = Settings(
        _env_file=None,
        CORS_ORIGINS="https://filmazia.example.com, https://admin.example.com/,https://filmazia.example.com",
    )

    assert settings.cors_origins == (
        "https://filmazia.example.com",
        "https://admin.example.com",
    )


def test_cors_origins_blank_defaults_to_wildcard() -> None:
    settings = Settings(_env_file=None, CORS_ORIGINS="")

    assert settings.cors_origins == ("*",)


def test_tmdb_key_accepts_legacy_public_name() -> None:
    settings = Settings(_env_file=None, NEXT_PUBLIC_TMDB_API_KEY="legacy-key")

    assert settings.tmdb_api_key == "legacy-key"


def test_watch_region_is_uppercased() -> None:
    settings = Settings(_env_file=None, TMDB_WATCH_REGION="gb")

    assert settings.tmdb_watch_region == "GB"


def test_watch_region_must_be_two_letters() -> None:
    with pytest.raises(ValueError):
        Settings(_env_file=None, TMDB_WATCH_REGION="USA")


def test_auth_configuration_requires_url_and_key() -> None:
    configured = Settings(
        _env_file=None,
        SUPABASE_URL="https://auth.example.com",
        SUPABASE_ANON_KEY="anon-key",
    )
    missing_key = Settings(
        _env_file=None, AUTH_URL="https://auth.example.com", AUTH_ANON_KEY=None
    )

    assert configured.auth_configured is True
    assert missing_key.auth_configured is False


def test_auth_callback_url_is_derived_from_app_url() -> None:
    settings = Settings(_env_file=None, APP_URL="https://filmazia.example.com/")

    assert settings.auth_callback_url == "https://filmazia.example.com/auth/callback"


def test_cors_origins_read_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example.com,https://b.example.com")

    settings = Settings(_env_file=None)

    assert settings.cors_origins == ("https://a.example.com", "https://b.example.com")
