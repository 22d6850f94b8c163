"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Iterable, Literal

from pydantic import AliasChoices, Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="Filmazia", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")
    app_url: HttpUrl = Field(default="http://localhost:3000", alias="APP_URL")

    tmdb_api_key: str | None = Field(
        default=None,
        alias="TMDB_API_KEY",
        validation_alias=AliasChoices("TMDB_API_KEY", "NEXT_PUBLIC_TMDB_API_KEY"),
    )
    tmdb_api_url: HttpUrl = Field(
        default="https://api.themoviedb.org/3",
        alias="TMDB_API_URL",
        validation_alias=AliasChoices("TMDB_API_URL", "NEXT_PUBLIC_TMDB_API_URL"),
    )
    tmdb_image_base_url: str = Field(
        default="https://image.tmdb.org/t/p", alias="TMDB_IMAGE_BASE_URL"
    )
    tmdb_watch_region: str = Field(
        default="US", alias="TMDB_WATCH_REGION", min_length=2, max_length=2
    )

    auth_url: HttpUrl | None = Field(
        default=None,
        alias="AUTH_URL",
        validation_alias=AliasChoices("AUTH_URL", "SUPABASE_URL"),
    )
    auth_anon_key: str | None = Field(
        default=None,
        alias="AUTH_ANON_KEY",
        validation_alias=AliasChoices("AUTH_ANON_KEY", "SUPABASE_ANON_KEY"),
    )

    database_url: str = Field(
        default="sqlite+aiosqlite:///./filmazia.db", alias="DATABASE_URL"
    )

    cors_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        default=("*",), alias="CORS_ORIGINS"
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_cors_origins(cls, value: object) -> tuple[str, ...]:
        """Accept comma separated origins from the environment."""

        if value is None:
            return ("*",)
        if isinstance(value, str):
            raw_values = [part.strip() for part in value.split(",")]
        elif isinstance(value, Iterable):
            raw_values = [str(part).strip() for part in value]
        else:
            raise TypeError("CORS_ORIGINS must be a string or iterable of strings")

        cleaned: list[str] = []
        for entry in raw_values:
            entry = entry.rstrip("/")
            if entry and entry not in cleaned:
                cleaned.append(entry)
        return tuple(cleaned) or ("*",)

    @field_validator("tmdb_watch_region")
    @classmethod
    def _upper_region(cls, value: str) -> str:
        return value.upper()

    @property
    def auth_configured(self) -> bool:
        return bool(self.auth_url and self.auth_anon_key)

    @property
    def auth_callback_url(self) -> str:
        """Where the hosted auth service sends users after confirming email."""

        return f"{str(self.app_url).rstrip('/')}/auth/callback"

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", populate_by_name=True
    )


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
