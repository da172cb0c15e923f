"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Iterable, Literal

from pydantic import Field, HttpUrl, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .addons import ADDONS, AddonDefinition


DEFAULT_ADDON_KEYS: tuple[str, ...] = tuple(definition.key for definition in ADDONS)


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="Letterstream", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")
    base_url: str | None = Field(default=None, alias="BASE_URL")

    data_dir: Path = Field(default=Path("data"), alias="DATA_DIR")
    recent_path: Path | None = Field(default=None, alias="RECENT_PATH")
    short_path: Path | None = Field(default=None, alias="SHORT_PATH")
    long_path: Path | None = Field(default=None, alias="LONG_PATH")

    letterboxd_user: str = Field(default="f_frusciante", alias="LETTERBOXD_USER")
    letterboxd_url: HttpUrl = Field(
        default="https://letterboxd.com", alias="LETTERBOXD_URL"
    )
    tmdb_api_key: str | None = Field(default=None, alias="TMDB_API_KEY")
    tmdb_api_url: HttpUrl = Field(
        default="https://api.themoviedb.org/3", alias="TMDB_API_URL"
    )

    min_rating: float = Field(default=3.0, alias="MIN_RATING", ge=0.5, le=5.0)
    max_recent: int = Field(default=10, alias="MAX_RECENT", ge=1, le=100)
    runtime_threshold: int = Field(default=120, alias="RUNTIME_THRESHOLD", ge=1)
    page_size: int = Field(default=100, alias="PAGE_SIZE", ge=1, le=1_000)
    shuffle_interval_seconds: int = Field(
        default=43_200, alias="SHUFFLE_INTERVAL", ge=60
    )
    reload_interval_seconds: int = Field(
        default=3_600, alias="RELOAD_INTERVAL", ge=60
    )
    enrichment_delay_seconds: float = Field(
        default=0.3, alias="ENRICHMENT_DELAY", ge=0
    )
    serve_enrichment: bool = Field(default=True, alias="SERVE_ENRICHMENT")

    addon_keys: Annotated[tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_ADDON_KEYS,
        alias="ADDON_KEYS",
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("tmdb_api_key", "base_url", mode="before")
    @classmethod
    def _strip_blank(cls, value: object) -> object:
        if isinstance(value, str):
            stripped = value.strip()
            return stripped or None
        return value

    @field_validator("addon_keys", mode="before")
    @classmethod
    def _parse_addon_keys(cls, value: object) -> tuple[str, ...]:
        """Normalise add-on key selections from environment values."""

        if value is None:
            return DEFAULT_ADDON_KEYS
        if isinstance(value, str):
            raw_values = [part.strip() for part in value.split(",")]
        elif isinstance(value, Iterable):
            raw_values = [str(part).strip() for part in value]
        else:
            raise TypeError("ADDON_KEYS must be a string or iterable of strings")

        cleaned: list[str] = []
        for entry in raw_values:
            key = entry.lower()
            if not key:
                continue
            if key not in DEFAULT_ADDON_KEYS:
                raise ValueError("Unknown add-on keys configured")
            if key not in cleaned:
                cleaned.append(key)
        if not cleaned:
            return DEFAULT_ADDON_KEYS
        return tuple(cleaned)

    @model_validator(mode="after")
    def _resolve_collection_paths(self) -> "Settings":
        """Place collection files under the data directory unless overridden."""

        if self.recent_path is None:
            self.recent_path = self.data_dir / "recent.json"
        if self.short_path is None:
            self.short_path = self.data_dir / "short.json"
        if self.long_path is None:
            self.long_path = self.data_dir / "long.json"
        return self

    @property
    def addon_definitions(self) -> tuple[AddonDefinition, ...]:
        """Return ordered add-on definitions for the enabled keys."""

        definition_map = {definition.key: definition for definition in ADDONS}
        return tuple(definition_map[key] for key in self.addon_keys)

    @property
    def collection_paths(self) -> dict[str, Path]:
        return {
            "recent": self.recent_path,
            "short": self.short_path,
            "long": self.long_path,
        }

    @property
    def letterboxd_films_url(self) -> str:
        base = str(self.letterboxd_url).rstrip("/")
        return f"{base}/{self.letterboxd_user}/films/by/rated-date/"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
