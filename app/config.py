"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, HttpUrl, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PLACEHOLDER_API_KEYS = frozenset({"", "demo", "your_api_key_here"})


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="Series Tracker", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=8080, alias="PORT", ge=1, le=65_535)
    server_port_range_end: int = Field(
        default=8090, alias="PORT_RANGE_END", ge=1, le=65_535
    )

    omdb_api_key: str | None = Field(default=None, alias="OMDB_API_KEY")
    omdb_api_url: HttpUrl = Field(
        default="http://www.omdbapi.com/", alias="OMDB_API_URL"
    )
    metadata_timeout_seconds: float = Field(
        default=15.0, alias="METADATA_TIMEOUT", gt=0, le=120
    )
    image_timeout_seconds: float = Field(
        default=15.0, alias="IMAGE_TIMEOUT", gt=0, le=120
    )

    data_file: Path = Field(default=Path("series.json"), alias="DATA_FILE")
    episodes_per_season: int = Field(
        default=10, alias="EPISODES_PER_SEASON", ge=1, le=100
    )
    report_items_per_page: int = Field(
        default=4, alias="REPORT_ITEMS_PER_PAGE", ge=1, le=6
    )
    enrich_on_startup: bool = Field(default=True, alias="ENRICH_ON_STARTUP")

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("omdb_api_key", mode="before")
    @classmethod
    def _strip_api_key(cls, value: object) -> object:
        """Treat blank keys from the environment as missing."""

        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @model_validator(mode="after")
    def _check_port_range(self) -> "Settings":
        if self.server_port_range_end < self.server_port:
            raise ValueError("PORT_RANGE_END must not be lower than PORT")
        return self

    @property
    def has_usable_api_key(self) -> bool:
        """Return whether an OMDb key other than a placeholder is configured."""

        key = (self.omdb_api_key or "").strip().lower()
        return key not in PLACEHOLDER_API_KEYS

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
