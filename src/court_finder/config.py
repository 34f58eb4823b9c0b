"""Configuration objects and helpers for the court finder."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional
from urllib.parse import quote

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CACHE_SECONDS = 300


class Settings(BaseSettings):
    """Runtime configuration sourced from environment variables."""

    provider: str = Field("taipei-open", alias="COURTFINDER_PROVIDER")
    base_url: str = Field("https://vbs.sports.taipei", alias="COURTFINDER_BASE_URL")
    cache_seconds: int = Field(DEFAULT_CACHE_SECONDS, alias="COURTFINDER_CACHE_SECONDS")
    fetch_timeout_seconds: float = Field(15.0, alias="COURTFINDER_FETCH_TIMEOUT_SECONDS")
    fetch_attempts: int = Field(2, ge=1, alias="COURTFINDER_FETCH_ATTEMPTS")
    fetch_backoff_seconds: float = Field(0.5, ge=0, alias="COURTFINDER_FETCH_BACKOFF_SECONDS")
    headless: bool = Field(True, alias="COURTFINDER_HEADLESS")
    slowmo_ms: int = Field(0, ge=0, alias="COURTFINDER_SLOWMO_MS")
    wait_ms: int = Field(90_000, ge=0, alias="COURTFINDER_WAIT_MS")
    poll_interval_ms: int = Field(500, gt=0, alias="COURTFINDER_POLL_INTERVAL_MS")
    redirect_timeout_ms: int = Field(45_000, ge=0, alias="COURTFINDER_REDIRECT_TIMEOUT_MS")
    settle_ms: int = Field(8_000, ge=0, alias="COURTFINDER_SETTLE_MS")
    navigation_timeout_ms: int = Field(30_000, gt=0, alias="COURTFINDER_NAVIGATION_TIMEOUT_MS")
    label_settle_ms: int = Field(800, ge=0, alias="COURTFINDER_LABEL_SETTLE_MS")
    max_court_labels: int = Field(30, ge=0, alias="COURTFINDER_MAX_COURT_LABELS")
    labels_path: Optional[Path] = Field(None, alias="COURTFINDER_LABELS_PATH")
    opendata_url: str = Field(
        "https://vbs.sports.taipei/opendata/sports_tms2.json",
        alias="COURTFINDER_TAIPEI_VBS",
    )
    sample_data_dir: Path = Field(Path("sample_data"), alias="COURTFINDER_SAMPLE_DATA")
    timezone: str = Field("Asia/Taipei", alias="COURTFINDER_TIMEZONE")

    model_config = SettingsConfigDict(
        env_file=(".env",),
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    @field_validator("cache_seconds", mode="before")
    @classmethod
    def fallback_cache_seconds(cls, value: Any) -> int:
        """Non-positive or unparsable TTLs fall back to the default."""
        try:
            seconds = int(value)
        except (TypeError, ValueError):
            return DEFAULT_CACHE_SECONDS
        return seconds if seconds > 0 else DEFAULT_CACHE_SECONDS

    @field_validator("provider", mode="before")
    @classmethod
    def normalise_provider(cls, value: Any) -> str:
        return str(value or "taipei-open").strip().lower()

    @property
    def origin(self) -> str:
        return self.base_url.rstrip("/")

    def venue_url(self, venue_id: str) -> str:
        """Construct the venue schedule page URL for a venue id ("K")."""
        return f"{self.origin}/venues/?K={quote(venue_id, safe='')}#Schedule"
