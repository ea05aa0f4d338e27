"""Runtime configuration for Hotel Genie.

Relies on pydantic-settings so that environment variables (prefixed with
``HOTEL_GENIE_``) can override defaults. See `.env.example` for common values.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Iterable, Optional, Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from hotel_genie.hotels.models import Provider

logger = logging.getLogger(__name__)

MIN_CACHE_TTL_S = 10 * 60
MAX_CACHE_TTL_S = 60 * 60


class Settings(BaseSettings):
    """Captures runtime configuration for the search service."""

    rapidapi_key: Optional[str] = Field(default=None, description="RapidAPI key shared by every provider proxy")
    booking_host: str = Field(default="booking-com.p.rapidapi.com")
    travel_advisor_host: str = Field(default="travel-advisor.p.rapidapi.com")
    hotels_com_host: str = Field(default="hotels-com-provider.p.rapidapi.com")
    priceline_host: str = Field(default="priceline-com-provider.p.rapidapi.com")

    providers: Annotated[Tuple[Provider, ...], NoDecode] = Field(
        default=(Provider.BOOKING, Provider.TRAVEL_ADVISOR, Provider.HOTELS_COM, Provider.PRICELINE),
        description="Providers queried on every search; comma-separated when provided via env",
    )
    provider_timeout_s: float = Field(default=8.0, description="Upper bound for a single provider fetch")
    provider_usage_limit: int = Field(default=1000, description="Calls allowed per provider per process")
    per_provider_limit: int = Field(
        default=20, description="Keep at most this many listings per provider (most reviewed first)"
    )
    max_retries: int = Field(default=3, description="Attempts per upstream call when rate limited (HTTP 429)")
    retry_backoff_s: float = Field(default=1.0, description="Initial backoff, doubled after each 429")
    currency: str = Field(default="USD")
    locale: str = Field(default="en-gb")
    adults: int = Field(default=2)
    rooms: int = Field(default=1)

    geocoder_timeout_s: float = Field(default=8.0)

    gemini_api_key: Optional[str] = Field(default=None, description="Enables AI reranking and summaries")
    gemini_model: str = Field(default="gemini-2.5-flash")
    gemini_base_url: str = Field(default="https://generativelanguage.googleapis.com/v1beta")
    annotation_timeout_s: float = Field(default=10.0)
    rerank_top_k: int = Field(default=25, description="Hotels submitted to the AI reranker")
    rerank_top_n: int = Field(default=10, description="Hotels the AI reranker is asked to return")

    cache_ttl_s: int = Field(default=30 * 60, description="Seconds a cached result stays fresh")
    cache_memory_enabled: bool = True
    cache_memory_max_entries: int = Field(default=512, ge=1, description="Entries kept by the in-process tier")
    cache_sqlite_enabled: bool = True
    cache_sqlite_path: Path = Field(default=Path("data/cache/hotel_genie.sqlite3"))
    cache_sqlite_journal_mode: Optional[str] = Field(default="wal")
    cache_sqlite_synchronous: Optional[str] = Field(default="normal")

    api_host: str = Field(default="127.0.0.1")
    api_port: int = Field(default=8000)

    log_level: str = Field(default="INFO")
    log_dir: Path = Field(default=Path("data/logs"))

    model_config = SettingsConfigDict(
        env_prefix="HOTEL_GENIE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("providers", mode="before")
    def _parse_providers(cls, value: object) -> Tuple[Provider, ...]:
        if value is None or value == "":
            return ()
        if isinstance(value, str):
            items: Iterable[object] = (part.strip() for part in value.split(","))
        elif isinstance(value, (list, tuple)):
            items = value
        else:
            raise TypeError("providers must be provided as a comma-separated string or list")
        parsed: list[Provider] = []
        for item in items:
            if not item:
                continue
            provider = item if isinstance(item, Provider) else Provider(str(item).strip().lower())
            if provider not in parsed:
                parsed.append(provider)
        return tuple(parsed)

    @field_validator("cache_ttl_s")
    def _validate_ttl(cls, value: int) -> int:
        if not MIN_CACHE_TTL_S <= value <= MAX_CACHE_TTL_S:
            raise ValueError(
                f"cache_ttl_s must be between {MIN_CACHE_TTL_S} and {MAX_CACHE_TTL_S} seconds"
            )
        return value

    @field_validator("rerank_top_k", "rerank_top_n", "max_retries")
    def _validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("value must be positive")
        return value

    @field_validator("cache_sqlite_path", "log_dir", mode="before")
    def _expand_path(cls, value: str | Path) -> Path:
        if isinstance(value, Path):
            return value.expanduser()
        return Path(value).expanduser()

    @property
    def annotation_enabled(self) -> bool:
        return bool(self.gemini_api_key)

    def ensure_directories(self) -> None:
        """Create directories that must exist at runtime."""
        self.log_dir.mkdir(parents=True, exist_ok=True)
        if self.cache_sqlite_enabled:
            self.cache_sqlite_path.parent.mkdir(parents=True, exist_ok=True)

    def provider_host(self, provider: Provider) -> str:
        return {
            Provider.BOOKING: self.booking_host,
            Provider.TRAVEL_ADVISOR: self.travel_advisor_host,
            Provider.HOTELS_COM: self.hotels_com_host,
            Provider.PRICELINE: self.priceline_host,
        }[provider]

    def usage_limits(self) -> dict[Provider, int]:
        return {provider: self.provider_usage_limit for provider in self.providers}
