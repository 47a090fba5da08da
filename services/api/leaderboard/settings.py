"""Application settings via Pydantic Settings."""

from functools import lru_cache
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = "Leaderboard API"
    app_version: str = "0.1.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8080

    # Redis
    redis_url: str = "redis://localhost:6379/0"
    redis_socket_timeout: float = Field(
        default=5.0,
        gt=0,
        description="Socket connect/read timeout in seconds, owned by the Redis client",
    )

    # Rankings
    ranking_timezone: str = Field(
        default="UTC",
        validation_alias=AliasChoices("RANKING_TIMEZONE", "TZ_NAME"),
        description="IANA timezone that decides which calendar day is 'today'",
    )
    week_start: Literal["monday", "sunday"] = "monday"
    allow_negative_scores: bool = False
    window_isolation: Literal["shared", "per_request"] = Field(
        default="shared",
        description=(
            "'shared' keeps the fixed <ns>:rank:* derived keys; "
            "'per_request' suffixes them and drops them after the read"
        ),
    )
    max_page_size: int = Field(default=100, ge=1, le=10000)

    @field_validator("ranking_timezone")
    @classmethod
    def _validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v

    @field_validator("week_start", "window_isolation", mode="before")
    @classmethod
    def _lower(cls, v: object) -> object:
        return v.strip().lower() if isinstance(v, str) else v

    @property
    def tzinfo(self) -> ZoneInfo:
        """Timezone object for `ranking_timezone`."""
        return ZoneInfo(self.ranking_timezone)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
