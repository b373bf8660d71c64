from __future__ import annotations

from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    database_url: Optional[str] = Field(None, alias="DATABASE_URL")
    cache_ttl_seconds: float = Field(300.0, alias="CACHE_TTL_SECONDS", gt=0)
    cache_max_entries: int = Field(100, alias="CACHE_MAX_ENTRIES", ge=1)
    cache_sweep_interval_seconds: float = Field(60.0, alias="CACHE_SWEEP_INTERVAL_SECONDS", gt=0)
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    tz: str = Field("UTC", alias="TZ")

    @property
    def zoneinfo(self) -> ZoneInfo:
        return ZoneInfo(self.tz)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
