from functools import lru_cache
from pathlib import Path
from zoneinfo import ZoneInfo

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from peatus_mcp.services.time_context import load_transit_zone


class Settings(BaseSettings):
    """Service configuration.

    Automatically loads from environment variables and .env file.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    db_path: Path = Field(default=Path("data/gtfs.db"), alias="PEATUS_DB_PATH")
    timezone: str = Field(default="Europe/Tallinn", alias="PEATUS_TIMEZONE")
    query_timeout_seconds: float = Field(default=5.0, alias="PEATUS_QUERY_TIMEOUT")
    arrivals_limit: int = Field(default=5, alias="PEATUS_ARRIVALS_LIMIT")

    # GTFS feed used by the importer
    gtfs_url: str = Field(default="https://peatus.ee/gtfs/gtfs.zip", alias="PEATUS_GTFS_URL")

    # transport.tallinn.ee live departures (passthrough only)
    live_base_url: str = Field(default="https://transport.tallinn.ee", alias="PEATUS_LIVE_URL")
    live_cache_ttl_seconds: int = Field(default=30, alias="PEATUS_LIVE_CACHE_TTL")

    @field_validator("timezone")
    @classmethod
    def _zone_must_exist(cls, value: str) -> str:
        # raises ZoneInfoNotFoundError at startup rather than on first request
        load_transit_zone(value)
        return value

    @property
    def zone(self) -> ZoneInfo:
        return load_transit_zone(self.timezone)


@lru_cache
def get_settings() -> Settings:
    """Get service configuration (cached singleton).

    Returns:
        Settings with values from .env file or environment variables.
    """
    return Settings()
