from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="VOUCH_", env_file=".env", extra="ignore")

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False  # True for production (structured JSON), False for dev (colored)

    # Execution context
    TIMEZONE: str | None = None  # IANA zone consulted by temporal constraints

    # Engine
    MAX_CASCADE_DEPTH: int = 64
    MAX_MARKER_DEPTH: int = 16
    STRICT_PROPERTIES: bool = False  # raise on unknown names in validate_property
    METADATA_CACHE_SIZE: int = 1024

    @field_validator("TIMEZONE")
    @classmethod
    def _known_zone(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v

    @field_validator("MAX_CASCADE_DEPTH", "MAX_MARKER_DEPTH")
    @classmethod
    def _positive_depth(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Depth limits must be at least 1")
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
