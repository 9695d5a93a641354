"""Application configuration pulled from environment variables via pydantic."""
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="config")

MISSING_DAY_POLICIES = ("drop", "nearest")


class Settings(BaseSettings):
    """Environment-driven configuration for the weather dashboard."""
    model_config = SettingsConfigDict(env_prefix="WEATHERDASH_", env_file=".env", extra="ignore")

    forecast_source: str = "openweather"  # options: openweather, json_file
    forecast_file_path: str | None = None
    openweather_api_key: str | None = None
    openweather_base_url: str = "https://api.openweathermap.org/data/2.5/forecast"
    forecast_count: int = Field(default=56, ge=1)
    default_location: str = "pune"
    reference_hour: int = Field(default=6, ge=0, le=23)
    missing_day_policy: str = "drop"
    request_timeout_seconds: float = 10.0
    http_cache_path: str = ".cache"
    http_cache_expire_seconds: int = 600
    http_retries: int = 3
    http_backoff_factor: float = 0.2
    session_redis_url: str | None = None
    session_ttl_seconds: int = 3600
    conditions_ttl_seconds: int = 600

    @field_validator("openweather_base_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs to avoid double slashes."""
        return str(v).rstrip("/")

    @field_validator("forecast_source", mode="after")
    @classmethod
    def lowercase(cls, v: str) -> str:
        return str(v).strip().lower()

    @field_validator("missing_day_policy", mode="after")
    @classmethod
    def known_policy(cls, v: str) -> str:
        """Reject policies the dashboard service does not implement."""
        v = str(v).strip().lower()
        if v not in MISSING_DAY_POLICIES:
            raise ValueError(f"missing_day_policy must be one of {MISSING_DAY_POLICIES}, got '{v}'")
        return v


settings = Settings()


if __name__ == "__main__":
    logger.logger.setLevel("DEBUG")
    logger.debug(f"Loaded settings: {settings.model_dump_json(indent=4, exclude={'openweather_api_key'})}")
