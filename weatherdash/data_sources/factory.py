"""Factory helpers for choosing a forecast data source at startup."""

from __future__ import annotations

from pathlib import Path

from weatherdash import config
from weatherdash.data_sources.base import (
    CallableForecastDataSource,
    ForecastDataSource,
    JsonFileForecastDataSource,
)
from weatherdash.data_sources.openweather_client import fetch_forecast
from utils.logging_utils import get_tagged_logger, mask_url_secrets

logger = get_tagged_logger(__name__, tag="data_sources/factory")


DEFAULT_SOURCE_NAME = "openweather"


def build_data_source(settings: config.Settings | None = None) -> ForecastDataSource:
    """Instantiate the configured forecast data source."""
    settings = settings or config.settings
    source = (settings.forecast_source or DEFAULT_SOURCE_NAME).lower()

    if source == "openweather":
        logger.info(
            "Using OpenWeatherMap data source",
            extra={"base_url": mask_url_secrets(settings.openweather_base_url)},
        )
        if not settings.openweather_api_key:
            logger.warning("No OpenWeatherMap API key configured; live fetches will fail")
        return CallableForecastDataSource(forecast=fetch_forecast)

    if source == "json_file":
        path = settings.forecast_file_path
        if not path:
            raise ValueError("forecast_file_path must be set for the json_file data source")
        logger.info("Using saved forecast file", extra={"path": path})
        return JsonFileForecastDataSource(path=Path(path))

    raise ValueError(f"Unknown forecast source '{source}'")
