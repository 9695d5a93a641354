"""Data source factories for plugging different forecast backends."""

from .base import CallableForecastDataSource, ForecastDataSource, JsonFileForecastDataSource
from .factory import build_data_source
from .openweather_client import (
    ForecastFetchError,
    LocationNotFoundError,
    fetch_forecast,
    parse_forecast,
)

__all__ = [
    "build_data_source",
    "ForecastDataSource",
    "CallableForecastDataSource",
    "JsonFileForecastDataSource",
    "ForecastFetchError",
    "LocationNotFoundError",
    "fetch_forecast",
    "parse_forecast",
]
