"""Interfaces and helpers for forecast data sources."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Protocol

from weatherdash.domain import ForecastFeed
from weatherdash.data_sources.openweather_client import ForecastFetchError, parse_forecast
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/base")


class ForecastDataSource(Protocol):
    """Anything that can produce a normalized forecast for a location query."""

    def fetch_forecast(self, location: str, *, count: int = 56) -> ForecastFeed:
        """Return the forecast feed for ``location``."""
        ...


@dataclass
class CallableForecastDataSource(ForecastDataSource):
    """Wrap a fetch callable so backends can be swapped (and faked in tests)."""

    forecast: Callable[..., ForecastFeed]

    def fetch_forecast(self, *args, **kwargs) -> ForecastFeed:
        """Delegate to the configured callable."""
        return self.forecast(*args, **kwargs)


@dataclass
class JsonFileForecastDataSource(ForecastDataSource):
    """Replay a saved forecast response from disk, whatever location is asked for."""

    path: Path

    def fetch_forecast(self, location: str, *, count: int = 56) -> ForecastFeed:
        """Parse the saved response, keeping at most ``count`` samples."""
        try:
            payload = json.loads(Path(self.path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise ForecastFetchError(f"Could not read forecast file {self.path}: {exc}") from exc
        feed = parse_forecast(payload)
        samples = feed.samples[:count]
        logger.debug("Loaded forecast from file", extra={"path": str(self.path), "location": location})
        return ForecastFeed(samples=samples, city=feed.city, count=len(samples), fetched_at=feed.fetched_at)
