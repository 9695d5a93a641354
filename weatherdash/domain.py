"""Forecast vocabulary shared by the client, the bucketizer and the dashboard.

Samples are immutable; every later stage derives new values from them.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class MissingDayPolicy(str, Enum):
    """What the outlook does with a date that has no sample at/after the reference hour."""
    DROP = "drop"
    NEAREST = "nearest"


@dataclass(frozen=True)
class WeatherCondition:
    """First entry of a sample's ``weather`` array."""
    main: str
    description: str
    icon: str


@dataclass(frozen=True)
class ForecastSample:
    """One 3-hourly OpenWeatherMap forecast entry, temperatures in Kelvin."""
    timestamp_unix: int
    temperature: float
    feels_like: float
    temp_min: float
    temp_max: float
    humidity: int
    pressure: int
    visibility_meters: int
    wind_speed_mps: float
    weather: WeatherCondition
    dt_txt: Optional[str] = None
    pop: Optional[float] = None
    cloud_cover: Optional[int] = None
    wind_direction: Optional[int] = None
    wind_gust: Optional[float] = None
    part_of_day: Optional[str] = None

    @property
    def time(self) -> dt.datetime:
        """Timezone-aware UTC datetime of the sample."""
        return dt.datetime.fromtimestamp(self.timestamp_unix, tz=dt.timezone.utc)

    @property
    def calendar_date(self) -> dt.date:
        return self.time.date()

    @property
    def hour_of_day(self) -> int:
        return self.time.hour


@dataclass(frozen=True)
class CityInfo:
    """City block of the forecast response."""
    name: str
    country: str
    latitude: Optional[float]
    longitude: Optional[float]
    population: Optional[int]
    timezone_offset: int  # seconds east of UTC
    sunrise: int
    sunset: int

    @property
    def tzinfo(self) -> dt.timezone:
        return dt.timezone(dt.timedelta(seconds=self.timezone_offset))


@dataclass(frozen=True)
class ForecastFeed:
    """Normalized forecast response: ordered samples plus city metadata."""
    samples: Tuple[ForecastSample, ...]
    city: CityInfo
    count: int = 0
    fetched_at: dt.datetime = field(default_factory=lambda: dt.datetime.now(dt.timezone.utc))


@dataclass(frozen=True)
class DailyBucket:
    """The sample chosen to stand for a whole UTC calendar day."""
    date: dt.date
    representative_sample: ForecastSample
