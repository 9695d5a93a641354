"""Compose a forecast feed into the current/hourly/daily views the dashboard renders."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from weatherdash import units
from weatherdash.bucketizer import (
    DEFAULT_REFERENCE_HOUR,
    NoDataError,
    build_daily_forecast,
    current_conditions,
    nearest_sample_for_date,
    unique_calendar_dates,
)
from weatherdash.config import settings as default_settings, Settings
from weatherdash.data_sources import CallableForecastDataSource, ForecastDataSource, fetch_forecast
from weatherdash.defaults import fallback_sample
from weatherdash.domain import CityInfo, DailyBucket, ForecastFeed, ForecastSample, MissingDayPolicy
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="forecast_service")


@dataclass(frozen=True)
class DashboardView:
    """Everything one render of the dashboard needs."""
    location: str
    current: ForecastSample
    hourly: Tuple[ForecastSample, ...]
    daily: Tuple[DailyBucket, ...]
    city: CityInfo
    has_data: bool

    def to_display(self) -> dict:
        """Return display strings for API serialization."""
        tz = self.city.tzinfo
        return {
            "location": self.location,
            "has_data": self.has_data,
            "city": {
                "name": self.city.name,
                "country": self.city.country,
                "sunrise": units.format_clock_24h(self.city.sunrise, tz),
                "sunset": units.format_clock_24h(self.city.sunset, tz),
            },
            "current": sample_to_display_strings(self.current),
            "hourly": [hour_to_display_strings(s) for s in self.hourly],
            "daily": [sample_to_display_strings(b.representative_sample) for b in self.daily],
        }


def sample_to_display_strings(sample: ForecastSample) -> Dict[str, str]:
    """Detail-card strings for a sample; dates are UTC, matching the bucketing."""
    return {
        "timestamp_utc": sample.time.isoformat(),
        "weekday": units.format_weekday(sample.time),
        "date": units.format_date(sample.time),
        "short_date": units.format_short_date(sample.time),
        "temperature": units.format_celsius(sample.temperature),
        "feels_like": units.format_celsius(sample.feels_like),
        "temp_min": units.format_celsius(sample.temp_min),
        "temp_max": units.format_celsius(sample.temp_max),
        "humidity": units.format_humidity(sample.humidity),
        "pressure": units.format_pressure(sample.pressure),
        "visibility": units.meters_to_kilometers(sample.visibility_meters),
        "wind_speed": units.meters_per_second_to_km_per_hour(sample.wind_speed_mps),
        "description": sample.weather.description,
        "icon": sample.weather.icon,
    }


def hour_to_display_strings(sample: ForecastSample) -> Dict[str, str]:
    """Compact strings for the hourly strip."""
    return {
        "timestamp_utc": sample.time.isoformat(),
        "time": units.format_clock_12h(sample.time),
        "temperature": units.format_celsius(sample.temperature),
        "icon": sample.weather.icon,
    }


def apply_missing_day_policy(
    samples: Tuple[ForecastSample, ...],
    buckets: Tuple[Optional[DailyBucket], ...],
    *,
    reference_hour: int,
    policy: MissingDayPolicy,
) -> Tuple[DailyBucket, ...]:
    """Resolve the None entries of ``build_daily_forecast`` output."""
    dates = unique_calendar_dates(samples)
    out: List[DailyBucket] = []
    for date, bucket in zip(dates, buckets):
        if bucket is not None:
            out.append(bucket)
            continue
        if policy is MissingDayPolicy.NEAREST:
            nearest = nearest_sample_for_date(samples, date, reference_hour)
            if nearest is not None:
                out.append(DailyBucket(date=date, representative_sample=nearest))
                continue
        logger.debug("Dropping day without a representative sample", extra={"date": date.isoformat()})
    return tuple(out)


def build_dashboard(
    feed: ForecastFeed,
    *,
    location: str = "",
    reference_hour: int = DEFAULT_REFERENCE_HOUR,
    missing_day_policy: MissingDayPolicy | str = MissingDayPolicy.DROP,
) -> DashboardView:
    """Bucket a feed into the dashboard view."""
    policy = MissingDayPolicy(missing_day_policy)
    samples = feed.samples

    try:
        current = current_conditions(samples)
        has_data = True
    except NoDataError:
        logger.warning("No forecast samples; rendering fallback conditions", extra={"location": location})
        current = fallback_sample(int(feed.fetched_at.timestamp()))
        has_data = False

    buckets = build_daily_forecast(samples, reference_hour)
    daily = apply_missing_day_policy(samples, buckets, reference_hour=reference_hour, policy=policy)

    return DashboardView(
        location=location or feed.city.name,
        current=current,
        hourly=samples,
        daily=daily,
        city=feed.city,
        has_data=has_data,
    )


def get_dashboard(
    location: str,
    *,
    data_source: ForecastDataSource | None = None,
    settings: Settings | None = None,
) -> DashboardView:
    """
    Fetch the forecast for ``location`` and build the dashboard view.

    Fetch errors (ForecastFetchError and subclasses) propagate so the caller
    can show them; missing data never does.
    """
    settings = settings or default_settings
    ds = data_source or CallableForecastDataSource(forecast=fetch_forecast)
    feed = ds.fetch_forecast(location, count=settings.forecast_count)
    return dashboard_from_feed(feed, location=location, settings=settings)


def dashboard_from_feed(feed: ForecastFeed, *, location: str, settings: Settings | None = None) -> DashboardView:
    settings = settings or default_settings
    view = build_dashboard(
        feed,
        location=location,
        reference_hour=settings.reference_hour,
        missing_day_policy=settings.missing_day_policy,
    )
    logger.info(
        "Built dashboard",
        extra={"location": location, "hourly": len(view.hourly), "days": len(view.daily)},
    )
    return view


def main():
    """Manual helper: print the outlook for the default location."""
    view = get_dashboard(default_settings.default_location)
    now = view.to_display()["current"]
    print(f"{view.city.name}: {now['temperature']} {now['description']} ({now['weekday']} {now['date']})")
    for day in view.to_display()["daily"]:
        print(f"    {day['weekday']:<10} {day['short_date']}  {day['temperature']:>4}  {day['description']}")


if __name__ == "__main__":
    main()
