"""Fetch and normalize the OpenWeatherMap 5 day / 3 hour forecast."""
from __future__ import annotations

import datetime as dt
from typing import Any, List, Mapping, Optional

import requests
import requests_cache
from retry_requests import retry

from weatherdash.config import settings
from weatherdash.defaults import default_for, fallback_city, fallback_condition, is_number, value_or_default
from weatherdash.domain import CityInfo, ForecastFeed, ForecastSample, WeatherCondition
from utils.logging_utils import get_tagged_logger, mask_url_secrets

logger = get_tagged_logger(__name__, tag="openweather_client")


class ForecastFetchError(RuntimeError):
    """The forecast could not be retrieved (network failure, non-2xx, bad body)."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class LocationNotFoundError(ForecastFetchError):
    """OpenWeatherMap does not know the requested location."""


def build_session(
    *,
    cache_path: str = settings.http_cache_path,
    expire_after: int = settings.http_cache_expire_seconds,
    retries: int = settings.http_retries,
    backoff_factor: float = settings.http_backoff_factor,
) -> requests.Session:
    """Cached session with bounded exponential-backoff retries."""
    cache_session = requests_cache.CachedSession(cache_path, expire_after=expire_after)
    return retry(cache_session, retries=retries, backoff_factor=backoff_factor)


session = build_session()


# One day of slack either side keeps local-offset shifts of the sun times in range.
_MIN_TIMESTAMP = int(dt.datetime(1, 1, 2, tzinfo=dt.timezone.utc).timestamp())
_MAX_TIMESTAMP = int(dt.datetime(9999, 12, 30, tzinfo=dt.timezone.utc).timestamp())
_MAX_OFFSET_SECONDS = 24 * 3600


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _optional_number(value: Any) -> Optional[float]:
    return value if is_number(value) else None


def _optional_text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _timestamp(value: Any) -> Optional[int]:
    """Unix seconds as an int, or None when missing, non-numeric or outside the datetime range."""
    if isinstance(value, bool):
        return None
    try:
        timestamp = int(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not _MIN_TIMESTAMP <= timestamp <= _MAX_TIMESTAMP:
        return None
    return timestamp


def _timestamp_or_default(value: Any, field_name: str) -> int:
    timestamp = _timestamp(value)
    return default_for(field_name) if timestamp is None else timestamp


def _offset_or_default(value: Any) -> int:
    """UTC offset in seconds; must be strictly within a day to build a timezone."""
    offset = _timestamp(value)
    if offset is None or abs(offset) >= _MAX_OFFSET_SECONDS:
        return default_for("timezone_offset")
    return offset


def _first_weather(entry: Mapping[str, Any]) -> WeatherCondition:
    conditions = entry.get("weather")
    if not isinstance(conditions, (list, tuple)) or not conditions:
        return fallback_condition()
    first = _mapping(conditions[0])
    return WeatherCondition(
        main=value_or_default(first.get("main"), "weather_main"),
        description=value_or_default(first.get("description"), "weather_description"),
        icon=value_or_default(first.get("icon"), "weather_icon"),
    )


def parse_sample(entry: Any) -> Optional[ForecastSample]:
    """Normalize one ``list`` entry; returns None when it has no usable timestamp."""
    if not isinstance(entry, Mapping):
        logger.warning("Dropping forecast entry that is not an object", extra={"entry": entry})
        return None
    timestamp = _timestamp(entry.get("dt"))
    if timestamp is None:
        logger.warning("Dropping forecast entry without a usable dt", extra={"entry": entry})
        return None

    main = _mapping(entry.get("main"))
    wind = _mapping(entry.get("wind"))
    clouds = _mapping(entry.get("clouds"))
    sys_block = _mapping(entry.get("sys"))

    return ForecastSample(
        timestamp_unix=timestamp,
        temperature=value_or_default(main.get("temp"), "temperature"),
        feels_like=value_or_default(main.get("feels_like"), "feels_like"),
        temp_min=value_or_default(main.get("temp_min"), "temp_min"),
        temp_max=value_or_default(main.get("temp_max"), "temp_max"),
        humidity=value_or_default(main.get("humidity"), "humidity"),
        pressure=value_or_default(main.get("pressure"), "pressure"),
        visibility_meters=value_or_default(entry.get("visibility"), "visibility_meters"),
        wind_speed_mps=value_or_default(wind.get("speed"), "wind_speed_mps"),
        weather=_first_weather(entry),
        dt_txt=_optional_text(entry.get("dt_txt")),
        pop=_optional_number(entry.get("pop")),
        cloud_cover=_optional_number(clouds.get("all")),
        wind_direction=_optional_number(wind.get("deg")),
        wind_gust=_optional_number(wind.get("gust")),
        part_of_day=_optional_text(sys_block.get("pod")),
    )


def parse_city(block: Any) -> CityInfo:
    """Normalize the ``city`` block, filling gaps from the defaults table."""
    if not isinstance(block, Mapping) or not block:
        return fallback_city()
    coord = _mapping(block.get("coord"))
    return CityInfo(
        name=value_or_default(block.get("name"), "city_name"),
        country=value_or_default(block.get("country"), "city_country"),
        latitude=_optional_number(coord.get("lat")),
        longitude=_optional_number(coord.get("lon")),
        population=_optional_number(block.get("population")),
        timezone_offset=_offset_or_default(block.get("timezone")),
        sunrise=_timestamp_or_default(block.get("sunrise"), "sunrise"),
        sunset=_timestamp_or_default(block.get("sunset"), "sunset"),
    )


def parse_forecast(payload: Mapping[str, Any]) -> ForecastFeed:
    """Normalize a full forecast response into a ForecastFeed."""
    if not isinstance(payload, Mapping):
        raise ForecastFetchError("Forecast response is not a JSON object")

    entries = payload.get("list")
    if not isinstance(entries, (list, tuple)):
        entries = []

    samples: List[ForecastSample] = []
    for entry in entries:
        sample = parse_sample(entry)
        if sample is not None:
            samples.append(sample)

    if not samples:
        logger.warning("Forecast response contained no usable samples", extra={"cnt": payload.get("cnt")})

    return ForecastFeed(
        samples=tuple(samples),
        city=parse_city(payload.get("city")),
        count=len(samples),
    )


def _raise_for_api_error(resp: requests.Response, location: str) -> None:
    """Translate HTTP/body error codes into fetch errors."""
    if resp.status_code == 404:
        raise LocationNotFoundError(f"Location '{location}' was not found", status_code=404)
    if not resp.ok:
        raise ForecastFetchError(
            f"Forecast request failed with HTTP {resp.status_code}",
            status_code=resp.status_code,
        )


def fetch_forecast_payload(
    location: str,
    *,
    count: int = settings.forecast_count,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
) -> dict:
    """GET the raw forecast JSON for ``location``."""
    api_key = api_key or settings.openweather_api_key
    if not api_key:
        raise ForecastFetchError("No OpenWeatherMap API key configured (WEATHERDASH_OPENWEATHER_API_KEY)")

    url = base_url or settings.openweather_base_url
    params = {"q": location, "appid": api_key, "cnt": count}

    try:
        resp = session.get(url, params=params, timeout=timeout or settings.request_timeout_seconds)
    except requests.RequestException as exc:
        logger.error("Forecast request failed", extra={"location": location, "error": str(exc)})
        raise ForecastFetchError(f"Could not reach the forecast service: {exc}") from exc

    logger.debug(
        "Forecast response received",
        extra={
            "url": mask_url_secrets(getattr(resp, "url", "") or url),
            "status_code": resp.status_code,
            "from_cache": getattr(resp, "from_cache", False),
        },
    )
    _raise_for_api_error(resp, location)

    try:
        data = resp.json()
    except ValueError as exc:
        raise ForecastFetchError("Forecast response was not valid JSON") from exc

    if isinstance(data, dict) and str(data.get("cod", "200")) == "404":
        raise LocationNotFoundError(f"Location '{location}' was not found", status_code=404)
    return data


def fetch_forecast(
    location: str,
    *,
    count: int = settings.forecast_count,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
) -> ForecastFeed:
    """Fetch and normalize the forecast for a free-text location."""
    logger.info("Fetching forecast", extra={"location": location, "count": count})
    payload = fetch_forecast_payload(location, count=count, api_key=api_key, base_url=base_url, timeout=timeout)
    feed = parse_forecast(payload)
    logger.info("Parsed forecast", extra={"location": location, "samples": feed.count, "city": feed.city.name})
    return feed
