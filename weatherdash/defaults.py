"""Fallback values used when the forecast feed omits a field.

The table is applied once, while raw JSON is normalized into samples, so
nothing downstream has to guard against missing data.
"""
from __future__ import annotations

import numbers
from typing import Any, Mapping

from weatherdash.domain import CityInfo, ForecastSample, WeatherCondition

FALLBACK_DEFAULTS: Mapping[str, Any] = {
    "temperature": 296.37,
    "feels_like": 296.37,
    "temp_min": 296.37,
    "temp_max": 296.37,
    "humidity": 0,
    "pressure": 1013,
    "visibility_meters": 10000,
    "wind_speed_mps": 1.64,
    "weather_main": "",
    "weather_description": "",
    "weather_icon": "01d",
    "city_name": "",
    "city_country": "",
    "timezone_offset": 0,
    "sunrise": 1702949452,
    "sunset": 1702517657,
}


def default_for(field_name: str) -> Any:
    """Look up the fallback for ``field_name``; unknown names are a programming error."""
    return FALLBACK_DEFAULTS[field_name]


def is_number(value: Any) -> bool:
    """Real numbers that fit a float; JSON booleans do not count."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    try:
        float(value)
    except OverflowError:
        return False
    return True


def value_or_default(value: Any, field_name: str) -> Any:
    """Return ``value`` if it has the same kind as the field's fallback, else the fallback.

    Numeric fields take any real number (NaN included, it renders as a
    placeholder); text fields take strings. Anything else, None included,
    is replaced.
    """
    fallback = default_for(field_name)
    if is_number(fallback):
        return value if is_number(value) else fallback
    return value if isinstance(value, str) else fallback


def fallback_condition() -> WeatherCondition:
    return WeatherCondition(
        main=default_for("weather_main"),
        description=default_for("weather_description"),
        icon=default_for("weather_icon"),
    )


def fallback_sample(timestamp_unix: int) -> ForecastSample:
    """Complete sample built purely from the table, stamped at ``timestamp_unix``."""
    return ForecastSample(
        timestamp_unix=timestamp_unix,
        temperature=default_for("temperature"),
        feels_like=default_for("feels_like"),
        temp_min=default_for("temp_min"),
        temp_max=default_for("temp_max"),
        humidity=default_for("humidity"),
        pressure=default_for("pressure"),
        visibility_meters=default_for("visibility_meters"),
        wind_speed_mps=default_for("wind_speed_mps"),
        weather=fallback_condition(),
    )


def fallback_city(name: str = "") -> CityInfo:
    return CityInfo(
        name=name or default_for("city_name"),
        country=default_for("city_country"),
        latitude=None,
        longitude=None,
        population=None,
        timezone_offset=default_for("timezone_offset"),
        sunrise=default_for("sunrise"),
        sunset=default_for("sunset"),
    )
