"""Unit conversions and the display formats the dashboard shows."""
from __future__ import annotations

import datetime as dt
import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

KELVIN_OFFSET = 273.15
MPS_TO_KMH = 3.6
PLACEHOLDER = "--"


def _round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(Decimal(repr(value)).to_integral_value(rounding=ROUND_HALF_UP))


def _rounded(value: float, suffix: str) -> str:
    """``value`` rounded and suffixed; NaN/inf render as the placeholder."""
    if value is None or not math.isfinite(value):
        return f"{PLACEHOLDER}{suffix}"
    return f"{_round_half_up(value)}{suffix}"


def to_celsius(kelvin: float) -> float:
    return kelvin - KELVIN_OFFSET


def format_celsius(kelvin: float) -> str:
    """Kelvin to a whole-degree Celsius label, e.g. 296.37 -> "23°"."""
    return _rounded(to_celsius(kelvin), "°")


def meters_to_kilometers(meters: float) -> str:
    """Visibility label, e.g. 10000 -> "10km"."""
    return _rounded(meters / 1000, "km")


def meters_per_second_to_km_per_hour(mps: float) -> str:
    """Wind speed label, e.g. 1.64 -> "6km/h"."""
    return _rounded(mps * MPS_TO_KMH, "km/h")


def format_pressure(hpa: Optional[float]) -> str:
    return _rounded(hpa, " hPa")


def format_humidity(percent: Optional[float]) -> str:
    return _rounded(percent, "%")


# Date labels. ``tz`` defaults to UTC, the zone the feed is bucketed in.

def _localize(moment: dt.datetime | int, tz: Optional[dt.tzinfo]) -> dt.datetime:
    if isinstance(moment, int):
        moment = dt.datetime.fromtimestamp(moment, tz=dt.timezone.utc)
    return moment.astimezone(tz or dt.timezone.utc)


def format_weekday(moment: dt.datetime | int, tz: Optional[dt.tzinfo] = None) -> str:
    return _localize(moment, tz).strftime("%A")


def format_date(moment: dt.datetime | int, tz: Optional[dt.tzinfo] = None) -> str:
    """dd.MM.yyyy"""
    return _localize(moment, tz).strftime("%d.%m.%Y")


def format_short_date(moment: dt.datetime | int, tz: Optional[dt.tzinfo] = None) -> str:
    """dd.MM"""
    return _localize(moment, tz).strftime("%d.%m")


def format_clock_12h(moment: dt.datetime | int, tz: Optional[dt.tzinfo] = None) -> str:
    """h:mm AM/PM without a leading zero on the hour."""
    local = _localize(moment, tz)
    hour = local.hour % 12 or 12
    return f"{hour}:{local.minute:02d} {'AM' if local.hour < 12 else 'PM'}"


def format_clock_24h(moment: dt.datetime | int, tz: Optional[dt.tzinfo] = None) -> str:
    """H:mm without a leading zero on the hour."""
    local = _localize(moment, tz)
    return f"{local.hour}:{local.minute:02d}"
