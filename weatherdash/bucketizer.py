"""Turn a flat 3-hourly forecast into a "now" sample and a per-day outlook.

All functions are pure and expect ``samples`` sorted ascending by
``timestamp_unix`` (the feed delivers them that way and nothing here
re-sorts). Dates and hours are taken in UTC.
"""
from __future__ import annotations

import datetime as dt
from typing import List, Optional, Sequence, Tuple

from weatherdash.domain import DailyBucket, ForecastSample

DEFAULT_REFERENCE_HOUR = 6


class NoDataError(LookupError):
    """Raised when a forecast has no samples to show."""


def _check_reference_hour(reference_hour: int) -> None:
    if isinstance(reference_hour, bool) or not isinstance(reference_hour, int) or not 0 <= reference_hour <= 23:
        raise ValueError(f"reference_hour must be an integer hour between 0 and 23, got {reference_hour!r}")


def current_conditions(samples: Sequence[ForecastSample]) -> ForecastSample:
    """Return the first sample, which stands for current conditions."""
    if not samples:
        raise NoDataError("forecast contains no samples")
    return samples[0]


def unique_calendar_dates(samples: Sequence[ForecastSample]) -> Tuple[dt.date, ...]:
    """
    Distinct UTC dates in first-seen order.

    Order follows the input, not a sort; for time-ordered input that is
    ascending.
    """
    seen = set()
    dates: List[dt.date] = []
    for sample in samples:
        date = sample.calendar_date
        if date not in seen:
            seen.add(date)
            dates.append(date)
    return tuple(dates)


def representative_sample_for_date(
    samples: Sequence[ForecastSample],
    date: dt.date,
    reference_hour: int = DEFAULT_REFERENCE_HOUR,
) -> Optional[ForecastSample]:
    """
    First sample on ``date`` at or after ``reference_hour``, or None.

    A 06:00 cut-off skips the pre-dawn readings of a feed that starts at
    midnight. A final partial day whose samples all fall before the cut-off
    yields None.
    """
    _check_reference_hour(reference_hour)
    for sample in samples:
        if sample.calendar_date == date and sample.hour_of_day >= reference_hour:
            return sample
    return None


def build_daily_forecast(
    samples: Sequence[ForecastSample],
    reference_hour: int = DEFAULT_REFERENCE_HOUR,
) -> Tuple[Optional[DailyBucket], ...]:
    """
    One entry per unique date, aligned with ``unique_calendar_dates``.

    Dates without a qualifying sample map to None. The first date is kept
    even though current conditions already show it.
    """
    _check_reference_hour(reference_hour)
    buckets: List[Optional[DailyBucket]] = []
    for date in unique_calendar_dates(samples):
        sample = representative_sample_for_date(samples, date, reference_hour)
        buckets.append(DailyBucket(date=date, representative_sample=sample) if sample else None)
    return tuple(buckets)


def nearest_sample_for_date(
    samples: Sequence[ForecastSample],
    date: dt.date,
    reference_hour: int = DEFAULT_REFERENCE_HOUR,
) -> Optional[ForecastSample]:
    """Sample on ``date`` whose hour is closest to ``reference_hour``; earliest wins ties."""
    _check_reference_hour(reference_hour)
    best: Optional[ForecastSample] = None
    for sample in samples:
        if sample.calendar_date != date:
            continue
        if best is None or abs(sample.hour_of_day - reference_hour) < abs(best.hour_of_day - reference_hour):
            best = sample
    return best
