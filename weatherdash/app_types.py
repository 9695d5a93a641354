"""Shared dataclasses and lightweight types used across modules."""

from dataclasses import dataclass
from typing import Optional

from weatherdash.domain import ForecastFeed


@dataclass
class DashboardState:
    """Per-session dashboard state: the selected location and its latest forecast.

    ``generation`` increases on every location change; a fetch started for an
    older generation may not overwrite ``feed``.
    """
    location: str
    generation: int = 0
    feed: Optional[ForecastFeed] = None
