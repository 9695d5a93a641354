"""HTTP API for the weather dashboard."""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator

from .app_types import DashboardState
from .config import settings
from .data_sources import ForecastFetchError, LocationNotFoundError, build_data_source
from .domain import ForecastFeed
from .forecast_service import DashboardView, dashboard_from_feed
from .session_manager import create_session, get_session, select_location, store_result
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="api")

router = APIRouter()
DATA_SOURCE = build_data_source(settings)


class CityDisplay(BaseModel):
    """City header and sun times (city-local H:mm)."""
    name: str
    country: str
    sunrise: str
    sunset: str


class ConditionsDisplay(BaseModel):
    """Detail-card strings for the current reading or one outlook day."""
    timestamp_utc: datetime
    weekday: str
    date: str
    short_date: str
    temperature: str
    feels_like: str
    temp_min: str
    temp_max: str
    humidity: str
    pressure: str
    visibility: str
    wind_speed: str
    description: str
    icon: str


class HourDisplay(BaseModel):
    """One slot of the hourly strip."""
    timestamp_utc: datetime
    time: str
    temperature: str
    icon: str


class DashboardResponse(BaseModel):
    """Everything the dashboard page renders for one location."""
    location: str
    has_data: bool
    city: CityDisplay
    current: ConditionsDisplay
    hourly: list[HourDisplay]
    daily: list[ConditionsDisplay]


class LocationRequest(BaseModel):
    """Free-text location query, e.g. "pune" or "London,GB"."""
    location: str = Field(min_length=1, max_length=100)

    @field_validator("location", mode="after")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("location must not be blank")
        return v


class StartRequest(BaseModel):
    """Optional initial location; the configured default is used when omitted."""
    location: Optional[str] = Field(default=None, max_length=100)


class SessionResponse(BaseModel):
    """Session id plus the dashboard for its selected location."""
    session_id: str
    location: str
    dashboard: DashboardResponse


def _to_response(view: DashboardView) -> DashboardResponse:
    return DashboardResponse(**view.to_display())


def _fetch_feed(location: str) -> ForecastFeed:
    """Fetch a forecast, translating fetch failures into HTTP errors the page can show."""
    try:
        return DATA_SOURCE.fetch_forecast(location, count=settings.forecast_count)
    except LocationNotFoundError as exc:
        logger.info("Unknown location requested", extra={"location": location})
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except ForecastFetchError as exc:
        logger.error("Forecast fetch failed", extra={"location": location, "error": str(exc)})
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Weather service unavailable: {exc}")


def _feed_is_fresh(feed: ForecastFeed | None) -> bool:
    """Check whether a stored forecast is within the TTL window."""
    if feed is None:
        return False
    age = datetime.now(tz=timezone.utc) - feed.fetched_at
    return age.total_seconds() < settings.conditions_ttl_seconds


def _require_session(session_id: str) -> DashboardState:
    state = get_session(session_id)
    if state is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown session ID")
    return state


def _fetch_for_generation(session_id: str, location: str, generation: int) -> ForecastFeed:
    """Fetch for a session's location and record it unless a newer selection won."""
    feed = _fetch_feed(location)
    if not store_result(session_id, generation, feed):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Location changed while the forecast was loading; showing the newer selection.",
        )
    return feed


def _session_response(session_id: str, location: str, feed: ForecastFeed) -> SessionResponse:
    view = dashboard_from_feed(feed, location=location, settings=settings)
    return SessionResponse(session_id=session_id, location=location, dashboard=_to_response(view))


@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard_for_location(location: Optional[str] = Query(default=None, max_length=100)):
    """One-shot dashboard for a location query (no session)."""
    query = (location or "").strip() or settings.default_location
    feed = _fetch_feed(query)
    return _to_response(dashboard_from_feed(feed, location=query, settings=settings))


@router.post("/session/start", response_model=SessionResponse)
def start_session(req: StartRequest | None = None):
    """Create a session for the requested (or default) location and load its forecast."""
    location = ((req.location if req else None) or "").strip() or settings.default_location
    session_id = create_session(location)
    logger.info("Started session", extra={"session_id": session_id, "location": location})
    feed = _fetch_for_generation(session_id, location, generation=0)
    return _session_response(session_id, location, feed)


@router.post("/session/{session_id}/location", response_model=SessionResponse)
def change_location(session_id: str, req: LocationRequest):
    """Select a new location; a fetch still running for the old one will be discarded."""
    _require_session(session_id)
    generation = select_location(session_id, req.location)
    if generation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown session ID")
    feed = _fetch_for_generation(session_id, req.location, generation)
    return _session_response(session_id, req.location, feed)


@router.get("/session/{session_id}/dashboard", response_model=SessionResponse)
def session_dashboard(session_id: str):
    """Render the session's location, refetching when the stored forecast is stale."""
    state = _require_session(session_id)
    feed = state.feed
    if not _feed_is_fresh(feed):
        feed = _fetch_for_generation(session_id, state.location, state.generation)
    return _session_response(session_id, state.location, feed)
