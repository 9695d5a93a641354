"""Session manager facade over pluggable backends.

A session owns one piece of dashboard state: the selected location and the
forecast last fetched for it. Handlers receive that state through these
functions instead of sharing a global.
"""
from typing import Optional

import redis

from weatherdash.app_types import DashboardState
from weatherdash.config import settings
from weatherdash.domain import ForecastFeed
from weatherdash.session_store import InMemorySessionStore, RedisSessionStore, SessionStore
from utils.logging_utils import get_tagged_logger, mask_url_secrets

logger = get_tagged_logger(__name__, tag="session_manager")


def _init_store() -> SessionStore:
    """Initialize the backing session store based on configuration."""
    if settings.session_redis_url:
        masked = mask_url_secrets(settings.session_redis_url)
        try:
            client = redis.Redis.from_url(settings.session_redis_url)
            client.ping()
            logger.info("Using RedisSessionStore", extra={"redis_url": masked})
            return RedisSessionStore(client, ttl_seconds=settings.session_ttl_seconds)
        except (redis.RedisError, ValueError) as exc:
            logger.warning("Falling back to InMemorySessionStore (Redis unavailable)",
                           extra={"redis_url": masked, "error": str(exc)})
    return InMemorySessionStore(ttl_seconds=settings.session_ttl_seconds)


_store: SessionStore = _init_store()


def use_in_memory_store_for_tests(ttl_seconds: int = 3600) -> None:
    """Override store for tests to ensure isolation and determinism."""
    global _store
    _store = InMemorySessionStore(ttl_seconds=ttl_seconds)


def create_session(location: str) -> str:
    """Create a session for ``location``, returning its ID."""
    return _store.create_session(location)


def get_session(session_id: str) -> Optional[DashboardState]:
    """Fetch a session's state by ID, refreshing TTL if applicable."""
    return _store.get_session(session_id)


def select_location(session_id: str, location: str) -> Optional[int]:
    """Point a session at a new location; returns the generation to fetch for."""
    generation = _store.select_location(session_id, location)
    if generation is not None:
        logger.debug("Location selected", extra={"session_id": session_id, "generation": generation})
    return generation


def store_result(session_id: str, generation: int, feed: ForecastFeed) -> bool:
    """Record a fetched forecast unless a newer location has been selected since."""
    return _store.store_result(session_id, generation, feed)


def delete_session(session_id: str):
    """Delete a session by ID."""
    return _store.delete_session(session_id)


def clear_sessions():
    """Clear all sessions from the backing store (dev/testing)."""
    return _store.clear()
