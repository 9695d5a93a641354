"""In-memory session store with TTL, intended for single-process servers and tests."""

import threading
import time
import uuid
from dataclasses import replace
from typing import Any, Optional

from weatherdash.app_types import DashboardState
from weatherdash.domain import ForecastFeed
from weatherdash.session_store.base import SessionStore

from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="session_store/in_memory_session_store")


class InMemorySessionStore(SessionStore):
    """Thread-safe, TTL-aware in-memory store."""

    def __init__(self, ttl_seconds: int = 3600, max_age_seconds: int | None = None) -> None:
        """Initialize the store with a TTL (seconds) and optional absolute max age."""
        logger.debug("Initializing InMemorySessionStore")
        self.ttl = ttl_seconds
        self.max_age = max_age_seconds
        self._sessions: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def _expired(self, exp: float, created_at: float) -> bool:
        now = time.monotonic()
        if exp < now:
            return True
        if self.max_age is None:
            return False
        return now - created_at > self.max_age

    def _next_expiry(self, created_at: float) -> float:
        next_exp = time.monotonic() + self.ttl
        if self.max_age is None:
            return next_exp
        return min(next_exp, created_at + self.max_age)

    def _live(self, session_id: str) -> Optional[dict[str, Any]]:
        """Return the live record (refreshing its TTL) or drop it if expired. Lock must be held."""
        data = self._sessions.get(session_id)
        if not data:
            return None
        if self._expired(data["exp"], data["created_at"]):
            self._sessions.pop(session_id, None)
            return None
        data["exp"] = self._next_expiry(data["created_at"])
        return data

    def create_session(self, location: str) -> str:
        with self._lock:
            sid = str(uuid.uuid4())
            created_at = time.monotonic()
            self._sessions[sid] = {
                "state": DashboardState(location=location),
                "created_at": created_at,
                "exp": self._next_expiry(created_at),
            }
            return sid

    def get_session(self, session_id: str) -> Optional[DashboardState]:
        with self._lock:
            data = self._live(session_id)
            # hand out a copy so callers cannot mutate stored state
            return replace(data["state"]) if data else None

    def select_location(self, session_id: str, location: str) -> Optional[int]:
        with self._lock:
            data = self._live(session_id)
            if not data:
                return None
            generation = data["state"].generation + 1
            data["state"] = DashboardState(location=location, generation=generation)
            return generation

    def store_result(self, session_id: str, generation: int, feed: ForecastFeed) -> bool:
        with self._lock:
            data = self._live(session_id)
            if not data:
                return False
            state: DashboardState = data["state"]
            if state.generation != generation:
                logger.info(
                    "Discarding superseded forecast",
                    extra={"session_id": session_id, "generation": generation, "current": state.generation},
                )
                return False
            data["state"] = replace(state, feed=feed)
            return True

    def delete_session(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()
