"""Redis-backed session store with TTL."""

import json
import time
import uuid
from dataclasses import asdict
from datetime import datetime
from typing import Optional

from weatherdash.app_types import DashboardState
from weatherdash.domain import CityInfo, ForecastFeed, ForecastSample, WeatherCondition
from weatherdash.session_store.base import SessionStore
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="session_store/redis_session_store")


class RedisSessionStore(SessionStore):
    """Redis-backed sessions with TTL, stored as JSON.

    The generation check in ``store_result`` is read-then-write, so it only
    orders writers that share this process.
    """

    def __init__(
        self,
        client,
        ttl_seconds: int = 3600,
        max_age_seconds: int | None = None,
        prefix: str = "weatherdash:session:",
    ) -> None:
        """Initialize with a Redis client, TTL, and optional absolute max age."""
        logger.debug("Initializing RedisSessionStore")
        self.client = client
        self.ttl = ttl_seconds
        self.max_age = max_age_seconds
        self.prefix = prefix

    def _key(self, session_id: str) -> str:
        return f"{self.prefix}{session_id}"

    def _ttl_remaining(self, created_at: float) -> int:
        """Return TTL seconds capped by absolute max age."""
        if self.max_age is None:
            return self.ttl
        remaining = int(max(0.0, (created_at + self.max_age) - time.time()))
        return min(self.ttl, remaining)

    def _is_expired(self, created_at: float) -> bool:
        if self.max_age is None:
            return False
        return (time.time() - created_at) > self.max_age

    @staticmethod
    def _serialize_feed(feed: ForecastFeed | None) -> dict | None:
        if feed is None:
            return None
        data = asdict(feed)
        data["fetched_at"] = feed.fetched_at.isoformat()
        return data

    @staticmethod
    def _deserialize_feed(data: dict | None) -> ForecastFeed | None:
        if not data:
            return None
        samples = []
        for item in data.get("samples") or []:
            weather = WeatherCondition(**item.pop("weather"))
            samples.append(ForecastSample(weather=weather, **item))
        return ForecastFeed(
            samples=tuple(samples),
            city=CityInfo(**data["city"]),
            count=data.get("count", len(samples)),
            fetched_at=datetime.fromisoformat(data["fetched_at"]),
        )

    def _dump(self, state: DashboardState, *, created_at: float) -> bytes:
        return json.dumps(
            {
                "location": state.location,
                "generation": state.generation,
                "feed": self._serialize_feed(state.feed),
                "created_at": created_at,
            }
        ).encode("utf-8")

    def _load(self, raw: bytes) -> Optional[tuple[DashboardState, float]]:
        """Deserialize JSON bytes into state and created_at; None if unreadable."""
        try:
            data = json.loads(raw.decode("utf-8"))
            state = DashboardState(
                location=data["location"],
                generation=int(data.get("generation", 0)),
                feed=self._deserialize_feed(data.get("feed")),
            )
            return state, float(data.get("created_at") or time.time())
        except (ValueError, KeyError, TypeError) as exc:
            logger.error("Failed to deserialize session payload: %s", exc)
            return None

    def _read(self, session_id: str) -> Optional[tuple[DashboardState, float]]:
        raw = self.client.get(self._key(session_id))
        if not raw:
            return None
        loaded = self._load(raw)
        if not loaded:
            return None
        if self._is_expired(loaded[1]):
            self.delete_session(session_id)
            return None
        return loaded

    def _write(self, session_id: str, state: DashboardState, created_at: float) -> bool:
        ttl = self._ttl_remaining(created_at)
        if ttl <= 0:
            self.delete_session(session_id)
            return False
        self.client.setex(self._key(session_id), ttl, self._dump(state, created_at=created_at))
        return True

    def create_session(self, location: str) -> str:
        sid = str(uuid.uuid4())
        created_at = time.time()
        if not self._write(sid, DashboardState(location=location), created_at):
            raise RuntimeError("Session max age expired before storage")
        return sid

    def get_session(self, session_id: str) -> Optional[DashboardState]:
        loaded = self._read(session_id)
        if not loaded:
            return None
        state, created_at = loaded
        ttl = self._ttl_remaining(created_at)
        if ttl > 0:
            self.client.expire(self._key(session_id), ttl)
        return state

    def select_location(self, session_id: str, location: str) -> Optional[int]:
        loaded = self._read(session_id)
        if not loaded:
            return None
        state, created_at = loaded
        generation = state.generation + 1
        if not self._write(session_id, DashboardState(location=location, generation=generation), created_at):
            return None
        return generation

    def store_result(self, session_id: str, generation: int, feed: ForecastFeed) -> bool:
        loaded = self._read(session_id)
        if not loaded:
            return False
        state, created_at = loaded
        if state.generation != generation:
            logger.info(
                "Discarding superseded forecast",
                extra={"session_id": session_id, "generation": generation, "current": state.generation},
            )
            return False
        state.feed = feed
        return self._write(session_id, state, created_at)

    def delete_session(self, session_id: str) -> None:
        self.client.delete(self._key(session_id))

    def clear(self) -> None:
        """Clear every session under the configured prefix."""
        for key in self.client.scan_iter(f"{self.prefix}*"):
            self.client.delete(key)
