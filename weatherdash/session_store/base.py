"""Shared protocol for dashboard session backends."""

from typing import Optional, Protocol

from weatherdash.app_types import DashboardState
from weatherdash.domain import ForecastFeed


class SessionStore(Protocol):
    """Protocol for session storage backends."""
    def create_session(self, location: str) -> str:
        """Persist a new session for ``location`` and return its id."""

    def get_session(self, session_id: str) -> Optional[DashboardState]:
        """Fetch a session by id, returning None if missing or expired."""

    def select_location(self, session_id: str, location: str) -> Optional[int]:
        """Switch the session to ``location``; return the new generation or None if missing."""

    def store_result(self, session_id: str, generation: int, feed: ForecastFeed) -> bool:
        """Save ``feed`` if ``generation`` is still current; return whether it was kept."""

    def delete_session(self, session_id: str) -> None:
        """Delete a session without raising if it is absent."""

    def clear(self) -> None:
        """Clear all stored sessions."""
