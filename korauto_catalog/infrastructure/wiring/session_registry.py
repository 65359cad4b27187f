"""In-memory registry of live catalog sessions."""

from typing import Callable, Optional
from uuid import uuid4

from korauto_catalog.application.use_cases.catalog_session import CatalogSession
from korauto_catalog.domain.errors import SessionNotFound

SessionFactory = Callable[[str], CatalogSession]


class SessionRegistry:
    """Create, look up and close catalog sessions by identifier."""

    def __init__(self, session_factory: SessionFactory) -> None:
        """
        Initialize registry.

        Args:
            session_factory: Builds an unstarted session for a given identifier
        """
        self._session_factory = session_factory
        self._sessions: dict[str, CatalogSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self, session_id: Optional[str] = None) -> CatalogSession:
        """
        Create and register a new session.

        Args:
            session_id: Optional identifier (a UUID is generated otherwise)

        Returns:
            Newly created, unstarted session
        """
        session_id = session_id or str(uuid4())
        existing = self._sessions.pop(session_id, None)
        if existing is not None:
            existing.close()
        session = self._session_factory(session_id)
        self._sessions[session_id] = session
        return session

    def get(self, session_id: str) -> CatalogSession:
        """
        Look up a live session.

        Raises:
            SessionNotFound: If no session has this identifier
        """
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def remove(self, session_id: str) -> None:
        """
        Close and forget a session.

        Raises:
            SessionNotFound: If no session has this identifier
        """
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFound(session_id)
        session.close()

    def close_all(self) -> None:
        """Close every live session."""
        for session in self._sessions.values():
            session.close()
        self._sessions.clear()
