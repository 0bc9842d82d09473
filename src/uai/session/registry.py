"""
In-memory registry of open sessions.

The registry is the only writer for a session while it is open. Every
mutation is applied to the in-memory copy first and then persisted through
the store, so the file always holds the full, latest record.
"""

import threading
from typing import Optional

from uai.errors import NotFoundError
from uai.logger import get_logger
from uai.session.models import Role, Session, utcnow
from uai.session.stats import SessionStats, compute_stats
from uai.session.store import SessionStore

logger = get_logger(__name__)


class SessionRegistry:
    """Tracks open sessions and routes all mutations through the store."""

    def __init__(self, store: Optional[SessionStore] = None):
        self.store = store or SessionStore()
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def open(self, tool: str, project_path: str) -> str:
        """
        Create a session and keep it open in memory.

        Returns:
            The new session id.
        """
        with self._lock:
            session = self.store.create(tool, project_path)
            self._sessions[session.id] = session
        logger.info(f"Opened session {session.id} ({tool}, {project_path})")
        return session.id

    def append(self, session_id: str, role: Role, content: str) -> None:
        """
        Append a message to an open session and persist it.

        Raises:
            NotFoundError: If the session is not open in this registry.
            PersistenceError: If the write fails.
        """
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise NotFoundError(session_id)

            if not self.store.exists(session_id):
                # File removed while the session was open (e.g. a clear);
                # the next write re-creates it.
                logger.warning(f"Session file for {session_id} missing, re-creating")

            session.add_message(role, content)
            self.store.save(session)

    def close(self, session_id: str) -> None:
        """
        Set the end time, persist and forget the session. Unknown ids are ignored.

        Raises:
            PersistenceError: If the write fails; the session stays open so
                the close can be retried.
        """
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return
            if session.end_time is None:
                session.end_time = utcnow()
            self.store.save(session)
            del self._sessions[session_id]
        logger.info(f"Closed session {session_id}")

    def stats(self, session_id: str) -> SessionStats:
        """Stats from the persisted record; unknown ids give the zero value."""
        return compute_stats(self.store.read(session_id))

    def is_open(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    def open_ids(self) -> list[str]:
        with self._lock:
            return list(self._sessions)

    def get_open(self, session_id: str) -> Session:
        """
        Return the in-memory copy of an open session.

        Raises:
            NotFoundError: If the session is not open.
        """
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError(session_id)
        return session
