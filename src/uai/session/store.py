"""
File-backed session store.

One JSON file per session at ``{base_dir}/{session_id}.json``. Every mutation
rewrites the whole record; there is no incremental diffing.
"""

import os
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from uai.config import SESSION_DIR
from uai.errors import NotFoundError, PersistenceError
from uai.logger import get_logger
from uai.session.models import Session

logger = get_logger(__name__)

SESSION_SUFFIX = ".json"


class SessionStore:
    """CRUD over a directory of session files."""

    def __init__(self, base_dir: Optional[str] = None):
        self.base_dir = Path(base_dir or str(SESSION_DIR))
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create session directory {self.base_dir}: {e}")

    def _path(self, session_id: str) -> Path:
        # Ids are UUIDs, but never let a crafted id escape the directory
        safe_id = session_id.replace("/", "-").replace("\\", "-")
        return self.base_dir / f"{safe_id}{SESSION_SUFFIX}"

    def create(self, tool: str, project_path: str) -> Session:
        """
        Create and persist a new, empty session.

        Args:
            tool: Provider tag (e.g. "claude-code")
            project_path: Working directory the session ran in

        Returns:
            The new in-memory session.
        """
        session = Session(tool=tool, project_path=project_path)
        while self._path(session.id).exists():
            session = Session(tool=tool, project_path=project_path)
        self.save(session)
        logger.debug(f"Created session {session.id} for {tool}")
        return session

    def save(self, session: Session) -> None:
        """
        Overwrite the stored record with the full session.

        Raises:
            PersistenceError: If the file cannot be written.
        """
        path = self._path(session.id)
        tmp = path.with_suffix(path.suffix + ".tmp")
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
            tmp.write_text(session.to_json(), encoding="utf-8")
            os.replace(tmp, path)
        except OSError as e:
            raise PersistenceError(f"Failed to save session {session.id}: {e}") from e

    def read(self, session_id: str) -> Optional[Session]:
        """Load a session from disk; missing or corrupt records read as None."""
        path = self._path(session_id)
        if not path.exists():
            return None
        try:
            return Session.from_json(path.read_text(encoding="utf-8"))
        except (OSError, ValueError, ValidationError) as e:
            logger.debug(f"Unreadable session file {path}: {e}")
            return None

    def get(self, session_id: str) -> Session:
        """
        Load a session for an explicit lookup.

        Raises:
            NotFoundError: If there is no such file.
            PersistenceError: If the file exists but cannot be parsed.
        """
        path = self._path(session_id)
        if not path.exists():
            raise NotFoundError(session_id, where="store")
        try:
            return Session.from_json(path.read_text(encoding="utf-8"))
        except (OSError, ValueError, ValidationError) as e:
            raise PersistenceError(f"Failed to read session {session_id}: {e}") from e

    def list(self) -> list[Session]:
        """All readable sessions, newest first."""
        sessions = []
        for path in self.base_dir.glob(f"*{SESSION_SUFFIX}"):
            session = self.read(path.stem)
            if session:
                sessions.append(session)
        sessions.sort(key=lambda s: s.start_time, reverse=True)
        return sessions

    def exists(self, session_id: str) -> bool:
        return self._path(session_id).exists()

    def delete_all(self) -> int:
        """
        Remove every persisted session.

        Returns:
            Number of files removed.

        Raises:
            PersistenceError: If a file cannot be removed.
        """
        removed = 0
        for path in self.base_dir.glob(f"*{SESSION_SUFFIX}"):
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as e:
                raise PersistenceError(f"Failed to delete {path.name}: {e}") from e
            removed += 1
        logger.info(f"Deleted {removed} session files from {self.base_dir}")
        return removed
