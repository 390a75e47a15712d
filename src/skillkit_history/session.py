"""Session state persistence for one project (``.skillkit/session.yaml``)."""

import logging

from .config import get_session_path
from .core import SessionState
from .storage import DOCUMENT_ERRORS, read_document, write_document
from .utils import now_iso

logger = logging.getLogger(__name__)


class SessionManager:
    """Loads and saves the session document.

    A missing or corrupt document reads as no session; reads never raise.
    """

    def __init__(self, project_path):
        self.project_path = str(project_path)
        self.file_path = get_session_path(project_path)
        self._state: SessionState | None = None

    def get(self) -> SessionState | None:
        if self._state is not None:
            return self._state
        if not self.file_path.exists():
            return None

        try:
            data = read_document(self.file_path)
            if not isinstance(data, dict):
                logger.warning("Session document %s is not a mapping, ignoring", self.file_path)
                return None
            self._state = SessionState.from_dict(data)
        except (*DOCUMENT_ERRORS, TypeError, ValueError) as e:
            logger.warning("Failed to read session %s: %s", self.file_path, e)
            return None
        return self._state

    def get_or_create(self) -> SessionState:
        state = self.get()
        if state is None:
            state = SessionState(project_path=self.project_path, last_activity=now_iso())
            self._state = state
        return state

    def save(self) -> None:
        """Write the loaded (or created) state back as a whole document."""
        state = self.get_or_create()
        state.last_activity = now_iso()
        write_document(self.file_path, state.to_dict())

    def get_history(self, limit: int = 10):
        """Return the most recent history entries, newest first."""
        state = self.get()
        if state is None:
            return []
        return list(reversed(state.history))[:limit]
