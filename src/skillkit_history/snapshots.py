"""Named, point-in-time snapshots of session state and observations.

Each snapshot is one document at ``.skillkit/snapshots/<name>.yaml``. Names
are restricted to ``[A-Za-z0-9_-]+`` and checked before any filesystem
access, so a crafted name cannot escape the snapshots directory.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config import get_snapshots_dir
from .core import Observation, SessionSnapshot, SessionState
from .observations import ObservationStore
from .session import SessionManager
from .storage import DOCUMENT_ERRORS, read_document, write_document
from .utils import now_iso, sort_key, timestamp_str

logger = logging.getLogger(__name__)

SAFE_NAME_RE = re.compile(r"[A-Za-z0-9_-]+")
SNAPSHOT_SUFFIX = ".yaml"


class SnapshotError(Exception):
    """Base class for snapshot failures."""


class InvalidSnapshotNameError(SnapshotError, ValueError):
    def __init__(self, name):
        super().__init__(
            f'Invalid snapshot name: "{name}". Use only letters, numbers, hyphens, and underscores.'
        )
        self.name = name


class SnapshotNotFoundError(SnapshotError, LookupError):
    def __init__(self, name: str):
        super().__init__(f'Snapshot "{name}" not found')
        self.name = name


class SnapshotReadError(SnapshotError):
    """The snapshot document could not be read or parsed."""


class SnapshotInvalidError(SnapshotError):
    """The snapshot parsed but lacks session state or observations."""


@dataclass
class SnapshotInfo:
    """Listing entry for a stored snapshot."""

    name: str
    created_at: str
    skill_count: int
    description: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"name": self.name, "createdAt": self.created_at, "skillCount": self.skill_count}
        if self.description is not None:
            data["description"] = self.description
        return data


class SnapshotManager:
    """Snapshot store for one project."""

    def __init__(self, project_path):
        self.project_path = str(project_path)
        self.snapshots_dir = get_snapshots_dir(project_path)

    def save(
        self,
        name: str,
        session_state: SessionState,
        observations: list[Observation],
        description: str | None = None,
    ) -> SessionSnapshot:
        """Write a snapshot, replacing any existing one with the same name."""
        path = self._path(name)
        snapshot = SessionSnapshot(
            name=name,
            created_at=now_iso(),
            session_state=session_state,
            observations=list(observations),
            description=description,
        )
        write_document(path, snapshot.to_dict())
        logger.debug("Saved snapshot %s", path)
        return snapshot

    def restore(self, name: str) -> tuple[SessionState, list[Observation]]:
        """Load a snapshot's session state and observations.

        The snapshot file is left untouched.
        """
        path = self._path(name)
        if not path.exists():
            raise SnapshotNotFoundError(name)

        try:
            data = read_document(path)
        except DOCUMENT_ERRORS as e:
            raise SnapshotReadError(f'Failed to read snapshot "{name}": {e}') from e

        if (
            not isinstance(data, dict)
            or not isinstance(data.get("sessionState"), dict)
            or not isinstance(data.get("observations"), list)
        ):
            raise SnapshotInvalidError(f'Snapshot "{name}" is corrupted or invalid')

        try:
            state = SessionState.from_dict(data["sessionState"])
            observations = [Observation.from_dict(o) for o in data["observations"]]
        except (TypeError, ValueError, AttributeError) as e:
            raise SnapshotInvalidError(f'Snapshot "{name}" is corrupted or invalid: {e}') from e
        return state, observations

    def list(self) -> list[SnapshotInfo]:
        """List readable snapshots, newest first."""
        if not self.snapshots_dir.is_dir():
            return []

        snapshots = []
        for path in self.snapshots_dir.glob(f"*{SNAPSHOT_SUFFIX}"):
            try:
                data = read_document(path)
            except DOCUMENT_ERRORS as e:
                logger.debug("Skipping unreadable snapshot %s: %s", path, e)
                continue
            if not isinstance(data, dict) or not data.get("createdAt"):
                continue

            state = data.get("sessionState")
            history = state.get("history") if isinstance(state, dict) else None
            description = data.get("description")
            snapshots.append(SnapshotInfo(
                name=str(data.get("name") or path.stem),
                created_at=timestamp_str(data["createdAt"]),
                skill_count=len(history) if isinstance(history, list) else 0,
                description=str(description) if description is not None else None,
            ))

        snapshots.sort(key=lambda s: sort_key(s.created_at), reverse=True)
        return snapshots

    def get(self, name: str) -> SessionSnapshot | None:
        path = self._path(name)
        if not path.exists():
            return None

        try:
            data = read_document(path)
            state, observations = self.restore(name)
        except (*DOCUMENT_ERRORS, SnapshotError) as e:
            logger.debug("Snapshot %s unavailable: %s", path, e)
            return None

        description = data.get("description")
        return SessionSnapshot(
            name=str(data.get("name") or name),
            created_at=timestamp_str(data.get("createdAt")),
            session_state=state,
            observations=observations,
            description=str(description) if description is not None else None,
            version=data.get("version", 1),
        )

    def delete(self, name: str) -> bool:
        path = self._path(name)
        if not path.exists():
            return False
        path.unlink()
        return True

    def exists(self, name: str) -> bool:
        return self._path(name).exists()

    def _path(self, name: str) -> Path:
        if not isinstance(name, str) or not SAFE_NAME_RE.fullmatch(name):
            raise InvalidSnapshotNameError(name)
        return self.snapshots_dir / f"{name}{SNAPSHOT_SUFFIX}"


def restore_session(project_path, name: str) -> SessionState:
    """Apply a snapshot to the project's live session and observation store.

    The session's execution, history and decisions are replaced. Observations
    are re-added afterwards; a failure there is logged and leaves the
    restored session in place.
    """
    state, observations = SnapshotManager(project_path).restore(name)

    manager = SessionManager(project_path)
    current = manager.get_or_create()
    current.current_execution = state.current_execution
    current.history = state.history
    current.decisions = state.decisions
    manager.save()

    store = ObservationStore(project_path)
    try:
        for obs in observations:
            store.add(obs.type, obs.content, obs.agent, obs.relevance)
    except OSError as e:
        logger.warning("Restored session %s but failed to restore observations: %s", name, e)
    return current
