"""Read/add access to the memory subsystem's observation document.

Only the contract matters here: ``read_all`` for the view builders and
``add`` for snapshot restore. Stored at ``.skillkit/memory/observations.yaml``
as ``{version, sessionId, observations: [...]}``.
"""

import logging
import uuid

from .config import get_observations_path
from .core import CONTENT_TYPES, SCHEMA_VERSION, Observation, ObservationContent, content_from_dict
from .storage import DOCUMENT_ERRORS, read_document, write_document
from .utils import now_iso

logger = logging.getLogger(__name__)


class ObservationStore:
    """Observation document for one project."""

    def __init__(self, project_path):
        self.project_path = str(project_path)
        self.file_path = get_observations_path(project_path)

    @staticmethod
    def read_all(project_path) -> list[Observation]:
        """Return every well-formed observation; absence or corruption yields []."""
        path = get_observations_path(project_path)
        if not path.exists():
            return []

        try:
            data = read_document(path)
        except DOCUMENT_ERRORS as e:
            logger.warning("Failed to read observations %s: %s", path, e)
            return []

        raw = data.get("observations") if isinstance(data, dict) else None
        if not isinstance(raw, list):
            return []

        observations = []
        for entry in raw:
            if not isinstance(entry, dict):
                continue
            try:
                observations.append(Observation.from_dict(entry))
            except (ValueError, TypeError) as e:
                logger.debug("Skipping malformed observation in %s: %s", path, e)
        return observations

    def add(
        self,
        obs_type: str,
        content: ObservationContent | dict,
        agent: str,
        relevance: float = 50,
    ) -> Observation:
        """Append an observation and rewrite the document."""
        if isinstance(content, dict):
            content = content_from_dict(obs_type, content)
        elif not isinstance(content, CONTENT_TYPES.get(obs_type, ())):
            raise ValueError(f"Content does not match observation type {obs_type!r}")

        document = self._load_document()
        observation = Observation(
            id=str(uuid.uuid4()),
            timestamp=now_iso(),
            session_id=document["sessionId"],
            agent=agent,
            content=content,
            relevance=relevance,
        )
        document["observations"].append(observation.to_dict())
        write_document(self.file_path, document)
        return observation

    def _load_document(self) -> dict:
        document = None
        if self.file_path.exists():
            try:
                document = read_document(self.file_path)
            except DOCUMENT_ERRORS as e:
                logger.warning("Replacing unreadable observations %s: %s", self.file_path, e)

        if not isinstance(document, dict):
            document = {}
        if not isinstance(document.get("observations"), list):
            document["observations"] = []
        document.setdefault("version", SCHEMA_VERSION)
        document.setdefault("sessionId", str(uuid.uuid4()))
        return document
