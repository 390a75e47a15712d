"""Commit-to-skill activity log (``.skillkit/activity.yaml``).

Newest entries first, capped at MAX_ACTIVITIES. The log is best-effort
telemetry: a missing or corrupt document reads as an empty log.
"""

import logging

from .config import get_activity_path, get_state_dir
from .core import ActivityLogData, SkillActivity
from .storage import DOCUMENT_ERRORS, read_document, write_document
from .utils import now_iso

logger = logging.getLogger(__name__)

MAX_ACTIVITIES = 500
MIN_PREFIX_LENGTH = 4


class ActivityLog:
    """Activity log for one project."""

    def __init__(self, project_path):
        self.project_path = str(project_path)
        self.file_path = get_activity_path(project_path)
        self._data: ActivityLogData | None = None

    def record(
        self,
        commit_sha: str,
        message: str,
        active_skills: list[str],
        files_changed: list[str],
    ) -> SkillActivity:
        """Prepend an activity for a new commit and rewrite the log."""
        data = self._load()
        activity = SkillActivity(
            commit_sha=commit_sha,
            committed_at=now_iso(),
            active_skills=list(active_skills),
            files_changed=list(files_changed),
            message=message,
        )
        data.activities.insert(0, activity)
        del data.activities[MAX_ACTIVITIES:]

        get_state_dir(self.project_path).mkdir(parents=True, exist_ok=True)
        write_document(self.file_path, data.to_dict())
        return activity

    def get_by_commit(self, sha: str) -> SkillActivity | None:
        """Find by exact SHA, or by prefix when at least 4 characters long."""
        for activity in self._load().activities:
            if activity.commit_sha == sha:
                return activity
            if len(sha) >= MIN_PREFIX_LENGTH and activity.commit_sha.startswith(sha):
                return activity
        return None

    def get_by_skill(self, skill_name: str) -> list[SkillActivity]:
        return [a for a in self._load().activities if skill_name in a.active_skills]

    def get_recent(self, limit: int = 20) -> list[SkillActivity]:
        return self._load().activities[:limit]

    def get_most_used_skills(self) -> list[tuple[str, int]]:
        """Return (skill, count) pairs, most used first; ties keep first-seen order."""
        counts: dict[str, int] = {}
        for activity in self._load().activities:
            for skill in activity.active_skills:
                counts[skill] = counts.get(skill, 0) + 1
        return sorted(counts.items(), key=lambda item: item[1], reverse=True)

    # ── Private helpers ──────────────────────────────────────────────

    def _load(self) -> ActivityLogData:
        if self._data is not None:
            return self._data

        self._data = ActivityLogData()
        if not self.file_path.exists():
            return self._data

        try:
            raw = read_document(self.file_path)
        except DOCUMENT_ERRORS as e:
            logger.warning("Failed to read activity log %s: %s", self.file_path, e)
            return self._data

        if not isinstance(raw, dict) or not isinstance(raw.get("activities"), list):
            logger.debug("Activity log %s has no activities list, treating as empty", self.file_path)
            return self._data

        activities = []
        for entry in raw["activities"]:
            if not isinstance(entry, dict):
                continue
            activity = SkillActivity.from_dict(entry)
            if activity.commit_sha:
                activities.append(activity)
        self._data = ActivityLogData(version=raw.get("version", 1), activities=activities)
        return self._data
