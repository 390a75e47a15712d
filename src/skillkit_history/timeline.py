"""Unified, chronologically ordered event feed for a project."""

import logging
from dataclasses import dataclass, field
from typing import Literal, Optional, get_args

from .activity import ActivityLog
from .git import get_git_commits
from .observations import ObservationStore
from .session import SessionManager
from .snapshots import SnapshotManager
from .utils import format_duration, parse_iso, sort_key, today

logger = logging.getLogger(__name__)

TimelineEventType = Literal[
    "skill_start", "skill_complete", "task_progress",
    "git_commit", "observation", "decision", "snapshot",
]

EVENT_TYPES: tuple[str, ...] = get_args(TimelineEventType)

DEFAULT_LIMIT = 50
GIT_COMMIT_LIMIT = 50
_ACTIVE_TASK_STATUSES = {"in_progress", "completed", "failed"}


def _on_or_after(timestamp: str, since) -> bool:
    when = parse_iso(timestamp)
    return when is not None and when >= since


@dataclass
class TimelineEvent:
    timestamp: str
    type: TimelineEventType
    source: str  # skill name, agent name, "git", "snapshot" or "user"
    summary: str
    details: Optional[dict] = None

    def to_dict(self) -> dict:
        data = {
            "timestamp": self.timestamp,
            "type": self.type,
            "source": self.source,
            "summary": self.summary,
        }
        if self.details is not None:
            data["details"] = self.details
        return data


@dataclass
class TimelineData:
    project_path: str
    session_date: str
    events: list[TimelineEvent] = field(default_factory=list)
    total_count: int = 0

    def to_dict(self) -> dict:
        return {
            "projectPath": self.project_path,
            "sessionDate": self.session_date,
            "events": [e.to_dict() for e in self.events],
            "totalCount": self.total_count,
        }


class SessionTimeline:
    """Timeline builder for one project."""

    def __init__(self, project_path):
        self.project_path = str(project_path)
        self.session_manager = SessionManager(project_path)
        self.activity_log = ActivityLog(project_path)
        self.snapshot_manager = SnapshotManager(project_path)

    def build(
        self,
        since: str | None = None,
        types: list[str] | None = None,
        limit: int | None = DEFAULT_LIMIT,
        skill_filter: str | None = None,
        include_git: bool = True,
    ) -> TimelineData:
        """Collect, filter and sort events, keeping the most recent ``limit``.

        ``total_count`` is the number of events that passed the filters
        before the limit was applied. An unparsable ``since`` yields an
        empty timeline.
        """
        if limit is None or limit <= 0:
            limit = DEFAULT_LIMIT

        since_dt = None
        if since:
            since_dt = parse_iso(since)
            if since_dt is None:
                logger.debug("Invalid since date %r, returning empty timeline", since)
                return TimelineData(project_path=self.project_path, session_date=today())

        events = self._collect(since, include_git)

        if since_dt is not None:
            events = [e for e in events if _on_or_after(e.timestamp, since_dt)]

        if types:
            wanted = set(types)
            events = [e for e in events if e.type in wanted]

        if skill_filter:
            events = [
                e for e in events
                if skill_filter in e.source
                or skill_filter in ((e.details or {}).get("skills") or [])
            ]

        events.sort(key=lambda e: sort_key(e.timestamp))

        return TimelineData(
            project_path=self.project_path,
            session_date=today(),
            events=events[-limit:],
            total_count=len(events),
        )

    # ── Event sources ────────────────────────────────────────────────

    def _collect(self, since: str | None, include_git: bool) -> list[TimelineEvent]:
        events: list[TimelineEvent] = []
        state = self.session_manager.get()

        if state and state.current_execution:
            execution = state.current_execution
            events.append(TimelineEvent(
                timestamp=execution.started_at,
                type="skill_start",
                source=execution.skill_name,
                summary=f"{execution.skill_name} started",
                details={"status": execution.status, "totalSteps": execution.total_steps},
            ))

            for task in execution.tasks:
                if not task.started_at or task.status not in _ACTIVE_TASK_STATUSES:
                    continue
                details = {"taskId": task.id}
                if task.error:
                    details["error"] = task.error
                events.append(TimelineEvent(
                    timestamp=task.completed_at or task.started_at,
                    type="task_progress",
                    source=execution.skill_name,
                    summary=f"{task.name} ({task.status})",
                    details=details,
                ))

        for hist in state.history if state else []:
            events.append(TimelineEvent(
                timestamp=hist.completed_at,
                type="skill_complete",
                source=hist.skill_name,
                summary=f"{hist.skill_name} {hist.status} ({format_duration(hist.duration_ms)})",
                details={
                    "durationMs": hist.duration_ms,
                    "commits": list(hist.commits),
                    "filesModified": list(hist.files_modified),
                },
            ))

        if include_git:
            events.extend(self._git_events(since))

        for obs in ObservationStore.read_all(self.project_path):
            events.append(TimelineEvent(
                timestamp=obs.timestamp,
                type="observation",
                source=obs.agent,
                summary=f"{obs.type}: {obs.content.action or 'unknown'}",
                details={"observationId": obs.id, **obs.content.to_dict()},
            ))

        for decision in state.decisions if state else []:
            events.append(TimelineEvent(
                timestamp=decision.made_at,
                type="decision",
                source=decision.skill_name or "user",
                summary=f"{decision.key} → {decision.value}",
            ))

        for snap in self.snapshot_manager.list():
            summary = f"snapshot: {snap.name}"
            if snap.description:
                summary += f" - {snap.description}"
            events.append(TimelineEvent(
                timestamp=snap.created_at,
                type="snapshot",
                source="snapshot",
                summary=summary,
                details={"skillCount": snap.skill_count},
            ))

        return events

    def _git_events(self, since: str | None) -> list[TimelineEvent]:
        events = []
        for commit in get_git_commits(self.project_path, commits=GIT_COMMIT_LIMIT, since=since):
            activity = self.activity_log.get_by_commit(commit.short_hash)
            skills = activity.active_skills if activity else []
            details = {"sha": commit.hash, "author": commit.author}
            if activity:
                details["skills"] = list(skills)
            events.append(TimelineEvent(
                timestamp=commit.date,
                type="git_commit",
                source=", ".join(skills) if skills else "git",
                summary=f"{commit.short_hash} - {commit.message} ({len(commit.files)} files)",
                details=details,
            ))
        return events
