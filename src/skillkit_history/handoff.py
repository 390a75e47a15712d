"""Agent-to-agent handoff documents.

A handoff lets another agent (or a later session) pick up unfinished work:
what was done, what is pending, which files matter, what went wrong, and
what to do next. Rendering lives in ``export``; both the markdown and JSON
forms come from the same HandoffDocument.
"""

from dataclasses import dataclass, field
from typing import Optional

from .activity import ActivityLog
from .config import resolve_agent
from .core import ErrorContent, ExecutionHistory, PatternContent, SessionTask, SolutionContent
from .git import get_git_commits
from .observations import ObservationStore
from .session import SessionManager
from .utils import elapsed_ms, format_duration, is_today, now_iso

DEFAULT_MAX_OBSERVATIONS = 20
CHURN_WINDOW = 50
CHURN_THRESHOLD = 3
MAX_CHURN_FILES = 3
_PENDING_STATUSES = {"pending", "in_progress", "paused"}


@dataclass
class HandoffTask:
    name: str
    duration: Optional[str] = None
    commit_sha: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"name": self.name}
        if self.duration is not None:
            data["duration"] = self.duration
        if self.commit_sha is not None:
            data["commitSha"] = self.commit_sha
        return data


@dataclass
class HandoffCommit:
    sha: str
    message: str
    files_count: int

    def to_dict(self) -> dict:
        return {"sha": self.sha, "message": self.message, "filesCount": self.files_count}


@dataclass
class HandoffSection:
    tasks: list[HandoffTask] = field(default_factory=list)
    commits: list[HandoffCommit] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "tasks": [t.to_dict() for t in self.tasks],
            "commits": [c.to_dict() for c in self.commits],
        }


@dataclass
class KeyFile:
    path: str
    change_type: str  # "modified" | "in-progress"

    def to_dict(self) -> dict:
        return {"path": self.path, "changeType": self.change_type}


@dataclass
class HandoffObservations:
    errors: list[ErrorContent] = field(default_factory=list)
    solutions: list[SolutionContent] = field(default_factory=list)
    patterns: list[PatternContent] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "errors": [{"action": e.action, "error": e.error} for e in self.errors],
            "solutions": [{"action": s.action, "solution": s.solution} for s in self.solutions],
            "patterns": [{"action": p.action, "context": p.context} for p in self.patterns],
        }

    def __bool__(self) -> bool:
        return bool(self.errors or self.solutions or self.patterns)


@dataclass
class HandoffDocument:
    generated_at: str
    from_agent: str
    project_path: str
    accomplished: HandoffSection = field(default_factory=HandoffSection)
    pending: HandoffSection = field(default_factory=HandoffSection)
    key_files: list[KeyFile] = field(default_factory=list)
    observations: HandoffObservations = field(default_factory=HandoffObservations)
    recommendations: list[str] = field(default_factory=list)
    to_agent: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "generatedAt": self.generated_at,
            "fromAgent": self.from_agent,
            "projectPath": self.project_path,
            "accomplished": self.accomplished.to_dict(),
            "pending": self.pending.to_dict(),
            "keyFiles": [f.to_dict() for f in self.key_files],
            "observations": self.observations.to_dict(),
            "recommendations": list(self.recommendations),
        }
        if self.to_agent:
            data["toAgent"] = self.to_agent
        return data


class SessionHandoff:
    """Handoff builder for one project."""

    def __init__(self, project_path):
        self.project_path = str(project_path)
        self.session_manager = SessionManager(project_path)
        self.activity_log = ActivityLog(project_path)

    def generate(
        self,
        target_agent: str | None = None,
        include_git: bool = True,
        include_observations: bool = True,
        max_observations: int = DEFAULT_MAX_OBSERVATIONS,
    ) -> HandoffDocument:
        state = self.session_manager.get()
        execution = state.current_execution if state else None
        tasks = execution.tasks if execution else []
        history = state.history if state else []

        pending = self._build_pending(tasks)
        observations = (
            self._build_observations(max_observations)
            if include_observations
            else HandoffObservations()
        )

        return HandoffDocument(
            generated_at=now_iso(),
            from_agent=resolve_agent(self.project_path, execution.skill_source if execution else None),
            to_agent=target_agent,
            project_path=self.project_path,
            accomplished=self._build_accomplished(tasks, history, include_git),
            pending=pending,
            key_files=self._build_key_files(tasks, history),
            observations=observations,
            recommendations=self._build_recommendations(pending, observations, include_git),
        )

    # ── Sections ─────────────────────────────────────────────────────

    def _build_accomplished(
        self,
        tasks: list[SessionTask],
        history: list[ExecutionHistory],
        include_git: bool,
    ) -> HandoffSection:
        section = HandoffSection()

        for task in tasks:
            if task.status != "completed":
                continue
            duration = None
            if task.started_at and task.completed_at:
                ms = elapsed_ms(task.started_at, task.completed_at)
                if ms is not None:
                    duration = format_duration(ms)
            section.tasks.append(HandoffTask(name=task.name, duration=duration, commit_sha=task.commit_sha))

        for hist in history:
            if hist.status != "completed":
                continue
            section.tasks.append(HandoffTask(
                name=hist.skill_name,
                duration=format_duration(hist.duration_ms),
                commit_sha=hist.commits[0] if hist.commits else None,
            ))

        if include_git:
            for commit in get_git_commits(self.project_path, commits=CHURN_WINDOW):
                if is_today(commit.date):
                    section.commits.append(HandoffCommit(
                        sha=commit.short_hash,
                        message=commit.message,
                        files_count=len(commit.files),
                    ))

        return section

    def _build_pending(self, tasks: list[SessionTask]) -> HandoffSection:
        return HandoffSection(
            tasks=[HandoffTask(name=t.name) for t in tasks if t.status in _PENDING_STATUSES]
        )

    def _build_key_files(
        self,
        tasks: list[SessionTask],
        history: list[ExecutionHistory],
    ) -> list[KeyFile]:
        change_types: dict[str, str] = {}
        for task in tasks:
            for path in task.files_modified or []:
                change_types[path] = "modified" if task.status == "completed" else "in-progress"

        for hist in history:
            for path in hist.files_modified:
                change_types.setdefault(path, "modified")

        return [KeyFile(path=path, change_type=kind) for path, kind in sorted(change_types.items())]

    def _build_observations(self, max_observations: int) -> HandoffObservations:
        """Take the most relevant observations, sharing one budget across buckets."""
        result = HandoffObservations()
        ranked = sorted(
            ObservationStore.read_all(self.project_path),
            key=lambda o: o.relevance,
            reverse=True,
        )

        count = 0
        for obs in ranked:
            if count >= max_observations:
                break
            content = obs.content
            if isinstance(content, ErrorContent) and content.error:
                result.errors.append(content)
            elif isinstance(content, SolutionContent) and content.solution:
                result.solutions.append(content)
            elif isinstance(content, PatternContent) and content.context:
                result.patterns.append(content)
            else:
                continue
            count += 1

        return result

    def _build_recommendations(
        self,
        pending: HandoffSection,
        observations: HandoffObservations,
        include_git: bool,
    ) -> list[str]:
        recommendations = []

        if pending.tasks:
            names = ", ".join(t.name for t in pending.tasks)
            recommendations.append(f"Complete pending tasks: {names}")

        solved = {s.action for s in observations.solutions}
        unresolved = [e for e in observations.errors if e.action not in solved]
        if unresolved:
            recommendations.append(f"Resolve {len(unresolved)} unresolved error(s)")

        if include_git:
            counts: dict[str, int] = {}
            for activity in self.activity_log.get_recent(CHURN_WINDOW):
                for path in activity.files_changed:
                    counts[path] = counts.get(path, 0) + 1
            churn = sorted(
                ((path, n) for path, n in counts.items() if n >= CHURN_THRESHOLD),
                key=lambda item: item[1],
                reverse=True,
            )
            for path, n in churn[:MAX_CHURN_FILES]:
                recommendations.append(f"Review high-churn file: {path} ({n} changes)")

        return recommendations
