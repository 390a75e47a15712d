"""Core data models for skillkit-history.

These mirror the documents kept under ``<project>/.skillkit/``. Document keys
are camelCase; ``from_dict`` accepts a loaded document and ``to_dict``
produces one. Timestamps stay ISO strings so documents round-trip unchanged.
"""

from dataclasses import dataclass, field
from typing import Literal, Optional, Union

from .utils import timestamp_str

TaskStatus = Literal["pending", "in_progress", "completed", "failed", "paused"]
TaskType = Literal[
    "auto", "checkpoint:human-verify", "checkpoint:decision", "checkpoint:human-action"
]
ExecutionStatus = Literal["running", "paused", "completed", "failed"]
HistoryStatus = Literal["completed", "failed", "cancelled"]
ObservationType = Literal["error", "solution", "pattern"]

SCHEMA_VERSION = 1


def _str_list(value) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v is not None]


def _opt_str(value) -> Optional[str]:
    return None if value is None else str(value)


def _drop_none(data: dict) -> dict:
    return {k: v for k, v in data.items() if v is not None}


@dataclass
class SessionTask:
    """A single task within a skill execution.

    Status is assigned directly by callers; no transition table is enforced.
    """

    id: str
    name: str
    type: TaskType = "auto"
    status: TaskStatus = "pending"
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    error: Optional[str] = None
    output: Optional[str] = None
    files_modified: Optional[list[str]] = None
    commit_sha: Optional[str] = None

    @property
    def is_checkpoint(self) -> bool:
        return self.type.startswith("checkpoint:")

    @classmethod
    def from_dict(cls, data: dict) -> "SessionTask":
        files = data.get("filesModified")
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            type=data.get("type", "auto"),
            status=data.get("status", "pending"),
            started_at=timestamp_str(data["startedAt"]) if data.get("startedAt") else None,
            completed_at=timestamp_str(data["completedAt"]) if data.get("completedAt") else None,
            error=_opt_str(data.get("error")),
            output=_opt_str(data.get("output")),
            files_modified=_str_list(files) if files is not None else None,
            commit_sha=_opt_str(data.get("commitSha")),
        )

    def to_dict(self) -> dict:
        return _drop_none({
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "status": self.status,
            "startedAt": self.started_at,
            "completedAt": self.completed_at,
            "error": self.error,
            "output": self.output,
            "filesModified": list(self.files_modified) if self.files_modified is not None else None,
            "commitSha": self.commit_sha,
        })


@dataclass
class CurrentExecution:
    """The skill run in progress for a project (at most one)."""

    skill_name: str
    skill_source: str
    started_at: str
    status: ExecutionStatus = "running"
    current_step: int = 0
    total_steps: int = 0
    paused_at: Optional[str] = None
    tasks: list[SessionTask] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "CurrentExecution":
        tasks = data.get("tasks") or []
        return cls(
            skill_name=str(data.get("skillName", "")),
            skill_source=str(data.get("skillSource", "")),
            started_at=timestamp_str(data.get("startedAt")),
            status=data.get("status", "running"),
            current_step=int(data.get("currentStep") or 0),
            total_steps=int(data.get("totalSteps") or 0),
            paused_at=timestamp_str(data["pausedAt"]) if data.get("pausedAt") else None,
            tasks=[SessionTask.from_dict(t) for t in tasks if isinstance(t, dict)],
        )

    def to_dict(self) -> dict:
        return _drop_none({
            "skillName": self.skill_name,
            "skillSource": self.skill_source,
            "currentStep": self.current_step,
            "totalSteps": self.total_steps,
            "status": self.status,
            "startedAt": self.started_at,
            "pausedAt": self.paused_at,
            "tasks": [t.to_dict() for t in self.tasks],
        })


@dataclass
class ExecutionHistory:
    """Immutable record of a finished skill run."""

    skill_name: str
    skill_source: str
    completed_at: str
    duration_ms: float = 0
    status: HistoryStatus = "completed"
    commits: list[str] = field(default_factory=list)
    files_modified: list[str] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "ExecutionHistory":
        try:
            duration = data.get("durationMs") or 0
            duration = duration if isinstance(duration, (int, float)) else float(duration)
        except (TypeError, ValueError):
            duration = 0
        return cls(
            skill_name=str(data.get("skillName", "")),
            skill_source=str(data.get("skillSource", "")),
            completed_at=timestamp_str(data.get("completedAt")),
            duration_ms=duration,
            status=data.get("status", "completed"),
            commits=_str_list(data.get("commits")),
            files_modified=_str_list(data.get("filesModified")),
            error=_opt_str(data.get("error")),
        )

    def to_dict(self) -> dict:
        return _drop_none({
            "skillName": self.skill_name,
            "skillSource": self.skill_source,
            "completedAt": self.completed_at,
            "durationMs": self.duration_ms,
            "status": self.status,
            "commits": list(self.commits),
            "filesModified": list(self.files_modified),
            "error": self.error,
        })


@dataclass
class SessionDecision:
    key: str
    value: str
    made_at: str
    skill_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "SessionDecision":
        return cls(
            key=str(data.get("key", "")),
            value=str(data.get("value", "")),
            made_at=timestamp_str(data.get("madeAt")),
            skill_name=_opt_str(data.get("skillName")),
        )

    def to_dict(self) -> dict:
        return _drop_none({
            "key": self.key,
            "value": self.value,
            "madeAt": self.made_at,
            "skillName": self.skill_name,
        })


@dataclass
class SessionState:
    """Execution-tracking record for one project."""

    project_path: str
    last_activity: str
    version: int = SCHEMA_VERSION
    current_execution: Optional[CurrentExecution] = None
    history: list[ExecutionHistory] = field(default_factory=list)
    decisions: list[SessionDecision] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "SessionState":
        if not isinstance(data, dict):
            raise TypeError("session state must be a mapping")
        current = data.get("currentExecution")
        return cls(
            project_path=str(data.get("projectPath", "")),
            last_activity=timestamp_str(data.get("lastActivity")),
            version=int(data.get("version") or SCHEMA_VERSION),
            current_execution=CurrentExecution.from_dict(current) if isinstance(current, dict) else None,
            history=[
                ExecutionHistory.from_dict(h) for h in data.get("history") or [] if isinstance(h, dict)
            ],
            decisions=[
                SessionDecision.from_dict(d) for d in data.get("decisions") or [] if isinstance(d, dict)
            ],
        )

    def to_dict(self) -> dict:
        return _drop_none({
            "version": self.version,
            "lastActivity": self.last_activity,
            "projectPath": self.project_path,
            "currentExecution": self.current_execution.to_dict() if self.current_execution else None,
            "history": [h.to_dict() for h in self.history],
            "decisions": [d.to_dict() for d in self.decisions],
        })


@dataclass
class SkillActivity:
    """One git commit and the skills that were active when it was made."""

    commit_sha: str
    committed_at: str
    active_skills: list[str] = field(default_factory=list)
    files_changed: list[str] = field(default_factory=list)
    message: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "SkillActivity":
        return cls(
            commit_sha=str(data.get("commitSha", "")),
            committed_at=timestamp_str(data.get("committedAt")),
            active_skills=_str_list(data.get("activeSkills")),
            files_changed=_str_list(data.get("filesChanged")),
            message=str(data.get("message") or ""),
        )

    def to_dict(self) -> dict:
        return {
            "commitSha": self.commit_sha,
            "committedAt": self.committed_at,
            "activeSkills": list(self.active_skills),
            "filesChanged": list(self.files_changed),
            "message": self.message,
        }


@dataclass
class ActivityLogData:
    version: int = SCHEMA_VERSION
    activities: list[SkillActivity] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "activities": [a.to_dict() for a in self.activities],
        }


# ── Observations ─────────────────────────────────────────────────
# Content is a tagged variant chosen by the observation type.


@dataclass
class ErrorContent:
    action: str
    error: str
    context: str = ""
    files: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = {"action": self.action, "context": self.context, "error": self.error}
        if self.files:
            data["files"] = list(self.files)
        return data


@dataclass
class SolutionContent:
    action: str
    solution: str
    context: str = ""
    files: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = {"action": self.action, "context": self.context, "solution": self.solution}
        if self.files:
            data["files"] = list(self.files)
        return data


@dataclass
class PatternContent:
    action: str
    context: str = ""
    files: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = {"action": self.action, "context": self.context}
        if self.files:
            data["files"] = list(self.files)
        return data


ObservationContent = Union[ErrorContent, SolutionContent, PatternContent]

CONTENT_TYPES = {
    "error": ErrorContent,
    "solution": SolutionContent,
    "pattern": PatternContent,
}


def content_from_dict(obs_type: str, data: dict) -> ObservationContent:
    """Build the content variant for ``obs_type``.

    Raises ValueError for an unknown observation type.
    """
    if obs_type not in CONTENT_TYPES:
        raise ValueError(f"Unknown observation type: {obs_type!r}")
    data = data if isinstance(data, dict) else {}
    action = str(data.get("action") or "")
    context = str(data.get("context") or "")
    files = _str_list(data.get("files"))
    if obs_type == "error":
        return ErrorContent(action=action, error=str(data.get("error") or ""), context=context, files=files)
    if obs_type == "solution":
        return SolutionContent(
            action=action, solution=str(data.get("solution") or ""), context=context, files=files
        )
    return PatternContent(action=action, context=context, files=files)


@dataclass
class Observation:
    """An externally recorded error/solution/pattern note."""

    id: str
    timestamp: str
    session_id: str
    agent: str
    content: ObservationContent
    relevance: float = 0

    @property
    def type(self) -> ObservationType:
        if isinstance(self.content, ErrorContent):
            return "error"
        if isinstance(self.content, SolutionContent):
            return "solution"
        return "pattern"

    @classmethod
    def from_dict(cls, data: dict) -> "Observation":
        obs_type = data.get("type")
        relevance = data.get("relevance") or 0
        return cls(
            id=str(data.get("id", "")),
            timestamp=timestamp_str(data.get("timestamp")),
            session_id=str(data.get("sessionId", "")),
            agent=str(data.get("agent", "")),
            content=content_from_dict(obs_type, data.get("content")),
            relevance=relevance if isinstance(relevance, (int, float)) else float(relevance),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "sessionId": self.session_id,
            "agent": self.agent,
            "type": self.type,
            "content": self.content.to_dict(),
            "relevance": self.relevance,
        }


@dataclass
class SessionSnapshot:
    """A named, point-in-time copy of session state and observations."""

    name: str
    created_at: str
    session_state: SessionState
    observations: list[Observation] = field(default_factory=list)
    description: Optional[str] = None
    version: int = SCHEMA_VERSION

    def to_dict(self) -> dict:
        return _drop_none({
            "version": self.version,
            "name": self.name,
            "createdAt": self.created_at,
            "description": self.description,
            "sessionState": self.session_state.to_dict(),
            "observations": [o.to_dict() for o in self.observations],
        })


@dataclass
class GitCommit:
    """A commit as reported by ``git log``."""

    hash: str
    short_hash: str
    message: str
    date: str
    author: str = ""
    files: list[str] = field(default_factory=list)
