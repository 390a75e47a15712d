"""Narrative summary of a project's session for a single human reader."""

from dataclasses import dataclass, field
from typing import Optional

from .config import resolve_agent
from .git import get_git_commits
from .observations import ObservationStore
from .session import SessionManager
from .utils import elapsed_ms, format_duration, is_today, now_iso, today

GIT_COMMIT_LIMIT = 50


@dataclass
class ObservationCounts:
    errors: int = 0
    solutions: int = 0
    patterns: int = 0
    total: int = 0

    def to_dict(self) -> dict:
        return {
            "errors": self.errors,
            "solutions": self.solutions,
            "patterns": self.patterns,
            "total": self.total,
        }


@dataclass
class SessionExplanation:
    date: str
    agent: str = "unknown"
    duration: Optional[str] = None
    skills_used: list[dict] = field(default_factory=list)  # {"name", "status"}
    tasks: list[dict] = field(default_factory=list)  # {"name", "status", "duration"?}
    files_modified: list[str] = field(default_factory=list)
    decisions: list[dict] = field(default_factory=list)  # {"key", "value"}
    observation_counts: ObservationCounts = field(default_factory=ObservationCounts)
    git_commits: int = 0

    def to_dict(self) -> dict:
        data = {
            "date": self.date,
            "agent": self.agent,
            "skillsUsed": [dict(s) for s in self.skills_used],
            "tasks": [dict(t) for t in self.tasks],
            "filesModified": list(self.files_modified),
            "decisions": [dict(d) for d in self.decisions],
            "observationCounts": self.observation_counts.to_dict(),
            "gitCommits": self.git_commits,
        }
        if self.duration is not None:
            data["duration"] = self.duration
        return data


class SessionExplainer:
    """Session explainer for one project."""

    def __init__(self, project_path):
        self.project_path = str(project_path)
        self.session_manager = SessionManager(project_path)

    def explain(self, include_git: bool = True) -> SessionExplanation:
        explanation = SessionExplanation(date=today())

        state = self.session_manager.get()
        if state is None:
            return explanation

        execution = state.current_execution
        explanation.agent = resolve_agent(
            self.project_path, execution.skill_source if execution else None
        )

        files: list[str] = []
        if execution:
            ms = elapsed_ms(execution.started_at, now_iso())
            if ms is not None:
                explanation.duration = format_duration(ms)
            explanation.skills_used.append({"name": execution.skill_name, "status": execution.status})

            for task in execution.tasks:
                entry = {"name": task.name, "status": task.status}
                if task.started_at and task.completed_at:
                    task_ms = elapsed_ms(task.started_at, task.completed_at)
                    if task_ms is not None:
                        entry["duration"] = format_duration(task_ms)
                explanation.tasks.append(entry)
                files.extend(task.files_modified or [])

        for hist in state.history:
            if not any(s["name"] == hist.skill_name for s in explanation.skills_used):
                explanation.skills_used.append({"name": hist.skill_name, "status": hist.status})
            files.extend(hist.files_modified)

        explanation.files_modified = list(dict.fromkeys(files))
        explanation.decisions = [{"key": d.key, "value": d.value} for d in state.decisions]

        observations = ObservationStore.read_all(self.project_path)
        explanation.observation_counts = ObservationCounts(
            errors=sum(1 for o in observations if o.type == "error"),
            solutions=sum(1 for o in observations if o.type == "solution"),
            patterns=sum(1 for o in observations if o.type == "pattern"),
            total=len(observations),
        )

        if include_git:
            commits = get_git_commits(self.project_path, commits=GIT_COMMIT_LIMIT)
            explanation.git_commits = sum(1 for c in commits if is_today(c.date))

        return explanation
