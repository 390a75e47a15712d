"""Skill lineage: which skills touched which files, via which commits.

Joins session history, the current execution, the activity log and the
observation store at read time. Nothing is cached; every build starts over.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from .activity import MAX_ACTIVITIES, ActivityLog
from .core import ErrorContent
from .observations import ObservationStore
from .session import SessionManager
from .utils import now_iso, parse_iso, utcnow

logger = logging.getLogger(__name__)

MAX_ERROR_PRONE_FILES = 5


@dataclass
class SkillLineageEntry:
    skill_name: str
    first_seen: str
    last_seen: str
    executions: int = 0
    total_duration_ms: float = 0
    commits: list[str] = field(default_factory=list)
    files_modified: list[str] = field(default_factory=list)
    observation_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "skillName": self.skill_name,
            "executions": self.executions,
            "totalDurationMs": self.total_duration_ms,
            "commits": list(self.commits),
            "filesModified": list(self.files_modified),
            "observationIds": list(self.observation_ids),
            "firstSeen": self.first_seen,
            "lastSeen": self.last_seen,
        }


@dataclass
class FileLineage:
    path: str
    skills: list[str] = field(default_factory=list)
    commit_count: int = 0
    last_modified: str = ""

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "skills": list(self.skills),
            "commitCount": self.commit_count,
            "lastModified": self.last_modified,
        }


@dataclass
class LineageStats:
    total_skill_executions: int = 0
    total_commits: int = 0
    total_files_changed: int = 0
    most_impactful_skill: Optional[str] = None
    most_changed_file: Optional[str] = None
    error_prone_files: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "totalSkillExecutions": self.total_skill_executions,
            "totalCommits": self.total_commits,
            "totalFilesChanged": self.total_files_changed,
            "mostImpactfulSkill": self.most_impactful_skill,
            "mostChangedFile": self.most_changed_file,
            "errorProneFiles": list(self.error_prone_files),
        }


@dataclass
class LineageData:
    project_path: str
    skills: list[SkillLineageEntry] = field(default_factory=list)
    files: list[FileLineage] = field(default_factory=list)
    stats: LineageStats = field(default_factory=LineageStats)

    def to_dict(self) -> dict:
        return {
            "projectPath": self.project_path,
            "skills": [s.to_dict() for s in self.skills],
            "files": [f.to_dict() for f in self.files],
            "stats": self.stats.to_dict(),
        }


def _dedupe(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


class _FileIndex:
    """Accumulates file -> skills, commit count and last-modified time."""

    def __init__(self):
        self.skills: dict[str, dict[str, None]] = {}
        self.commit_count: dict[str, int] = {}
        self.last_modified: dict[str, str] = {}

    def touch(self, path: str, skill: str, when: str, commits: int = 0) -> None:
        self.skills.setdefault(path, {})[skill] = None
        self.commit_count[path] = self.commit_count.get(path, 0) + commits
        existing = self.last_modified.get(path)
        if not existing:
            self.last_modified[path] = when
            return
        when_dt, existing_dt = parse_iso(when), parse_iso(existing)
        if when_dt is not None and (existing_dt is None or when_dt > existing_dt):
            self.last_modified[path] = when

    def build(self) -> list[FileLineage]:
        return [
            FileLineage(
                path=path,
                skills=list(skills),
                commit_count=self.commit_count.get(path, 0),
                last_modified=self.last_modified.get(path, ""),
            )
            for path, skills in self.skills.items()
        ]


class SkillLineage:
    """Lineage builder for one project."""

    def __init__(self, project_path):
        self.project_path = str(project_path)
        self.session_manager = SessionManager(project_path)
        self.activity_log = ActivityLog(project_path)

    def build(
        self,
        skill: str | None = None,
        file: str | None = None,
        limit: int | None = None,
        since: str | None = None,
    ) -> LineageData:
        state = self.session_manager.get()
        since_dt = parse_iso(since) if since else None
        if since and since_dt is None:
            logger.warning("Ignoring unparsable lineage since date: %r", since)

        def before_since(timestamp: str) -> bool:
            if since_dt is None:
                return False
            when = parse_iso(timestamp)
            return when is not None and when < since_dt

        entries: dict[str, SkillLineageEntry] = {}
        files = _FileIndex()

        # 1. Seed from history and the current execution
        for hist in state.history if state else []:
            if before_since(hist.completed_at):
                continue
            entry = entries.get(hist.skill_name)
            if entry is None:
                entry = SkillLineageEntry(
                    skill_name=hist.skill_name,
                    first_seen=hist.completed_at,
                    last_seen=hist.completed_at,
                )
                entries[hist.skill_name] = entry

            entry.executions += 1
            entry.total_duration_ms += hist.duration_ms
            entry.commits.extend(hist.commits)
            entry.files_modified.extend(hist.files_modified)
            self._widen(entry, hist.completed_at)

            for path in hist.files_modified:
                files.touch(path, hist.skill_name, hist.completed_at, commits=len(hist.commits))

        execution = state.current_execution if state else None
        if execution and not before_since(execution.started_at):
            entry = entries.get(execution.skill_name)
            if entry is None:
                entry = SkillLineageEntry(
                    skill_name=execution.skill_name,
                    first_seen=execution.started_at,
                    last_seen=execution.started_at,
                )
                entries[execution.skill_name] = entry

            entry.executions += 1
            started = parse_iso(execution.started_at)
            if started is not None:
                entry.total_duration_ms += (utcnow() - started).total_seconds() * 1000

            for task in execution.tasks:
                if task.commit_sha:
                    entry.commits.append(task.commit_sha)
                for path in task.files_modified or []:
                    entry.files_modified.append(path)
                    files.touch(
                        path, execution.skill_name, execution.started_at,
                        commits=1 if task.commit_sha else 0,
                    )

            self._widen(entry, execution.started_at)
            entry.last_seen = now_iso()

        # 2. Merge the activity log; each file counts once per commit
        for activity in self.activity_log.get_recent(MAX_ACTIVITIES):
            if before_since(activity.committed_at):
                continue
            counted: set[str] = set()
            for active_skill in activity.active_skills:
                entry = entries.get(active_skill)
                if entry is not None:
                    entry.commits.append(activity.commit_sha)
                for path in activity.files_changed:
                    files.touch(
                        path, active_skill, activity.committed_at,
                        commits=0 if path in counted else 1,
                    )
                    counted.add(path)

        # 3. Correlate observations by time window
        error_prone: list[str] = []
        for obs in ObservationStore.read_all(self.project_path):
            if before_since(obs.timestamp):
                continue
            obs_time = parse_iso(obs.timestamp)
            if obs_time is not None:
                for entry in entries.values():
                    start, end = parse_iso(entry.first_seen), parse_iso(entry.last_seen)
                    if start is None or end is None:
                        continue
                    if start <= obs_time <= end and obs.id not in entry.observation_ids:
                        entry.observation_ids.append(obs.id)
            if isinstance(obs.content, ErrorContent):
                error_prone.extend(obs.content.files)

        # 4. Dedupe
        for entry in entries.values():
            entry.commits = _dedupe(entry.commits)
            entry.files_modified = _dedupe(entry.files_modified)

        # 5. Filter, rank, limit
        skills = list(entries.values())
        file_entries = files.build()

        if skill:
            skills = [s for s in skills if s.skill_name == skill]
            skill_files = {f for s in skills for f in s.files_modified}
            file_entries = [f for f in file_entries if f.path in skill_files]

        if file:
            file_entries = [f for f in file_entries if f.path == file or file in f.path]
            file_skills = {name for f in file_entries for name in f.skills}
            skills = [s for s in skills if s.skill_name in file_skills]

        skills.sort(key=lambda s: len(s.files_modified), reverse=True)
        file_entries.sort(key=lambda f: (len(f.skills), f.commit_count), reverse=True)

        if limit:
            skills = skills[:limit]
            file_entries = file_entries[:limit]

        # 6. Summary
        stats = LineageStats(
            total_skill_executions=sum(s.executions for s in skills),
            total_commits=len({c for s in skills for c in s.commits}),
            total_files_changed=len({f for s in skills for f in s.files_modified}),
            most_impactful_skill=skills[0].skill_name if skills else None,
            most_changed_file=file_entries[0].path if file_entries else None,
            error_prone_files=_dedupe(error_prone)[:MAX_ERROR_PRONE_FILES],
        )
        return LineageData(
            project_path=self.project_path,
            skills=skills,
            files=file_entries,
            stats=stats,
        )

    def get_skill_lineage(self, skill_name: str) -> SkillLineageEntry | None:
        data = self.build(skill=skill_name)
        return next((s for s in data.skills if s.skill_name == skill_name), None)

    def get_file_lineage(self, file_path: str) -> FileLineage | None:
        data = self.build(file=file_path)
        return next((f for f in data.files if f.path == file_path or file_path in f.path), None)

    @staticmethod
    def _widen(entry: SkillLineageEntry, timestamp: str) -> None:
        """Extend the entry's [first_seen, last_seen] window to include timestamp."""
        when = parse_iso(timestamp)
        if when is None:
            return
        first = parse_iso(entry.first_seen)
        last = parse_iso(entry.last_seen)
        if first is None or when < first:
            entry.first_seen = timestamp
        if last is None or when > last:
            entry.last_seen = timestamp
