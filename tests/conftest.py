"""Shared test fixtures for skillkit-history."""

import pytest
import yaml

from skillkit_history.core import GitCommit
from skillkit_history.utils import now_iso


def write_yaml(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")


def write_session(project, state: dict):
    write_yaml(project / ".skillkit" / "session.yaml", state)


def write_observations(project, observations: list[dict]):
    write_yaml(
        project / ".skillkit" / "memory" / "observations.yaml",
        {"version": 1, "sessionId": "test-session", "observations": observations},
    )


def write_activity(project, activities: list[dict]):
    write_yaml(project / ".skillkit" / "activity.yaml", {"version": 1, "activities": activities})


def write_snapshot(project, snapshot: dict):
    write_yaml(project / ".skillkit" / "snapshots" / f"{snapshot['name']}.yaml", snapshot)


def session_state(project, **overrides) -> dict:
    state = {
        "version": 1,
        "lastActivity": "2026-02-12T12:00:00.000Z",
        "projectPath": str(project),
        "history": [],
        "decisions": [],
    }
    state.update(overrides)
    return state


def observation(obs_id, obs_type, timestamp, relevance=50, agent="claude-code", **content) -> dict:
    content.setdefault("action", f"action-{obs_id}")
    return {
        "id": obs_id,
        "timestamp": timestamp,
        "sessionId": "test-session",
        "agent": agent,
        "type": obs_type,
        "content": content,
        "relevance": relevance,
    }


@pytest.fixture
def project(tmp_path):
    """An empty project directory with no .skillkit state."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def running_execution():
    """A current execution with two completed tasks and one pending task."""
    return {
        "skillName": "test-skill",
        "skillSource": "claude-code",
        "currentStep": 2,
        "totalSteps": 3,
        "status": "running",
        "startedAt": "2026-02-12T10:00:00.000Z",
        "tasks": [
            {
                "id": "t1",
                "name": "Setup project",
                "type": "auto",
                "status": "completed",
                "startedAt": "2026-02-12T10:00:00.000Z",
                "completedAt": "2026-02-12T10:03:00.000Z",
                "commitSha": "abc1234",
                "filesModified": ["package.json"],
            },
            {
                "id": "t2",
                "name": "Write tests",
                "type": "auto",
                "status": "completed",
                "startedAt": "2026-02-12T10:03:00.000Z",
                "filesModified": ["src/index.test.ts"],
            },
            {
                "id": "t3",
                "name": "Deploy",
                "type": "checkpoint:human-verify",
                "status": "pending",
                "filesModified": ["deploy.yaml"],
            },
        ],
    }


@pytest.fixture
def lineage_history():
    """Three finished runs across two skills."""
    return [
        {
            "skillName": "code-simplifier",
            "skillSource": "claude-code",
            "completedAt": "2026-02-10T10:00:00.000Z",
            "durationMs": 120000,
            "status": "completed",
            "commits": ["abc1234", "def5678"],
            "filesModified": ["src/index.ts", "src/utils.ts"],
        },
        {
            "skillName": "code-simplifier",
            "skillSource": "claude-code",
            "completedAt": "2026-02-11T10:00:00.000Z",
            "durationMs": 60000,
            "status": "completed",
            "commits": ["ghi9012"],
            "filesModified": ["src/index.ts"],
        },
        {
            "skillName": "pro-workflow",
            "skillSource": "claude-code",
            "completedAt": "2026-02-12T10:00:00.000Z",
            "durationMs": 180000,
            "status": "completed",
            "commits": ["jkl3456"],
            "filesModified": ["src/index.ts", "README.md"],
        },
    ]


@pytest.fixture
def git_commits():
    """Two commits made 'today' and one made long ago."""
    now = now_iso()
    return [
        GitCommit(
            hash="aaaa1111bbbb2222",
            short_hash="aaaa111",
            message="Add parser",
            date=now,
            author="Dev",
            files=["src/parser.ts", "src/index.ts"],
        ),
        GitCommit(
            hash="cccc3333dddd4444",
            short_hash="cccc333",
            message="Fix lint",
            date=now,
            author="Dev",
            files=["src/index.ts"],
        ),
        GitCommit(
            hash="eeee5555ffff6666",
            short_hash="eeee555",
            message="Initial commit",
            date="2020-01-01T09:00:00+00:00",
            author="Dev",
            files=["README.md"],
        ),
    ]


@pytest.fixture(autouse=True)
def no_config_agent(monkeypatch):
    """Keep the developer's environment out of agent resolution."""
    monkeypatch.delenv("SKILLKIT_AGENT", raising=False)
    monkeypatch.delenv("SKILLKIT_PROJECT", raising=False)
