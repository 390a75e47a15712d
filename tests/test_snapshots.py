"""Tests for session snapshots."""

import pytest
import yaml

from skillkit_history.core import ErrorContent, Observation, SessionState
from skillkit_history.observations import ObservationStore
from skillkit_history.session import SessionManager
from skillkit_history.snapshots import (
    InvalidSnapshotNameError,
    SnapshotInvalidError,
    SnapshotManager,
    SnapshotNotFoundError,
    SnapshotReadError,
    restore_session,
)

from conftest import observation, session_state, write_observations, write_session, write_snapshot


@pytest.fixture
def state(project, running_execution, lineage_history):
    return SessionState.from_dict(session_state(
        project,
        currentExecution=running_execution,
        history=lineage_history,
        decisions=[{"key": "db", "value": "postgres", "madeAt": "2026-02-12T11:00:00.000Z"}],
    ))


@pytest.fixture
def observations():
    return [
        Observation.from_dict(observation(
            "o1", "error", "2026-02-12T10:30:00.000Z", relevance=80,
            error="Type mismatch", files=["src/a.ts"],
        )),
        Observation.from_dict(observation(
            "o2", "solution", "2026-02-12T10:40:00.000Z", solution="Cast explicitly",
        )),
    ]


@pytest.mark.parametrize("name", ["../etc/passwd", "my snapshot", "a/b", "", "name\n", "snap.yaml"])
def test_invalid_names_rejected_before_filesystem(project, state, name):
    manager = SnapshotManager(project)

    with pytest.raises(InvalidSnapshotNameError):
        manager.save(name, state, [])
    with pytest.raises(InvalidSnapshotNameError):
        manager.restore(name)
    with pytest.raises(InvalidSnapshotNameError):
        manager.delete(name)
    with pytest.raises(InvalidSnapshotNameError):
        manager.exists(name)

    assert not (project / ".skillkit").exists()


def test_invalid_name_is_a_value_error(project):
    with pytest.raises(ValueError):
        SnapshotManager(project).get("bad name")


def test_safe_name_accepted(project):
    assert SnapshotManager(project).exists("a-b_2") is False


def test_save_writes_document(project, state, observations):
    snapshot = SnapshotManager(project).save("before-refactor", state, observations, "Before refactor")

    path = project / ".skillkit" / "snapshots" / "before-refactor.yaml"
    data = yaml.safe_load(path.read_text())
    assert data["name"] == "before-refactor"
    assert data["description"] == "Before refactor"
    assert data["createdAt"] == snapshot.created_at
    assert data["sessionState"]["currentExecution"]["skillName"] == "test-skill"
    assert [o["id"] for o in data["observations"]] == ["o1", "o2"]


def test_save_then_restore_returns_equal_state(project, state, observations):
    manager = SnapshotManager(project)
    manager.save("snap_1", state, observations)

    restored_state, restored_obs = manager.restore("snap_1")

    assert restored_state == state
    assert restored_obs == observations
    assert manager.exists("snap_1")


def test_save_overwrites_existing(project, state):
    manager = SnapshotManager(project)
    manager.save("dup", state, [], "first")
    manager.save("dup", state, [], "second")

    infos = manager.list()
    assert len(infos) == 1
    assert infos[0].description == "second"


def test_restore_missing(project):
    with pytest.raises(SnapshotNotFoundError):
        SnapshotManager(project).restore("nope")


def test_restore_unparsable(project):
    path = project / ".skillkit" / "snapshots" / "broken.yaml"
    path.parent.mkdir(parents=True)
    path.write_text("sessionState: {unclosed\n")

    with pytest.raises(SnapshotReadError):
        SnapshotManager(project).restore("broken")


@pytest.mark.parametrize("document", [
    {"name": "bad", "createdAt": "2026-02-12T10:00:00.000Z", "observations": []},
    {"name": "bad", "createdAt": "2026-02-12T10:00:00.000Z", "sessionState": {}, "observations": "x"},
    {"name": "bad", "createdAt": "2026-02-12T10:00:00.000Z", "sessionState": "x", "observations": []},
])
def test_restore_invalid_structure(project, document):
    write_snapshot(project, document)

    with pytest.raises(SnapshotInvalidError):
        SnapshotManager(project).restore("bad")


def test_list_sorted_newest_first(project):
    write_snapshot(project, {
        "name": "old", "createdAt": "2026-02-10T10:00:00.000Z",
        "sessionState": {"history": [{"skillName": "a"}]}, "observations": [],
    })
    write_snapshot(project, {
        "name": "new", "createdAt": "2026-02-12T10:00:00.000Z", "description": "latest",
        "sessionState": {"history": [{"skillName": "a"}, {"skillName": "b"}]}, "observations": [],
    })

    infos = SnapshotManager(project).list()

    assert [i.name for i in infos] == ["new", "old"]
    assert infos[0].skill_count == 2
    assert infos[0].description == "latest"
    assert infos[1].skill_count == 1
    assert infos[1].description is None


def test_list_skips_unreadable_and_incomplete(project):
    write_snapshot(project, {
        "name": "good", "createdAt": "2026-02-12T10:00:00.000Z",
        "sessionState": {}, "observations": [],
    })
    write_snapshot(project, {"name": "undated", "sessionState": {}, "observations": []})
    (project / ".skillkit" / "snapshots" / "garbage.yaml").write_text("{not yaml")
    (project / ".skillkit" / "snapshots" / "notes.txt").write_text("ignored")

    assert [i.name for i in SnapshotManager(project).list()] == ["good"]


def test_list_without_directory(project):
    assert SnapshotManager(project).list() == []


def test_get(project, state, observations):
    manager = SnapshotManager(project)
    manager.save("full", state, observations, "desc")

    snapshot = manager.get("full")
    assert snapshot.name == "full"
    assert snapshot.description == "desc"
    assert snapshot.session_state == state
    assert len(snapshot.observations) == 2

    assert manager.get("absent") is None


def test_delete(project, state):
    manager = SnapshotManager(project)
    manager.save("gone", state, [])

    assert manager.delete("gone") is True
    assert not manager.exists("gone")
    assert manager.delete("gone") is False


def test_snapshot_leaves_live_state_untouched(project, state, observations):
    write_session(project, state.to_dict())
    before = (project / ".skillkit" / "session.yaml").read_text()

    manager = SnapshotManager(project)
    manager.save("check", state, observations)
    manager.restore("check")

    assert (project / ".skillkit" / "session.yaml").read_text() == before


def test_restore_session_replaces_state_and_adds_observations(project, state, observations):
    SnapshotManager(project).save("checkpoint", state, observations)

    # the live session has moved on since the snapshot
    write_session(project, session_state(
        project,
        history=[],
        decisions=[{"key": "db", "value": "sqlite", "madeAt": "2026-02-13T09:00:00.000Z"}],
    ))
    write_observations(project, [
        observation("live", "pattern", "2026-02-13T09:00:00.000Z", context="keep me"),
    ])

    restore_session(project, "checkpoint")

    live = SessionManager(project).get()
    assert live.current_execution == state.current_execution
    assert live.history == state.history
    assert live.decisions[0].value == "postgres"
    assert live.project_path == str(project)

    restored = ObservationStore.read_all(project)
    assert [o.id for o in restored][0] == "live"
    assert len(restored) == 3
    error = next(o for o in restored if o.type == "error")
    assert error.content == ErrorContent(action="action-o1", error="Type mismatch", files=["src/a.ts"])
    assert error.relevance == 80
    # re-added observations get fresh identities
    assert {o.id for o in restored[1:]}.isdisjoint({"o1", "o2"})


def test_restore_session_missing_snapshot(project):
    with pytest.raises(SnapshotNotFoundError):
        restore_session(project, "missing")
    assert not (project / ".skillkit" / "session.yaml").exists()
