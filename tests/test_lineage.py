"""Tests for skill lineage."""

from skillkit_history.lineage import SkillLineage

from conftest import observation, session_state, write_activity, write_observations, write_session


def _history(skill, completed_at, commits, files, duration=60000, status="completed"):
    return {
        "skillName": skill,
        "skillSource": "claude-code",
        "completedAt": completed_at,
        "durationMs": duration,
        "status": status,
        "commits": commits,
        "filesModified": files,
    }


def test_empty_project(project):
    data = SkillLineage(project).build()

    assert data.skills == []
    assert data.files == []
    assert data.stats.total_skill_executions == 0
    assert data.stats.total_commits == 0
    assert data.stats.most_impactful_skill is None
    assert data.stats.most_changed_file is None
    assert data.to_dict()["stats"]["errorProneFiles"] == []


def test_history_aggregates_per_skill(project, lineage_history):
    write_session(project, session_state(project, history=lineage_history))

    data = SkillLineage(project).build()

    assert len(data.skills) == 2
    simplifier = next(s for s in data.skills if s.skill_name == "code-simplifier")
    assert simplifier.executions == 2
    assert simplifier.total_duration_ms == 180000
    assert len(simplifier.commits) == 3
    assert simplifier.files_modified == ["src/index.ts", "src/utils.ts"]
    assert simplifier.first_seen == "2026-02-10T10:00:00.000Z"
    assert simplifier.last_seen == "2026-02-11T10:00:00.000Z"

    assert data.stats.total_skill_executions == 3
    assert data.stats.total_commits == 4
    assert data.stats.total_files_changed == 3


def test_file_lineage_from_history(project, lineage_history):
    write_session(project, session_state(project, history=lineage_history))

    data = SkillLineage(project).build()

    index = next(f for f in data.files if f.path == "src/index.ts")
    assert index.skills == ["code-simplifier", "pro-workflow"]
    # one per commit in each run that touched it: 2 + 1 + 1
    assert index.commit_count == 4
    assert index.last_modified == "2026-02-12T10:00:00.000Z"
    assert data.stats.most_changed_file == "src/index.ts"


def test_skills_ranked_by_files_touched(project):
    write_session(project, session_state(project, history=[
        _history("narrow", "2026-02-10T10:00:00.000Z", ["c1"], ["a.ts"]),
        _history("wide", "2026-02-10T11:00:00.000Z", ["c2"], ["a.ts", "b.ts", "c.ts"]),
    ]))

    data = SkillLineage(project).build()

    assert [s.skill_name for s in data.skills] == ["wide", "narrow"]
    assert data.stats.most_impactful_skill == "wide"


def test_files_ranked_by_skills_then_commits(project):
    write_session(project, session_state(project, history=[
        _history("one", "2026-02-10T10:00:00.000Z", ["c1"], ["y.ts", "x.ts"]),
        _history("two", "2026-02-10T11:00:00.000Z", ["c2", "c3"], ["y.ts", "x.ts"]),
        _history("one", "2026-02-10T12:00:00.000Z", ["c4"], ["x.ts", "solo.ts"]),
    ]))

    data = SkillLineage(project).build()

    assert [f.path for f in data.files] == ["x.ts", "y.ts", "solo.ts"]
    assert data.files[0].commit_count == 4
    assert data.files[1].commit_count == 3


def test_dedup_across_history_and_current_execution(project):
    write_session(project, session_state(
        project,
        history=[_history("tdd", "2026-02-10T10:00:00.000Z", ["abc1234"], ["src/a.ts"])],
        currentExecution={
            "skillName": "tdd",
            "skillSource": "claude-code",
            "startedAt": "2026-02-11T10:00:00.000Z",
            "status": "running",
            "tasks": [
                {"id": "t1", "name": "Red", "status": "completed",
                 "commitSha": "abc1234", "filesModified": ["src/a.ts", "src/b.ts"]},
            ],
        },
    ))

    data = SkillLineage(project).build()

    entry = data.skills[0]
    assert entry.executions == 2
    assert entry.commits == ["abc1234"]
    assert entry.files_modified == ["src/a.ts", "src/b.ts"]
    # the current execution runs until now
    assert entry.last_seen > "2026-02-11T10:00:00.000Z"


def test_activity_log_merged(project):
    write_session(project, session_state(project, history=[
        _history("tdd", "2026-02-10T10:00:00.000Z", ["c1"], ["src/a.ts"]),
    ]))
    write_activity(project, [{
        "commitSha": "feed1234",
        "committedAt": "2026-02-10T09:00:00.000Z",
        "activeSkills": ["tdd", "review"],
        "filesChanged": ["src/a.ts", "docs/guide.md"],
        "message": "wip",
    }])

    data = SkillLineage(project).build()

    tdd = data.skills[0]
    assert tdd.commits == ["c1", "feed1234"]
    # activity alone never creates a skill entry
    assert [s.skill_name for s in data.skills] == ["tdd"]

    by_path = {f.path: f for f in data.files}
    assert by_path["src/a.ts"].skills == ["tdd", "review"]
    # one from history, one for the commit (not one per active skill)
    assert by_path["src/a.ts"].commit_count == 2
    assert by_path["docs/guide.md"].commit_count == 1
    # history entry is newer than the commit
    assert by_path["src/a.ts"].last_modified == "2026-02-10T10:00:00.000Z"


def test_observations_correlated_by_time_window(project):
    write_session(project, session_state(project, history=[
        _history("tdd", "2026-02-10T10:00:00.000Z", ["c1"], ["a.ts"]),
        _history("tdd", "2026-02-12T10:00:00.000Z", ["c2"], ["a.ts"]),
    ]))
    write_observations(project, [
        observation("inside", "pattern", "2026-02-11T10:00:00.000Z", context="x"),
        observation("edge", "pattern", "2026-02-12T10:00:00.000Z", context="x"),
        observation("outside", "pattern", "2026-02-13T10:00:00.000Z", context="x"),
        observation("err", "error", "2026-02-09T10:00:00.000Z", error="boom", files=["a.ts", "b.ts"]),
        observation("err2", "error", "2026-02-09T11:00:00.000Z", error="again", files=["a.ts"]),
    ])

    data = SkillLineage(project).build()

    assert data.skills[0].observation_ids == ["inside", "edge"]
    assert data.stats.error_prone_files == ["a.ts", "b.ts"]


def test_skill_filter(project, lineage_history):
    write_session(project, session_state(project, history=lineage_history))

    data = SkillLineage(project).build(skill="pro-workflow")

    assert [s.skill_name for s in data.skills] == ["pro-workflow"]
    assert sorted(f.path for f in data.files) == ["README.md", "src/index.ts"]


def test_file_filter_substring(project, lineage_history):
    write_session(project, session_state(project, history=lineage_history))

    data = SkillLineage(project).build(file="utils")

    assert [f.path for f in data.files] == ["src/utils.ts"]
    assert [s.skill_name for s in data.skills] == ["code-simplifier"]


def test_since_filter(project, lineage_history):
    write_session(project, session_state(project, history=lineage_history))

    data = SkillLineage(project).build(since="2026-02-11")

    simplifier = next(s for s in data.skills if s.skill_name == "code-simplifier")
    assert simplifier.executions == 1
    assert simplifier.commits == ["ghi9012"]


def test_unparsable_since_is_ignored(project, lineage_history):
    write_session(project, session_state(project, history=lineage_history))

    data = SkillLineage(project).build(since="last tuesday")

    assert data.stats.total_skill_executions == 3


def test_limit(project, lineage_history):
    write_session(project, session_state(project, history=lineage_history))

    data = SkillLineage(project).build(limit=1)

    assert len(data.skills) == 1
    assert len(data.files) == 1
    assert data.stats.total_skill_executions == 2


def test_get_skill_and_file_lineage(project, lineage_history):
    write_session(project, session_state(project, history=lineage_history))
    lineage = SkillLineage(project)

    assert lineage.get_skill_lineage("code-simplifier").executions == 2
    assert lineage.get_skill_lineage("missing") is None
    assert lineage.get_file_lineage("README.md").skills == ["pro-workflow"]
    assert lineage.get_file_lineage("nope.py") is None


def test_to_dict_is_camel_case(project, lineage_history):
    write_session(project, session_state(project, history=lineage_history))

    data = SkillLineage(project).build().to_dict()

    assert data["projectPath"] == str(project)
    assert set(data["skills"][0]) == {
        "skillName", "executions", "totalDurationMs", "commits",
        "filesModified", "observationIds", "firstSeen", "lastSeen",
    }
    assert set(data["files"][0]) == {"path", "skills", "commitCount", "lastModified"}
