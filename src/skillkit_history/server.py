"""FastAPI web server for skillkit-history.

Read-only HTTP access to the same views the CLI renders. The project is
taken from ``$SKILLKIT_PROJECT`` (or the working directory) per request.
"""

import logging

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import Response

from . import __version__
from .activity import ActivityLog
from .config import get_project_path
from .explainer import SessionExplainer
from .export import handoff_to_markdown, to_json
from .handoff import SessionHandoff
from .lineage import SkillLineage
from .snapshots import InvalidSnapshotNameError, SnapshotManager
from .timeline import EVENT_TYPES, SessionTimeline

logger = logging.getLogger(__name__)

app = FastAPI(title="skillkit-history", version=__version__)


# ── Routes ───────────────────────────────────────────────────────


@app.get("/api/timeline")
async def get_timeline(
    type: list[str] | None = Query(None, description="Filter by event type"),
    skill: str | None = Query(None, description="Filter by skill name"),
    since: str | None = Query(None, description="Only events since this date"),
    limit: int = Query(50, ge=1, le=1000),
    git: bool = Query(True, description="Include git commits"),
):
    """Return the unified event timeline."""
    if type:
        unknown = [t for t in type if t not in EVENT_TYPES]
        if unknown:
            raise HTTPException(status_code=400, detail=f"Invalid event type: {', '.join(unknown)}")

    data = SessionTimeline(get_project_path()).build(
        since=since,
        types=type,
        limit=limit,
        skill_filter=skill,
        include_git=git,
    )
    return data.to_dict()


@app.get("/api/lineage")
async def get_lineage(
    skill: str | None = Query(None, description="Filter by skill name"),
    file: str | None = Query(None, description="Filter by file path"),
    since: str | None = Query(None, description="Only history since this date"),
    limit: int | None = Query(None, ge=1),
):
    """Return skill/file lineage."""
    data = SkillLineage(get_project_path()).build(skill=skill, file=file, since=since, limit=limit)
    return data.to_dict()


@app.get("/api/handoff")
async def get_handoff(
    format: str = Query("json", description="Output format: md or json"),
    to: str | None = Query(None, description="Target agent"),
    git: bool = Query(True, description="Include git commits"),
):
    """Return a handoff document as JSON or Markdown."""
    doc = SessionHandoff(get_project_path()).generate(target_agent=to, include_git=git)
    if format == "md":
        return Response(content=handoff_to_markdown(doc), media_type="text/markdown")
    return Response(content=to_json(doc), media_type="application/json")


@app.get("/api/explain")
async def get_explanation(git: bool = Query(True, description="Include git commits")):
    """Return the session explanation."""
    return SessionExplainer(get_project_path()).explain(include_git=git).to_dict()


@app.get("/api/activity")
async def get_activity(
    skill: str | None = Query(None, description="Filter by skill name"),
    limit: int = Query(20, ge=1, le=500),
):
    """Return recent commit activity and the most used skills."""
    log = ActivityLog(get_project_path())
    activities = log.get_by_skill(skill)[:limit] if skill else log.get_recent(limit)
    return {
        "activities": [a.to_dict() for a in activities],
        "topSkills": [{"skill": s, "count": n} for s, n in log.get_most_used_skills()],
    }


@app.get("/api/snapshots")
async def get_snapshots():
    """List stored snapshots, newest first."""
    return [s.to_dict() for s in SnapshotManager(get_project_path()).list()]


@app.get("/api/snapshots/{name}")
async def get_snapshot(name: str):
    """Return one snapshot in full."""
    manager = SnapshotManager(get_project_path())
    try:
        if not manager.exists(name):
            raise HTTPException(status_code=404, detail=f'Snapshot "{name}" not found')
    except InvalidSnapshotNameError as e:
        raise HTTPException(status_code=400, detail=str(e))

    snapshot = manager.get(name)
    if snapshot is None:
        logger.error("Snapshot %s exists but could not be loaded", name)
        raise HTTPException(status_code=500, detail=f'Snapshot "{name}" is corrupted or invalid')
    return snapshot.to_dict()
