"""CLI entry point for skillkit-history."""

import logging
from pathlib import Path

import click
import uvicorn

from .activity import ActivityLog
from .config import get_project_path
from .explainer import SessionExplainer
from .export import (
    activity_to_text,
    explanation_to_text,
    handoff_to_markdown,
    lineage_to_text,
    timeline_to_text,
    to_json,
)
from .handoff import SessionHandoff
from .lineage import SkillLineage
from .observations import ObservationStore
from .session import SessionManager
from .snapshots import SnapshotError, SnapshotManager, restore_session
from .timeline import EVENT_TYPES, SessionTimeline

project_option = click.option(
    "--project", "-p",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Project directory (defaults to $SKILLKIT_PROJECT or the current directory).",
)
json_option = click.option("--json", "-j", "as_json", is_flag=True, help="Output as JSON.")


def _project(project: Path | None) -> Path:
    return project if project is not None else get_project_path()


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(verbose: bool):
    """Inspect skill execution history: timeline, lineage, handoffs, and snapshots."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@main.command()
@click.option("--port", default=8080, help="Port to serve on.")
@click.option("--host", default="127.0.0.1", help="Host to bind to.")
def serve(port: int, host: str):
    """Start the HTTP API."""
    click.echo(f"Starting skillkit-history on http://{host}:{port}")
    uvicorn.run("skillkit_history.server:app", host=host, port=port, reload=False)


@main.command()
@click.option("--type", "-t", "event_type", type=click.Choice(EVENT_TYPES), help="Filter by event type.")
@click.option("--skill", "-s", help="Filter by skill name.")
@click.option("--since", help="Show events since date (YYYY-MM-DD).")
@click.option("--limit", "-l", type=click.IntRange(min=1), default=50, show_default=True,
              help="Max events to show.")
@click.option("--no-git", is_flag=True, help="Skip git history.")
@json_option
@project_option
def timeline(event_type, skill, since, limit, no_git, as_json, project):
    """Show the unified session event timeline."""
    builder = SessionTimeline(_project(project))
    data = builder.build(
        since=since,
        types=[event_type] if event_type else None,
        limit=limit,
        skill_filter=skill,
        include_git=not no_git,
    )
    if as_json:
        click.echo(to_json(data))
        return
    if not data.events:
        click.secho("No timeline events found.", fg="yellow")
        click.secho("Events are recorded during skill execution, git commits, and observations.", dim=True)
        return
    click.echo(timeline_to_text(data))


@main.command()
@click.option("--skill", "-s", help="Filter by skill name.")
@click.option("--file", "-f", "file_path", help="Filter by file path.")
@click.option("--since", help="Show lineage since date (YYYY-MM-DD).")
@click.option("--limit", "-l", type=click.IntRange(min=1), default=None, help="Max entries to show.")
@json_option
@project_option
def lineage(skill, file_path, since, limit, as_json, project):
    """Show which skills produced which changes."""
    builder = SkillLineage(_project(project))
    data = builder.build(skill=skill, file=file_path, since=since, limit=limit)
    if as_json:
        click.echo(to_json(data))
        return
    if not data.skills:
        click.secho("No skill lineage found.", fg="yellow")
        click.secho("Lineage is built from skill execution history and activity logs.", dim=True)
        return
    click.echo(lineage_to_text(data))


@main.command()
@click.option("--skill", "-s", help="Filter by skill name.")
@click.option("--limit", "-l", type=click.IntRange(min=1), default=10, show_default=True,
              help="Number of entries to show.")
@json_option
@project_option
def activity(skill, limit, as_json, project):
    """Show the skill activity recorded for git commits."""
    log = ActivityLog(_project(project))
    activities = log.get_by_skill(skill)[:limit] if skill else log.get_recent(limit)
    if as_json:
        click.echo(to_json(activities))
        return
    if not activities:
        click.secho("No activity recorded", fg="yellow")
        click.secho("Activity is recorded when skills are active during git commits.", dim=True)
        return
    click.echo(activity_to_text(activities, log.get_most_used_skills()))


# ── session ──────────────────────────────────────────────────────


@main.group()
def session():
    """Explain, hand off, and snapshot the current session."""
    pass


@session.command()
@click.option("--no-git", is_flag=True, help="Skip git analysis.")
@json_option
@project_option
def explain(no_git, as_json, project):
    """Explain what happened in the current session."""
    explanation = SessionExplainer(_project(project)).explain(include_git=not no_git)
    click.echo(to_json(explanation) if as_json else explanation_to_text(explanation))


@session.command()
@click.option("--to", "target_agent", help="Target agent for the handoff.")
@click.option("--out", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Save handoff to file.")
@click.option("--no-git", is_flag=True, help="Skip git analysis.")
@click.option("--max-observations", type=click.IntRange(min=0), default=20, show_default=True)
@json_option
@project_option
def handoff(target_agent, out, no_git, max_observations, as_json, project):
    """Generate an agent-to-agent handoff document."""
    doc = SessionHandoff(_project(project)).generate(
        target_agent=target_agent,
        include_git=not no_git,
        max_observations=max_observations,
    )
    output = to_json(doc) if as_json else handoff_to_markdown(doc)
    if out is None:
        click.echo(output)
        return
    try:
        out.write_text(output, encoding="utf-8")
    except OSError as e:
        raise click.ClickException(f"Failed to write file: {e}")
    click.secho(f"Handoff saved to {out}", fg="green")


@session.group()
def snapshot():
    """Save, restore, list, and delete session snapshots."""
    pass


@snapshot.command("save")
@click.argument("name")
@click.option("--desc", "-d", "description", help="Snapshot description.")
@project_option
def snapshot_save(name, description, project):
    """Save the current session state as a named snapshot."""
    project_path = _project(project)
    state = SessionManager(project_path).get()
    if state is None:
        raise click.ClickException("No active session to snapshot")

    observations = ObservationStore.read_all(project_path)
    try:
        SnapshotManager(project_path).save(name, state, observations, description)
    except SnapshotError as e:
        raise click.ClickException(str(e))
    click.secho(f"✓ Snapshot saved: {name}", fg="green")
    if description:
        click.secho(f"  {description}", dim=True)


@snapshot.command("restore")
@click.argument("name")
@project_option
def snapshot_restore(name, project):
    """Restore session state from a snapshot."""
    try:
        restore_session(_project(project), name)
    except SnapshotError as e:
        raise click.ClickException(str(e))
    click.secho(f"✓ Snapshot restored: {name}", fg="green")


@snapshot.command("list")
@json_option
@project_option
def snapshot_list(as_json, project):
    """List all session snapshots."""
    snapshots = SnapshotManager(_project(project)).list()
    if as_json:
        click.echo(to_json(snapshots))
        return
    if not snapshots:
        click.secho("No snapshots found", fg="yellow")
        click.secho("Save one with: skillkit-history session snapshot save <name>", dim=True)
        return

    click.secho(f"Snapshots ({len(snapshots)}):", fg="cyan")
    click.echo()
    for snap in snapshots:
        click.secho(f"  {snap.name}", bold=True)
        click.echo(f"    Created: {snap.created_at}")
        if snap.description:
            click.secho(f"    {snap.description}", dim=True)
        click.echo(f"    Skills in history: {snap.skill_count}")
        click.echo()


@snapshot.command("delete")
@click.argument("name")
@project_option
def snapshot_delete(name, project):
    """Delete a session snapshot."""
    try:
        removed = SnapshotManager(_project(project)).delete(name)
    except SnapshotError as e:
        raise click.ClickException(str(e))
    if not removed:
        raise click.ClickException(f'Snapshot "{name}" not found')
    click.secho(f"✓ Snapshot deleted: {name}", fg="green")
