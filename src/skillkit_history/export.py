"""Render views as plain text/Markdown and as structured JSON."""

import json

from .core import SkillActivity
from .explainer import SessionExplanation
from .handoff import HandoffDocument
from .lineage import LineageData
from .timeline import TimelineData
from .utils import format_duration, parse_iso, utcnow

TIMELINE_ICONS = {
    "skill_start": ">",
    "skill_complete": "✓",
    "task_progress": "•",
    "git_commit": "*",
    "observation": "!",
    "decision": "?",
    "snapshot": "◉",
}

DONE = "✓"
OPEN = "○"
MAX_HOTSPOTS = 10


def to_json(view) -> str:
    """Serialize any view (or list of views) that provides ``to_dict``."""
    if isinstance(view, list):
        data = [v.to_dict() for v in view]
    else:
        data = view.to_dict()
    return json.dumps(data, indent=2, ensure_ascii=False)


def _clock(timestamp: str) -> str:
    parsed = parse_iso(timestamp)
    if parsed is None:
        return timestamp
    return parsed.strftime("%I:%M %p").lstrip("0")


def timeline_to_text(data: TimelineData) -> str:
    lines = ["  Session Timeline", ""]

    if not data.events:
        lines.extend(["  No events found.", ""])
        return "\n".join(lines)

    last_block = ""
    for event in data.events:
        block = _clock(event.timestamp)
        if block != last_block:
            if last_block:
                lines.append("")
            lines.append(f"  {block}")
            last_block = block
        icon = TIMELINE_ICONS.get(event.type, "•")
        lines.append(f"    {icon} {event.summary}")

    lines.append("")
    if data.total_count > len(data.events):
        lines.append(f"  Showing {len(data.events)} of {data.total_count} events")
    else:
        noun = "event" if data.total_count == 1 else "events"
        lines.append(f"  {data.total_count} {noun} total")
    return "\n".join(lines)


def lineage_to_text(data: LineageData) -> str:
    lines = ["  Skill Lineage", ""]

    if not data.skills:
        lines.extend(["  No skill executions found.", ""])
        return "\n".join(lines)

    lines.append("  Skills")
    for skill in data.skills:
        lines.append(
            f"    {skill.skill_name:<24} {skill.executions} runs   "
            f"{len(skill.commits)} commits   {len(skill.files_modified)} files   "
            f"{format_duration(skill.total_duration_ms)} total"
        )
    lines.append("")

    hotspots = [f for f in data.files if len(f.skills) >= 2]
    if hotspots:
        lines.append("  File Hotspots (touched by 2+ skills)")
        for f in hotspots[:MAX_HOTSPOTS]:
            lines.append(f"    {f.path:<40} {', '.join(f.skills)}")
        lines.append("")

    stats = data.stats
    lines.append("  Stats")
    lines.append(f"    Total executions: {stats.total_skill_executions} | Commits: {stats.total_commits}")
    if stats.most_impactful_skill:
        top = next((s for s in data.skills if s.skill_name == stats.most_impactful_skill), None)
        count = len(top.files_modified) if top else 0
        lines.append(f"    Most impactful: {stats.most_impactful_skill} ({count} files)")
    if stats.error_prone_files:
        lines.append(f"    Error-prone: {', '.join(stats.error_prone_files)}")
    return "\n".join(lines)


def handoff_to_markdown(doc: HandoffDocument) -> str:
    """Render a handoff as Markdown with headed sections."""
    agents = doc.from_agent if not doc.to_agent else f"{doc.from_agent} → {doc.to_agent}"
    lines = ["# Session Handoff", f"Agent: {agents} | {doc.generated_at.split('T')[0]}", ""]

    lines.append("## Accomplished")
    if not doc.accomplished.tasks and not doc.accomplished.commits:
        lines.extend(["No completed tasks.", ""])
    else:
        for task in doc.accomplished.tasks:
            duration = f" ({task.duration})" if task.duration else ""
            sha = f" [{task.commit_sha[:7]}]" if task.commit_sha else ""
            lines.append(f"- {DONE} {task.name}{duration}{sha}")
        for commit in doc.accomplished.commits:
            lines.append(f"- {DONE} {commit.sha} - {commit.message} ({commit.files_count} files)")
        lines.append("")

    lines.append("## Pending")
    if not doc.pending.tasks:
        lines.extend(["No pending tasks.", ""])
    else:
        for task in doc.pending.tasks:
            lines.append(f"- {OPEN} {task.name}")
        lines.append("")

    if doc.key_files:
        lines.append("## Key Files")
        for f in doc.key_files:
            lines.append(f"- `{f.path}` ({f.change_type})")
        lines.append("")

    if doc.observations:
        lines.append("## Observations")
        for e in doc.observations.errors:
            lines.append(f"- Error: {e.error} ({e.action})")
        for s in doc.observations.solutions:
            lines.append(f"- Solution: {s.solution} ({s.action})")
        for p in doc.observations.patterns:
            lines.append(f"- Pattern: {p.action} - {p.context}")
        lines.append("")

    if doc.recommendations:
        lines.append("## Recommendations")
        for i, rec in enumerate(doc.recommendations, 1):
            lines.append(f"{i}. {rec}")
        lines.append("")

    return "\n".join(lines)


def explanation_to_text(explanation: SessionExplanation) -> str:
    lines = ["  Session Summary", ""]

    if explanation.duration:
        lines.append(f"  Duration:   {explanation.duration}")
    lines.append(f"  Agent:      {explanation.agent}")
    lines.append("")

    if explanation.skills_used:
        lines.append("  Skills Used")
        for skill in explanation.skills_used:
            icon = DONE if skill["status"] == "completed" else OPEN
            lines.append(f"    {icon} {skill['name']} ({skill['status']})")
        lines.append("")

    if explanation.tasks:
        lines.append(f"  Tasks ({len(explanation.tasks)} total)")
        for task in explanation.tasks:
            icon = DONE if task["status"] == "completed" else OPEN
            duration = f" ({task['duration']})" if task.get("duration") else ""
            lines.append(f"    {icon} {task['name']}{duration}")
        lines.append("")

    lines.append(f"  Files Modified: {len(explanation.files_modified)} files")
    lines.append(f"  Git Commits: {explanation.git_commits}")
    lines.append("")

    if explanation.decisions:
        lines.append("  Decisions")
        for d in explanation.decisions:
            lines.append(f"    {d['key']} → {d['value']}")
        lines.append("")

    counts = explanation.observation_counts
    lines.append(
        f"  Observations: {counts.errors} errors, {counts.solutions} solutions, {counts.patterns} patterns"
    )
    return "\n".join(lines)


def _time_ago(timestamp: str) -> str:
    parsed = parse_iso(timestamp)
    if parsed is None:
        return "unknown"
    minutes = int((utcnow() - parsed).total_seconds() // 60)
    hours, days = minutes // 60, minutes // 1440
    if days > 0:
        return f"{days}d ago"
    if hours > 0:
        return f"{hours}h ago"
    if minutes > 0:
        return f"{minutes}m ago"
    return "just now"


def activity_to_text(activities: list[SkillActivity], top_skills: list[tuple[str, int]]) -> str:
    lines = ["  Recent Skill Activity", ""]
    if not activities:
        lines.append("  No activity recorded.")
        return "\n".join(lines)

    for activity in activities:
        lines.append(f"    {activity.commit_sha[:7]}  {activity.message}")
        lines.append(f"             Skills: {', '.join(activity.active_skills)}")
        lines.append(
            f"             Files: {', '.join(activity.files_changed)} ({_time_ago(activity.committed_at)})"
        )
        lines.append("")

    if top_skills:
        formatted = ", ".join(f"{skill} ({count})" for skill, count in top_skills[:5])
        lines.append(f"  Top Skills: {formatted}")
    return "\n".join(lines)
