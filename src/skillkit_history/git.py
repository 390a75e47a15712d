"""Read recent commits from ``git log``.

Any failure (no git binary, not a repository, timeout) reads as "no commits".
"""

import logging
import subprocess
from pathlib import Path

from .core import GitCommit

logger = logging.getLogger(__name__)

GIT_TIMEOUT_SECONDS = 10

_RECORD_SEP = "\x1e"
_FIELD_SEP = "\x1f"
_FORMAT = _FIELD_SEP.join(["%H", "%h", "%s", "%aI", "%an"])


def get_git_commits(project_path, commits: int = 50, since: str | None = None) -> list[GitCommit]:
    """Return up to ``commits`` most recent commits, newest first."""
    args = [
        "git", "log",
        f"-n{int(commits)}",
        f"--pretty=format:{_RECORD_SEP}{_FORMAT}",
        "--name-only",
    ]
    if since:
        args.append(f"--since={since}")

    try:
        proc = subprocess.run(
            args,
            cwd=Path(project_path),
            capture_output=True,
            encoding="utf-8",
            errors="replace",
            check=True,
            timeout=GIT_TIMEOUT_SECONDS,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("git log unavailable for %s: %s", project_path, e)
        return []

    return parse_git_log(proc.stdout)


def parse_git_log(output: str) -> list[GitCommit]:
    """Parse output produced with the format used by get_git_commits."""
    result = []
    for record in output.split(_RECORD_SEP):
        lines = record.strip("\n").splitlines()
        if not lines:
            continue
        fields = lines[0].split(_FIELD_SEP)
        if len(fields) < 5:
            continue
        full_hash, short_hash, message, date, author = fields[:5]
        files = [line.strip() for line in lines[1:] if line.strip()]
        result.append(GitCommit(
            hash=full_hash,
            short_hash=short_hash,
            message=message,
            date=date,
            author=author,
            files=files,
        ))
    return result
