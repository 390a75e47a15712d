"""Path resolution and project configuration."""

import logging
import os
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

STATE_DIR_NAME = ".skillkit"
CONFIG_FILE = "skillkit.yaml"


def get_project_path() -> Path:
    """Return the project the CLI and server operate on."""
    env = os.environ.get("SKILLKIT_PROJECT")
    if env:
        return Path(env)
    return Path.cwd()


def get_state_dir(project_path) -> Path:
    """Return ``<project>/.skillkit``, where every per-project document lives."""
    return Path(project_path) / STATE_DIR_NAME


def get_session_path(project_path) -> Path:
    return get_state_dir(project_path) / "session.yaml"


def get_activity_path(project_path) -> Path:
    return get_state_dir(project_path) / "activity.yaml"


def get_snapshots_dir(project_path) -> Path:
    return get_state_dir(project_path) / "snapshots"


def get_observations_path(project_path) -> Path:
    return get_state_dir(project_path) / "memory" / "observations.yaml"


def load_config(project_path) -> dict:
    """Load ``skillkit.yaml`` from the project root.

    A missing or unreadable file means no configuration, not an error.
    ``SKILLKIT_AGENT`` overrides the configured agent.
    """
    config: dict = {}
    path = Path(project_path) / CONFIG_FILE
    if path.exists():
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
            if isinstance(data, dict):
                config = data
        except (yaml.YAMLError, OSError) as e:
            logger.debug("Ignoring unreadable config %s: %s", path, e)

    env_agent = os.environ.get("SKILLKIT_AGENT")
    if env_agent:
        config["agent"] = env_agent
    return config


def resolve_agent(project_path, skill_source: str | None = None) -> str:
    """Pick the agent label: configured agent, else the skill source, else "unknown"."""
    agent = load_config(project_path).get("agent")
    if agent and agent != "universal":
        return str(agent)
    if skill_source:
        return skill_source
    return "unknown"
