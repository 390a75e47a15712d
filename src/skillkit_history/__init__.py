"""Session history views for skill executions: timeline, lineage, handoff, explain."""

__version__ = "0.1.0"
