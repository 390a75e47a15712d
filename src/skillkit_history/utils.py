"""Timestamp and duration helpers shared by the stores and view builders."""

from datetime import date, datetime, timezone


def parse_iso(value) -> datetime | None:
    """Parse an ISO 8601 datetime string.

    Naive values (including bare dates like ``2026-02-10``) are taken as UTC
    so every result can be compared with every other.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        try:
            text = str(value).strip()
            if text.endswith("Z"):
                text = text[:-1] + "+00:00"
            parsed = datetime.fromisoformat(text)
        except (ValueError, TypeError):
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_iso(value: datetime) -> str:
    """Format a datetime the way the session documents store it (UTC, ms, Z)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def now_iso() -> str:
    return to_iso(utcnow())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def today() -> str:
    """Current UTC calendar day as ``YYYY-MM-DD``."""
    return utcnow().date().isoformat()


def is_today(value) -> bool:
    parsed = parse_iso(value)
    if parsed is None:
        return False
    return parsed.astimezone(timezone.utc).date().isoformat() == today()


def timestamp_str(value) -> str:
    """Normalize a loaded timestamp field back to a string.

    YAML loaders turn unquoted ISO timestamps into datetime objects.
    """
    if value is None:
        return ""
    if isinstance(value, datetime):
        return to_iso(value)
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def sort_key(value) -> datetime:
    """Sort key for timestamps; unparsable values sort first."""
    return parse_iso(value) or datetime.min.replace(tzinfo=timezone.utc)


def format_duration(ms: float) -> str:
    seconds = int(ms // 1000)
    minutes = seconds // 60
    hours = minutes // 60
    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    if minutes > 0:
        return f"{minutes}m"
    return f"{seconds}s"


def elapsed_ms(start, end) -> float | None:
    """Milliseconds between two timestamps, or None if either is unparsable."""
    start_dt = parse_iso(start)
    end_dt = parse_iso(end)
    if start_dt is None or end_dt is None:
        return None
    return (end_dt - start_dt).total_seconds() * 1000
