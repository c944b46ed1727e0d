import math
from datetime import datetime, timezone
from typing import Optional, Union

from oddsarb.models import Freshness

FRESHNESS_THRESHOLD_SECONDS = 60

Timestamp = Union[datetime, str]


def parse_utc(value: Timestamp) -> datetime:
    """Parse a stored timestamp; values without an offset are UTC, never local."""
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def classify(
    generated_at: Timestamp,
    now: Optional[Timestamp] = None,
    threshold_seconds: int = FRESHNESS_THRESHOLD_SECONDS,
) -> Freshness:
    current = parse_utc(now) if now is not None else datetime.now(timezone.utc)
    age = math.floor((current - parse_utc(generated_at)).total_seconds())
    is_stale = age > threshold_seconds
    return Freshness(
        age_seconds=age,
        is_fresh=not is_stale,
        is_stale=is_stale,
        needs_refresh=is_stale,
    )


def format_age(seconds: int) -> str:
    if seconds < 60:
        return f"{seconds}s ago"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    return f"{seconds // 3600}h ago"


def freshness_label(freshness: Freshness) -> str:
    age = format_age(freshness.age_seconds)
    if freshness.is_fresh:
        return f"Fresh ({age})"
    if freshness.needs_refresh:
        return f"Needs refresh ({age})"
    return f"Stale ({age})"
