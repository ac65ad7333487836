"""
Timezone helpers.

Timestamps are stored timezone-aware in UTC. SQLite and older snapshots hand
back naive values, which are read as UTC.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
