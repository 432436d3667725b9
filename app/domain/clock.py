"""UTC time helpers.

SQLite hands back naive datetimes even for timezone-aware columns, so any
arithmetic on stored timestamps goes through ``as_utc`` first.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
