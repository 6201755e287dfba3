'''
Timezone helpers shared by the services.
'''
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .logger import log


def get_tz(tz_name: str | None) -> ZoneInfo:
    """Returns the ZoneInfo for a user's timezone, falling back to UTC."""
    try:
        return ZoneInfo(tz_name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        log.warning(f"Invalid timezone '{tz_name}', defaulting to UTC.")
        return ZoneInfo("UTC")


def ensure_utc(value: datetime) -> datetime:
    """
    Normalizes a datetime read from (or about to be written to) the database.
    Naive values are stored as UTC, aware values are converted to UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def now_in(tz: ZoneInfo) -> datetime:
    return datetime.now(tz)
