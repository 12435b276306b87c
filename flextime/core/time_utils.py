from datetime import datetime, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo

from tzlocal import get_localzone


def format_minutes(minutes: int) -> str:
    """
    Format a minute count for display.
    Examples: 45 -> '45 min', 60 -> '1 hour', 120 -> '2 hours', 90 -> '1h 30m'
    """
    if minutes < 60:
        return f"{minutes} min"
    hours = minutes // 60
    mins = minutes % 60
    if mins == 0:
        return f"{hours} hour{'s' if hours > 1 else ''}"
    return f"{hours}h {mins}m"


def resolve_timezone(tz_name: str | None) -> tzinfo:
    """Resolve 'local' / None to the system's IANA zone, anything else as an IANA name.

    The system zone is looked up with tzlocal (TZ, then /etc/localtime) and
    is always a DST-aware zone, never a fixed UTC offset.

    Raises ZoneInfoNotFoundError for unknown names so a typo in TIMEZONE
    fails at startup instead of silently shifting week boundaries.
    """
    if tz_name and tz_name != "local":
        return ZoneInfo(tz_name)
    return get_localzone()


def to_iso(dt: datetime) -> str:
    """Serialize an aware datetime for storage ('2026-10-17T09:30:00+00:00')."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def from_iso(value) -> datetime:
    """Parse a stored timestamp. Naive values are assumed to be UTC."""
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def split_duration(delta: timedelta) -> tuple[int, int, int]:
    """Break a positive duration into (days, hours, minutes), dropping seconds."""
    total_minutes = int(delta.total_seconds()) // 60
    days, rem = divmod(total_minutes, 24 * 60)
    hours, minutes = divmod(rem, 60)
    return days, hours, minutes
