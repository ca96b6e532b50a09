"""Date-time helpers for daily review boundaries."""

from datetime import date, datetime, time, timezone
from typing import Optional
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in DateTime columns."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def local_date(moment: datetime, tz_name: str) -> date:
    """Calendar date of a stored (naive UTC) timestamp in the given zone."""

    aware = moment.replace(tzinfo=timezone.utc) if moment.tzinfo is None else moment
    return aware.astimezone(ZoneInfo(tz_name)).date()


def start_of_local_day(tz_name: str, now: Optional[datetime] = None) -> datetime:
    """Return local midnight of the current day as a naive UTC timestamp."""

    zone = ZoneInfo(tz_name)
    if now is None:
        current = datetime.now(zone)
    elif now.tzinfo is None:
        current = now.replace(tzinfo=timezone.utc).astimezone(zone)
    else:
        current = now.astimezone(zone)
    midnight = datetime.combine(current.date(), time.min, tzinfo=zone)
    return midnight.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse a client ISO string (``Z`` suffix allowed) into naive UTC."""

    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return to_utc_naive(parsed)
