# WorkRule - Time Helpers
# Zone conversion and calendar windows. Storage is naive UTC throughout.

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

import pytz

from workrule.errors import ValidationError


WEEKDAYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


def utc_now() -> datetime:
    """Current wall-clock time as naive UTC, read fresh on every call."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: datetime) -> datetime:
    """
    Normalize a datetime for storage and comparison.

    Aware values are converted to UTC; naive values are taken as UTC.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def get_zone(name: str) -> pytz.BaseTzInfo:
    """Look up an IANA time zone, raising ValidationError for unknown names."""
    if not name:
        raise ValidationError("A time zone is required", field="time_zone", value=name)
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        raise ValidationError(f"Unknown time zone '{name}'", field="time_zone", value=name)


def to_local(value: datetime, zone: pytz.BaseTzInfo) -> datetime:
    """Convert a (naive UTC or aware) datetime to an aware datetime in zone."""
    if value.tzinfo is None:
        value = pytz.utc.localize(value)
    return value.astimezone(zone)


def local_midnight_utc(day: date, zone: pytz.BaseTzInfo) -> datetime:
    """Naive UTC instant of local midnight at the start of day."""
    local = zone.localize(datetime.combine(day, time.min))
    return local.astimezone(pytz.utc).replace(tzinfo=None)


def day_bounds(now: datetime, zone: pytz.BaseTzInfo) -> tuple[datetime, datetime]:
    """Start and end (inclusive, naive UTC) of the local day containing now."""
    today = to_local(now, zone).date()
    start = local_midnight_utc(today, zone)
    end = local_midnight_utc(today + timedelta(days=1), zone) - timedelta(microseconds=1)
    return start, end


def week_bounds(now: datetime, zone: pytz.BaseTzInfo) -> tuple[datetime, datetime]:
    """Monday-to-Sunday local week containing now, as naive UTC bounds."""
    today = to_local(now, zone).date()
    monday = today - timedelta(days=today.weekday())
    start = local_midnight_utc(monday, zone)
    end = local_midnight_utc(monday + timedelta(days=7), zone) - timedelta(microseconds=1)
    return start, end


def month_bounds(now: datetime, zone: pytz.BaseTzInfo) -> tuple[datetime, datetime]:
    """Calendar month containing now in the local zone, as naive UTC bounds."""
    today = to_local(now, zone).date()
    first = today.replace(day=1)
    if first.month == 12:
        next_first = first.replace(year=first.year + 1, month=1)
    else:
        next_first = first.replace(month=first.month + 1)
    start = local_midnight_utc(first, zone)
    end = local_midnight_utc(next_first, zone) - timedelta(microseconds=1)
    return start, end


def parse_hhmm(value: Optional[str], field: str = "time") -> int:
    """Parse 'HH:MM' into minutes after midnight."""
    if not value:
        raise ValidationError(f"{field} is required", field=field, value=value)
    try:
        hours_text, minutes_text = value.split(":")[:2]
        hours, minutes = int(hours_text), int(minutes_text)
    except ValueError:
        raise ValidationError(f"Invalid time format '{value}', expected HH:MM", field=field, value=value)
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise ValidationError(f"Invalid time format '{value}', expected HH:MM", field=field, value=value)
    return hours * 60 + minutes


def format_minutes(minutes: int) -> str:
    """Human-readable duration: 45m, 8h, 8h 30m."""
    hours, mins = divmod(int(minutes), 60)
    if hours == 0:
        return f"{mins}m"
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}m"
