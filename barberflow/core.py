# barberflow/core.py

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Iterator, Optional, Tuple
from zoneinfo import ZoneInfo

from barberflow.errors import ValidationError

HHMM_RE = re.compile(r"^(\d{2}):(\d{2})$")

MINUTES_PER_DAY = 24 * 60


def to_minutes(hhmm: str) -> int:
    """Parse an "HH:mm" wall-clock string into minutes since midnight."""
    match = HHMM_RE.match(hhmm or "")
    if match is None:
        raise ValidationError(f"Time must be in HH:mm format, got {hhmm!r}")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValidationError(f"Time out of range: {hhmm!r}")
    return hours * 60 + minutes


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def minute_of_day(moment: datetime) -> int:
    return moment.hour * 60 + moment.minute


def at_minute(day: date, minute: int) -> datetime:
    """Absolute timestamp for a minute-of-day on the given date."""
    return datetime.combine(day, time(minute // 60, minute % 60))


def overlaps(a_start, a_end, b_start, b_end) -> bool:
    # half-open: [a_start, a_end) vs [b_start, b_end)
    return a_start < b_end and a_end > b_start


def validate_duration(duration_minutes: int, limit: Optional[int] = None) -> None:
    if duration_minutes is None or duration_minutes <= 0:
        raise ValidationError(f"Duration must be a positive number of minutes, got {duration_minutes}")
    if limit is not None and duration_minutes > limit:
        raise ValidationError(f"Duration cannot exceed {limit} minutes, got {duration_minutes}")


def to_local_naive(moment: datetime, zone_name: str = "UTC") -> datetime:
    """Drop the offset of an aware timestamp after converting it to the given zone.

    Naive timestamps are already wall-clock time in that zone and pass through.
    """
    if moment.tzinfo is None or moment.utcoffset() is None:
        return moment.replace(tzinfo=None)
    zone = timezone.utc if zone_name.upper() == "UTC" else ZoneInfo(zone_name)
    return moment.astimezone(zone).replace(tzinfo=None)


def split_by_day(day: date, start_minute: int, duration_minutes: int) -> Iterator[Tuple[date, int, int]]:
    """Cut a minute-of-day window into (day, start, end) pieces that stay within one day."""
    end_minute = start_minute + duration_minutes
    while end_minute > MINUTES_PER_DAY:
        yield day, start_minute, MINUTES_PER_DAY
        day += timedelta(days=1)
        start_minute = 0
        end_minute -= MINUTES_PER_DAY
    yield day, start_minute, end_minute


def validate_window(start_hhmm: str, end_hhmm: str) -> None:
    if to_minutes(start_hhmm) >= to_minutes(end_hhmm):
        raise ValidationError("Start time must be earlier than end time")


# Recurrence

def sunday_weekday(day: date) -> int:
    """Weekday number with 0=Sunday .. 6=Saturday."""
    return (day.weekday() + 1) % 7


def validate_weekdays(days: Iterable[int]) -> list:
    days = list(days)
    for day in days:
        if not isinstance(day, int) or isinstance(day, bool) or not (0 <= day <= 6):
            raise ValidationError("Weekdays must be integers between 0 (Sunday) and 6 (Saturday)")
    if len(days) != len(set(days)):
        raise ValidationError("Weekdays cannot contain duplicates")
    return days


def applies_on(days_of_week: Optional[Iterable[int]], day: date) -> bool:
    if not days_of_week:
        return False
    return sunday_weekday(day) in set(days_of_week)
