# barberflow/conflicts.py

import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import List, Optional

from barberflow.config import settings
from barberflow.core import (
    applies_on,
    at_minute,
    format_minutes,
    minute_of_day,
    overlaps,
    split_by_day,
    sunday_weekday,
    to_local_naive,
    to_minutes,
    validate_duration,
    validate_weekdays,
)
from barberflow.errors import ValidationError
from barberflow.models import Break, Establishment
from barberflow.queries import (
    AppointmentQuery,
    BreakQuery,
    ScheduleReader,
    SnapshotReader,
    TimeBlockQuery,
)

logger = logging.getLogger(__name__)

BREAK_CONFLICT_MESSAGE = "conflicts with a scheduled break"
TIME_BLOCK_CONFLICT_MESSAGE = "conflicts with a time block"
APPOINTMENT_CONFLICT_MESSAGE = "conflicts with another appointment"


@dataclass(frozen=True)
class ConflictResult:
    has_break_conflict: bool
    has_time_block_conflict: bool
    has_appointment_conflict: bool
    has_any_conflict: bool
    message: str = ""

    @classmethod
    def combine(cls, break_hit: bool, block_hit: bool, appt_hit: bool) -> "ConflictResult":
        # precedence: break > time block > appointment
        if break_hit:
            message = BREAK_CONFLICT_MESSAGE
        elif block_hit:
            message = TIME_BLOCK_CONFLICT_MESSAGE
        elif appt_hit:
            message = APPOINTMENT_CONFLICT_MESSAGE
        else:
            message = ""
        return cls(
            has_break_conflict=break_hit,
            has_time_block_conflict=block_hit,
            has_appointment_conflict=appt_hit,
            has_any_conflict=break_hit or block_hit or appt_hit,
            message=message,
        )


@dataclass(frozen=True)
class Slot:
    start_time: str
    end_time: str
    available: bool


@dataclass(frozen=True)
class BusinessHours:
    open_minute: int
    close_minute: int
    closed_days: frozenset = field(default_factory=frozenset)

    def __post_init__(self):
        if self.open_minute >= self.close_minute:
            raise ValidationError("Opening time must be earlier than closing time")

    @classmethod
    def default(cls) -> "BusinessHours":
        return cls(
            to_minutes(settings.scheduling.default_open_time),
            to_minutes(settings.scheduling.default_close_time),
        )

    @classmethod
    def for_establishment(cls, establishment: Establishment) -> "BusinessHours":
        """Configured hours of an establishment, falling back to the default window."""
        fallback = cls.default()
        open_minute = fallback.open_minute
        close_minute = fallback.close_minute
        if establishment.open_time and establishment.close_time:
            open_minute = to_minutes(establishment.open_time)
            close_minute = to_minutes(establishment.close_time)
        closed = frozenset(validate_weekdays(establishment.closed_days or []))
        return cls(open_minute, close_minute, closed)


def as_local(moment: datetime) -> datetime:
    """Storage form of a timestamp: naive wall-clock time in the configured zone."""
    return to_local_naive(moment, settings.scheduling.timezone)


def _break_days(item: Break):
    days = item.days_of_week
    if isinstance(days, str):
        # rows written by older clients store the list as a JSON string
        days = json.loads(days)
    return days


class ConflictChecker:
    """Decides whether a proposed window is free, reading through a ScheduleReader."""

    def __init__(self, reader: ScheduleReader):
        self.reader = reader

    def has_break_conflict(
        self,
        establishment_id: int,
        day: date,
        start_minute: int,
        duration_minutes: int,
        barber_id: Optional[int] = None,
    ) -> bool:
        validate_duration(duration_minutes)
        # a window running past midnight is checked against each day it touches
        pieces = list(split_by_day(day, start_minute, duration_minutes))

        for item in self.reader.list_active_breaks(BreakQuery(establishment_id, barber_id)):
            days = _break_days(item)
            # breaks without weekdays never match any day
            if not days:
                continue
            break_start, break_end = to_minutes(item.start_time), to_minutes(item.end_time)
            for piece_day, piece_start, piece_end in pieces:
                if not applies_on(days, piece_day):
                    continue
                if overlaps(piece_start, piece_end, break_start, break_end):
                    logger.debug(
                        "Break %s (%s) blocks %s at %s",
                        item.id, item.name, piece_day, format_minutes(piece_start),
                    )
                    return True
        return False

    def has_time_block_conflict(
        self,
        establishment_id: int,
        start: datetime,
        duration_minutes: int,
        barber_id: Optional[int] = None,
    ) -> bool:
        validate_duration(duration_minutes)
        start = as_local(start)
        end = start + timedelta(minutes=duration_minutes)
        blocks = self.reader.list_time_blocks(TimeBlockQuery(establishment_id, start, end, barber_id))
        # readers may return a superset, the overlap test is authoritative
        return any(overlaps(start, end, b.start_time, b.end_time) for b in blocks)

    def has_appointment_conflict(
        self,
        establishment_id: int,
        start: datetime,
        duration_minutes: int,
        barber_id: Optional[int] = None,
        exclude_appointment_id: Optional[int] = None,
    ) -> bool:
        validate_duration(duration_minutes)
        start = as_local(start)
        end = start + timedelta(minutes=duration_minutes)
        query = AppointmentQuery(establishment_id, start, end, barber_id)
        appointments = [
            a for a in self.reader.list_appointments(query)
            if query.matches(a) and a.id != exclude_appointment_id
        ]
        return len(appointments) > 0

    def check_all_conflicts(
        self,
        establishment_id: int,
        start: datetime,
        duration_minutes: int,
        barber_id: Optional[int] = None,
        exclude_appointment_id: Optional[int] = None,
    ) -> ConflictResult:
        validate_duration(duration_minutes)
        start = as_local(start)

        # all three sources are evaluated so the flags are complete
        break_hit = self.has_break_conflict(
            establishment_id, start.date(), minute_of_day(start), duration_minutes, barber_id
        )
        block_hit = self.has_time_block_conflict(establishment_id, start, duration_minutes, barber_id)
        appt_hit = self.has_appointment_conflict(
            establishment_id, start, duration_minutes, barber_id, exclude_appointment_id
        )
        return ConflictResult.combine(break_hit, block_hit, appt_hit)

    def get_available_time_slots(
        self,
        establishment_id: int,
        day: date,
        slot_duration_minutes: int = 30,
        barber_id: Optional[int] = None,
        hours: Optional[BusinessHours] = None,
    ) -> List[Slot]:
        validate_duration(slot_duration_minutes)
        if hours is None:
            hours = BusinessHours.default()

        if sunday_weekday(day) in hours.closed_days:
            return []

        # one read per day so every slot sees the same data
        snapshot = SnapshotReader.load(
            self.reader,
            establishment_id,
            at_minute(day, hours.open_minute),
            at_minute(day, hours.close_minute),
            barber_id,
        )
        checker = ConflictChecker(snapshot)

        slots = []
        minute = hours.open_minute
        while minute + slot_duration_minutes <= hours.close_minute:
            result = checker.check_all_conflicts(
                establishment_id, at_minute(day, minute), slot_duration_minutes, barber_id
            )
            slots.append(
                Slot(
                    start_time=format_minutes(minute),
                    end_time=format_minutes(minute + slot_duration_minutes),
                    available=not result.has_any_conflict,
                )
            )
            minute += slot_duration_minutes
        return slots
