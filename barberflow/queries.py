# barberflow/queries.py
#
# Read side of the schedule store. The conflict checker only talks to a
# ScheduleReader; the SQL implementation and the in-memory snapshot both
# honour the same typed query structs.

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import FrozenSet, List, Optional, Protocol

from sqlalchemy import or_
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlmodel import Session, select

from barberflow.config import settings
from barberflow.core import overlaps
from barberflow.errors import NotFoundError, StorageUnavailableError
from barberflow.models import Appointment, Break, Establishment, TimeBlock

logger = logging.getLogger(__name__)

# only these statuses occupy a slot
ACTIVE_STATUSES: FrozenSet[str] = frozenset({"confirmed", "in_progress"})


def appointment_end(appt: Appointment) -> datetime:
    return appt.scheduled_time + timedelta(minutes=appt.duration_minutes)


@dataclass(frozen=True)
class BreakQuery:
    establishment_id: int
    barber_id: Optional[int] = None
    active_only: bool = True

    def matches(self, item: Break) -> bool:
        if item.establishment_id != self.establishment_id:
            return False
        if self.active_only and not item.is_active:
            return False
        # establishment-wide breaks (barber_id None) apply to every barber
        if self.barber_id is not None and item.barber_id not in (None, self.barber_id):
            return False
        return True


@dataclass(frozen=True)
class TimeBlockQuery:
    establishment_id: int
    start: datetime
    end: datetime
    barber_id: Optional[int] = None

    def matches(self, block: TimeBlock) -> bool:
        if block.establishment_id != self.establishment_id:
            return False
        if self.barber_id is not None and block.barber_id not in (None, self.barber_id):
            return False
        return overlaps(self.start, self.end, block.start_time, block.end_time)


@dataclass(frozen=True)
class AppointmentQuery:
    establishment_id: int
    start: datetime
    end: datetime
    # exact match; None means every appointment of the establishment
    barber_id: Optional[int] = None
    statuses: FrozenSet[str] = field(default=ACTIVE_STATUSES)

    def matches(self, appt: Appointment) -> bool:
        if appt.establishment_id != self.establishment_id:
            return False
        if appt.status not in self.statuses or appt.scheduled_time is None:
            return False
        if self.barber_id is not None and appt.barber_id != self.barber_id:
            return False
        return overlaps(self.start, self.end, appt.scheduled_time, appointment_end(appt))


class ScheduleReader(Protocol):
    def list_active_breaks(self, query: BreakQuery) -> List[Break]: ...

    def list_time_blocks(self, query: TimeBlockQuery) -> List[TimeBlock]: ...

    def list_appointments(self, query: AppointmentQuery) -> List[Appointment]: ...

    def get_establishment(self, establishment_id: int) -> Establishment: ...

    def get_appointment(self, appointment_id: int) -> Appointment: ...


class SqlScheduleReader:
    """ScheduleReader backed by a SQLModel session."""

    def __init__(self, session: Session, lookback_minutes: Optional[int] = None):
        self.session = session
        if lookback_minutes is None:
            lookback_minutes = settings.scheduling.max_appointment_minutes
        self.lookback = timedelta(minutes=lookback_minutes)

    def _fetch(self, stmt):
        try:
            return self.session.exec(stmt).all()
        except (OperationalError, InterfaceError) as exc:
            logger.warning("Schedule store unavailable: %s", exc)
            raise StorageUnavailableError("Schedule storage is unavailable") from exc

    def list_active_breaks(self, query: BreakQuery) -> List[Break]:
        stmt = select(Break).where(Break.establishment_id == query.establishment_id)
        if query.active_only:
            stmt = stmt.where(Break.is_active == True)  # noqa: E712
        if query.barber_id is not None:
            stmt = stmt.where(or_(Break.barber_id == query.barber_id, Break.barber_id.is_(None)))
        return list(self._fetch(stmt.order_by(Break.id)))

    def list_time_blocks(self, query: TimeBlockQuery) -> List[TimeBlock]:
        stmt = (
            select(TimeBlock)
            .where(TimeBlock.establishment_id == query.establishment_id)
            .where(TimeBlock.start_time < query.end)
            .where(TimeBlock.end_time > query.start)
        )
        if query.barber_id is not None:
            stmt = stmt.where(
                or_(TimeBlock.barber_id == query.barber_id, TimeBlock.barber_id.is_(None))
            )
        return list(self._fetch(stmt.order_by(TimeBlock.start_time, TimeBlock.id)))

    def list_appointments(self, query: AppointmentQuery) -> List[Appointment]:
        # the end of an appointment is not stored, so narrow by start time
        # and finish the overlap test in memory
        stmt = (
            select(Appointment)
            .where(Appointment.establishment_id == query.establishment_id)
            .where(Appointment.status.in_(sorted(query.statuses)))
            .where(Appointment.scheduled_time.is_not(None))
            .where(Appointment.scheduled_time < query.end)
            .where(Appointment.scheduled_time > query.start - self.lookback)
        )
        if query.barber_id is not None:
            stmt = stmt.where(Appointment.barber_id == query.barber_id)
        rows = self._fetch(stmt.order_by(Appointment.scheduled_time, Appointment.id))
        return [a for a in rows if query.matches(a)]

    def get_establishment(self, establishment_id: int) -> Establishment:
        try:
            establishment = self.session.get(Establishment, establishment_id)
        except (OperationalError, InterfaceError) as exc:
            raise StorageUnavailableError("Schedule storage is unavailable") from exc
        if establishment is None:
            raise NotFoundError("Establishment not found")
        return establishment

    def get_appointment(self, appointment_id: int) -> Appointment:
        try:
            appt = self.session.get(Appointment, appointment_id)
        except (OperationalError, InterfaceError) as exc:
            raise StorageUnavailableError("Schedule storage is unavailable") from exc
        if appt is None:
            raise NotFoundError("Appointment not found")
        return appt


class SnapshotReader:
    """In-memory ScheduleReader over records fetched once for a window.

    Every query answered by a snapshot must fall inside the window it was
    loaded for; the slot enumerator only asks about slots of that day.
    """

    def __init__(self, breaks, time_blocks, appointments, establishment=None):
        self.breaks = list(breaks)
        self.time_blocks = list(time_blocks)
        self.appointments = list(appointments)
        self.establishment = establishment

    @classmethod
    def load(
        cls,
        reader: ScheduleReader,
        establishment_id: int,
        start: datetime,
        end: datetime,
        barber_id: Optional[int] = None,
    ) -> "SnapshotReader":
        breaks = reader.list_active_breaks(BreakQuery(establishment_id, barber_id))
        blocks = reader.list_time_blocks(TimeBlockQuery(establishment_id, start, end, barber_id))
        appts = reader.list_appointments(AppointmentQuery(establishment_id, start, end, barber_id))
        logger.debug(
            "Loaded snapshot for establishment %s: %d breaks, %d blocks, %d appointments",
            establishment_id, len(breaks), len(blocks), len(appts),
        )
        return cls(breaks, blocks, appts)

    def list_active_breaks(self, query: BreakQuery) -> List[Break]:
        return [b for b in self.breaks if query.matches(b)]

    def list_time_blocks(self, query: TimeBlockQuery) -> List[TimeBlock]:
        return [b for b in self.time_blocks if query.matches(b)]

    def list_appointments(self, query: AppointmentQuery) -> List[Appointment]:
        return [a for a in self.appointments if query.matches(a)]

    def get_establishment(self, establishment_id: int) -> Establishment:
        if self.establishment is None or self.establishment.id != establishment_id:
            raise NotFoundError("Establishment not found")
        return self.establishment

    def get_appointment(self, appointment_id: int) -> Appointment:
        for appt in self.appointments:
            if appt.id == appointment_id:
                return appt
        raise NotFoundError("Appointment not found")
