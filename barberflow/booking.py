# barberflow/booking.py
#
# Write path for appointments. The availability check is re-run inside the
# same critical section that inserts or moves the row, so a slot reported
# free earlier can still be refused here.

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Optional

from sqlmodel import Session, select

from barberflow.config import settings
from barberflow.conflicts import ConflictChecker, as_local
from barberflow.core import validate_duration
from barberflow.errors import ConflictError, NotFoundError, ValidationError
from barberflow.models import Appointment, Barber, Client, Service
from barberflow.queries import ACTIVE_STATUSES, SqlScheduleReader

logger = logging.getLogger(__name__)

APPOINTMENT_STATUSES = ("pending", "confirmed", "in_progress", "completed", "cancelled", "no_show")

_locks: Dict[int, threading.Lock] = {}
_locks_guard = threading.Lock()


@contextmanager
def establishment_lock(establishment_id: int):
    # one lock per establishment: an unassigned booking competes with every barber
    with _locks_guard:
        lock = _locks.setdefault(establishment_id, threading.Lock())
    with lock:
        yield


class BookingService:
    def __init__(self, session: Session):
        self.session = session
        self.reader = SqlScheduleReader(session)
        self.checker = ConflictChecker(self.reader)

    def _get_owned(self, model, record_id: int, establishment_id: int, label: str):
        record = self.session.get(model, record_id)
        if record is None or record.establishment_id != establishment_id:
            raise NotFoundError(f"{label} not found")
        return record

    def _resolve_duration(self, service: Service, duration_minutes: Optional[int]) -> int:
        if duration_minutes is None:
            duration_minutes = service.duration_minutes or settings.scheduling.default_appointment_minutes
        # the conflict reader never looks further back than this
        validate_duration(duration_minutes, settings.scheduling.max_appointment_minutes)
        return duration_minutes

    def _commit(self, appt: Appointment) -> Appointment:
        self.session.add(appt)
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(appt)
        return appt

    def create_scheduled(
        self,
        establishment_id: int,
        client_id: int,
        service_id: int,
        scheduled_time: datetime,
        barber_id: Optional[int] = None,
        duration_minutes: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Appointment:
        self.reader.get_establishment(establishment_id)
        self._get_owned(Client, client_id, establishment_id, "Client")
        service = self._get_owned(Service, service_id, establishment_id, "Service")
        if barber_id is not None:
            self._get_owned(Barber, barber_id, establishment_id, "Barber")
        duration = self._resolve_duration(service, duration_minutes)
        scheduled_time = as_local(scheduled_time)

        with establishment_lock(establishment_id):
            conflicts = self.checker.check_all_conflicts(
                establishment_id, scheduled_time, duration, barber_id
            )
            if conflicts.has_any_conflict:
                logger.info(
                    "Booking refused for establishment %s at %s: %s",
                    establishment_id, scheduled_time, conflicts.message,
                )
                raise ConflictError(conflicts.message)

            appt = self._commit(
                Appointment(
                    establishment_id=establishment_id,
                    client_id=client_id,
                    barber_id=barber_id,
                    service_id=service_id,
                    appointment_type="scheduled",
                    scheduled_time=scheduled_time,
                    duration_minutes=duration,
                    status="confirmed",
                    notes=notes,
                )
            )

        logger.info("Appointment %s booked at %s (barber %s)", appt.id, scheduled_time, barber_id)
        return appt

    def add_to_queue(
        self,
        establishment_id: int,
        client_id: int,
        service_id: int,
        notes: Optional[str] = None,
    ) -> Appointment:
        self.reader.get_establishment(establishment_id)
        self._get_owned(Client, client_id, establishment_id, "Client")
        service = self._get_owned(Service, service_id, establishment_id, "Service")

        # queue entries have no scheduled time and never occupy a slot
        appt = self._commit(
            Appointment(
                establishment_id=establishment_id,
                client_id=client_id,
                service_id=service_id,
                appointment_type="queue",
                scheduled_time=None,
                duration_minutes=self._resolve_duration(service, None),
                status="pending",
                notes=notes,
            )
        )
        logger.info("Appointment %s added to queue of establishment %s", appt.id, establishment_id)
        return appt

    def update_appointment(
        self,
        appointment_id: int,
        client_id: Optional[int] = None,
        service_id: Optional[int] = None,
        scheduled_time: Optional[datetime] = None,
        duration_minutes: Optional[int] = None,
        barber_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Appointment:
        appt = self.reader.get_appointment(appointment_id)
        establishment_id = appt.establishment_id

        if client_id is not None:
            self._get_owned(Client, client_id, establishment_id, "Client")
            appt.client_id = client_id
        if service_id is not None:
            service = self._get_owned(Service, service_id, establishment_id, "Service")
            appt.service_id = service_id
            # the occupied length follows the new service unless one is given
            duration_minutes = self._resolve_duration(service, duration_minutes)
        elif duration_minutes is not None:
            validate_duration(duration_minutes, settings.scheduling.max_appointment_minutes)
        if barber_id is not None:
            self._get_owned(Barber, barber_id, establishment_id, "Barber")
        if scheduled_time is not None:
            scheduled_time = as_local(scheduled_time)
        if notes is not None:
            appt.notes = notes

        moved = scheduled_time is not None or barber_id is not None or duration_minutes is not None
        if not moved:
            return self._commit(appt)

        new_time = scheduled_time or appt.scheduled_time
        if new_time is None:
            if scheduled_time is None and barber_id is None:
                # unscheduled queue entry: only its length changes
                appt.duration_minutes = duration_minutes
                return self._commit(appt)
            raise ValidationError("Queue appointments need a scheduled time before they can be moved")
        new_barber = barber_id if barber_id is not None else appt.barber_id
        new_duration = duration_minutes or appt.duration_minutes

        with establishment_lock(establishment_id):
            conflicts = self.checker.check_all_conflicts(
                establishment_id, new_time, new_duration, new_barber, exclude_appointment_id=appt.id
            )
            if conflicts.has_any_conflict:
                self.session.rollback()
                raise ConflictError(conflicts.message)

            appt.scheduled_time = new_time
            appt.barber_id = new_barber
            appt.duration_minutes = new_duration
            if appt.appointment_type == "queue":
                appt.appointment_type = "scheduled"
            appt = self._commit(appt)

        logger.info("Appointment %s moved to %s (barber %s)", appt.id, new_time, new_barber)
        return appt

    def update_status(self, appointment_id: int, status: str) -> Appointment:
        if status not in APPOINTMENT_STATUSES:
            raise ValidationError(f"Unknown appointment status: {status!r}")
        appt = self.reader.get_appointment(appointment_id)
        reactivated = (
            status in ACTIVE_STATUSES
            and appt.status not in ACTIVE_STATUSES
            and appt.scheduled_time is not None
        )
        if not reactivated:
            appt.status = status
            logger.info("Appointment %s set to %s", appointment_id, status)
            return self._commit(appt)

        # the window may have been taken while this appointment was inactive
        with establishment_lock(appt.establishment_id):
            conflicts = self.checker.check_all_conflicts(
                appt.establishment_id,
                appt.scheduled_time,
                appt.duration_minutes,
                appt.barber_id,
                exclude_appointment_id=appt.id,
            )
            if conflicts.has_any_conflict:
                logger.info("Appointment %s cannot return to %s: %s", appointment_id, status, conflicts.message)
                raise ConflictError(conflicts.message)
            appt.status = status
            appt = self._commit(appt)

        logger.info("Appointment %s set to %s", appointment_id, status)
        return appt

    def cancel(self, appointment_id: int) -> Appointment:
        appt = self.reader.get_appointment(appointment_id)
        if appt.status == "cancelled":
            raise ConflictError("Appointment already cancelled")
        appt.status = "cancelled"
        logger.info("Appointment %s cancelled", appointment_id)
        return self._commit(appt)

    def list_appointments(
        self,
        establishment_id: int,
        status: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        barber_id: Optional[int] = None,
    ):
        self.reader.get_establishment(establishment_id)
        stmt = select(Appointment).where(Appointment.establishment_id == establishment_id)
        if status is not None:
            stmt = stmt.where(Appointment.status == status)
        if barber_id is not None:
            stmt = stmt.where(Appointment.barber_id == barber_id)
        if start is not None:
            stmt = stmt.where(Appointment.scheduled_time >= as_local(start))
        if end is not None:
            stmt = stmt.where(Appointment.scheduled_time < as_local(end))
        stmt = stmt.order_by(Appointment.scheduled_time, Appointment.id)
        return self.session.exec(stmt).all()
