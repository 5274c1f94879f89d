# barberflow/routers/appointments_routes.py

from dataclasses import asdict
from datetime import datetime, timedelta, date
from typing import Optional, List

from fastapi import APIRouter, Depends

from barberflow.auth import get_current_user
from barberflow.booking import BookingService
from barberflow.conflicts import BusinessHours, ConflictChecker
from barberflow.config import settings
from barberflow.deps import get_booking_service, get_checker, owned_establishment, require_owner
from barberflow.models import Establishment
from barberflow.schemas import (
    AppointmentCreate,
    AppointmentPublic,
    AppointmentStatus,
    AppointmentStatusUpdate,
    AppointmentUpdate,
    AvailabilityCheckResponse,
    QueueAppointmentCreate,
    SlotsResponse,
)

router = APIRouter(
    tags=["appointments"],
)


@router.get("/establishments/{establishment_id}/appointments", response_model=List[AppointmentPublic])
def list_appointments(
    status: Optional[AppointmentStatus] = None,
    on_date: Optional[date] = None,
    barber_id: Optional[int] = None,
    establishment: Establishment = Depends(owned_establishment),
    booking: BookingService = Depends(get_booking_service),
):
    start = end = None
    if on_date is not None:
        start = datetime.combine(on_date, datetime.min.time())
        end = start + timedelta(days=1)
    return booking.list_appointments(
        establishment.id,
        status=status.value if status is not None else None,
        start=start,
        end=end,
        barber_id=barber_id,
    )


@router.post(
    "/establishments/{establishment_id}/appointments",
    response_model=AppointmentPublic,
    status_code=201,
)
def create_appointment(
    appt: AppointmentCreate,
    establishment: Establishment = Depends(owned_establishment),
    booking: BookingService = Depends(get_booking_service),
):
    # raises ConflictError (409) when the window is taken at commit time
    return booking.create_scheduled(
        establishment.id,
        client_id=appt.client_id,
        service_id=appt.service_id,
        scheduled_time=appt.scheduled_time,
        barber_id=appt.barber_id,
        duration_minutes=appt.duration_minutes,
        notes=appt.notes,
    )


@router.post("/establishments/{establishment_id}/queue", response_model=AppointmentPublic, status_code=201)
def add_to_queue(
    appt: QueueAppointmentCreate,
    establishment: Establishment = Depends(owned_establishment),
    booking: BookingService = Depends(get_booking_service),
):
    return booking.add_to_queue(
        establishment.id,
        client_id=appt.client_id,
        service_id=appt.service_id,
        notes=appt.notes,
    )


@router.get("/establishments/{establishment_id}/availability", response_model=AvailabilityCheckResponse)
def check_availability(
    scheduled_time: datetime,
    duration_minutes: int = settings.scheduling.default_appointment_minutes,
    barber_id: Optional[int] = None,
    establishment: Establishment = Depends(owned_establishment),
    checker: ConflictChecker = Depends(get_checker),
):
    result = checker.check_all_conflicts(establishment.id, scheduled_time, duration_minutes, barber_id)
    return {
        "available": not result.has_any_conflict,
        "conflicts": asdict(result),
    }


@router.get("/establishments/{establishment_id}/slots", response_model=SlotsResponse)
def available_slots(
    on_date: date,
    slot_duration_minutes: int = settings.scheduling.default_slot_minutes,
    barber_id: Optional[int] = None,
    establishment: Establishment = Depends(owned_establishment),
    checker: ConflictChecker = Depends(get_checker),
):
    slots = checker.get_available_time_slots(
        establishment.id,
        on_date,
        slot_duration_minutes,
        barber_id,
        hours=BusinessHours.for_establishment(establishment),
    )
    return {
        "establishment_id": establishment.id,
        "date": on_date,
        "barber_id": barber_id,
        "slot_duration_minutes": slot_duration_minutes,
        "slots": [asdict(slot) for slot in slots],
    }


def _owned_appointment(appt_id: int, booking: BookingService, current_user: dict):
    appt = booking.reader.get_appointment(appt_id)
    require_owner(current_user, booking.reader.get_establishment(appt.establishment_id))
    return appt


@router.patch("/appointments/{appt_id}", response_model=AppointmentPublic)
def update_appointment(
    appt_id: int,
    changes: AppointmentUpdate,
    booking: BookingService = Depends(get_booking_service),
    current_user: dict = Depends(get_current_user),
):
    _owned_appointment(appt_id, booking, current_user)
    # the appointment's own row never conflicts with its new window
    return booking.update_appointment(appt_id, **changes.model_dump(exclude_unset=True))


@router.patch("/appointments/{appt_id}/status", response_model=AppointmentPublic)
def update_status(
    appt_id: int,
    payload: AppointmentStatusUpdate,
    booking: BookingService = Depends(get_booking_service),
    current_user: dict = Depends(get_current_user),
):
    _owned_appointment(appt_id, booking, current_user)
    return booking.update_status(appt_id, payload.status.value)


@router.patch("/appointments/{appt_id}/cancel", response_model=AppointmentPublic)
def cancel_appointment(
    appt_id: int,
    booking: BookingService = Depends(get_booking_service),
    current_user: dict = Depends(get_current_user),
):
    _owned_appointment(appt_id, booking, current_user)
    return booking.cancel(appt_id)
