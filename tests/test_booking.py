"""Tests for the booking write path."""

from datetime import datetime, timezone

import pytest

from barberflow.booking import BookingService
from barberflow.conflicts import APPOINTMENT_CONFLICT_MESSAGE, BREAK_CONFLICT_MESSAGE
from barberflow.errors import ConflictError, NotFoundError, ValidationError
from barberflow.models import Appointment, Break, Establishment, Service
from tests.conftest import MONDAY


def _at(hour: int, minute: int = 0) -> datetime:
    return MONDAY.replace(hour=hour, minute=minute)


@pytest.fixture
def booking(session):
    return BookingService(session)


@pytest.fixture
def ids(shop):
    return {
        "establishment": shop["establishment"].id,
        "joao": shop["barbers"][0].id,
        "pedro": shop["barbers"][1].id,
        "service": shop["service"].id,
        "client": shop["client"].id,
    }


def _book(booking, ids, when, barber="joao", **kwargs):
    return booking.create_scheduled(
        ids["establishment"], ids["client"], ids["service"], when,
        barber_id=ids[barber] if barber else None, **kwargs
    )


class TestCreateScheduled:
    def test_books_free_slot_as_confirmed(self, booking, ids):
        appt = _book(booking, ids, _at(10))
        assert appt.id is not None
        assert appt.status == "confirmed"
        assert appt.appointment_type == "scheduled"
        assert appt.duration_minutes == 30

    def test_overlapping_booking_same_barber_is_refused(self, booking, ids):
        _book(booking, ids, _at(10))
        with pytest.raises(ConflictError) as exc:
            _book(booking, ids, _at(10, 15))
        assert exc.value.message == APPOINTMENT_CONFLICT_MESSAGE
        assert exc.value.status_code == 409

    def test_other_barber_can_take_the_same_time(self, booking, ids):
        _book(booking, ids, _at(10))
        assert _book(booking, ids, _at(10, 15), barber="pedro").barber_id == ids["pedro"]

    def test_back_to_back_bookings(self, booking, ids):
        _book(booking, ids, _at(10))
        _book(booking, ids, _at(10, 30))
        _book(booking, ids, _at(9, 30))

    def test_long_appointment_blocks_later_start(self, booking, ids):
        _book(booking, ids, _at(10), duration_minutes=90)
        with pytest.raises(ConflictError):
            _book(booking, ids, _at(11))
        _book(booking, ids, _at(11, 30))

    def test_unassigned_booking_competes_with_every_barber(self, booking, ids):
        _book(booking, ids, _at(10), barber="pedro")
        with pytest.raises(ConflictError):
            _book(booking, ids, _at(10), barber=None)

    def test_break_refuses_booking(self, session, booking, ids):
        session.add(Break(
            establishment_id=ids["establishment"], name="Almoço",
            start_time="12:00", end_time="13:00", days_of_week=[1, 2, 3, 4, 5],
        ))
        session.commit()
        with pytest.raises(ConflictError) as exc:
            _book(booking, ids, _at(12, 30))
        assert exc.value.message == BREAK_CONFLICT_MESSAGE

    def test_cancelled_appointment_frees_the_slot(self, booking, ids):
        first = _book(booking, ids, _at(10))
        booking.cancel(first.id)
        assert _book(booking, ids, _at(10)).status == "confirmed"

    def test_rejects_non_positive_duration(self, booking, ids):
        with pytest.raises(ValidationError):
            _book(booking, ids, _at(10), duration_minutes=0)

    def test_rejects_duration_beyond_lookback(self, booking, ids):
        with pytest.raises(ValidationError):
            _book(booking, ids, _at(8), duration_minutes=600)
        # the refused booking must not hide a later slot
        assert booking.checker.check_all_conflicts(
            ids["establishment"], _at(17), 30, ids["joao"]
        ).has_any_conflict is False

    def test_rejects_overlong_service_duration(self, session, booking, ids):
        marathon = Service(establishment_id=ids["establishment"], name="Dia de noiva", duration_minutes=600)
        session.add(marathon)
        session.commit()
        session.refresh(marathon)
        with pytest.raises(ValidationError):
            booking.create_scheduled(ids["establishment"], ids["client"], marathon.id, _at(8), ids["joao"])

    def test_longest_allowed_booking_is_still_seen(self, booking, ids):
        _book(booking, ids, _at(8), duration_minutes=480)
        with pytest.raises(ConflictError):
            _book(booking, ids, _at(15, 30))

    def test_aware_time_is_stored_as_wall_clock(self, booking, ids):
        appt = _book(booking, ids, datetime(2026, 2, 2, 10, 0, tzinfo=timezone.utc))
        assert appt.scheduled_time == _at(10)
        assert appt.scheduled_time.tzinfo is None
        with pytest.raises(ConflictError):
            _book(booking, ids, datetime(2026, 2, 2, 10, 15, tzinfo=timezone.utc))

    def test_service_from_another_establishment(self, session, booking, ids):
        other = Establishment(owner_id=2, name="Outra")
        session.add(other)
        session.commit()
        session.refresh(other)
        foreign = Service(establishment_id=other.id, name="Barba", duration_minutes=20)
        session.add(foreign)
        session.commit()
        session.refresh(foreign)

        with pytest.raises(NotFoundError):
            booking.create_scheduled(ids["establishment"], ids["client"], foreign.id, _at(10))

    def test_unknown_establishment(self, booking, ids):
        with pytest.raises(NotFoundError):
            booking.create_scheduled(999, ids["client"], ids["service"], _at(10))


class TestQueue:
    def test_queue_entry_has_no_time(self, booking, ids):
        appt = booking.add_to_queue(ids["establishment"], ids["client"], ids["service"])
        assert appt.appointment_type == "queue"
        assert appt.status == "pending"
        assert appt.scheduled_time is None

    def test_queue_entry_never_blocks_bookings(self, booking, ids):
        queued = booking.add_to_queue(ids["establishment"], ids["client"], ids["service"])
        booking.update_status(queued.id, "confirmed")
        _book(booking, ids, _at(10))

    def test_scheduling_a_queue_entry(self, booking, ids):
        queued = booking.add_to_queue(ids["establishment"], ids["client"], ids["service"])
        appt = booking.update_appointment(queued.id, scheduled_time=_at(15), barber_id=ids["joao"])
        assert appt.appointment_type == "scheduled"
        assert appt.scheduled_time == _at(15)

    def test_moving_queue_entry_without_time_is_invalid(self, booking, ids):
        queued = booking.add_to_queue(ids["establishment"], ids["client"], ids["service"])
        with pytest.raises(ValidationError):
            booking.update_appointment(queued.id, barber_id=ids["joao"])


class TestUpdateAppointment:
    def test_moving_within_own_window_is_allowed(self, booking, ids):
        appt = _book(booking, ids, _at(10))
        moved = booking.update_appointment(appt.id, scheduled_time=_at(10, 15))
        assert moved.scheduled_time == _at(10, 15)

    def test_moving_onto_another_booking_is_refused(self, session, booking, ids):
        _book(booking, ids, _at(10))
        later = _book(booking, ids, _at(11))
        with pytest.raises(ConflictError):
            booking.update_appointment(later.id, scheduled_time=_at(10, 15))
        assert session.get(Appointment, later.id).scheduled_time == _at(11)

    def test_changing_barber_rechecks(self, booking, ids):
        _book(booking, ids, _at(10), barber="pedro")
        appt = _book(booking, ids, _at(10))
        with pytest.raises(ConflictError):
            booking.update_appointment(appt.id, barber_id=ids["pedro"])

    def test_service_change_follows_new_duration(self, session, booking, ids):
        longer = Service(establishment_id=ids["establishment"], name="Corte e barba", duration_minutes=60)
        session.add(longer)
        session.commit()
        session.refresh(longer)

        appt = _book(booking, ids, _at(10))
        _book(booking, ids, _at(10, 30))
        with pytest.raises(ConflictError):
            booking.update_appointment(appt.id, service_id=longer.id)
        assert session.get(Appointment, appt.id).duration_minutes == 30

        free = _book(booking, ids, _at(14))
        moved = booking.update_appointment(free.id, service_id=longer.id)
        assert moved.service_id == longer.id
        assert moved.duration_minutes == 60

    def test_service_change_on_queue_entry(self, session, booking, ids):
        longer = Service(establishment_id=ids["establishment"], name="Corte e barba", duration_minutes=60)
        session.add(longer)
        session.commit()
        session.refresh(longer)

        queued = booking.add_to_queue(ids["establishment"], ids["client"], ids["service"])
        updated = booking.update_appointment(queued.id, service_id=longer.id)
        assert updated.duration_minutes == 60
        assert updated.scheduled_time is None

    def test_notes_only_update_skips_the_check(self, booking, ids):
        appt = _book(booking, ids, _at(10))
        assert booking.update_appointment(appt.id, notes="cliente novo").notes == "cliente novo"

    def test_unknown_appointment(self, booking, ids):
        with pytest.raises(NotFoundError):
            booking.update_appointment(999, notes="x")


class TestStatus:
    def test_update_status(self, booking, ids):
        appt = _book(booking, ids, _at(10))
        assert booking.update_status(appt.id, "in_progress").status == "in_progress"

    def test_unknown_status_is_invalid(self, booking, ids):
        appt = _book(booking, ids, _at(10))
        with pytest.raises(ValidationError):
            booking.update_status(appt.id, "archived")

    def test_reactivation_is_refused_when_slot_was_taken(self, session, booking, ids):
        first = _book(booking, ids, _at(10))
        booking.cancel(first.id)
        second = _book(booking, ids, _at(10))

        with pytest.raises(ConflictError):
            booking.update_status(first.id, "confirmed")
        assert session.get(Appointment, first.id).status == "cancelled"
        assert session.get(Appointment, second.id).status == "confirmed"

    def test_reactivation_of_free_slot(self, booking, ids):
        appt = _book(booking, ids, _at(10))
        booking.update_status(appt.id, "no_show")
        assert booking.update_status(appt.id, "in_progress").status == "in_progress"

    def test_moving_between_active_statuses_skips_the_check(self, booking, ids):
        appt = _book(booking, ids, _at(10))
        assert booking.update_status(appt.id, "in_progress").status == "in_progress"

    def test_cancel_twice(self, booking, ids):
        appt = _book(booking, ids, _at(10))
        assert booking.cancel(appt.id).status == "cancelled"
        with pytest.raises(ConflictError):
            booking.cancel(appt.id)


class TestListAppointments:
    def test_filters(self, booking, ids):
        _book(booking, ids, _at(10))
        _book(booking, ids, _at(11), barber="pedro")
        cancelled = _book(booking, ids, _at(14))
        booking.cancel(cancelled.id)

        everything = booking.list_appointments(ids["establishment"])
        assert [a.scheduled_time for a in everything] == [_at(10), _at(11), _at(14)]

        assert len(booking.list_appointments(ids["establishment"], status="cancelled")) == 1
        assert len(booking.list_appointments(ids["establishment"], barber_id=ids["pedro"])) == 1
        window = booking.list_appointments(ids["establishment"], start=_at(10, 30), end=_at(12))
        assert [a.scheduled_time for a in window] == [_at(11)]
