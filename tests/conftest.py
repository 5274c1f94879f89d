"""Shared test fixtures and record factories."""

from datetime import datetime
from typing import Optional

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from barberflow import models  # noqa: F401  (registers tables)
from barberflow.errors import StorageUnavailableError
from barberflow.models import Appointment, Barber, Break, Client, Establishment, Service, TimeBlock
from barberflow.queries import SnapshotReader

MONDAY = datetime(2026, 2, 2)
SUNDAY = datetime(2026, 2, 1)


def make_break(
    id: int = 1,
    establishment_id: int = 1,
    barber_id: Optional[int] = None,
    name: str = "Almoço",
    start_time: str = "12:00",
    end_time: str = "13:00",
    days_of_week=(1, 2, 3, 4, 5),
    is_active: bool = True,
) -> Break:
    return Break(
        id=id,
        establishment_id=establishment_id,
        barber_id=barber_id,
        name=name,
        start_time=start_time,
        end_time=end_time,
        days_of_week=list(days_of_week) if days_of_week is not None else None,
        is_active=is_active,
    )


def make_block(
    start: datetime,
    end: datetime,
    id: int = 1,
    establishment_id: int = 1,
    barber_id: Optional[int] = None,
    block_type: str = "maintenance",
) -> TimeBlock:
    return TimeBlock(
        id=id,
        establishment_id=establishment_id,
        barber_id=barber_id,
        title="Blocked",
        start_time=start,
        end_time=end,
        block_type=block_type,
    )


def make_appointment(
    scheduled_time: Optional[datetime],
    id: int = 1,
    establishment_id: int = 1,
    barber_id: Optional[int] = 1,
    duration_minutes: int = 30,
    status: str = "confirmed",
    appointment_type: str = "scheduled",
) -> Appointment:
    return Appointment(
        id=id,
        establishment_id=establishment_id,
        client_id=1,
        barber_id=barber_id,
        service_id=1,
        appointment_type=appointment_type,
        scheduled_time=scheduled_time,
        duration_minutes=duration_minutes,
        status=status,
    )


class FakeReader(SnapshotReader):
    """In-memory reader that counts storage reads and can simulate an outage."""

    def __init__(self, breaks=(), time_blocks=(), appointments=(), establishment=None):
        super().__init__(breaks, time_blocks, appointments, establishment)
        self.calls = 0
        self.broken = False

    def _read(self):
        self.calls += 1
        if self.broken:
            raise StorageUnavailableError("Schedule storage is unavailable")

    def list_active_breaks(self, query):
        self._read()
        return super().list_active_breaks(query)

    def list_time_blocks(self, query):
        self._read()
        return super().list_time_blocks(query)

    def list_appointments(self, query):
        self._read()
        return super().list_appointments(query)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def shop(session):
    """One establishment with two barbers, a 30 minute service and a client."""
    establishment = Establishment(owner_id=1, name="Barbearia Central", phone="11999990000")
    session.add(establishment)
    session.commit()
    session.refresh(establishment)

    barbers = [
        Barber(establishment_id=establishment.id, name="João"),
        Barber(establishment_id=establishment.id, name="Pedro"),
    ]
    service = Service(establishment_id=establishment.id, name="Corte", duration_minutes=30, price=4000)
    client = Client(establishment_id=establishment.id, name="Maria", phone="11988887777")
    session.add_all(barbers + [service, client])
    session.commit()
    for record in barbers + [service, client]:
        session.refresh(record)

    return {
        "establishment": establishment,
        "barbers": barbers,
        "service": service,
        "client": client,
    }
