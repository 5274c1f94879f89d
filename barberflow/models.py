# barberflow/models.py

from typing import Optional, List
from datetime import datetime

from sqlalchemy.types import JSON, DateTime
from sqlmodel import SQLModel, Field, Column


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    password_hash: str
    role: str = "owner"  # owner or staff


class Establishment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    owner_id: int = Field(index=True)
    name: str
    phone: str = ""
    open_time: Optional[str] = None  # HH:mm
    close_time: Optional[str] = None  # HH:mm
    closed_days: Optional[List[int]] = Field(default=None, sa_column=Column(JSON))


class Barber(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    establishment_id: int = Field(index=True)
    name: str
    phone: Optional[str] = None
    is_active: bool = True


class Service(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    establishment_id: int = Field(index=True)
    name: str
    duration_minutes: int
    price: int = 0  # cents
    is_active: bool = True


class Client(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    establishment_id: int = Field(index=True)
    name: str
    phone: str
    email: Optional[str] = None


class Break(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    establishment_id: int = Field(index=True)
    barber_id: Optional[int] = Field(default=None, index=True)
    name: str
    start_time: str  # HH:mm
    end_time: str  # HH:mm
    days_of_week: Optional[List[int]] = Field(default=None, sa_column=Column(JSON))  # 0=Sun..6=Sat
    is_recurring: bool = True
    is_active: bool = True


class TimeBlock(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    establishment_id: int = Field(index=True)
    barber_id: Optional[int] = Field(default=None, index=True)
    title: str
    description: Optional[str] = None
    # naive wall-clock columns, see barberflow.conflicts.as_local
    start_time: datetime = Field(sa_column=Column(DateTime(timezone=False), nullable=False, index=True))
    end_time: datetime = Field(sa_column=Column(DateTime(timezone=False), nullable=False, index=True))
    block_type: str = "custom"  # maintenance, absence, closed, custom
    is_recurring: bool = False


class Appointment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    establishment_id: int = Field(index=True)
    client_id: int
    barber_id: Optional[int] = Field(default=None, index=True)
    service_id: int
    appointment_type: str = "scheduled"  # scheduled or queue
    scheduled_time: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime(timezone=False), nullable=True, index=True)
    )
    duration_minutes: int = 60
    status: str = "pending"
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now, sa_column=Column(DateTime(timezone=False)))
