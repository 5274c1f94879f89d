# barberflow/schemas.py

from datetime import datetime, date
from enum import Enum
from typing import List, Optional

from pydantic import AfterValidator, BaseModel, Field, model_validator
from typing_extensions import Annotated

from barberflow import errors
from barberflow.config import settings
from barberflow.core import to_local_naive, to_minutes, validate_weekdays

MAX_MINUTES = settings.scheduling.max_appointment_minutes


def _hhmm(value: str) -> str:
    try:
        to_minutes(value)
    except errors.ValidationError as exc:
        raise ValueError(exc.message) from None
    return value


def _weekdays(value: List[int]) -> List[int]:
    try:
        return validate_weekdays(value)
    except errors.ValidationError as exc:
        raise ValueError(exc.message) from None


def _local(value: datetime) -> datetime:
    # aware inputs are stored as wall-clock time of the configured zone
    return to_local_naive(value, settings.scheduling.timezone)


HHMM = Annotated[str, AfterValidator(_hhmm)]
Weekdays = Annotated[List[int], AfterValidator(_weekdays)]
LocalDateTime = Annotated[datetime, AfterValidator(_local)]


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserRole(str, Enum):
    owner = "owner"
    staff = "staff"


class AppointmentStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"
    no_show = "no_show"


class AppointmentType(str, Enum):
    scheduled = "scheduled"
    queue = "queue"


class BlockType(str, Enum):
    maintenance = "maintenance"
    absence = "absence"
    closed = "closed"
    custom = "custom"


class UserPublic(BaseModel):
    id: int
    email: str
    role: UserRole


class UserCreate(BaseModel):
    email: str
    password: str = Field(min_length=8, max_length=72)
    role: UserRole = UserRole.owner


# Establishments

class EstablishmentCreate(BaseModel):
    name: str = Field(min_length=1)
    phone: str = ""
    open_time: Optional[HHMM] = None
    close_time: Optional[HHMM] = None
    closed_days: Weekdays = Field(default_factory=list)

    @model_validator(mode="after")
    def _open_before_close(self):
        if self.open_time and self.close_time and self.open_time >= self.close_time:
            raise ValueError("open_time must be earlier than close_time")
        return self


class BusinessHoursUpdate(BaseModel):
    open_time: HHMM
    close_time: HHMM
    closed_days: Weekdays = Field(default_factory=list)

    @model_validator(mode="after")
    def _open_before_close(self):
        if self.open_time >= self.close_time:
            raise ValueError("open_time must be earlier than close_time")
        return self


class EstablishmentPublic(BaseModel):
    id: int
    owner_id: int
    name: str
    phone: str
    open_time: Optional[str] = None
    close_time: Optional[str] = None
    closed_days: List[int] = Field(default_factory=list)


class BarberCreate(BaseModel):
    name: str = Field(min_length=1)
    phone: Optional[str] = None


class BarberPublic(BaseModel):
    id: int
    establishment_id: int
    name: str
    phone: Optional[str] = None
    is_active: bool


class ServiceCreate(BaseModel):
    name: str = Field(min_length=1)
    duration_minutes: int = Field(gt=0, le=MAX_MINUTES)
    price: int = Field(default=0, ge=0)


class ServicePublic(BaseModel):
    id: int
    establishment_id: int
    name: str
    duration_minutes: int
    price: int
    is_active: bool


class ClientCreate(BaseModel):
    name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    email: Optional[str] = None


class ClientPublic(BaseModel):
    id: int
    establishment_id: int
    name: str
    phone: str
    email: Optional[str] = None


# Breaks and time blocks

class BreakCreate(BaseModel):
    barber_id: Optional[int] = None
    name: str = Field(min_length=1)
    start_time: HHMM
    end_time: HHMM
    days_of_week: Weekdays
    is_recurring: bool = True

    @model_validator(mode="after")
    def _start_before_end(self):
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be earlier than end_time")
        return self


class BreakUpdate(BaseModel):
    name: Optional[str] = None
    start_time: Optional[HHMM] = None
    end_time: Optional[HHMM] = None
    days_of_week: Optional[Weekdays] = None
    is_recurring: Optional[bool] = None
    is_active: Optional[bool] = None


class BreakPublic(BaseModel):
    id: int
    establishment_id: int
    barber_id: Optional[int] = None
    name: str
    start_time: str
    end_time: str
    days_of_week: List[int] = Field(default_factory=list)
    is_recurring: bool
    is_active: bool


class TimeBlockCreate(BaseModel):
    barber_id: Optional[int] = None
    title: str = Field(min_length=1)
    description: Optional[str] = None
    start_time: LocalDateTime
    end_time: LocalDateTime
    block_type: BlockType = BlockType.custom
    is_recurring: bool = False

    @model_validator(mode="after")
    def _start_before_end(self):
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be earlier than end_time")
        return self


class TimeBlockUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    start_time: Optional[LocalDateTime] = None
    end_time: Optional[LocalDateTime] = None
    block_type: Optional[BlockType] = None
    is_recurring: Optional[bool] = None


class TimeBlockPublic(BaseModel):
    id: int
    establishment_id: int
    barber_id: Optional[int] = None
    title: str
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    block_type: BlockType
    is_recurring: bool


# Appointments

class AppointmentCreate(BaseModel):
    client_id: int
    service_id: int
    barber_id: Optional[int] = None
    scheduled_time: LocalDateTime
    duration_minutes: Optional[int] = Field(default=None, gt=0, le=MAX_MINUTES)
    notes: Optional[str] = None


class QueueAppointmentCreate(BaseModel):
    client_id: int
    service_id: int
    notes: Optional[str] = None


class AppointmentUpdate(BaseModel):
    client_id: Optional[int] = None
    service_id: Optional[int] = None
    scheduled_time: Optional[LocalDateTime] = None
    duration_minutes: Optional[int] = Field(default=None, gt=0, le=MAX_MINUTES)
    barber_id: Optional[int] = None
    notes: Optional[str] = None


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus


class AppointmentPublic(BaseModel):
    id: int
    establishment_id: int
    client_id: int
    barber_id: Optional[int] = None
    service_id: int
    appointment_type: AppointmentType
    scheduled_time: Optional[datetime] = None
    duration_minutes: int
    status: AppointmentStatus
    notes: Optional[str] = None


# Availability

class ConflictPublic(BaseModel):
    has_break_conflict: bool
    has_time_block_conflict: bool
    has_appointment_conflict: bool
    has_any_conflict: bool
    message: str = ""


class AvailabilityCheckResponse(BaseModel):
    available: bool
    conflicts: ConflictPublic


class SlotPublic(BaseModel):
    start_time: str
    end_time: str
    available: bool


class SlotsResponse(BaseModel):
    establishment_id: int
    date: date
    barber_id: Optional[int] = None
    slot_duration_minutes: int
    slots: List[SlotPublic]
