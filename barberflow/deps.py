# barberflow/deps.py

from fastapi import Depends, HTTPException
from sqlmodel import Session

from barberflow.auth import get_current_user
from barberflow.booking import BookingService
from barberflow.conflicts import ConflictChecker
from barberflow.db import get_session
from barberflow.models import Establishment
from barberflow.queries import SqlScheduleReader


def require_owner(user: dict, establishment: Establishment):
    if establishment.owner_id != user["id"]:
        raise HTTPException(status_code=403, detail="Forbidden")


def get_reader(session: Session = Depends(get_session)) -> SqlScheduleReader:
    return SqlScheduleReader(session)


def get_checker(reader: SqlScheduleReader = Depends(get_reader)) -> ConflictChecker:
    return ConflictChecker(reader)


def get_booking_service(session: Session = Depends(get_session)) -> BookingService:
    return BookingService(session)


def owned_establishment(
    establishment_id: int,
    reader: SqlScheduleReader = Depends(get_reader),
    current_user: dict = Depends(get_current_user),
) -> Establishment:
    """Path dependency: the establishment exists and belongs to the caller."""
    establishment = reader.get_establishment(establishment_id)
    require_owner(current_user, establishment)
    return establishment
