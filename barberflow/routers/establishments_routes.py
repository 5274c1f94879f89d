# barberflow/routers/establishments_routes.py

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from barberflow.auth import get_current_user
from barberflow.db import get_session
from barberflow.deps import owned_establishment
from barberflow.models import Barber, Client, Establishment, Service
from barberflow.schemas import (
    BarberCreate,
    BarberPublic,
    BusinessHoursUpdate,
    ClientCreate,
    ClientPublic,
    EstablishmentCreate,
    EstablishmentPublic,
    ServiceCreate,
    ServicePublic,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/establishments",
    tags=["establishments"],
)


def _public(establishment: Establishment) -> dict:
    return {
        "id": establishment.id,
        "owner_id": establishment.owner_id,
        "name": establishment.name,
        "phone": establishment.phone,
        "open_time": establishment.open_time,
        "close_time": establishment.close_time,
        "closed_days": establishment.closed_days or [],
    }


@router.post("", response_model=EstablishmentPublic, status_code=201)
def create_establishment(
    payload: EstablishmentCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    db_establishment = Establishment(
        owner_id=current_user["id"],
        name=payload.name,
        phone=payload.phone,
        open_time=payload.open_time,
        close_time=payload.close_time,
        closed_days=payload.closed_days,
    )
    session.add(db_establishment)
    session.commit()
    session.refresh(db_establishment)
    logger.info("Establishment %s created by user %s", db_establishment.id, current_user["id"])
    return _public(db_establishment)


@router.get("/{establishment_id}", response_model=EstablishmentPublic)
def get_establishment(establishment: Establishment = Depends(owned_establishment)):
    return _public(establishment)


@router.put("/{establishment_id}/hours", response_model=EstablishmentPublic)
def update_hours(
    payload: BusinessHoursUpdate,
    establishment: Establishment = Depends(owned_establishment),
    session: Session = Depends(get_session),
):
    establishment.open_time = payload.open_time
    establishment.close_time = payload.close_time
    establishment.closed_days = payload.closed_days
    session.add(establishment)
    session.commit()
    session.refresh(establishment)
    return _public(establishment)


@router.post("/{establishment_id}/barbers", response_model=BarberPublic, status_code=201)
def create_barber(
    payload: BarberCreate,
    establishment: Establishment = Depends(owned_establishment),
    session: Session = Depends(get_session),
):
    barber = Barber(establishment_id=establishment.id, name=payload.name, phone=payload.phone)
    session.add(barber)
    session.commit()
    session.refresh(barber)
    return barber


@router.get("/{establishment_id}/barbers", response_model=List[BarberPublic])
def list_barbers(
    establishment: Establishment = Depends(owned_establishment),
    session: Session = Depends(get_session),
):
    return session.exec(
        select(Barber).where(Barber.establishment_id == establishment.id).order_by(Barber.id)
    ).all()


@router.post("/{establishment_id}/services", response_model=ServicePublic, status_code=201)
def create_service(
    payload: ServiceCreate,
    establishment: Establishment = Depends(owned_establishment),
    session: Session = Depends(get_session),
):
    service = Service(
        establishment_id=establishment.id,
        name=payload.name,
        duration_minutes=payload.duration_minutes,
        price=payload.price,
    )
    session.add(service)
    session.commit()
    session.refresh(service)
    return service


@router.post("/{establishment_id}/clients", response_model=ClientPublic, status_code=201)
def create_client(
    payload: ClientCreate,
    establishment: Establishment = Depends(owned_establishment),
    session: Session = Depends(get_session),
):
    client = Client(
        establishment_id=establishment.id,
        name=payload.name,
        phone=payload.phone,
        email=payload.email,
    )
    session.add(client)
    session.commit()
    session.refresh(client)
    return client
