# barberflow/routers/breaks_routes.py

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from barberflow.conflicts import as_local
from barberflow.core import validate_window
from barberflow.db import get_session
from barberflow.deps import owned_establishment
from barberflow.models import Barber, Break, Establishment, TimeBlock
from barberflow.schemas import (
    BreakCreate,
    BreakPublic,
    BreakUpdate,
    TimeBlockCreate,
    TimeBlockPublic,
    TimeBlockUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/establishments/{establishment_id}",
    tags=["breaks"],
)


def _check_barber(session: Session, establishment: Establishment, barber_id: Optional[int]):
    if barber_id is None:
        return
    barber = session.get(Barber, barber_id)
    if barber is None or barber.establishment_id != establishment.id:
        raise HTTPException(status_code=404, detail="Barber not found")


def _get_scoped(session: Session, model, record_id: int, establishment: Establishment, label: str):
    record = session.get(model, record_id)
    if record is None or record.establishment_id != establishment.id:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return record


def _break_public(item: Break) -> dict:
    data = item.model_dump()
    data["days_of_week"] = item.days_of_week or []
    return data


# Breaks

@router.get("/breaks", response_model=List[BreakPublic])
def list_breaks(
    barber_id: Optional[int] = None,
    establishment: Establishment = Depends(owned_establishment),
    session: Session = Depends(get_session),
):
    stmt = select(Break).where(Break.establishment_id == establishment.id)
    if barber_id is not None:
        stmt = stmt.where(Break.barber_id == barber_id)
    return [_break_public(b) for b in session.exec(stmt.order_by(Break.id)).all()]


@router.post("/breaks", response_model=BreakPublic, status_code=201)
def create_break(
    payload: BreakCreate,
    establishment: Establishment = Depends(owned_establishment),
    session: Session = Depends(get_session),
):
    _check_barber(session, establishment, payload.barber_id)

    db_break = Break(
        establishment_id=establishment.id,
        barber_id=payload.barber_id,
        name=payload.name,
        start_time=payload.start_time,
        end_time=payload.end_time,
        days_of_week=payload.days_of_week,
        is_recurring=payload.is_recurring,
        is_active=True,
    )
    session.add(db_break)
    session.commit()
    session.refresh(db_break)
    logger.info("Break %s created for establishment %s", db_break.id, establishment.id)
    return _break_public(db_break)


@router.patch("/breaks/{break_id}", response_model=BreakPublic)
def update_break(
    break_id: int,
    payload: BreakUpdate,
    establishment: Establishment = Depends(owned_establishment),
    session: Session = Depends(get_session),
):
    db_break = _get_scoped(session, Break, break_id, establishment, "Break")
    changes = payload.model_dump(exclude_unset=True)

    # the stored invariant start < end must hold after a partial update
    validate_window(
        changes.get("start_time", db_break.start_time),
        changes.get("end_time", db_break.end_time),
    )

    for key, value in changes.items():
        setattr(db_break, key, value)
    session.add(db_break)
    session.commit()
    session.refresh(db_break)
    return _break_public(db_break)


@router.delete("/breaks/{break_id}", status_code=204)
def delete_break(
    break_id: int,
    establishment: Establishment = Depends(owned_establishment),
    session: Session = Depends(get_session),
):
    db_break = _get_scoped(session, Break, break_id, establishment, "Break")
    session.delete(db_break)
    session.commit()


# Time blocks

@router.get("/time-blocks", response_model=List[TimeBlockPublic])
def list_time_blocks(
    barber_id: Optional[int] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    establishment: Establishment = Depends(owned_establishment),
    session: Session = Depends(get_session),
):
    stmt = select(TimeBlock).where(TimeBlock.establishment_id == establishment.id)
    if barber_id is not None:
        stmt = stmt.where(TimeBlock.barber_id == barber_id)
    if start is not None:
        stmt = stmt.where(TimeBlock.end_time > as_local(start))
    if end is not None:
        stmt = stmt.where(TimeBlock.start_time < as_local(end))
    return session.exec(stmt.order_by(TimeBlock.start_time, TimeBlock.id)).all()


@router.post("/time-blocks", response_model=TimeBlockPublic, status_code=201)
def create_time_block(
    payload: TimeBlockCreate,
    establishment: Establishment = Depends(owned_establishment),
    session: Session = Depends(get_session),
):
    _check_barber(session, establishment, payload.barber_id)

    block = TimeBlock(
        establishment_id=establishment.id,
        barber_id=payload.barber_id,
        title=payload.title,
        description=payload.description,
        start_time=payload.start_time,
        end_time=payload.end_time,
        block_type=payload.block_type.value,
        is_recurring=payload.is_recurring,
    )
    session.add(block)
    session.commit()
    session.refresh(block)
    logger.info("Time block %s created for establishment %s", block.id, establishment.id)
    return block


@router.patch("/time-blocks/{block_id}", response_model=TimeBlockPublic)
def update_time_block(
    block_id: int,
    payload: TimeBlockUpdate,
    establishment: Establishment = Depends(owned_establishment),
    session: Session = Depends(get_session),
):
    block = _get_scoped(session, TimeBlock, block_id, establishment, "Time block")
    changes = payload.model_dump(exclude_unset=True)
    if "block_type" in changes and changes["block_type"] is not None:
        changes["block_type"] = changes["block_type"].value

    start = changes.get("start_time") or block.start_time
    end = changes.get("end_time") or block.end_time
    if start >= end:
        raise HTTPException(status_code=422, detail="start_time must be earlier than end_time")

    for key, value in changes.items():
        setattr(block, key, value)
    session.add(block)
    session.commit()
    session.refresh(block)
    return block


@router.delete("/time-blocks/{block_id}", status_code=204)
def delete_time_block(
    block_id: int,
    establishment: Establishment = Depends(owned_establishment),
    session: Session = Depends(get_session),
):
    block = _get_scoped(session, TimeBlock, block_id, establishment, "Time block")
    session.delete(block)
    session.commit()
