# barberflow/routers/users_routes.py

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from barberflow.auth import get_current_user, hash_password
from barberflow.db import get_session
from barberflow.models import User
from barberflow.schemas import UserCreate, UserPublic

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["users"],
)


@router.get("/me", response_model=UserPublic)
def me(current_user: dict = Depends(get_current_user)):
    return current_user


@router.post("/users", status_code=201, response_model=UserPublic)
def register_owner(
    payload: UserCreate,
    session: Session = Depends(get_session),
):
    email = payload.email.strip().lower()
    taken = session.exec(select(User).where(User.email == email)).first()
    if taken is not None:
        raise HTTPException(status_code=409, detail="Email already registered")

    account = User(
        email=email,
        password_hash=hash_password(payload.password),
        role=payload.role.value,
    )
    session.add(account)
    try:
        session.commit()
    except IntegrityError:
        # unique index on email, lost a race with a concurrent signup
        session.rollback()
        raise HTTPException(status_code=409, detail="Email already registered")
    session.refresh(account)

    logger.info("Registered %s account %s", account.role, account.id)
    return account
