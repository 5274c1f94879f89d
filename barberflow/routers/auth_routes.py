# barberflow/routers/auth_routes.py

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import Session, select

from barberflow.auth import create_access_token, verify_password
from barberflow.db import get_session
from barberflow.models import User
from barberflow.schemas import Token

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


@router.post("/login", response_model=Token)
def login(
    credentials: OAuth2PasswordRequestForm = Depends(),
    session: Session = Depends(get_session),
):
    # the password flow carries the account email in "username"
    email = credentials.username.strip().lower()
    account = session.exec(select(User).where(User.email == email)).first()

    if account is None or not verify_password(credentials.password, account.password_hash):
        logger.info("Rejected login for %s", email)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return Token(access_token=create_access_token({"sub": account.email, "role": account.role}))
