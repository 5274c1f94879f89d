# barberflow/db.py

from sqlmodel import SQLModel, create_engine, Session

from barberflow.config import settings

connect_args = {}
if settings.database.url.startswith("sqlite"):
    connect_args = {"check_same_thread": False}  # required for SQLite + FastAPI

engine = create_engine(
    settings.database.url,
    echo=settings.database.echo,
    connect_args=connect_args,
)


def init_db():
    # importing models registers the tables on SQLModel.metadata
    from barberflow import models  # noqa: F401

    SQLModel.metadata.create_all(engine)


# Dependency: one session per request
def get_session():
    with Session(engine) as session:
        yield session
