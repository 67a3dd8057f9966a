from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from . import config


def make_engine(url: str = config.DATABASE_URL):
    if url in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection, otherwise every session sees an empty database
        return create_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, echo=False)


def init_db(engine) -> None:
    from . import models  # ensure models imported
    SQLModel.metadata.create_all(engine)


def get_session(engine) -> Session:
    return Session(engine)
