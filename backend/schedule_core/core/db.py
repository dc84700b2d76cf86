from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from schedule_core.core.config import Settings, settings


def build_engine(config: Settings = settings) -> Engine:
    uri = str(config.SQLALCHEMY_DATABASE_URI)
    if config.is_sqlite:
        # the API serves requests from a thread pool
        return create_engine(uri, connect_args={"check_same_thread": False})
    return create_engine(
        uri,
        pool_pre_ping=config.DATABASE_POOL_PRE_PING,
        pool_recycle=config.DATABASE_POOL_RECYCLE,
        pool_size=10,
        max_overflow=20,
    )


engine = build_engine()


def get_session() -> Session:
    return Session(engine)


# make sure all SQLModel models are imported before initializing DB
def init_db(target: Engine = engine) -> None:
    from schedule_core.infrastructure.database import models  # noqa: F401

    SQLModel.metadata.create_all(target)
