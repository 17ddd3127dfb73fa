from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from safestock.models.base import Base


def build_engine(database_url: str) -> Engine:
    """
    Create an engine for a local SQLite (or any SQLAlchemy) URL.

    SQLite connections are shared between the request threadpool and the
    periodic sync thread, so same-thread checking is disabled. In-memory
    databases get a StaticPool so every session sees the same data.
    """
    kwargs: dict = {"future": True}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True
    return create_engine(database_url, **kwargs)


def build_session_factory(engine: Engine) -> sessionmaker:
    # Tables are created up front; the mirror is a single key/value table.
    Base.metadata.create_all(engine)
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        future=True,
    )


def get_db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Yield a session from the given factory and always close it.
    """
    db = session_factory()
    try:
        yield db
    finally:
        db.close()
