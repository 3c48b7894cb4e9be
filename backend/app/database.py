from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from app.config import get_settings
from app.models import Base

settings = get_settings()


def _engine_options(url: str) -> dict[str, Any]:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    # pool_size: connections kept open
    # max_overflow: extra connections created on demand
    # pool_pre_ping: verify connections before using them
    return {"pool_size": 10, "max_overflow": 20, "pool_pre_ping": True}


engine = create_engine(
    settings.database_url,
    echo=settings.debug,
    future=True,
    **_engine_options(settings.database_url),
)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


def init_db(bind: Engine | None = None) -> None:
    """Create missing tables."""

    Base.metadata.create_all(bind=bind or engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_session(factory: sessionmaker[Session] | None = None) -> Iterator[Session]:
    """Context manager for short-lived database sessions.

    Use this in WebSocket handlers and expiry callbacks instead of
    Depends(get_db) to avoid holding a connection for the lifetime of a socket.
    """
    db = (factory or SessionLocal)()
    try:
        yield db
    finally:
        db.close()
