"""
AgriConnect WhatsApp Bot
Database module (single-file)

Provides:
- SQLAlchemy engine + SessionLocal (built lazily from DATABASE_URL)
- init_db() / test_db_connection() for setup and health checks
"""

from __future__ import annotations

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from app.config import database_url

_engine: Engine | None = None

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
)


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = create_engine(database_url(), pool_pre_ping=True)
        SessionLocal.configure(bind=_engine)
    return _engine


def get_session_factory() -> sessionmaker:
    get_engine()
    return SessionLocal


def init_db() -> None:
    from app.models import Base

    Base.metadata.create_all(bind=get_engine())


def test_db_connection() -> None:
    with get_engine().connect() as conn:
        conn.execute(text("SELECT 1"))
