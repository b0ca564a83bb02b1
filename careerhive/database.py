from __future__ import annotations
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from sqlalchemy.engine.url import make_url

from .config import settings

DATABASE_URL = settings.DATABASE_URL


def _unicode_lower(value):
    return value.lower() if isinstance(value, str) else value


def use_unicode_lower(engine: Engine) -> None:
    """Replace SQLite's ASCII-only lower() on every new connection."""

    @event.listens_for(engine, "connect")
    def _register(dbapi_conn, _record):
        dbapi_conn.create_function("lower", 1, _unicode_lower, deterministic=True)


connect_args = {}
is_sqlite = make_url(DATABASE_URL).drivername.startswith("sqlite")
if is_sqlite:
    # sessions cross FastAPI's threadpool
    connect_args = {"check_same_thread": False}

engine = create_engine(DATABASE_URL, pool_pre_ping=True, connect_args=connect_args)
if is_sqlite:
    use_unicode_lower(engine)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

class Base(DeclarativeBase):
    pass

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
