"""Database helpers: engines, session factories and DB initialization.

Provides read/write session factories and a simple `init_db` helper that
creates tables. Background generation jobs open their own write session
from `WriteSessionLocal` because they outlive the request that created them.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from core.config import WRITE_DATABASE_URL, READ_DATABASE_URL
from .models import Base


def _connect_args(url: str) -> dict:
    # SQLite sessions are shared between the request thread and job threads
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


# Engines
write_engine = create_engine(WRITE_DATABASE_URL, connect_args=_connect_args(WRITE_DATABASE_URL))
read_engine = create_engine(READ_DATABASE_URL, connect_args=_connect_args(READ_DATABASE_URL))

# Session factories
WriteSessionLocal = sessionmaker(bind=write_engine, expire_on_commit=False)
ReadSessionLocal = sessionmaker(bind=read_engine)


def init_db():
    """Create all tables declared on the ORM models."""
    Base.metadata.create_all(bind=write_engine)


# Convenience generators for dependency injection
def get_write_session():
    """Yield a write-enabled SQLAlchemy session for the request scope.

    Use this generator as a FastAPI dependency to ensure the session is
    properly closed after the request completes.
    """
    db = WriteSessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_read_session():
    """Yield a read-only SQLAlchemy session for the request scope.

    Used for read endpoints where routing reads to a replica may be desired.
    """
    db = ReadSessionLocal()
    try:
        yield db
    finally:
        db.close()
