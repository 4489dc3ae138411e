"""
Database connection and session management.
SQLite by default; any SQLAlchemy URL works.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

engine: Optional[Engine] = None

# Session factory, bound by configure()
SessionLocal = sessionmaker()


def configure(database_url: str) -> Engine:
    """
    Create the engine for the given URL and bind the session factory to it.

    Args:
        database_url: SQLAlchemy database URL

    Returns:
        The new engine
    """
    global engine
    if engine is not None:
        engine.dispose()

    connect_args = {}
    if database_url.startswith("sqlite"):
        # Sessions are opened from the event loop thread and from worker threads
        connect_args["check_same_thread"] = False

    engine = create_engine(database_url, connect_args=connect_args)
    SessionLocal.configure(bind=engine)
    return engine


@contextmanager
def get_db_context() -> Iterator[Session]:
    """
    Context manager for database session.

    Usage:
        with get_db_context() as db:
            # Use db session
            pass
    """
    if engine is None:
        raise RuntimeError("Database is not configured; call configure() first")

    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db():
    """
    Initialize the database by creating all tables.
    """
    from zipweather.db_models import Base

    if engine is None:
        raise RuntimeError("Database is not configured; call configure() first")
    Base.metadata.create_all(bind=engine)


def dispose():
    """Release all pooled connections."""
    global engine
    if engine is not None:
        engine.dispose()
        engine = None
