"""
Database configuration and base model.

Uses SQLAlchemy 2.0 declarative style with SQLite.
"""

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from config import PATHS


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def make_engine(url: Optional[str] = None) -> Engine:
    """Create an engine; defaults to the application database file."""
    return create_engine(
        url or f"sqlite:///{PATHS.database}",
        echo=False,
        connect_args={"check_same_thread": False},  # Allow multi-threaded access
    )


engine = make_engine()

# Session factory
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


@contextmanager
def get_session(factory: sessionmaker = SessionLocal) -> Generator[Session, None, None]:
    """Context manager for database sessions."""
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(bind: Engine = engine) -> None:
    """Initialize the database, creating all tables."""
    if bind is engine:
        PATHS.data_dir.mkdir(parents=True, exist_ok=True)
    Base.metadata.create_all(bind=bind)
