"""
Database configuration and base model.

Uses SQLAlchemy 2.0 declarative style with SQLite.
"""

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from config import PATHS, PERSISTENCE_SETTINGS


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def make_engine(url: Optional[str] = None) -> Engine:
    """Create an engine; defaults to the SQLite file in the user data dir."""
    return create_engine(
        url or f"sqlite:///{PATHS.database}",
        echo=PERSISTENCE_SETTINGS.echo_sql,
        connect_args={"check_same_thread": False},  # store calls run on worker threads
    )


def make_session_factory(bind: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=bind, autocommit=False, autoflush=False, expire_on_commit=False)


# Default database engine
engine = make_engine()

# Session factory
SessionLocal = make_session_factory(engine)


@contextmanager
def get_session(factory: sessionmaker[Session] = SessionLocal) -> Generator[Session, None, None]:
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


def init_db(bind: Optional[Engine] = None) -> None:
    """Initialize the database, creating all tables."""
    if bind is None:
        PATHS.ensure_directories()
        bind = engine
    Base.metadata.create_all(bind=bind)
