"""
Database connection management.

Supports:
  - SQLite (local dev, tests)
  - PostgreSQL (production)

The engine is built once by the API container from Settings.database_url
and handed down as a session factory; nothing here is process-global.
"""

import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, Session

from govdoc.infrastructure.db.models import Base

logger = logging.getLogger(__name__)


def create_db_engine(url: str):
    """Create SQLAlchemy engine."""
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": 30},
            echo=False,
        )
    else:
        # PostgreSQL
        engine = create_engine(
            url,
            pool_size=10,
            max_overflow=20,
            pool_pre_ping=True,
            echo=False,
        )

    return engine


def create_session_factory(engine) -> sessionmaker:
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(engine):
    """Create all tables. Safe to call multiple times."""
    Base.metadata.create_all(engine)
    db_url = str(engine.url)
    logger.info(f"Database initialized: {db_url.split('@')[-1] if '@' in db_url else db_url}")


def ping(session_factory) -> bool:
    """True when the database answers a trivial query."""
    try:
        with get_db(session_factory) as db:
            db.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning(f"Database ping failed: {e}")
        return False


@contextmanager
def get_db(session_factory) -> Session:
    """Context manager for database sessions: commit on success, rollback on error."""
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
