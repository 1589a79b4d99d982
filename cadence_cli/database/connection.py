"""
Database connection management for Cadence CLI.

Provides a lazily created SQLAlchemy engine and session factory shared by
the CLI and the SQL document store.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from cadence_cli.config import get_config, CadenceConfig

logger = logging.getLogger(__name__)

# Global engine and session factory (lazy-loaded)
_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def get_db_path(config: Optional[CadenceConfig] = None) -> Optional[Path]:
    """
    Get the database file path.

    Args:
        config: Cadence configuration (uses global if not provided)

    Returns:
        Path to the SQLite database file, or None for non-file databases
    """
    if config is None:
        config = get_config()

    # Extract path from database_url (sqlite:///path)
    db_url = config.database_url
    if db_url.startswith("sqlite:///"):
        path = db_url[10:]
        return Path(path) if path and path != ":memory:" else None

    return None


def init_engine(config: Optional[CadenceConfig] = None) -> Engine:
    """
    Initialize the SQLAlchemy engine.

    Args:
        config: Cadence configuration (uses global if not provided)

    Returns:
        Configured SQLAlchemy engine
    """
    global _engine

    if _engine is not None:
        return _engine

    if config is None:
        config = get_config()

    connect_args = {}
    db_path = get_db_path(config)
    if config.database_url.startswith("sqlite"):
        connect_args = {
            "check_same_thread": False,  # Store calls run in worker threads
            "timeout": 30,
        }
        if db_path is not None:
            db_path.parent.mkdir(parents=True, exist_ok=True)

    _engine = create_engine(
        config.database_url,
        connect_args=connect_args,
        pool_pre_ping=True,
        echo=False,
    )

    logger.debug(f"Database engine initialized: {config.database_url}")
    return _engine


def get_session_maker(config: Optional[CadenceConfig] = None) -> sessionmaker:
    """
    Get or create the session maker.

    Args:
        config: Cadence configuration (uses global if not provided)

    Returns:
        Configured session maker
    """
    global _SessionLocal

    if _SessionLocal is not None:
        return _SessionLocal

    engine = init_engine(config)
    _SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )

    return _SessionLocal


@contextmanager
def get_db_session(config: Optional[CadenceConfig] = None) -> Generator[Session, None, None]:
    """
    Get a database session context manager.

    Usage:
        with get_db_session() as session:
            document = session.get(Document, "doc-1")

    Args:
        config: Cadence configuration (uses global if not provided)

    Yields:
        SQLAlchemy Session
    """
    SessionLocal = get_session_maker(config)
    session = SessionLocal()

    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_tables(config: Optional[CadenceConfig] = None) -> None:
    """
    Create all database tables.

    Args:
        config: Cadence configuration (uses global if not provided)
    """
    from cadence_cli.database.models import Base

    engine = init_engine(config)
    Base.metadata.create_all(bind=engine)
    logger.debug("Database tables created")


def reset_engine() -> None:
    """Dispose of the global engine so the next call re-reads configuration."""
    global _engine, _SessionLocal

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None
