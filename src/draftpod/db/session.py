"""
Database session management for draftpod.

Provides the SQLAlchemy engine and session factory, configured from
config.py. The engine is created lazily so importing this module never
opens a connection.

Usage:
    from draftpod.db import get_engine, init_db, make_session_factory

    engine = get_engine()
    init_db(engine)  # create missing tables
    SessionFactory = make_session_factory(engine)
"""

import logging
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from draftpod.config import settings
from draftpod.db.models import Base

logger = logging.getLogger(__name__)


def get_engine(database_url: Optional[str] = None) -> Engine:
    """
    Create a SQLAlchemy engine.

    SQLite gets ``check_same_thread=False`` so the engine can be shared by
    the API's worker threads; other backends get a connection pool sized
    from settings.
    """
    url = database_url or settings.database_url
    echo = settings.db_echo or settings.log_level == "DEBUG"

    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            echo=echo,
        )

    return create_engine(
        url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=True,  # Verify connection is alive before using
        echo=echo,
    )


# Singleton engine, created on first use
_engine: Optional[Engine] = None


def _get_engine() -> Engine:
    """Get or create the singleton engine instance."""
    global _engine
    if _engine is None:
        _engine = get_engine()
    return _engine


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,  # We'll handle commits explicitly
        autoflush=False,  # Don't auto-flush before queries (more control)
        expire_on_commit=False,
        bind=engine,
    )


def init_db(engine: Optional[Engine] = None) -> None:
    """Create any missing tables."""
    engine = engine or _get_engine()
    Base.metadata.create_all(engine)
    logger.info("Database tables ready (%s)", engine.url.render_as_string(hide_password=True))

