"""
Database module for draftpod.

Provides the SQLAlchemy models backing the SQL event store and engine /
session factory helpers.

Usage:
    from draftpod.db import get_engine, make_session_factory
    from draftpod.storage import SqlEventStore

    store = SqlEventStore(make_session_factory(get_engine()))
"""

from draftpod.db.models import Base, EventCodeRecord, EventRecord
from draftpod.db.session import get_engine, init_db, make_session_factory

__all__ = [
    # Base
    "Base",
    # Models
    "EventRecord",
    "EventCodeRecord",
    # Session
    "get_engine",
    "init_db",
    "make_session_factory",
]
