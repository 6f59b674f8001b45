"""
Event persistence.

Usage:
    from draftpod.storage import build_event_store

    store = build_event_store()  # backend chosen by STORAGE_BACKEND
"""

from typing import Optional

from draftpod.config import Settings, settings as default_settings
from draftpod.storage.interfaces import EventStore
from draftpod.storage.memory import MemoryEventStore
from draftpod.storage.sql import SqlEventStore


def build_event_store(config: Optional[Settings] = None) -> EventStore:
    """Create the store selected by ``storage_backend``, creating tables if needed."""
    config = config or default_settings
    if config.storage_backend == "memory":
        return MemoryEventStore()

    from draftpod.db.session import get_engine, init_db, make_session_factory

    engine = get_engine(config.database_url)
    init_db(engine)
    return SqlEventStore(make_session_factory(engine))


__all__ = [
    "EventStore",
    "MemoryEventStore",
    "SqlEventStore",
    "build_event_store",
]
