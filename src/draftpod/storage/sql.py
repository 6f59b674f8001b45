"""
SQLAlchemy-backed event store.

One row per event in ``events`` plus one row per join code in
``event_codes`` (see ``draftpod.db.models``). Every write opens its own
short session and commits before returning, so each request sees what the
previous one committed.

``compare_and_put`` is a single conditional UPDATE on the version column,
so two writers that loaded the same version cannot both succeed.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Generator, Optional, Tuple

from sqlalchemy import delete, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from draftpod.db.models import EventCodeRecord, EventRecord, expiry_from
from draftpod.event.models import EventSession
from draftpod.exceptions import StorageError
from draftpod.storage.interfaces import EventStore
from draftpod.timers import Clock, now_ms

logger = logging.getLogger(__name__)


class SqlEventStore(EventStore):
    """
    Event store on any SQLAlchemy-supported database.

    Args:
        session_factory: Session factory bound to the target engine.
        clock: Epoch-ms clock used for expiry. Injected for tests.
    """

    def __init__(self, session_factory: sessionmaker, clock: Clock = now_ms):
        self.session_factory = session_factory
        self.clock = clock

    @contextmanager
    def _session(self) -> Generator[Session, None, None]:
        """Commit on success, roll back and raise ``StorageError`` on database errors."""
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Event store operation failed: %s", exc)
            raise StorageError("Storage operation failed") from exc
        finally:
            session.close()

    # =========================================================================
    # Events
    # =========================================================================

    def get_event(self, event_id: str) -> Optional[EventSession]:
        found = self.get_event_versioned(event_id)
        return found[0] if found else None

    def get_event_versioned(self, event_id: str) -> Optional[Tuple[EventSession, int]]:
        with self._session() as session:
            record = session.get(EventRecord, event_id)
            if record is None or record.expires_at <= self.clock():
                return None
            payload, version = record.payload, record.version
        return EventSession.from_dict(payload), version

    def put_event(self, event: EventSession, ttl_seconds: int) -> int:
        payload = event.to_dict()
        now = self.clock()
        expires_at = expiry_from(now, ttl_seconds)

        with self._session() as session:
            record = session.get(EventRecord, event.id)
            if record is None:
                record = EventRecord(
                    id=event.id,
                    payload=payload,
                    version=1,
                    expires_at=expires_at,
                )
                session.add(record)
            else:
                # An expired row is overwritten like a fresh insert
                record.version = 1 if record.expires_at <= now else record.version + 1
                record.payload = payload
                record.expires_at = expires_at
            session.flush()
            version = record.version
        return version

    def compare_and_put(
        self,
        event: EventSession,
        expected_version: int,
        ttl_seconds: int,
    ) -> bool:
        now = self.clock()
        stmt = (
            update(EventRecord)
            .where(
                EventRecord.id == event.id,
                EventRecord.version == expected_version,
                EventRecord.expires_at > now,
            )
            .values(
                payload=event.to_dict(),
                version=expected_version + 1,
                expires_at=expiry_from(now, ttl_seconds),
            )
            .execution_options(synchronize_session=False)
        )
        with self._session() as session:
            updated = session.execute(stmt).rowcount
        if updated != 1:
            logger.debug("Version conflict on event %s (expected %d)", event.id, expected_version)
            return False
        return True

    # =========================================================================
    # Join codes
    # =========================================================================

    def get_event_id_for_code(self, code: str) -> Optional[str]:
        with self._session() as session:
            record = session.get(EventCodeRecord, code)
            if record is None or record.expires_at <= self.clock():
                return None
            return record.event_id

    def put_event_code(self, code: str, event_id: str, ttl_seconds: int) -> None:
        expires_at = expiry_from(self.clock(), ttl_seconds)
        with self._session() as session:
            record = session.get(EventCodeRecord, code)
            if record is None:
                session.add(EventCodeRecord(code=code, event_id=event_id, expires_at=expires_at))
            else:
                record.event_id = event_id
                record.expires_at = expires_at

    def delete_event_code(self, code: str) -> None:
        with self._session() as session:
            session.execute(delete(EventCodeRecord).where(EventCodeRecord.code == code))

    # =========================================================================
    # Maintenance
    # =========================================================================

    def purge_expired(self) -> Tuple[int, int]:
        """
        Delete expired events and code mappings.

        Returns:
            (events deleted, codes deleted)
        """
        now = self.clock()
        with self._session() as session:
            events = session.execute(
                delete(EventRecord).where(EventRecord.expires_at <= now)
            ).rowcount
            codes = session.execute(
                delete(EventCodeRecord).where(EventCodeRecord.expires_at <= now)
            ).rowcount
        logger.info("Purged %d expired events and %d expired codes", events, codes)
        return events, codes
