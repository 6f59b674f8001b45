"""
SQLAlchemy ORM models for draftpod.

The event store is a two-table key/value layout rather than a relational
schema: each event is one JSON document, always read and written whole.

Tables:
- events: One row per event. ``payload`` is the camelCase event document,
  ``version`` increments on every write and backs compare-and-put.
- event_codes: Join code -> event id lookup, expiring with the event.

Expiry timestamps are epoch milliseconds, the same clock the event
document uses, so tests can drive expiry with a fake clock.
"""

from typing import Any, Optional

from sqlalchemy import JSON, BigInteger, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class EventRecord(Base):
    """
    Persisted event document.

    Rows past ``expires_at`` are treated as absent on read and removed by
    ``purge_expired``.
    """

    __tablename__ = "events"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)

    # Full event document (JSON so SQLite works for dev and tests)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    # Optimistic concurrency counter, starts at 1
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    expires_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    __table_args__ = (
        Index("idx_events_expires_at", "expires_at"),
    )

    def __repr__(self) -> str:
        return f"<EventRecord(id={self.id!r}, version={self.version})>"


class EventCodeRecord(Base):
    """Join code mapping. A code resolves to at most one event."""

    __tablename__ = "event_codes"

    code: Mapped[str] = mapped_column(String(8), primary_key=True)
    # No foreign key: a mapping can outlive its event until it is read or purged
    event_id: Mapped[str] = mapped_column(String(32), nullable=False)
    expires_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    __table_args__ = (
        Index("idx_event_codes_event_id", "event_id"),
        Index("idx_event_codes_expires_at", "expires_at"),
    )

    def __repr__(self) -> str:
        return f"<EventCodeRecord(code={self.code!r}, event_id={self.event_id!r})>"


def expiry_from(now_ms: int, ttl_seconds: Optional[int]) -> int:
    """Absolute expiry in epoch ms for a TTL given in seconds."""
    return now_ms + int(ttl_seconds or 0) * 1000
