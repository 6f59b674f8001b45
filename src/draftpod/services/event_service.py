"""
Event service - load, mutate and persist whole event documents.

Every request works on a fresh copy: read the event from the store, apply
one change, write it back with the TTL refreshed. The join code mapping is
kept in step with the event's ``event_code`` on every write.

Usage:
    from draftpod.services.event_service import EventService

    service = EventService(store, ttl_seconds=settings.event_ttl_seconds)
    event = service.get_event_by_code("AB3D")
    event, _ = service.mutate(event.id, lambda c: c.add_player("Bob"))
"""

import logging
from typing import Any, Callable, Optional, Tuple

from draftpod.event.controller import EventController
from draftpod.event.models import EventSession
from draftpod.exceptions import (
    EventCodeNotFoundError,
    EventCodeTakenError,
    EventNotFoundError,
    InvalidEventCodeError,
    StorageError,
)
from draftpod.ids import is_valid_event_code, normalize_event_code
from draftpod.storage.interfaces import EventStore
from draftpod.timers import Clock, now_ms

logger = logging.getLogger(__name__)

# Read-modify-write attempts before giving up on a busy event
MAX_WRITE_ATTEMPTS = 5


class EventService:
    """Read-modify-write access to events through an ``EventStore``."""

    def __init__(
        self,
        store: EventStore,
        ttl_seconds: int,
        clock: Clock = now_ms,
    ):
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    # =========================================================================
    # Code mapping
    # =========================================================================

    def _check_code_available(self, code: str, event_id: str) -> None:
        """Raise if ``code`` already points at a different live event."""
        owner = self.store.get_event_id_for_code(code)
        if owner is None or owner == event_id:
            return
        if self.store.get_event(owner) is None:
            # Left behind by an expired event
            self.store.delete_event_code(code)
            return
        raise EventCodeTakenError(code)

    def _normalized_code(self, event: EventSession) -> Optional[str]:
        if not event.event_code:
            return None
        code = normalize_event_code(event.event_code)
        if not is_valid_event_code(code):
            raise InvalidEventCodeError(f"Invalid event code: {event.event_code!r}")
        event.event_code = code
        return code

    def _write_code(self, event: EventSession, previous_code: Optional[str]) -> None:
        code = event.event_code or None
        if previous_code and previous_code != code:
            self.store.delete_event_code(previous_code)
            logger.info("Event %s: code changed %s -> %s", event.id, previous_code, code)
        if code:
            self.store.put_event_code(code, event.id, self.ttl_seconds)

    # =========================================================================
    # Documents
    # =========================================================================

    def create_event(self, event: EventSession) -> EventSession:
        """Persist a new event and register its join code."""
        code = self._normalized_code(event)
        if code:
            self._check_code_available(code, event.id)
        self.store.put_event(event, self.ttl_seconds)
        self._write_code(event, None)
        logger.info("Stored event %s (code %s)", event.id, event.event_code or "-")
        return event

    def get_event(self, event_id: str) -> EventSession:
        """
        Raises:
            EventNotFoundError: If the event is absent or expired.
        """
        event = self.store.get_event(event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    def update_event(self, event_id: str, event: EventSession) -> EventSession:
        """
        Overwrite an existing event with a client-supplied document.

        The path id wins over any id in the body. A changed code moves the
        mapping; the old code is released.

        Raises:
            EventNotFoundError: If the event is absent or expired.
            EventCodeTakenError: If the new code belongs to another live event.
        """
        existing = self.get_event(event_id)
        event.id = event_id
        code = self._normalized_code(event)
        if code and code != existing.event_code:
            self._check_code_available(code, event_id)
        self.store.put_event(event, self.ttl_seconds)
        self._write_code(event, existing.event_code or None)
        return event

    def get_event_by_code(self, code: str) -> EventSession:
        """
        Resolve a join code to its event.

        A mapping whose event has expired is deleted on the way out.

        Raises:
            EventCodeNotFoundError: If the code is unknown or its event is gone.
        """
        normalized = normalize_event_code(code)
        event_id = self.store.get_event_id_for_code(normalized)
        if event_id is None:
            raise EventCodeNotFoundError(normalized)
        event = self.store.get_event(event_id)
        if event is None:
            logger.info("Removing stale code %s (event %s expired)", normalized, event_id)
            self.store.delete_event_code(normalized)
            raise EventCodeNotFoundError(normalized)
        return event

    def mutate(
        self,
        event_id: str,
        operation: Callable[[EventController], Any],
    ) -> Tuple[EventSession, Any]:
        """
        Apply one controller operation to a fresh copy and write it back.

        The write is a compare-and-put; if another request wrote in between,
        the operation is re-applied to the newer copy. Operations returning
        a falsy value (no-ops) are not written.

        Returns:
            (event as stored, operation's return value)

        Raises:
            EventNotFoundError: If the event is absent or expired.
            StorageError: If every attempt lost a race.
        """
        for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
            loaded = self.store.get_event_versioned(event_id)
            if loaded is None:
                raise EventNotFoundError(event_id)
            event, version = loaded
            previous_code = event.event_code or None

            controller = EventController(event, clock=self.clock)
            outcome = operation(controller)
            if not outcome:
                return event, outcome

            code = event.event_code or None
            if code and code != previous_code:
                self._check_code_available(code, event_id)

            if self.store.compare_and_put(event, version, self.ttl_seconds):
                self._write_code(event, previous_code)
                return event, outcome
            logger.debug("Event %s changed during write, retrying (attempt %d)", event_id, attempt)

        logger.warning("Event %s: gave up after %d conflicting writes", event_id, MAX_WRITE_ATTEMPTS)
        raise StorageError("Event is being modified concurrently; try again")
