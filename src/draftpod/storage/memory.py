"""
In-process event store.

Holds serialized documents (not live objects) so callers can never mutate
stored state by accident, and so a round trip through the store behaves
like the SQL backend. A single lock makes each method atomic, which is
all ``compare_and_put`` needs.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Optional, Tuple

from draftpod.event.models import EventSession
from draftpod.storage.interfaces import EventStore
from draftpod.timers import Clock, now_ms

logger = logging.getLogger(__name__)


class MemoryEventStore(EventStore):
    """Dictionary-backed store with clock-driven expiry."""

    def __init__(self, clock: Clock = now_ms):
        self.clock = clock
        self._lock = threading.Lock()
        # event id -> (payload, version, expires_at ms)
        self._events: Dict[str, Tuple[Dict[str, Any], int, int]] = {}
        # code -> (event id, expires_at ms)
        self._codes: Dict[str, Tuple[str, int]] = {}

    def _expiry(self, ttl_seconds: int) -> int:
        return self.clock() + ttl_seconds * 1000

    def _live_event(self, event_id: str) -> Optional[Tuple[Dict[str, Any], int, int]]:
        entry = self._events.get(event_id)
        if entry is None:
            return None
        if entry[2] <= self.clock():
            del self._events[event_id]
            return None
        return entry

    def get_event(self, event_id: str) -> Optional[EventSession]:
        found = self.get_event_versioned(event_id)
        return found[0] if found else None

    def get_event_versioned(self, event_id: str) -> Optional[Tuple[EventSession, int]]:
        with self._lock:
            entry = self._live_event(event_id)
        if entry is None:
            return None
        payload, version, _ = entry
        return EventSession.from_dict(payload), version

    def put_event(self, event: EventSession, ttl_seconds: int) -> int:
        payload = event.to_dict()
        with self._lock:
            entry = self._live_event(event.id)
            version = entry[1] + 1 if entry else 1
            self._events[event.id] = (payload, version, self._expiry(ttl_seconds))
        return version

    def compare_and_put(
        self,
        event: EventSession,
        expected_version: int,
        ttl_seconds: int,
    ) -> bool:
        payload = event.to_dict()
        with self._lock:
            entry = self._live_event(event.id)
            if entry is None or entry[1] != expected_version:
                logger.debug(
                    "Version conflict on event %s (expected %d, found %s)",
                    event.id, expected_version, entry[1] if entry else None,
                )
                return False
            self._events[event.id] = (payload, expected_version + 1, self._expiry(ttl_seconds))
        return True

    def get_event_id_for_code(self, code: str) -> Optional[str]:
        with self._lock:
            entry = self._codes.get(code)
            if entry is None:
                return None
            if entry[1] <= self.clock():
                del self._codes[code]
                return None
            return entry[0]

    def put_event_code(self, code: str, event_id: str, ttl_seconds: int) -> None:
        with self._lock:
            self._codes[code] = (event_id, self._expiry(ttl_seconds))

    def delete_event_code(self, code: str) -> None:
        with self._lock:
            self._codes.pop(code, None)
