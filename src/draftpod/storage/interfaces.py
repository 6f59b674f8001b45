"""Store interfaces (repository pattern).

Stores are swappable and deal in domain models. Every write takes a TTL in
seconds and refreshes the key's expiry; expired keys read as absent.
"""

from abc import ABC, abstractmethod
from typing import Optional, Tuple

from draftpod.event.models import EventSession


class EventStore(ABC):
    """Interface for event persistence operations."""

    @abstractmethod
    def get_event(self, event_id: str) -> Optional[EventSession]:
        """Return the event, or None if absent or expired."""
        ...

    @abstractmethod
    def get_event_versioned(self, event_id: str) -> Optional[Tuple[EventSession, int]]:
        """Return the event with its storage version, or None if absent or expired."""
        ...

    @abstractmethod
    def put_event(self, event: EventSession, ttl_seconds: int) -> int:
        """Overwrite the event unconditionally. Returns the new version."""
        ...

    @abstractmethod
    def compare_and_put(
        self,
        event: EventSession,
        expected_version: int,
        ttl_seconds: int,
    ) -> bool:
        """
        Write the event only if its stored version still equals
        ``expected_version``. Returns False (and writes nothing) otherwise.
        """
        ...

    @abstractmethod
    def get_event_id_for_code(self, code: str) -> Optional[str]:
        """Resolve a join code to an event id, or None if absent or expired."""
        ...

    @abstractmethod
    def put_event_code(self, code: str, event_id: str, ttl_seconds: int) -> None:
        """Point ``code`` at ``event_id``, refreshing its expiry."""
        ...

    @abstractmethod
    def delete_event_code(self, code: str) -> None:
        """Remove a code mapping. Deleting an unknown code is not an error."""
        ...
