"""Unit tests for EventService (read-modify-write and code mapping)."""

import pytest

from draftpod.event.models import EventSession
from draftpod.exceptions import (
    EventCodeNotFoundError,
    EventCodeTakenError,
    EventNotFoundError,
    InvalidEventCodeError,
    StorageError,
)
from draftpod.services.event_service import MAX_WRITE_ATTEMPTS, EventService
from draftpod.storage.memory import MemoryEventStore

TTL = 86_400


@pytest.fixture
def service(memory_store, clock):
    return EventService(memory_store, TTL, clock=clock)


def _copy(event):
    return EventSession.from_dict(event.to_dict())


class TestDocuments:

    def test_create_and_get(self, service, make_controller):
        event = make_controller().event
        service.create_event(event)

        assert service.get_event(event.id).to_dict() == event.to_dict()
        assert service.get_event_by_code(event.event_code.lower()).id == event.id

    def test_get_missing_event(self, service):
        with pytest.raises(EventNotFoundError):
            service.get_event("none-xyz")

    def test_unknown_code(self, service):
        with pytest.raises(EventCodeNotFoundError):
            service.get_event_by_code("ZZZZ")

    def test_stale_code_mapping_is_deleted(self, service, memory_store):
        memory_store.put_event_code("AB3D", "gone-evt", TTL)

        with pytest.raises(EventCodeNotFoundError):
            service.get_event_by_code("AB3D")
        assert memory_store.get_event_id_for_code("AB3D") is None

    def test_update_moves_code_mapping(self, service, memory_store, make_controller):
        event = make_controller().event
        service.create_event(event)
        old_code = event.event_code

        changed = _copy(event)
        changed.event_code = "wxyz" if old_code != "WXYZ" else "WXYA"
        service.update_event(event.id, changed)

        assert memory_store.get_event_id_for_code(old_code) is None
        assert memory_store.get_event_id_for_code(changed.event_code) == event.id
        assert changed.event_code.isupper()

    def test_update_rejects_code_owned_by_another_event(self, service, make_controller):
        first = make_controller().event
        second = make_controller().event
        service.create_event(first)
        service.create_event(second)

        stolen = _copy(second)
        stolen.event_code = first.event_code
        with pytest.raises(EventCodeTakenError):
            service.update_event(second.id, stolen)

    def test_update_rejects_malformed_code(self, service, make_controller):
        event = make_controller().event
        service.create_event(event)
        bad = _copy(event)
        bad.event_code = "AB1"
        with pytest.raises(InvalidEventCodeError):
            service.update_event(event.id, bad)

    def test_update_missing_event(self, service, make_controller):
        with pytest.raises(EventNotFoundError):
            service.update_event("none-xyz", make_controller().event)

    def test_update_uses_path_id(self, service, make_controller):
        event = make_controller().event
        service.create_event(event)
        body = _copy(event)
        body.id = "othr-idd"
        service.update_event(event.id, body)

        assert body.id == event.id
        assert service.store.get_event("othr-idd") is None


class TestMutate:

    def test_mutate_persists_change(self, service, make_controller):
        event = make_controller(players=2).event
        service.create_event(event)

        stored, player = service.mutate(event.id, lambda c: c.add_player("Carol"))
        assert player.name == "Carol"
        assert [p.name for p in service.get_event(event.id).players][-1] == "Carol"
        assert stored.players[-1].id == player.id

    def test_noop_is_not_written(self, service, memory_store, make_controller):
        event = make_controller(players=2).event
        service.create_event(event)

        _, outcome = service.mutate(event.id, lambda c: c.remove_player("missing"))
        assert outcome is False
        assert memory_store.get_event_versioned(event.id)[1] == 1

    def test_mutate_missing_event(self, service):
        with pytest.raises(EventNotFoundError):
            service.mutate("none-xyz", lambda c: c.start_event())

    def test_code_change_through_controller_updates_mapping(self, service, memory_store, make_controller):
        event = make_controller().event
        service.create_event(event)
        new_code = "HJKM" if event.event_code != "HJKM" else "HJKN"

        service.mutate(event.id, lambda c: c.update_event_code(new_code))
        assert memory_store.get_event_id_for_code(new_code) == event.id
        assert memory_store.get_event_id_for_code(event.event_code) is None

    def test_mutate_retries_after_conflicting_write(self, clock, make_controller):
        store = _InterleavingStore(clock)
        service = EventService(store, TTL, clock=clock)
        event = make_controller(players=2).event
        service.create_event(event)

        # Another request renames the event between our read and our write
        def rival():
            rival_event = store.get_event(event.id)
            rival_event.name = "Renamed"
            store.put_event(rival_event, TTL)

        store.before_next_write = rival
        service.mutate(event.id, lambda c: c.add_player("Carol"))

        stored = store.get_event(event.id)
        assert stored.name == "Renamed"
        assert stored.players[-1].name == "Carol"

    def test_mutate_gives_up_eventually(self, clock, make_controller):
        store = _AlwaysConflictingStore(clock)
        service = EventService(store, TTL, clock=clock)
        event = make_controller(players=2).event
        service.create_event(event)

        with pytest.raises(StorageError):
            service.mutate(event.id, lambda c: c.add_player("Carol"))
        assert store.attempts == MAX_WRITE_ATTEMPTS


class _InterleavingStore(MemoryEventStore):
    """Runs a hook just before the next compare-and-put."""

    before_next_write = None

    def compare_and_put(self, event, expected_version, ttl_seconds):
        hook, self.before_next_write = self.before_next_write, None
        if hook is not None:
            hook()
        return super().compare_and_put(event, expected_version, ttl_seconds)


class _AlwaysConflictingStore(MemoryEventStore):
    attempts = 0

    def compare_and_put(self, event, expected_version, ttl_seconds):
        self.attempts += 1
        return False
