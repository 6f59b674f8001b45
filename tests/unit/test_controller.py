"""
Unit tests for EventController.

Covers:
- Event creation, reset and join code changes
- Roster management
- Phase changes and stage syncing
- Draft pack progression and its log
- Timers in every phase
- Round generation, results and finalizing
"""

import re

import pytest

from draftpod.constants import MAX_PLAYERS
from draftpod.event.controller import EventController
from draftpod.event.guards import can_transition
from draftpod.event.models import (
    DraftLogType,
    EventPhase,
    EventType,
    MatchResult,
    PassDirection,
)
from draftpod.event.stages import (
    CompleteStage,
    DeckbuildingStage,
    DraftCompleteStage,
    DraftPackStage,
    RoundStage,
    SetupStage,
    StageStatus,
)
from draftpod.exceptions import InvalidEventCodeError, InvalidInputError
from draftpod.ids import is_valid_event_code
from draftpod.timers import remaining


def _log_types(controller):
    return [entry.type for entry in controller.event.draft_state.event_log]


class TestLifecycle:

    def test_create_draft_event(self, clock):
        controller = EventController.create_event(EventType.DRAFT, "  Alice ", clock=clock)
        event = controller.event

        assert re.match(r"^[a-z0-9]{4}-[a-z0-9]{3}$", event.id)
        assert is_valid_event_code(event.event_code)
        assert event.name == "Booster Draft"
        assert event.created_at == event.updated_at == clock()
        assert len(event.players) == 1
        host = event.players[0]
        assert host.name == "Alice"
        assert host.is_host
        assert host.seat_number == 1
        assert event.draft_state is not None
        assert event.draft_state.timer_duration == 600

    def test_create_sealed_event(self, clock):
        event = EventController.create_event(EventType.SEALED, "Alice", clock=clock).event

        assert event.name == "Sealed Deck"
        assert event.draft_state is None
        assert event.settings.deckbuilding_minutes == 45

    def test_reset_event(self, make_controller):
        controller = make_controller(players=4)
        controller.set_player_deck_colors(controller.event.players[1].id, ["U", "W"])
        controller.start_event()
        controller.next_pack()
        controller.advance_to_phase(EventPhase.ROUNDS)
        controller.generate_pairings(1)

        assert controller.reset_event()
        event = controller.event
        assert event.current_phase is EventPhase.SETUP
        assert event.current_round == 0
        assert event.rounds == []
        assert event.deckbuilding_state is None
        assert event.draft_state.current_pack == 1
        assert event.draft_state.event_log == []
        assert len(event.players) == 4
        assert all(p.deck_colors is None for p in event.players)

    def test_update_event_code(self, make_controller):
        controller = make_controller()
        assert controller.update_event_code(" ab3d ")
        assert controller.event.event_code == "AB3D"

    @pytest.mark.parametrize("code", ["AB1D", "ABC", "ABCDE", "AB-D"])
    def test_update_event_code_rejects_bad_codes(self, make_controller, code):
        controller = make_controller()
        before = controller.event.event_code
        with pytest.raises(InvalidEventCodeError):
            controller.update_event_code(code)
        assert controller.event.event_code == before

    def test_operations_on_missing_event_are_noops(self):
        controller = EventController(None)
        assert controller.add_player("Bob") is None
        assert controller.remove_player("x") is False
        assert controller.start_timer() is False
        assert controller.generate_pairings(1) is None
        assert controller.finalize_round() is False
        assert controller.sync_to_stage(SetupStage()) is False
        assert controller.standings() == []


class TestRoster:

    def test_add_player_takes_next_seat(self, make_controller, clock):
        controller = make_controller(players=2)
        clock.advance(5)
        player = controller.add_player("  Carol  ")

        assert player.name == "Carol"
        assert player.seat_number == 3
        assert not player.is_host
        assert controller.event.updated_at == clock()

    def test_add_player_rejects_blank_names_and_full_tables(self, make_controller):
        controller = make_controller(players=MAX_PLAYERS)
        assert controller.add_player("One too many") is None
        assert len(controller.event.players) == MAX_PLAYERS

        controller = make_controller(players=2)
        assert controller.add_player("   ") is None

    def test_remove_player_reseats(self, make_controller):
        controller = make_controller(players=4)
        second = controller.event.players[1]

        assert controller.remove_player(second.id)
        assert [p.seat_number for p in controller.event.players] == [1, 2, 3]
        assert controller.event.find_player(second.id) is None

    def test_host_cannot_be_removed(self, make_controller):
        controller = make_controller(players=3)
        host = controller.event.players[0]
        assert not controller.remove_player(host.id)
        assert len(controller.event.players) == 3

    def test_rename_player(self, make_controller):
        controller = make_controller(players=2)
        player = controller.event.players[1]
        assert controller.rename_player(player.id, "Dana")
        assert player.name == "Dana"
        assert not controller.rename_player(player.id, "  ")
        assert not controller.rename_player("missing", "Eve")

    def test_shuffle_keeps_seats_contiguous(self, make_controller):
        controller = make_controller(players=8)
        ids_before = {p.id for p in controller.event.players}

        assert controller.shuffle_seating()
        assert [p.seat_number for p in controller.event.players] == list(range(1, 9))
        assert {p.id for p in controller.event.players} == ids_before

    def test_deck_colors_sorted_and_validated(self, make_controller):
        controller = make_controller(players=2)
        player = controller.event.players[1]

        assert controller.set_player_deck_colors(player.id, ["G", "W", "G"])
        assert player.deck_colors == ["W", "G"]
        with pytest.raises(InvalidInputError):
            controller.set_player_deck_colors(player.id, ["X"])


class TestPhases:

    def test_start_draft_event(self, make_controller):
        controller = make_controller()
        assert controller.start_event()
        assert controller.event.current_phase is EventPhase.DRAFTING
        # Only from setup
        assert not controller.start_event()

    def test_start_sealed_event_goes_to_deckbuilding(self, make_controller):
        controller = make_controller(event_type=EventType.SEALED)
        controller.start_event()

        assert controller.event.current_phase is EventPhase.DECKBUILDING
        assert controller.event.deckbuilding_state.timer_duration == 45 * 60

    def test_advance_to_rounds_sets_round_one(self, make_controller):
        controller = make_controller()
        controller.advance_to_phase(EventPhase.ROUNDS)
        assert controller.event.current_round == 1


class TestDraft:

    def test_start_timer_logs_draft_start(self, make_controller, clock):
        controller = make_controller()
        controller.start_event()
        controller.start_timer()

        draft = controller.event.draft_state
        assert _log_types(controller) == [DraftLogType.DRAFT_STARTED, DraftLogType.PACK_STARTED]
        assert draft.pack_started_at == clock()
        assert not draft.is_paused

    def test_next_pack_switches_direction_and_logs_duration(self, make_controller, clock):
        controller = make_controller()
        controller.start_event()
        controller.start_timer()
        clock.advance(400)

        assert controller.next_pack()
        draft = controller.event.draft_state
        assert draft.current_pack == 2
        assert draft.pass_direction is PassDirection.RIGHT
        assert draft.timer_started_at == clock()
        assert not draft.is_paused

        completed = [e for e in draft.event_log if e.type is DraftLogType.PACK_COMPLETED]
        assert completed[0].data == {"pack": 1, "duration": 400}

    def test_next_pack_after_last_moves_to_deckbuilding(self, make_controller):
        controller = make_controller()
        controller.start_event()
        controller.set_current_pack(3)

        assert controller.next_pack()
        assert controller.event.draft_state.is_complete
        assert controller.event.current_phase is EventPhase.DECKBUILDING
        assert DraftLogType.DRAFT_COMPLETED in _log_types(controller)

    def test_mark_draft_complete_pauses_timer(self, make_controller):
        controller = make_controller()
        controller.start_event()
        controller.start_timer()

        assert controller.mark_draft_complete()
        draft = controller.event.draft_state
        assert draft.is_complete
        assert draft.is_paused
        assert _log_types(controller)[-1] is DraftLogType.DRAFT_COMPLETED

    def test_set_current_pack_rejects_out_of_range(self, make_controller):
        controller = make_controller()
        controller.start_event()
        assert not controller.set_current_pack(4)
        assert not controller.set_current_pack(0)

    def test_add_note(self, make_controller):
        controller = make_controller()
        entry = controller.add_draft_log_entry(DraftLogType.NOTE, "Judge call at table 3")
        assert entry.message == "Judge call at table 3"
        assert entry.id.startswith(f"log-{entry.timestamp}-")

    def test_sealed_event_has_no_draft_log(self, make_controller):
        controller = make_controller(event_type=EventType.SEALED)
        assert controller.add_draft_log_entry(DraftLogType.NOTE, "x") is None


class TestTimers:

    def test_pause_resume_preserves_remaining(self, make_controller, clock):
        controller = make_controller()
        controller.start_event()
        controller.start_timer()
        clock.advance(125)

        assert controller.pause_timer()
        draft = controller.event.draft_state
        at_pause = remaining(draft.timer, clock())
        assert at_pause == 475

        clock.advance(300)
        assert controller.resume_timer()
        assert remaining(draft.timer, clock()) == at_pause
        assert _log_types(controller)[-2:] == [DraftLogType.TIMER_PAUSED, DraftLogType.TIMER_RESUMED]

    def test_pause_twice_is_noop(self, make_controller, clock):
        controller = make_controller()
        controller.start_event()
        controller.start_timer()
        assert controller.pause_timer()
        clock.advance(10)
        assert not controller.pause_timer()
        assert controller.event.draft_state.timer_paused_at == clock() - 10_000
        assert controller.resume_timer()

    def test_adjust_pack_timer_floor_and_log(self, make_controller):
        controller = make_controller()
        controller.start_event()

        assert controller.adjust_timer(-1000)
        draft = controller.event.draft_state
        assert draft.timer_duration == 10
        assert draft.event_log[-1].message == "1000s removed"

        controller.adjust_timer(30)
        assert draft.timer_duration == 40
        assert draft.event_log[-1].message == "30s added"

    def test_adjust_deckbuilding_timer_floor(self, make_controller):
        controller = make_controller(event_type=EventType.SEALED)
        controller.start_event()
        controller.adjust_timer(-10_000)
        assert controller.event.deckbuilding_state.timer_duration == 60

    def test_adjust_round_timer(self, make_controller):
        controller = make_controller(players=4)
        controller.advance_to_phase(EventPhase.ROUNDS)
        round_ = controller.generate_pairings(1)
        controller.adjust_timer(300)
        assert round_.timer_duration == 50 * 60 + 300

    def test_reset_round_timer_restores_default(self, make_controller):
        controller = make_controller(players=4)
        controller.advance_to_phase(EventPhase.ROUNDS)
        round_ = controller.generate_pairings(1)
        controller.start_timer()
        controller.adjust_timer(-600)

        assert controller.reset_timer()
        assert round_.timer_duration == 50 * 60
        assert round_.timer_started_at is None
        assert round_.is_paused

    def test_reset_pack_timer_keeps_duration(self, make_controller):
        controller = make_controller()
        controller.start_event()
        controller.adjust_timer(60)
        controller.start_timer()

        controller.reset_timer()
        draft = controller.event.draft_state
        assert draft.timer_duration == 660
        assert draft.timer_started_at is None

    def test_no_timer_in_setup(self, make_controller):
        controller = make_controller()
        assert not controller.start_timer()
        assert not controller.adjust_timer(30)


class TestRounds:

    def test_generate_pairings_is_idempotent(self, make_controller):
        controller = make_controller(players=8)
        first = controller.generate_pairings(1)
        again = controller.generate_pairings(1)

        assert again is first
        assert len(controller.event.rounds) == 1
        assert [m.table_number for m in first.matches] == [1, 2, 3, 4]
        assert controller.event.current_round == 1

    def test_bye_is_prefilled(self, make_controller):
        controller = make_controller(players=7)
        round_ = controller.generate_pairings(1)

        byes = [m for m in round_.matches if m.is_bye]
        assert len(byes) == 1
        assert byes[0].result == MatchResult(2, 0)
        assert byes[0].table_number == 1

    def test_update_and_clear_match_result(self, make_controller):
        controller = make_controller(players=4)
        match = controller.generate_pairings(1).matches[0]

        assert controller.update_match_result(match.id, MatchResult(1, 1, True))
        assert match.result.is_draw
        assert controller.update_match_result(match.id, None)
        assert match.result is None
        assert not controller.update_match_result("missing", MatchResult(2, 0))

    def test_finalize_last_round_completes_event(self, make_controller):
        controller = make_controller(players=4)
        controller.event.settings.total_rounds = 1
        controller.advance_to_phase(EventPhase.ROUNDS)
        round_ = controller.generate_pairings(1)
        controller.start_timer()

        assert controller.finalize_round()
        assert round_.is_complete
        assert round_.is_paused
        assert controller.event.current_phase is EventPhase.COMPLETE

    def test_finalize_earlier_round_stays_in_rounds(self, make_controller):
        controller = make_controller(players=4)
        controller.advance_to_phase(EventPhase.ROUNDS)
        controller.generate_pairings(1)
        controller.finalize_round()
        assert controller.event.current_phase is EventPhase.ROUNDS

    def test_standings_helper(self, make_controller):
        controller = make_controller(players=4)
        round_ = controller.generate_pairings(1)
        for match in round_.matches:
            controller.update_match_result(match.id, MatchResult(2, 0))
        standings = controller.standings()
        assert [s.points for s in standings] == [3, 3, 0, 0]


class TestSyncToStage:

    def test_sync_to_pack_active_starts_timer(self, make_controller, clock):
        controller = make_controller()
        assert controller.sync_to_stage(DraftPackStage(2, StageStatus.ACTIVE))

        draft = controller.event.draft_state
        assert controller.event.current_phase is EventPhase.DRAFTING
        assert draft.current_pack == 2
        assert draft.pass_direction is PassDirection.RIGHT
        assert not draft.is_paused
        assert controller.stage() == DraftPackStage(2, StageStatus.ACTIVE)

    def test_sync_active_then_paused_then_active_resumes(self, make_controller, clock):
        controller = make_controller()
        controller.sync_to_stage(DraftPackStage(1, StageStatus.ACTIVE))
        clock.advance(100)
        controller.sync_to_stage(DraftPackStage(1, StageStatus.PAUSED))
        clock.advance(1000)
        controller.sync_to_stage(DraftPackStage(1, StageStatus.ACTIVE))

        assert remaining(controller.event.draft_state.timer, clock()) == 500

    def test_sync_to_draft_complete(self, make_controller):
        controller = make_controller()
        controller.sync_to_stage(DraftCompleteStage())
        assert controller.stage() == DraftCompleteStage()

    def test_sync_deckbuilding_restarts_expired_timer(self, make_controller, clock):
        controller = make_controller(event_type=EventType.SEALED)
        controller.sync_to_stage(DeckbuildingStage(StageStatus.ACTIVE))
        clock.advance(46 * 60)
        assert controller.stage() == DeckbuildingStage(StageStatus.COMPLETE)

        controller.sync_to_stage(DeckbuildingStage(StageStatus.ACTIVE))
        assert controller.stage() == DeckbuildingStage(StageStatus.ACTIVE)
        assert remaining(controller.event.deckbuilding_state.timer, clock()) == 45 * 60

    def test_sync_to_round_generates_pairings(self, make_controller):
        controller = make_controller(players=6)
        controller.sync_to_stage(RoundStage(1, StageStatus.ACTIVE))

        assert controller.event.current_round == 1
        assert len(controller.event.rounds[0].matches) == 3
        assert controller.stage() == RoundStage(1, StageStatus.ACTIVE)

    def test_sync_to_next_round_pauses_previous(self, make_controller):
        controller = make_controller(players=4)
        controller.sync_to_stage(RoundStage(1, StageStatus.ACTIVE))
        controller.sync_to_stage(RoundStage(2, StageStatus.PAUSED))

        first, second = controller.event.rounds
        assert first.is_paused
        assert second.round_number == 2
        assert controller.stage() == RoundStage(2, StageStatus.PAUSED)

    def test_sync_round_complete(self, make_controller):
        controller = make_controller(players=4)
        controller.sync_to_stage(RoundStage(1, StageStatus.COMPLETE))
        assert controller.event.rounds[0].is_complete

    def test_sync_cannot_reopen_fully_reported_round(self, make_controller):
        """Results are kept, so the round still reads as complete and the guard refuses the jump."""
        controller = make_controller(players=4)
        controller.sync_to_stage(RoundStage(1, StageStatus.ACTIVE))
        for match in controller.event.rounds[0].matches:
            controller.update_match_result(match.id, MatchResult(2, 0))
        current = controller.stage()
        assert current == RoundStage(1, StageStatus.COMPLETE)

        check = can_transition(controller.event, current, RoundStage(1, StageStatus.ACTIVE))
        assert not check.allowed
        assert check.reason == "Round 1 has all results in; clear a result to reopen it"

        controller.sync_to_stage(RoundStage(1, StageStatus.ACTIVE))
        assert all(m.result is not None for m in controller.event.rounds[0].matches)
        assert controller.stage() == RoundStage(1, StageStatus.COMPLETE)

        controller.update_match_result(controller.event.rounds[0].matches[0].id, None)
        assert can_transition(
            controller.event, controller.stage(), RoundStage(1, StageStatus.ACTIVE)
        ).allowed

    def test_sync_backward_to_setup_and_to_complete(self, make_controller):
        controller = make_controller(players=4)
        controller.sync_to_stage(RoundStage(1, StageStatus.ACTIVE))
        controller.sync_to_stage(CompleteStage())
        assert controller.stage() == CompleteStage()
        assert controller.event.rounds[0].is_paused

        controller.sync_to_stage(SetupStage())
        assert controller.stage() == SetupStage()
        # Rounds are kept on a backward jump
        assert len(controller.event.rounds) == 1

    def test_sync_bumps_updated_at(self, make_controller, clock):
        controller = make_controller()
        clock.advance(30)
        controller.sync_to_stage(SetupStage())
        assert controller.event.updated_at == clock()

