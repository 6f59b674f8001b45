"""
Unit tests for the sequence guard.

Each rule is checked both ways: refused while its precondition is
missing, allowed once it holds.
"""

from draftpod.event.guards import available_transitions, can_transition
from draftpod.event.models import EventPhase, EventType, MatchResult
from draftpod.event.stages import (
    CompleteStage,
    DeckbuildingStage,
    DraftCompleteStage,
    DraftPackStage,
    RoundStage,
    SetupStage,
    StageStatus,
    derive_stage,
)

PACK1_ACTIVE = DraftPackStage(1, StageStatus.ACTIVE)
DECK_PAUSED = DeckbuildingStage(StageStatus.PAUSED)
ROUND1_ACTIVE = RoundStage(1, StageStatus.ACTIVE)
ROUND2_ACTIVE = RoundStage(2, StageStatus.ACTIVE)


def _report_all(controller, round_number):
    for match in controller.event.find_round(round_number).matches:
        if not match.is_bye:
            controller.update_match_result(match.id, MatchResult(2, 0))


class TestDraftTargets:

    def test_sealed_event_never_drafts(self, make_controller):
        controller = make_controller(players=8, event_type=EventType.SEALED)
        check = can_transition(controller.event, SetupStage(), PACK1_ACTIVE)

        assert not check.allowed
        assert check.reason == "Sealed events skip the draft phase"

    def test_needs_two_players(self, make_controller):
        controller = make_controller(players=1)
        check = can_transition(controller.event, SetupStage(), PACK1_ACTIVE)
        assert not check.allowed
        assert "2 players" in check.reason

        controller.add_player("Bob")
        assert can_transition(controller.event, SetupStage(), PACK1_ACTIVE).allowed

    def test_draft_complete_target_follows_draft_rules(self, make_controller):
        controller = make_controller(players=4)
        assert can_transition(controller.event, PACK1_ACTIVE, DraftCompleteStage()).allowed


class TestDeckbuildingTarget:

    def test_forward_requires_draft_complete(self, make_controller):
        controller = make_controller(players=4)
        controller.start_event()

        check = can_transition(controller.event, PACK1_ACTIVE, DECK_PAUSED)
        assert not check.allowed
        assert check.reason == "Draft must be marked complete first"

        controller.mark_draft_complete()
        assert can_transition(controller.event, DraftCompleteStage(), DECK_PAUSED).allowed

    def test_sealed_needs_no_draft(self, make_controller):
        controller = make_controller(players=4, event_type=EventType.SEALED)
        assert can_transition(controller.event, SetupStage(), DECK_PAUSED).allowed

    def test_backward_is_allowed_and_flagged(self, make_controller):
        controller = make_controller(players=4)
        check = can_transition(controller.event, ROUND1_ACTIVE, DECK_PAUSED)

        assert check.allowed
        assert check.is_backward


class TestRoundTargets:

    def test_forward_requires_deckbuilding_complete(self, make_controller):
        controller = make_controller(players=4, event_type=EventType.SEALED)
        controller.start_event()
        check = can_transition(controller.event, DECK_PAUSED, ROUND1_ACTIVE)
        assert not check.allowed
        assert check.reason == "Deckbuilding must be marked complete first"

        controller.set_deckbuilding_complete(True)
        check = can_transition(
            controller.event, DeckbuildingStage(StageStatus.COMPLETE), ROUND1_ACTIVE
        )
        assert check.allowed
        assert not check.is_backward

    def test_expired_deckbuilding_timer_counts_as_complete(self, make_controller, clock):
        controller = make_controller(players=4, event_type=EventType.SEALED)
        controller.sync_to_stage(DeckbuildingStage(StageStatus.ACTIVE))
        clock.advance(46 * 60)

        current = derive_stage(controller.event, clock())
        assert current == DeckbuildingStage(StageStatus.COMPLETE)
        assert not controller.event.deckbuilding_state.is_complete
        assert can_transition(controller.event, current, ROUND1_ACTIVE).allowed

    def test_fully_reported_round_cannot_be_reopened(self, make_controller):
        controller = make_controller(players=4, event_type=EventType.SEALED)
        controller.advance_to_phase(EventPhase.ROUNDS)
        controller.generate_pairings(1)
        _report_all(controller, 1)
        current = RoundStage(1, StageStatus.COMPLETE)

        for status in (StageStatus.PAUSED, StageStatus.ACTIVE):
            check = can_transition(controller.event, current, RoundStage(1, status))
            assert not check.allowed
            assert check.is_backward
            assert check.reason == "Round 1 has all results in; clear a result to reopen it"

    def test_next_round_requires_previous_results(self, make_controller):
        controller = make_controller(players=4, event_type=EventType.SEALED)
        controller.start_event()
        controller.set_deckbuilding_complete(True)
        controller.advance_to_phase(EventPhase.ROUNDS)
        controller.generate_pairings(1)

        check = can_transition(controller.event, ROUND1_ACTIVE, ROUND2_ACTIVE)
        assert not check.allowed
        assert check.reason == "All matches in Round 1 must have results"

        _report_all(controller, 1)
        assert can_transition(controller.event, ROUND1_ACTIVE, ROUND2_ACTIVE).allowed


class TestCompleteTarget:

    def test_requires_every_round_resolved(self, make_controller):
        controller = make_controller(players=4, event_type=EventType.SEALED)
        controller.event.settings.total_rounds = 2
        controller.advance_to_phase(EventPhase.ROUNDS)
        controller.generate_pairings(1)
        _report_all(controller, 1)

        current = RoundStage(1, StageStatus.COMPLETE)
        check = can_transition(controller.event, current, CompleteStage())
        assert not check.allowed
        assert check.reason == "All matches in Round 2 must have results"

        controller.generate_pairings(2)
        _report_all(controller, 2)
        assert can_transition(controller.event, current, CompleteStage()).allowed


class TestMisc:

    def test_setup_always_allowed(self, make_controller):
        controller = make_controller(players=1)
        check = can_transition(controller.event, CompleteStage(), SetupStage())
        assert check.allowed
        assert check.is_backward

    def test_same_stage_is_allowed(self, make_controller):
        controller = make_controller(players=1, event_type=EventType.SEALED)
        assert can_transition(controller.event, PACK1_ACTIVE, PACK1_ACTIVE).allowed

    def test_available_transitions_marks_current(self, make_controller, clock):
        controller = make_controller(players=4)
        rows = available_transitions(controller.event, clock())

        assert len(rows) == 21
        current = [row for row in rows if row["isCurrent"]]
        assert [row["stage"] for row in current] == ["setup:configuring"]
        deck = next(row for row in rows if row["stage"] == "deckbuilding:paused")
        assert deck["allowed"] is False
        assert deck["reason"] == "Draft must be marked complete first"
