"""
Sequence guard for admin stage jumps.

Decides whether the event may move from its current stage to a requested
one, and whether that move goes backward. The guard never mutates the
event. ``EventController.sync_to_stage`` does not call it; callers check
first (the HTTP sync route does).

Rules by target:
- draft pack / draft complete: at least 2 players, never for sealed events
- deckbuilding: at least 2 players; moving forward in a draft event needs
  the draft marked complete
- round N: at least 2 players; a paused or active target is refused while
  every match of round N is resolved, since it would still read as
  complete; moving forward needs deckbuilding complete (flagged, or its
  timer ran out) and, for N > 1, every match of round N-1 resolved
- complete: every match of rounds 1..total_rounds resolved
- setup: always allowed
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from draftpod.constants import MIN_PLAYERS
from draftpod.event.models import EventSession, EventType
from draftpod.event.stages import (
    CompleteStage,
    DeckbuildingStage,
    DraftCompleteStage,
    DraftPackStage,
    RoundStage,
    SetupStage,
    Stage,
    StageStatus,
    canonical_sequence,
    derive_stage,
    is_before,
)


@dataclass(frozen=True)
class TransitionCheck:
    """Outcome of a guard check."""

    allowed: bool
    is_backward: bool = False
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allowed": self.allowed,
            "isBackward": self.is_backward,
            "reason": self.reason,
        }


def is_backward_transition(current: Stage, target: Stage) -> bool:
    return is_before(target, current)


def all_matches_have_results(event: EventSession, round_number: int) -> bool:
    """True when round ``round_number`` exists and every match is resolved."""
    round_ = event.find_round(round_number)
    if round_ is None:
        return False
    return round_.all_results_in()


def _deckbuilding_done(event: EventSession, current: Stage) -> bool:
    # ``current`` is derived, so it already reflects an expired timer
    deckbuilding = event.deckbuilding_state
    if deckbuilding is not None and deckbuilding.is_complete:
        return True
    return current == DeckbuildingStage(StageStatus.COMPLETE)


def _refuse(reason: str, is_backward: bool) -> TransitionCheck:
    return TransitionCheck(allowed=False, is_backward=is_backward, reason=reason)


def can_transition(event: EventSession, current: Stage, target: Stage) -> TransitionCheck:
    """Check a move from ``current`` to ``target`` against the event's data."""
    if current == target:
        return TransitionCheck(allowed=True)

    backward = is_backward_transition(current, target)
    enough_players = len(event.players) >= MIN_PLAYERS

    if isinstance(target, (DraftPackStage, DraftCompleteStage)):
        if not enough_players:
            return _refuse(f"Need at least {MIN_PLAYERS} players to start draft", backward)
        if event.type is EventType.SEALED:
            return _refuse("Sealed events skip the draft phase", backward)
        return TransitionCheck(allowed=True, is_backward=backward)

    if isinstance(target, DeckbuildingStage):
        if not enough_players:
            return _refuse(f"Need at least {MIN_PLAYERS} players", backward)
        if event.type is EventType.DRAFT and not backward:
            if event.draft_state is None or not event.draft_state.is_complete:
                return _refuse("Draft must be marked complete first", backward)
        return TransitionCheck(allowed=True, is_backward=backward)

    if isinstance(target, RoundStage):
        if not enough_players:
            return _refuse(f"Need at least {MIN_PLAYERS} players", backward)
        if target.status is not StageStatus.COMPLETE and all_matches_have_results(
            event, target.number
        ):
            return _refuse(
                f"Round {target.number} has all results in; clear a result to reopen it",
                backward,
            )
        if not backward:
            if not _deckbuilding_done(event, current):
                return _refuse("Deckbuilding must be marked complete first", backward)
            if target.number > 1:
                previous = target.number - 1
                if not all_matches_have_results(event, previous):
                    return _refuse(
                        f"All matches in Round {previous} must have results", backward
                    )
        return TransitionCheck(allowed=True, is_backward=backward)

    if isinstance(target, CompleteStage):
        for number in range(1, event.settings.total_rounds + 1):
            if not all_matches_have_results(event, number):
                return _refuse(f"All matches in Round {number} must have results", backward)
        return TransitionCheck(allowed=True, is_backward=backward)

    if isinstance(target, SetupStage):
        return TransitionCheck(allowed=True, is_backward=backward)

    raise TypeError(f"Unhandled stage type: {type(target).__name__}")


def available_transitions(event: EventSession, now: int) -> List[Dict[str, Any]]:
    """
    Guard verdict for every stage of the event, in order.

    This is what the admin sequence control renders: one row per stage
    with whether it is current and whether it can be selected.
    """
    current = derive_stage(event, now)
    rows: List[Dict[str, Any]] = []
    for stage in canonical_sequence(event.settings.total_rounds):
        check = can_transition(event, current, stage)
        rows.append({
            "stage": stage.token,
            "label": stage.label,
            "group": stage.group,
            "isCurrent": stage == current,
            **check.to_dict(),
        })
    return rows
