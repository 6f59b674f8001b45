"""
Event aggregate: data model, stage derivation, sequence guard and the
controller that owns every mutation.

The controller lives in ``draftpod.event.controller`` and is not
re-exported here because it depends on the pairing engine, which in turn
depends on the models below.

Usage:
    from draftpod.event import EventType
    from draftpod.event.controller import EventController

    controller = EventController.create_event(EventType.DRAFT, "Alice")
    controller.add_player("Bob")
    controller.start_event()
"""

from draftpod.event.guards import TransitionCheck, available_transitions, can_transition
from draftpod.event.models import (
    DeckbuildingState,
    DraftLogEntry,
    DraftLogType,
    DraftState,
    EventPhase,
    EventSession,
    EventSettings,
    EventType,
    Match,
    MatchResult,
    PassDirection,
    Player,
    Round,
)
from draftpod.event.stages import Stage, StageStatus, derive_stage, parse_stage

__all__ = [
    # Models
    "DeckbuildingState",
    "DraftLogEntry",
    "DraftLogType",
    "DraftState",
    "EventPhase",
    "EventSession",
    "EventSettings",
    "EventType",
    "Match",
    "MatchResult",
    "PassDirection",
    "Player",
    "Round",
    # Stages
    "Stage",
    "StageStatus",
    "derive_stage",
    "parse_stage",
    # Guard
    "TransitionCheck",
    "available_transitions",
    "can_transition",
]
