"""
Fine-grained event stages.

The persisted document only records a coarse phase plus sub-state. The
admin sequence control, the player views and the sequence guard all work
in terms of one derived stage, such as "round 2, active".

Stages are a closed set of small frozen dataclasses:

    SetupStage                         setup:configuring
    DraftPackStage(pack, status)       draft:pack{1..3}_{paused|active}
    DraftCompleteStage                 draft:complete
    DeckbuildingStage(status)          deckbuilding:{paused|active|complete}
    RoundStage(number, status)         round:{N}_{paused|active|complete}
    CompleteStage                      complete:final

The string token is only used at the edges (HTTP bodies, logs).
``parse_stage`` is the single place tokens are turned back into stages.

Stage order follows the event: setup, the three packs, draft complete,
deckbuilding, each round in turn, then the final stage. ``sort_key``
encodes that order so backward moves can be detected without building
the full sequence.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple, Union

from draftpod.constants import PACK_COUNT
from draftpod.event.models import EventPhase, EventSession
from draftpod.exceptions import InvalidStageError
from draftpod.timers import elapsed_seconds


class StageStatus(str, Enum):
    PAUSED = "paused"
    ACTIVE = "active"
    COMPLETE = "complete"


_STATUS_ORDER = {
    StageStatus.PAUSED: 0,
    StageStatus.ACTIVE: 1,
    StageStatus.COMPLETE: 2,
}

GROUP_SETUP = "setup"
GROUP_DRAFT = "draft"
GROUP_DECKBUILDING = "deckbuilding"
GROUP_ROUNDS = "rounds"
GROUP_COMPLETE = "complete"

GROUP_DISPLAY_NAMES = {
    GROUP_SETUP: "Setup",
    GROUP_DRAFT: "Draft",
    GROUP_DECKBUILDING: "Deckbuilding",
    GROUP_ROUNDS: "Rounds",
    GROUP_COMPLETE: "Complete",
}


@dataclass(frozen=True)
class SetupStage:
    group = GROUP_SETUP

    @property
    def token(self) -> str:
        return "setup:configuring"

    @property
    def label(self) -> str:
        return "Setup"

    @property
    def sort_key(self) -> Tuple[int, ...]:
        return (0,)


@dataclass(frozen=True)
class DraftPackStage:
    pack: int
    status: StageStatus

    group = GROUP_DRAFT

    def __post_init__(self) -> None:
        if self.pack not in range(1, PACK_COUNT + 1):
            raise ValueError(f"pack must be 1..{PACK_COUNT}")
        if self.status is StageStatus.COMPLETE:
            raise ValueError("a single pack has no complete stage; use DraftCompleteStage")

    @property
    def token(self) -> str:
        return f"draft:pack{self.pack}_{self.status.value}"

    @property
    def label(self) -> str:
        return f"Pack {self.pack} ({self.status.value.title()})"

    @property
    def sort_key(self) -> Tuple[int, ...]:
        return (1, self.pack, _STATUS_ORDER[self.status])


@dataclass(frozen=True)
class DraftCompleteStage:
    group = GROUP_DRAFT

    @property
    def token(self) -> str:
        return "draft:complete"

    @property
    def label(self) -> str:
        return "Draft Complete"

    @property
    def sort_key(self) -> Tuple[int, ...]:
        return (1, PACK_COUNT + 1, 0)


@dataclass(frozen=True)
class DeckbuildingStage:
    status: StageStatus

    group = GROUP_DECKBUILDING

    @property
    def token(self) -> str:
        return f"deckbuilding:{self.status.value}"

    @property
    def label(self) -> str:
        if self.status is StageStatus.COMPLETE:
            return "Deckbuilding Complete"
        return f"Deckbuilding ({self.status.value.title()})"

    @property
    def sort_key(self) -> Tuple[int, ...]:
        return (2, _STATUS_ORDER[self.status])


@dataclass(frozen=True)
class RoundStage:
    number: int
    status: StageStatus

    group = GROUP_ROUNDS

    def __post_init__(self) -> None:
        if self.number < 1:
            raise ValueError("round numbers start at 1")

    @property
    def token(self) -> str:
        return f"round:{self.number}_{self.status.value}"

    @property
    def label(self) -> str:
        if self.status is StageStatus.COMPLETE:
            return f"Round {self.number} Complete"
        return f"Round {self.number} ({self.status.value.title()})"

    @property
    def sort_key(self) -> Tuple[int, ...]:
        return (3, self.number, _STATUS_ORDER[self.status])


@dataclass(frozen=True)
class CompleteStage:
    group = GROUP_COMPLETE

    @property
    def token(self) -> str:
        return "complete:final"

    @property
    def label(self) -> str:
        return "Event Complete"

    @property
    def sort_key(self) -> Tuple[int, ...]:
        return (4,)


Stage = Union[
    SetupStage,
    DraftPackStage,
    DraftCompleteStage,
    DeckbuildingStage,
    RoundStage,
    CompleteStage,
]


_DRAFT_PACK_RE = re.compile(r"^draft:pack(\d+)_(paused|active)$")
_DECKBUILDING_RE = re.compile(r"^deckbuilding:(paused|active|complete)$")
_ROUND_RE = re.compile(r"^round:(\d+)_(paused|active|complete)$")


def parse_stage(token: str) -> Stage:
    """
    Turn a stage token back into a stage.

    Raises:
        InvalidStageError: If the token is not one of the known shapes.
    """
    token = (token or "").strip()
    if token == "setup:configuring":
        return SetupStage()
    if token == "draft:complete":
        return DraftCompleteStage()
    if token == "complete:final":
        return CompleteStage()

    try:
        match = _DRAFT_PACK_RE.match(token)
        if match:
            return DraftPackStage(int(match.group(1)), StageStatus(match.group(2)))
        match = _DECKBUILDING_RE.match(token)
        if match:
            return DeckbuildingStage(StageStatus(match.group(1)))
        match = _ROUND_RE.match(token)
        if match:
            return RoundStage(int(match.group(1)), StageStatus(match.group(2)))
    except ValueError as exc:
        raise InvalidStageError(token) from exc

    raise InvalidStageError(token)


def canonical_sequence(total_rounds: int) -> List[Stage]:
    """Every stage of an event with ``total_rounds`` rounds, in order."""
    stages: List[Stage] = [SetupStage()]
    for pack in range(1, PACK_COUNT + 1):
        stages.append(DraftPackStage(pack, StageStatus.PAUSED))
        stages.append(DraftPackStage(pack, StageStatus.ACTIVE))
    stages.append(DraftCompleteStage())
    for status in (StageStatus.PAUSED, StageStatus.ACTIVE, StageStatus.COMPLETE):
        stages.append(DeckbuildingStage(status))
    for number in range(1, total_rounds + 1):
        for status in (StageStatus.PAUSED, StageStatus.ACTIVE, StageStatus.COMPLETE):
            stages.append(RoundStage(number, status))
    stages.append(CompleteStage())
    return stages


def is_before(stage: Stage, other: Stage) -> bool:
    """True when ``stage`` comes earlier in the event than ``other``."""
    return stage.sort_key < other.sort_key


def group_display_name(group: str) -> str:
    return GROUP_DISPLAY_NAMES.get(group, group)


def _paused_or_active(is_paused: bool) -> StageStatus:
    return StageStatus.PAUSED if is_paused else StageStatus.ACTIVE


def derive_stage(event: EventSession, now: int) -> Stage:
    """
    Map the event document to its current stage.

    Deckbuilding counts as complete either when flagged or when its timer
    has run out. A round counts as complete as soon as every match has a
    result (byes always do), whether or not it has been finalized yet.
    """
    phase = event.current_phase

    if phase is EventPhase.SETUP:
        return SetupStage()

    if phase is EventPhase.DRAFTING:
        draft = event.draft_state
        if draft is None:
            return DraftPackStage(1, StageStatus.PAUSED)
        if draft.is_complete:
            return DraftCompleteStage()
        return DraftPackStage(draft.current_pack, _paused_or_active(draft.is_paused))

    if phase is EventPhase.DECKBUILDING:
        deckbuilding = event.deckbuilding_state
        if deckbuilding is None:
            return DeckbuildingStage(StageStatus.PAUSED)
        if deckbuilding.is_complete:
            return DeckbuildingStage(StageStatus.COMPLETE)
        timer = deckbuilding.timer
        if timer.started_at is not None and elapsed_seconds(timer, now) >= timer.duration:
            return DeckbuildingStage(StageStatus.COMPLETE)
        return DeckbuildingStage(_paused_or_active(deckbuilding.is_paused))

    if phase is EventPhase.ROUNDS:
        number = max(event.current_round, 1)
        round_ = event.find_round(number)
        if round_ is None:
            return RoundStage(number, StageStatus.PAUSED)
        if round_.is_complete or round_.all_results_in():
            return RoundStage(number, StageStatus.COMPLETE)
        return RoundStage(number, _paused_or_active(round_.is_paused))

    return CompleteStage()
