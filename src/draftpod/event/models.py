"""
Event data model.

One ``EventSession`` document per event holds everything: roster, phase,
draft/deckbuilding sub-state and every round. It is always read, mutated
and written in full. ``to_dict`` / ``from_dict`` produce the camelCase JSON
document that is persisted and served over HTTP.

Design decisions:
- A match with no result has ``result=None``. That is the only "not
  decided" encoding; a ``MatchResult`` cannot be built as 0-0, so a real
  draw (1-1) can never be confused with an unplayed match.
- Byes are matches with ``player_b_id=None`` and a pre-filled 2-0 result.
- Timer fields are stored flat on each timed record (draft, deckbuilding,
  round) and read through ``.timer`` as a ``TimerState``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from draftpod.constants import (
    BYE_GAME_WINS,
    DEFAULT_DECKBUILDING_MINUTES,
    DEFAULT_DRAFT_PICK_SECONDS,
    DEFAULT_ROUND_TIMER_MINUTES,
    DEFAULT_TOTAL_ROUNDS,
    MANA_COLORS,
    MAX_GAMES_PER_MATCH,
    PACK_COUNT,
    PACK_PASS_DIRECTION,
)
from draftpod.exceptions import InvalidInputError, InvalidResultError
from draftpod.timers import TimerState


class EventType(str, Enum):
    DRAFT = "draft"
    SEALED = "sealed"


class EventPhase(str, Enum):
    SETUP = "setup"
    DRAFTING = "drafting"
    DECKBUILDING = "deckbuilding"
    ROUNDS = "rounds"
    COMPLETE = "complete"


class PassDirection(str, Enum):
    LEFT = "left"
    RIGHT = "right"

    @classmethod
    def for_pack(cls, pack: int) -> "PassDirection":
        """Packs alternate left, right, left."""
        return cls(PACK_PASS_DIRECTION[pack])


class DraftLogType(str, Enum):
    DRAFT_STARTED = "draft_started"
    PACK_STARTED = "pack_started"
    PACK_COMPLETED = "pack_completed"
    DRAFT_COMPLETED = "draft_completed"
    TIMER_PAUSED = "timer_paused"
    TIMER_RESUMED = "timer_resumed"
    TIMER_ADJUSTED = "timer_adjusted"
    NOTE = "note"


# =============================================================================
# Settings and Players
# =============================================================================


@dataclass
class EventSettings:
    """Per-event configuration, fixed when the event is created."""

    round_timer_minutes: int = DEFAULT_ROUND_TIMER_MINUTES
    draft_pick_seconds: int = DEFAULT_DRAFT_PICK_SECONDS
    deckbuilding_minutes: int = DEFAULT_DECKBUILDING_MINUTES
    total_rounds: int = DEFAULT_TOTAL_ROUNDS

    @property
    def round_timer_seconds(self) -> int:
        return self.round_timer_minutes * 60

    @property
    def deckbuilding_seconds(self) -> int:
        return self.deckbuilding_minutes * 60

    def to_dict(self) -> Dict[str, Any]:
        return {
            "roundTimerMinutes": self.round_timer_minutes,
            "draftPickSeconds": self.draft_pick_seconds,
            "deckbuildingMinutes": self.deckbuilding_minutes,
            "totalRounds": self.total_rounds,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EventSettings":
        return cls(
            round_timer_minutes=int(data.get("roundTimerMinutes", DEFAULT_ROUND_TIMER_MINUTES)),
            draft_pick_seconds=int(data.get("draftPickSeconds", DEFAULT_DRAFT_PICK_SECONDS)),
            deckbuilding_minutes=int(data.get("deckbuildingMinutes", DEFAULT_DECKBUILDING_MINUTES)),
            total_rounds=int(data.get("totalRounds", DEFAULT_TOTAL_ROUNDS)),
        )


@dataclass
class Player:
    """A seated player. Exactly one player per event is the host."""

    id: str
    name: str
    seat_number: int
    is_host: bool = False
    deck_colors: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "seatNumber": self.seat_number,
            "isHost": self.is_host,
        }
        if self.deck_colors is not None:
            data["deckColors"] = list(self.deck_colors)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Player":
        colors = data.get("deckColors")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            seat_number=int(data["seatNumber"]),
            is_host=bool(data.get("isHost", False)),
            deck_colors=validate_deck_colors(colors) if colors is not None else None,
        )


def validate_deck_colors(colors: List[str]) -> List[str]:
    """Return the colours deduplicated in WUBRG order, rejecting unknown ones."""
    unknown = [c for c in colors if c not in MANA_COLORS]
    if unknown:
        raise InvalidInputError(f"Unknown deck colors: {', '.join(map(str, unknown))}")
    return [c for c in MANA_COLORS if c in colors]


# =============================================================================
# Timed records
# =============================================================================


class TimedRecord:
    """Shared accessors for records carrying the four timer fields."""

    timer_started_at: Optional[int]
    timer_paused_at: Optional[int]
    timer_duration: int
    is_paused: bool

    @property
    def timer(self) -> TimerState:
        return TimerState(
            started_at=self.timer_started_at,
            paused_at=self.timer_paused_at,
            duration=self.timer_duration,
            is_paused=self.is_paused,
        )

    def _timer_dict(self) -> Dict[str, Any]:
        return {
            "timerStartedAt": self.timer_started_at,
            "timerPausedAt": self.timer_paused_at,
            "timerDuration": self.timer_duration,
            "isPaused": self.is_paused,
        }

    @staticmethod
    def _timer_kwargs(data: Dict[str, Any], default_duration: int) -> Dict[str, Any]:
        started = data.get("timerStartedAt")
        paused = data.get("timerPausedAt")
        return {
            "timer_started_at": int(started) if started is not None else None,
            "timer_paused_at": int(paused) if paused is not None else None,
            "timer_duration": int(data.get("timerDuration", default_duration)),
            "is_paused": bool(data.get("isPaused", True)),
        }


@dataclass
class DraftLogEntry:
    """One line of the append-only draft log."""

    id: str
    timestamp: int
    type: DraftLogType
    message: str
    data: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "timestamp": self.timestamp,
            "type": self.type.value,
            "message": self.message,
        }
        if self.data is not None:
            payload["data"] = dict(self.data)
        return payload

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DraftLogEntry":
        return cls(
            id=str(data["id"]),
            timestamp=int(data["timestamp"]),
            type=DraftLogType(data["type"]),
            message=str(data.get("message", "")),
            data=data.get("data"),
        )


@dataclass
class DraftState(TimedRecord):
    """Draft progress: which pack is open and the pack timer."""

    current_pack: int = 1
    pass_direction: PassDirection = PassDirection.LEFT
    timer_started_at: Optional[int] = None
    timer_paused_at: Optional[int] = None
    timer_duration: int = DEFAULT_DRAFT_PICK_SECONDS
    is_paused: bool = True
    is_complete: bool = False
    pack_started_at: Optional[int] = None
    event_log: List[DraftLogEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currentPack": self.current_pack,
            "passDirection": self.pass_direction.value,
            **self._timer_dict(),
            "isComplete": self.is_complete,
            "packStartedAt": self.pack_started_at,
            "eventLog": [entry.to_dict() for entry in self.event_log],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DraftState":
        pack = int(data.get("currentPack", 1))
        if pack not in range(1, PACK_COUNT + 1):
            raise InvalidInputError(f"currentPack must be 1..{PACK_COUNT}")
        started = data.get("packStartedAt")
        return cls(
            current_pack=pack,
            pass_direction=PassDirection(data.get("passDirection", PACK_PASS_DIRECTION[pack])),
            **cls._timer_kwargs(data, DEFAULT_DRAFT_PICK_SECONDS),
            is_complete=bool(data.get("isComplete", False)),
            pack_started_at=int(started) if started is not None else None,
            event_log=[DraftLogEntry.from_dict(e) for e in data.get("eventLog", [])],
        )


@dataclass
class DeckbuildingState(TimedRecord):
    """Deckbuilding timer plus an explicit completion flag."""

    timer_started_at: Optional[int] = None
    timer_paused_at: Optional[int] = None
    timer_duration: int = DEFAULT_DECKBUILDING_MINUTES * 60
    is_paused: bool = True
    is_complete: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {**self._timer_dict(), "isComplete": self.is_complete}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeckbuildingState":
        return cls(
            **cls._timer_kwargs(data, DEFAULT_DECKBUILDING_MINUTES * 60),
            is_complete=bool(data.get("isComplete", False)),
        )


# =============================================================================
# Matches and Rounds
# =============================================================================


@dataclass(frozen=True)
class MatchResult:
    """
    Game score of a best-of-three match.

    Attributes
    ----------
    player_a_wins : int
        Games won by player A (0..3).
    player_b_wins : int
        Games won by player B (0..3).
    is_draw : bool
        True exactly when both players won the same, non-zero, number of
        games. With at most three games that is the 1-1 case.
    """

    player_a_wins: int
    player_b_wins: int
    is_draw: bool = False

    def __post_init__(self) -> None:
        for wins in (self.player_a_wins, self.player_b_wins):
            if isinstance(wins, bool) or not isinstance(wins, int):
                raise InvalidResultError("Game wins must be integers")
            if wins < 0 or wins > MAX_GAMES_PER_MATCH:
                raise InvalidResultError(f"Game wins must be between 0 and {MAX_GAMES_PER_MATCH}")
        if self.player_a_wins + self.player_b_wins > MAX_GAMES_PER_MATCH:
            raise InvalidResultError(f"At most {MAX_GAMES_PER_MATCH} games can be won in a match")
        if self.player_a_wins == 0 and self.player_b_wins == 0:
            raise InvalidResultError("A 0-0 result is not a result; leave the match unreported")
        tied = self.player_a_wins == self.player_b_wins
        if self.is_draw != tied:
            raise InvalidResultError("isDraw must be set exactly when both players won the same number of games")

    @classmethod
    def bye(cls) -> "MatchResult":
        return cls(player_a_wins=BYE_GAME_WINS, player_b_wins=0, is_draw=False)

    @property
    def winner(self) -> Optional[str]:
        """'A', 'B' or None for a draw."""
        if self.is_draw:
            return None
        return "A" if self.player_a_wins > self.player_b_wins else "B"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "playerAWins": self.player_a_wins,
            "playerBWins": self.player_b_wins,
            "isDraw": self.is_draw,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "MatchResult":
        """Build a validated result, raising ``InvalidResultError`` on any bad shape."""
        if not isinstance(data, dict):
            raise InvalidResultError("Invalid result format")
        a_wins = data.get("playerAWins")
        b_wins = data.get("playerBWins")
        is_draw = data.get("isDraw")
        if not isinstance(is_draw, bool):
            raise InvalidResultError("Invalid result format")
        return cls(player_a_wins=a_wins, player_b_wins=b_wins, is_draw=is_draw)


@dataclass
class Match:
    """A table in a round. ``player_b_id=None`` marks a bye."""

    id: str
    table_number: int
    player_a_id: str
    player_b_id: Optional[str]
    result: Optional[MatchResult] = None
    reported_by: Optional[str] = None
    reported_at: Optional[int] = None

    @property
    def is_bye(self) -> bool:
        return self.player_b_id is None

    @property
    def is_resolved(self) -> bool:
        """Byes always count as resolved."""
        return self.is_bye or self.result is not None

    def involves(self, player_id: str) -> bool:
        return player_id in (self.player_a_id, self.player_b_id)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "tableNumber": self.table_number,
            "playerAId": self.player_a_id,
            "playerBId": self.player_b_id,
            "result": self.result.to_dict() if self.result else None,
        }
        if self.reported_by is not None:
            data["reportedBy"] = self.reported_by
        if self.reported_at is not None:
            data["reportedAt"] = self.reported_at
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Match":
        result = data.get("result")
        player_b = data.get("playerBId")
        reported_at = data.get("reportedAt")
        return cls(
            id=str(data["id"]),
            table_number=int(data["tableNumber"]),
            player_a_id=str(data["playerAId"]),
            player_b_id=str(player_b) if player_b is not None else None,
            result=MatchResult.from_dict(result) if result is not None else None,
            reported_by=data.get("reportedBy"),
            reported_at=int(reported_at) if reported_at is not None else None,
        )


@dataclass
class Round(TimedRecord):
    """One Swiss round. The match list is fixed once the round is generated."""

    round_number: int = 1
    matches: List[Match] = field(default_factory=list)
    is_complete: bool = False
    timer_started_at: Optional[int] = None
    timer_paused_at: Optional[int] = None
    timer_duration: int = DEFAULT_ROUND_TIMER_MINUTES * 60
    is_paused: bool = True

    def all_results_in(self) -> bool:
        return all(match.is_resolved for match in self.matches)

    def find_match(self, match_id: str) -> Optional[Match]:
        return next((m for m in self.matches if m.id == match_id), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "roundNumber": self.round_number,
            "matches": [m.to_dict() for m in self.matches],
            "isComplete": self.is_complete,
            **self._timer_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Round":
        return cls(
            round_number=int(data["roundNumber"]),
            matches=[Match.from_dict(m) for m in data.get("matches", [])],
            is_complete=bool(data.get("isComplete", False)),
            **cls._timer_kwargs(data, DEFAULT_ROUND_TIMER_MINUTES * 60),
        )


# =============================================================================
# Aggregate root
# =============================================================================


@dataclass
class EventSession:
    """
    The event document. Only ``EventController`` mutates it.

    Attributes
    ----------
    id : str
        Opaque identifier, assigned at creation and never changed.
    event_code : str
        Four-character code players type in to join.
    players : list of Player
        Ordered by seat; seat numbers are always 1..N.
    current_phase : EventPhase
        Coarse phase; the fine-grained stage is derived from it plus the
        sub-state (see ``draftpod.event.stages``).
    current_round : int
        0 until rounds begin, then 1..total_rounds.
    rounds : list of Round
        Append-only, one per generated round number.
    """

    id: str
    event_code: str
    created_at: int
    updated_at: int
    type: EventType
    name: str
    players: List[Player] = field(default_factory=list)
    current_phase: EventPhase = EventPhase.SETUP
    current_round: int = 0
    draft_state: Optional[DraftState] = None
    deckbuilding_state: Optional[DeckbuildingState] = None
    rounds: List[Round] = field(default_factory=list)
    settings: EventSettings = field(default_factory=EventSettings)

    def find_player(self, player_id: str) -> Optional[Player]:
        return next((p for p in self.players if p.id == player_id), None)

    def find_round(self, round_number: int) -> Optional[Round]:
        return next((r for r in self.rounds if r.round_number == round_number), None)

    def find_match(self, match_id: str) -> Optional[Tuple[Round, Match]]:
        """Locate a match by id across all rounds."""
        for round_ in self.rounds:
            match = round_.find_match(match_id)
            if match is not None:
                return round_, match
        return None

    @property
    def current_round_record(self) -> Optional[Round]:
        return self.find_round(self.current_round)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "eventCode": self.event_code,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "type": self.type.value,
            "name": self.name,
            "players": [p.to_dict() for p in self.players],
            "currentPhase": self.current_phase.value,
            "currentRound": self.current_round,
            "draftState": self.draft_state.to_dict() if self.draft_state else None,
            "deckbuildingState": (
                self.deckbuilding_state.to_dict() if self.deckbuilding_state else None
            ),
            "rounds": [r.to_dict() for r in self.rounds],
            "settings": self.settings.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "EventSession":
        """
        Parse an event document.

        Raises:
            InvalidInputError: If the document is missing required fields or
                holds values of the wrong type.
        """
        if not isinstance(data, dict):
            raise InvalidInputError("Event data must be a JSON object")
        if not data.get("id"):
            raise InvalidInputError("Event ID is required")
        try:
            draft = data.get("draftState")
            deckbuilding = data.get("deckbuildingState")
            event_type = EventType(data.get("type", EventType.DRAFT.value))
            return cls(
                id=str(data["id"]),
                event_code=str(data.get("eventCode", "")).upper(),
                created_at=int(data.get("createdAt", 0)),
                updated_at=int(data.get("updatedAt", 0)),
                type=event_type,
                name=str(data.get("name", "")),
                players=[Player.from_dict(p) for p in data.get("players", [])],
                current_phase=EventPhase(data.get("currentPhase", EventPhase.SETUP.value)),
                current_round=int(data.get("currentRound", 0)),
                draft_state=DraftState.from_dict(draft) if draft is not None else None,
                deckbuilding_state=(
                    DeckbuildingState.from_dict(deckbuilding) if deckbuilding is not None else None
                ),
                rounds=[Round.from_dict(r) for r in data.get("rounds", [])],
                settings=EventSettings.from_dict(data.get("settings") or {}),
            )
        except InvalidInputError:
            raise
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidInputError(f"Malformed event data: {exc}") from exc
