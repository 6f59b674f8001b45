"""
Event controller - the only code allowed to mutate an ``EventSession``.

Every operation follows the same contract:
- it refreshes ``updated_at`` when (and only when) it changes something
- it is a silent no-op when the event, player, round or match it refers
  to does not exist, returning False/None instead of raising
- it does not persist; the caller writes the document back afterwards

Invalid input that can be rejected up front (a malformed event code, an
unknown deck colour) raises ``InvalidInputError`` before anything is
touched.

Timer operations dispatch on the current phase: the draft pack timer while
drafting, the deckbuilding timer while deckbuilding, and the current
round's timer during rounds.

Usage:
    controller = EventController.create_event(EventType.DRAFT, "Alice")
    controller.add_player("Bob")
    controller.start_event()
    controller.start_timer()
    store.put_event(controller.event, ttl_seconds)
"""

from __future__ import annotations

import logging
import random
from typing import Any, Dict, List, Optional

from draftpod.constants import (
    MAX_PLAYERS,
    PACK_COUNT,
    SEALED_DECKBUILDING_MINUTES,
)
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
    TimedRecord,
    validate_deck_colors,
)
from draftpod.event.stages import (
    CompleteStage,
    DeckbuildingStage,
    DraftCompleteStage,
    DraftPackStage,
    RoundStage,
    SetupStage,
    Stage,
    StageStatus,
    derive_stage,
)
from draftpod.exceptions import InvalidEventCodeError
from draftpod.ids import (
    create_event_code,
    create_event_id,
    create_log_id,
    create_match_id,
    create_player_id,
    is_valid_event_code,
    normalize_event_code,
)
from draftpod.pairing.standings import PlayerStanding, calculate_standings
from draftpod.pairing.swiss import generate_swiss_pairings
from draftpod.timers import (
    PHASE_TIMER_FLOOR,
    PICK_TIMER_FLOOR,
    Clock,
    adjusted_duration,
    is_expired,
    is_running,
    now_ms,
    resumed_started_at,
)

logger = logging.getLogger(__name__)

EVENT_NAMES = {
    EventType.DRAFT: "Booster Draft",
    EventType.SEALED: "Sealed Deck",
}


# =============================================================================
# Timer field helpers (operate on any TimedRecord in place)
# =============================================================================


def _start(record: TimedRecord, now: int) -> None:
    record.timer_started_at = now
    record.timer_paused_at = None
    record.is_paused = False


def _pause(record: TimedRecord, now: int) -> bool:
    """Freeze a running timer. Pausing twice would eat into the clock, so it doesn't."""
    if not is_running(record.timer):
        return False
    record.timer_paused_at = now
    record.is_paused = True
    return True


def _resume(record: TimedRecord, now: int) -> bool:
    if record.timer_started_at is None or not record.is_paused:
        return False
    record.timer_started_at = resumed_started_at(record.timer, now)
    record.timer_paused_at = None
    record.is_paused = False
    return True


def _clear(record: TimedRecord, duration: Optional[int] = None) -> None:
    record.timer_started_at = None
    record.timer_paused_at = None
    record.is_paused = True
    if duration is not None:
        record.timer_duration = duration


def _run(record: TimedRecord, now: int) -> None:
    """Make a timer run: resume it if paused mid-way, otherwise start it."""
    if is_running(record.timer):
        return
    if not _resume(record, now):
        _start(record, now)


class EventController:
    """
    Applies mutations to one event document.

    Args:
        event: The event to mutate, or None (every operation is then a no-op).
        clock: Returns the current epoch milliseconds. Injected for tests.
        rng: Random source for seat shuffling.
    """

    def __init__(
        self,
        event: Optional[EventSession],
        clock: Clock = now_ms,
        rng: Optional[random.Random] = None,
    ):
        self.event = event
        self.clock = clock
        self.rng = rng or random.Random()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @classmethod
    def create_event(
        cls,
        event_type: EventType,
        host_name: str,
        clock: Clock = now_ms,
        rng: Optional[random.Random] = None,
        settings: Optional[EventSettings] = None,
    ) -> "EventController":
        """Create a new event with the host in seat 1."""
        now = clock()
        if settings is None:
            settings = EventSettings()
            if event_type is EventType.SEALED:
                settings.deckbuilding_minutes = SEALED_DECKBUILDING_MINUTES

        event = EventSession(
            id=create_event_id(),
            event_code=create_event_code(),
            created_at=now,
            updated_at=now,
            type=event_type,
            name=EVENT_NAMES[event_type],
            players=[
                Player(
                    id=create_player_id(),
                    name=host_name.strip() or "Host",
                    seat_number=1,
                    is_host=True,
                )
            ],
            draft_state=cls._initial_draft_state(settings) if event_type is EventType.DRAFT else None,
            settings=settings,
        )
        logger.info("Created %s event %s (code %s)", event_type.value, event.id, event.event_code)
        return cls(event, clock=clock, rng=rng)

    @staticmethod
    def _initial_draft_state(settings: EventSettings) -> DraftState:
        return DraftState(timer_duration=settings.draft_pick_seconds)

    def _initial_deckbuilding_state(self) -> DeckbuildingState:
        return DeckbuildingState(timer_duration=self.event.settings.deckbuilding_seconds)

    def _touch(self) -> None:
        self.event.updated_at = self.clock()

    def reset_event(self) -> bool:
        """Back to setup, keeping id, code, settings and seating."""
        event = self.event
        if event is None:
            return False
        event.current_phase = EventPhase.SETUP
        event.current_round = 0
        event.draft_state = (
            self._initial_draft_state(event.settings) if event.type is EventType.DRAFT else None
        )
        event.deckbuilding_state = None
        event.rounds = []
        for player in event.players:
            player.deck_colors = None
        self._touch()
        logger.info("Reset event %s", event.id)
        return True

    def update_event_code(self, code: str) -> bool:
        """
        Change the join code. Uniqueness across events is checked by the
        service, which can see the store.

        Raises:
            InvalidEventCodeError: If the code is not four code-alphabet characters.
        """
        if self.event is None:
            return False
        normalized = normalize_event_code(code)
        if not is_valid_event_code(normalized):
            raise InvalidEventCodeError(f"Invalid event code: {code!r}")
        if normalized == self.event.event_code:
            return False
        self.event.event_code = normalized
        self._touch()
        return True

    # =========================================================================
    # Roster
    # =========================================================================

    def _reseat(self, players: List[Player]) -> None:
        for seat, player in enumerate(players, start=1):
            player.seat_number = seat
        self.event.players = players

    def add_player(self, name: str) -> Optional[Player]:
        """Seat a new player at the end of the table."""
        if self.event is None:
            return None
        trimmed = name.strip()
        if not trimmed or len(self.event.players) >= MAX_PLAYERS:
            return None
        player = Player(
            id=create_player_id(),
            name=trimmed,
            seat_number=len(self.event.players) + 1,
        )
        self.event.players.append(player)
        self._touch()
        return player

    def remove_player(self, player_id: str) -> bool:
        """Remove a player and close the gap in seating. The host stays."""
        if self.event is None:
            return False
        player = self.event.find_player(player_id)
        if player is None or player.is_host:
            return False
        self._reseat([p for p in self.event.players if p.id != player_id])
        self._touch()
        return True

    def rename_player(self, player_id: str, name: str) -> bool:
        if self.event is None:
            return False
        player = self.event.find_player(player_id)
        trimmed = name.strip()
        if player is None or not trimmed:
            return False
        player.name = trimmed
        self._touch()
        return True

    def shuffle_seating(self) -> bool:
        if self.event is None:
            return False
        players = list(self.event.players)
        self.rng.shuffle(players)
        self._reseat(players)
        self._touch()
        return True

    def set_player_deck_colors(self, player_id: str, colors: List[str]) -> bool:
        if self.event is None:
            return False
        player = self.event.find_player(player_id)
        if player is None:
            return False
        player.deck_colors = validate_deck_colors(colors)
        self._touch()
        return True

    # =========================================================================
    # Phases
    # =========================================================================

    def start_event(self) -> bool:
        """Leave setup: draft events go to the draft, sealed events straight to deckbuilding."""
        event = self.event
        if event is None or event.current_phase is not EventPhase.SETUP:
            return False
        if event.type is EventType.DRAFT:
            event.current_phase = EventPhase.DRAFTING
            if event.draft_state is None:
                event.draft_state = self._initial_draft_state(event.settings)
        else:
            event.current_phase = EventPhase.DECKBUILDING
            event.deckbuilding_state = self._initial_deckbuilding_state()
        self._touch()
        logger.info("Event %s started (%s)", event.id, event.current_phase.value)
        return True

    def advance_to_phase(self, phase: EventPhase) -> bool:
        """Set the phase directly, seeding the target phase's sub-state."""
        event = self.event
        if event is None:
            return False
        event.current_phase = phase
        if phase is EventPhase.DRAFTING and event.draft_state is None:
            event.draft_state = self._initial_draft_state(event.settings)
        if phase is EventPhase.DECKBUILDING:
            event.deckbuilding_state = self._initial_deckbuilding_state()
        if phase is EventPhase.ROUNDS and event.current_round == 0:
            event.current_round = 1
        self._touch()
        return True

    def sync_to_stage(self, stage: Stage) -> bool:
        """
        Rebuild phase and sub-state so the event sits at ``stage``.

        Works forward and backward. The sequence guard is not consulted
        here; callers run ``can_transition`` first.
        """
        event = self.event
        if event is None:
            return False
        now = self.clock()

        if isinstance(stage, SetupStage):
            event.current_phase = EventPhase.SETUP

        elif isinstance(stage, DraftPackStage):
            event.current_phase = EventPhase.DRAFTING
            draft = self._ensure_draft_state()
            if draft.current_pack != stage.pack:
                draft.current_pack = stage.pack
                draft.pass_direction = PassDirection.for_pack(stage.pack)
                _clear(draft, event.settings.draft_pick_seconds)
                draft.pack_started_at = None
            draft.is_complete = False
            if stage.status is StageStatus.ACTIVE:
                _run(draft, now)
                if draft.pack_started_at is None:
                    draft.pack_started_at = now
            else:
                _pause(draft, now)

        elif isinstance(stage, DraftCompleteStage):
            event.current_phase = EventPhase.DRAFTING
            draft = self._ensure_draft_state()
            draft.is_complete = True
            _pause(draft, now)
            draft.is_paused = True

        elif isinstance(stage, DeckbuildingStage):
            event.current_phase = EventPhase.DECKBUILDING
            if event.deckbuilding_state is None:
                event.deckbuilding_state = self._initial_deckbuilding_state()
            deckbuilding = event.deckbuilding_state
            if stage.status is StageStatus.COMPLETE:
                deckbuilding.is_complete = True
                _pause(deckbuilding, now)
                deckbuilding.is_paused = True
            else:
                deckbuilding.is_complete = False
                # An expired clock would still read as complete
                if is_expired(deckbuilding.timer, now):
                    _clear(deckbuilding, event.settings.deckbuilding_seconds)
                if stage.status is StageStatus.ACTIVE:
                    _run(deckbuilding, now)
                else:
                    _pause(deckbuilding, now)

        elif isinstance(stage, RoundStage):
            event.current_phase = EventPhase.ROUNDS
            event.current_round = stage.number
            for other in event.rounds:
                if other.round_number != stage.number:
                    _pause(other, now)
            round_ = event.find_round(stage.number) or self._append_round(stage.number)
            if stage.status is StageStatus.COMPLETE:
                round_.is_complete = True
                _pause(round_, now)
            else:
                round_.is_complete = False
                if stage.status is StageStatus.ACTIVE:
                    _run(round_, now)
                else:
                    _pause(round_, now)

        elif isinstance(stage, CompleteStage):
            event.current_phase = EventPhase.COMPLETE
            for round_ in event.rounds:
                _pause(round_, now)

        else:
            raise TypeError(f"Unhandled stage type: {type(stage).__name__}")

        self._touch()
        logger.info("Event %s synced to %s", event.id, stage.token)
        return True

    def _ensure_draft_state(self) -> DraftState:
        if self.event.draft_state is None:
            self.event.draft_state = self._initial_draft_state(self.event.settings)
        return self.event.draft_state

    # =========================================================================
    # Draft
    # =========================================================================

    def _log(self, entry_type: DraftLogType, message: str, data: Optional[Dict[str, Any]] = None) -> DraftLogEntry:
        now = self.clock()
        draft = self.event.draft_state
        # Keep the log monotonic even if the clock steps backward
        if draft.event_log:
            now = max(now, draft.event_log[-1].timestamp)
        entry = DraftLogEntry(
            id=create_log_id(now),
            timestamp=now,
            type=entry_type,
            message=message,
            data=data,
        )
        draft.event_log.append(entry)
        return entry

    def add_draft_log_entry(
        self,
        entry_type: DraftLogType,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> Optional[DraftLogEntry]:
        if self.event is None or self.event.draft_state is None:
            return None
        entry = self._log(entry_type, message, data)
        self._touch()
        return entry

    def _pack_elapsed(self, draft: DraftState, now: int) -> Optional[int]:
        if draft.pack_started_at is None:
            return None
        return max(0, (now - draft.pack_started_at) // 1000)

    def set_current_pack(self, pack: int) -> bool:
        """
        Open ``pack`` with a fresh, running timer.

        Logs the completion of the pack that was in progress (with how long
        it took) and the start of the new one.
        """
        if self.event is None or self.event.draft_state is None:
            return False
        if pack not in range(1, PACK_COUNT + 1):
            return False
        draft = self.event.draft_state
        now = self.clock()

        previous = draft.current_pack
        duration = self._pack_elapsed(draft, now)
        if duration is not None and pack != previous:
            self._log(
                DraftLogType.PACK_COMPLETED,
                f"Pack {previous} completed",
                {"pack": previous, "duration": duration},
            )
        self._log(DraftLogType.PACK_STARTED, f"Pack {pack} started", {"pack": pack})

        draft.current_pack = pack
        draft.pass_direction = PassDirection.for_pack(pack)
        draft.timer_duration = self.event.settings.draft_pick_seconds
        _start(draft, now)
        draft.is_complete = False
        draft.pack_started_at = now
        self._touch()
        return True

    def next_pack(self) -> bool:
        """Move to the next pack; after the last pack, on to deckbuilding."""
        if self.event is None or self.event.draft_state is None:
            return False
        draft = self.event.draft_state
        if draft.current_pack >= PACK_COUNT:
            if not draft.is_complete:
                self.mark_draft_complete()
            return self.advance_to_phase(EventPhase.DECKBUILDING)
        return self.set_current_pack(draft.current_pack + 1)

    def mark_draft_complete(self) -> bool:
        if self.event is None or self.event.draft_state is None:
            return False
        draft = self.event.draft_state
        now = self.clock()

        duration = self._pack_elapsed(draft, now)
        if duration is not None:
            self._log(
                DraftLogType.PACK_COMPLETED,
                f"Pack {draft.current_pack} completed",
                {"pack": draft.current_pack, "duration": duration},
            )
        self._log(DraftLogType.DRAFT_COMPLETED, "Draft complete. Ready for deckbuilding.")

        _pause(draft, now)
        draft.is_paused = True
        draft.is_complete = True
        draft.pack_started_at = None
        self._touch()
        return True

    # =========================================================================
    # Timers
    # =========================================================================

    def _active_timer_record(self) -> Optional[TimedRecord]:
        event = self.event
        if event is None:
            return None
        if event.current_phase is EventPhase.DRAFTING:
            return event.draft_state
        if event.current_phase is EventPhase.DECKBUILDING:
            return event.deckbuilding_state
        if event.current_phase is EventPhase.ROUNDS:
            return event.current_round_record
        return None

    def _drafting(self) -> bool:
        return self.event.current_phase is EventPhase.DRAFTING

    def start_timer(self) -> bool:
        """Start the current phase's timer from full duration."""
        record = self._active_timer_record()
        if record is None:
            return False
        now = self.clock()

        if self._drafting():
            draft = self.event.draft_state
            if draft.timer_started_at is None and not draft.event_log:
                self._log(DraftLogType.DRAFT_STARTED, "Draft started")
                self._log(
                    DraftLogType.PACK_STARTED,
                    f"Pack {draft.current_pack} started",
                    {"pack": draft.current_pack},
                )
            if draft.pack_started_at is None:
                draft.pack_started_at = now

        _start(record, now)
        self._touch()
        return True

    def pause_timer(self) -> bool:
        record = self._active_timer_record()
        if record is None or not _pause(record, self.clock()):
            return False
        if self._drafting():
            self._log(DraftLogType.TIMER_PAUSED, "Timer paused")
        self._touch()
        return True

    def resume_timer(self) -> bool:
        """Resume with exactly the time that was left at pause."""
        record = self._active_timer_record()
        if record is None or not _resume(record, self.clock()):
            return False
        if self._drafting():
            self._log(DraftLogType.TIMER_RESUMED, "Timer resumed")
        self._touch()
        return True

    def adjust_timer(self, seconds: int) -> bool:
        """
        Add (or with a negative value remove) time from the current timer.

        Pack timers never drop below 10 seconds, deckbuilding and round
        timers never below 60.
        """
        record = self._active_timer_record()
        if record is None or seconds == 0:
            return False
        if isinstance(record, Round) and record.is_complete:
            return False

        if self._drafting():
            record.timer_duration = adjusted_duration(record.timer_duration, seconds, PICK_TIMER_FLOOR)
            direction = "added" if seconds > 0 else "removed"
            self._log(
                DraftLogType.TIMER_ADJUSTED,
                f"{abs(seconds)}s {direction}",
                {"adjustment": seconds},
            )
        else:
            record.timer_duration = adjusted_duration(record.timer_duration, seconds, PHASE_TIMER_FLOOR)
        self._touch()
        return True

    def reset_timer(self) -> bool:
        """
        Stop the current timer and clear its timestamps.

        Deckbuilding and the current (unfinished) round also get their
        default duration back; the pack timer keeps its adjusted duration.
        """
        record = self._active_timer_record()
        if record is None:
            return False
        settings = self.event.settings
        if isinstance(record, DeckbuildingState):
            _clear(record, settings.deckbuilding_seconds)
        elif isinstance(record, Round):
            if record.is_complete:
                return False
            _clear(record, settings.round_timer_seconds)
        else:
            _clear(record)
        self._touch()
        return True

    # =========================================================================
    # Deckbuilding
    # =========================================================================

    def set_deckbuilding_complete(self, complete: bool = True) -> bool:
        deckbuilding = self.event.deckbuilding_state if self.event else None
        if deckbuilding is None:
            return False
        deckbuilding.is_complete = complete
        if complete:
            _pause(deckbuilding, self.clock())
            deckbuilding.is_paused = True
        self._touch()
        return True

    # =========================================================================
    # Rounds
    # =========================================================================

    def _append_round(self, round_number: int) -> Round:
        event = self.event
        pairings = generate_swiss_pairings(event.players, event.rounds)
        matches = [
            Match(
                id=create_match_id(),
                table_number=table,
                player_a_id=player_a,
                player_b_id=player_b,
                result=MatchResult.bye() if player_b is None else None,
            )
            for table, (player_a, player_b) in enumerate(pairings, start=1)
        ]
        round_ = Round(
            round_number=round_number,
            matches=matches,
            timer_duration=event.settings.round_timer_seconds,
        )
        event.rounds.append(round_)
        logger.info(
            "Event %s: paired round %d (%d tables)", event.id, round_number, len(matches)
        )
        return round_

    def generate_pairings(self, round_number: int) -> Optional[Round]:
        """
        Pair ``round_number`` and make it the current round.

        Idempotent: if the round was already generated it is returned as is.
        Byes get their 2-0 result straight away.
        """
        if self.event is None or round_number < 1:
            return None
        existing = self.event.find_round(round_number)
        if existing is not None:
            return existing
        round_ = self._append_round(round_number)
        self.event.current_round = round_number
        self._touch()
        return round_

    def update_match_result(self, match_id: str, result: Optional[MatchResult]) -> bool:
        """Overwrite a match result by id (admin correction; no first-write rule)."""
        if self.event is None:
            return False
        found = self.event.find_match(match_id)
        if found is None:
            return False
        _, match = found
        if match.is_bye:
            return False
        match.result = result
        if result is None:
            match.reported_by = None
            match.reported_at = None
        self._touch()
        return True

    def finalize_round(self) -> bool:
        """Close the current round; after the last round the event is complete."""
        if self.event is None:
            return False
        round_ = self.event.current_round_record
        if round_ is None:
            return False
        round_.is_complete = True
        _pause(round_, self.clock())
        if self.event.current_round >= self.event.settings.total_rounds:
            self.event.current_phase = EventPhase.COMPLETE
        else:
            self.event.current_phase = EventPhase.ROUNDS
        self._touch()
        logger.info("Event %s: round %d finalized", self.event.id, round_.round_number)
        return True

    # =========================================================================
    # Read helpers
    # =========================================================================

    def stage(self, now: Optional[int] = None) -> Optional[Stage]:
        if self.event is None:
            return None
        return derive_stage(self.event, self.clock() if now is None else now)

    def standings(self) -> List[PlayerStanding]:
        if self.event is None:
            return []
        return calculate_standings(self.event.players, self.event.rounds)
