"""
Countdown timer arithmetic.

Draft packs, deckbuilding and each round share the same four persisted
timer fields:

    started_at   epoch ms the countdown (re)started, None if never started
    paused_at    epoch ms of the last pause, None while running
    duration     total seconds on the clock
    is_paused    whether the countdown is frozen

Elapsed time is ``paused_at - started_at`` while paused and
``now - started_at`` while running. Resuming moves ``started_at`` forward
by the time spent paused, so remaining time is preserved exactly:

    started_at' = now - (paused_at - started_at)

Nothing here reads the wall clock except ``now_ms``; every function takes
``now`` explicitly so results are deterministic in tests.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Callable, Optional

from draftpod.constants import PHASE_TIMER_FLOOR_SECONDS, PICK_TIMER_FLOOR_SECONDS

# Returns the current time in epoch milliseconds
Clock = Callable[[], int]

PICK_TIMER_FLOOR = PICK_TIMER_FLOOR_SECONDS
PHASE_TIMER_FLOOR = PHASE_TIMER_FLOOR_SECONDS


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class TimerState:
    """Snapshot of the four persisted timer fields."""

    started_at: Optional[int]
    paused_at: Optional[int]
    duration: int
    is_paused: bool


def elapsed_seconds(state: TimerState, now: int) -> float:
    """Seconds counted against the clock so far (0 if never started)."""
    if state.started_at is None:
        return 0.0
    if state.is_paused and state.paused_at is not None:
        end = state.paused_at
    else:
        end = now
    return max(0.0, (end - state.started_at) / 1000)


def remaining(state: TimerState, now: int) -> int:
    """Whole seconds left on the clock, never negative."""
    if state.started_at is None:
        return max(0, state.duration)
    return max(0, math.floor(state.duration - elapsed_seconds(state, now)))


def is_running(state: TimerState) -> bool:
    return state.started_at is not None and not state.is_paused


def is_expired(state: TimerState, now: int) -> bool:
    """True once a started timer has run down to zero."""
    return state.started_at is not None and remaining(state, now) == 0


def adjusted_duration(duration: int, delta_seconds: int, floor: int) -> int:
    """Apply a signed adjustment, never dropping below ``floor``."""
    return max(floor, duration + delta_seconds)


def resumed_started_at(state: TimerState, now: int) -> int:
    """
    New ``started_at`` for resuming a paused timer.

    The time already elapsed before the pause is carried over so the
    remaining time after resume equals the remaining time at pause.
    """
    if state.started_at is None:
        return now
    if state.paused_at is None:
        return state.started_at
    return now - (state.paused_at - state.started_at)


def format_clock(seconds: int) -> str:
    """Render seconds as ``MM:SS`` (with a leading '-' for negatives)."""
    sign = "-" if seconds < 0 else ""
    total = abs(seconds)
    return f"{sign}{total // 60:02d}:{total % 60:02d}"
