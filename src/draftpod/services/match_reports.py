"""
Player match reporting with first-write-wins semantics.

Two players at the same table often report at the same moment. Exactly one
report may land; every other report for that match, concurrent or later,
gets the stored result back with ``already_reported=True`` instead of an
error or an overwrite.

Each attempt:
1. load the event fresh, with its storage version
2. find the match (404 if the event or match is missing)
3. if the match already has a result, return it untouched
4. check the reporter is one of the two players (403 otherwise)
5. stamp the result and compare-and-put against the loaded version

A failed compare-and-put means someone else wrote first; the next attempt
reloads and normally ends at step 3 with their result.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from draftpod.event.models import Match, MatchResult
from draftpod.exceptions import (
    EventNotFoundError,
    InvalidInputError,
    MatchNotFoundError,
    NotParticipantError,
    StorageError,
)
from draftpod.storage.interfaces import EventStore
from draftpod.timers import Clock, now_ms

logger = logging.getLogger(__name__)

MAX_REPORT_ATTEMPTS = 5


@dataclass(frozen=True)
class ReportOutcome:
    """What a report call resolved to. Both branches are successes."""

    already_reported: bool
    result: MatchResult
    reported_by: Optional[str]
    reported_at: Optional[int]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "alreadyReported": self.already_reported,
            "result": self.result.to_dict(),
            "reportedBy": self.reported_by,
            "reportedAt": self.reported_at,
        }


class MatchReportService:
    """Resolves player match reports against the event store."""

    def __init__(
        self,
        store: EventStore,
        ttl_seconds: int,
        clock: Clock = now_ms,
        max_attempts: int = MAX_REPORT_ATTEMPTS,
    ):
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.max_attempts = max_attempts

    def get_match(self, event_id: str, match_id: str) -> Tuple[Match, int]:
        """
        Returns:
            (match, round number)

        Raises:
            EventNotFoundError, MatchNotFoundError
        """
        event = self.store.get_event(event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        found = event.find_match(match_id)
        if found is None:
            raise MatchNotFoundError(match_id)
        round_, match = found
        return match, round_.round_number

    def report(
        self,
        event_id: str,
        match_id: str,
        result: MatchResult,
        reported_by: str,
    ) -> ReportOutcome:
        """
        Record ``result`` for the match unless one is already stored.

        Raises:
            InvalidInputError: If ``reported_by`` is empty.
            EventNotFoundError, MatchNotFoundError: Lookup misses.
            NotParticipantError: If the reporter is not at this table.
            StorageError: If the store fails, or every attempt lost a race.
        """
        if not isinstance(reported_by, str) or not reported_by.strip():
            raise InvalidInputError("reportedBy is required")

        for attempt in range(1, self.max_attempts + 1):
            loaded = self.store.get_event_versioned(event_id)
            if loaded is None:
                raise EventNotFoundError(event_id)
            event, version = loaded

            found = event.find_match(match_id)
            if found is None:
                raise MatchNotFoundError(match_id)
            _, match = found

            if match.result is not None:
                logger.info(
                    "Match %s already reported by %s; ignoring report from %s",
                    match_id, match.reported_by, reported_by,
                )
                return ReportOutcome(
                    already_reported=True,
                    result=match.result,
                    reported_by=match.reported_by,
                    reported_at=match.reported_at,
                )

            if not match.involves(reported_by):
                raise NotParticipantError(reported_by)

            now = self.clock()
            match.result = result
            match.reported_by = reported_by
            match.reported_at = now
            event.updated_at = now

            if self.store.compare_and_put(event, version, self.ttl_seconds):
                if event.event_code:
                    self.store.put_event_code(event.event_code, event.id, self.ttl_seconds)
                logger.info(
                    "Match %s in event %s reported by %s: %d-%d%s",
                    match_id, event_id, reported_by,
                    result.player_a_wins, result.player_b_wins,
                    " (draw)" if result.is_draw else "",
                )
                return ReportOutcome(
                    already_reported=False,
                    result=result,
                    reported_by=reported_by,
                    reported_at=now,
                )

            logger.debug("Match %s: lost write race (attempt %d), reloading", match_id, attempt)

        logger.warning("Match %s: gave up after %d conflicting writes", match_id, self.max_attempts)
        raise StorageError("Event is being modified concurrently; try again")
