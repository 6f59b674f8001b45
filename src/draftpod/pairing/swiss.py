"""
Swiss pairing engine.

Pairs players of similar running score each round while avoiding
rematches where possible:

1. Score every player from prior rounds (win 3, draw 1, loss 0; a bye is
   a win) and collect their past opponents and whether they had a bye.
2. Sort by score descending, then seat number ascending.
3. With an odd player count, the lowest-placed player without a bye gets
   it; if everyone has had one, the lowest-placed player gets it again.
4. Walk the sorted list top-down, pairing each unpaired player with the
   first unpaired player below them they have not yet played.
5. Anyone left over (no fresh opponent available) is paired in sorted
   order, accepting rematches rather than failing.

Table numbers are the position in the returned list plus one, so the bye
(when present) is table 1.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from draftpod.constants import MATCH_POINTS
from draftpod.event.models import Player, Round

# (player A id, player B id or None for a bye)
Pairing = Tuple[str, Optional[str]]


@dataclass
class PlayerScore:
    """Running Swiss score for one player."""

    player_id: str
    points: int = 0
    opponent_ids: List[str] = field(default_factory=list)
    had_bye: bool = False

    @property
    def matches_played(self) -> int:
        """Matches counted for match-win percentage, byes included."""
        return len(self.opponent_ids) + (1 if self.had_bye else 0)


def calculate_player_scores(
    players: Iterable[Player],
    rounds: Iterable[Round],
) -> Dict[str, PlayerScore]:
    """
    Score every player from the given rounds.

    Opponents are recorded as soon as a pairing exists, even before a result
    is in, so a player is never re-paired against someone they are currently
    playing. Players no longer on the roster are ignored.
    """
    scores = {p.id: PlayerScore(player_id=p.id) for p in players}

    for round_ in rounds:
        for match in round_.matches:
            player_a = scores.get(match.player_a_id)
            if player_a is None:
                continue

            if match.is_bye:
                player_a.points += MATCH_POINTS["WIN"]
                player_a.had_bye = True
                continue

            player_b = scores.get(match.player_b_id)
            if player_b is None:
                continue

            player_a.opponent_ids.append(player_b.player_id)
            player_b.opponent_ids.append(player_a.player_id)

            result = match.result
            if result is None:
                continue
            if result.is_draw:
                player_a.points += MATCH_POINTS["DRAW"]
                player_b.points += MATCH_POINTS["DRAW"]
            elif result.player_a_wins > result.player_b_wins:
                player_a.points += MATCH_POINTS["WIN"]
                player_b.points += MATCH_POINTS["LOSS"]
            else:
                player_a.points += MATCH_POINTS["LOSS"]
                player_b.points += MATCH_POINTS["WIN"]

    return scores


def have_played(player_a_id: str, player_b_id: str, scores: Dict[str, PlayerScore]) -> bool:
    """Check if two players have previously been paired."""
    score = scores.get(player_a_id)
    return score is not None and player_b_id in score.opponent_ids


def generate_swiss_pairings(
    players: List[Player],
    previous_rounds: List[Round],
) -> List[Pairing]:
    """
    Pair the roster for the next round.

    Args:
        players: Current roster.
        previous_rounds: Every round generated so far.

    Returns:
        One ``(player_a_id, player_b_id)`` tuple per table. ``player_b_id``
        is None for the bye. Every player appears exactly once.
    """
    scores = calculate_player_scores(players, previous_rounds)
    ordered = sorted(players, key=lambda p: (-scores[p.id].points, p.seat_number))

    pairings: List[Pairing] = []
    paired: Set[str] = set()

    if len(ordered) % 2 == 1:
        bye_player = next(
            (p for p in reversed(ordered) if not scores[p.id].had_bye),
            ordered[-1],
        )
        pairings.append((bye_player.id, None))
        paired.add(bye_player.id)

    for index, player_a in enumerate(ordered):
        if player_a.id in paired:
            continue
        for player_b in ordered[index + 1:]:
            if player_b.id in paired:
                continue
            if have_played(player_a.id, player_b.id, scores):
                continue
            pairings.append((player_a.id, player_b.id))
            paired.update((player_a.id, player_b.id))
            break

    # No fresh opponent left for some players: accept rematches
    leftovers = [p for p in ordered if p.id not in paired]
    for first, second in zip(leftovers[::2], leftovers[1::2]):
        pairings.append((first.id, second.id))

    return pairings
