"""
Standings calculator.

Ranks players by match points with the usual tiebreakers:

    points  = 3 * wins + 1 * draws
    OMW%    = mean over opponents of max(33%, opponent points / (3 * matches))
    GW%     = games won / games played
    OGW%    = mean over opponents of max(33%, opponent GW%)

A bye counts as a 2-0 match win and adds no opponent. Percentages are on a
0-100 scale. Ties after points, OMW% and GW% keep roster order; every
player still gets a distinct rank.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from draftpod.constants import BYE_GAME_WINS, MATCH_POINTS, MIN_OPPONENT_WIN_PCT
from draftpod.event.models import Player, Round
from draftpod.pairing.swiss import calculate_player_scores


@dataclass
class PlayerStanding:
    """One row of the standings table."""

    player_id: str
    rank: int = 0
    points: int = 0
    wins: int = 0
    losses: int = 0
    draws: int = 0
    opponent_match_win_percentage: float = 0.0
    game_win_percentage: float = 0.0
    opponent_game_win_percentage: float = 0.0

    @property
    def record(self) -> str:
        return f"{self.wins}-{self.losses}-{self.draws}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "playerId": self.player_id,
            "rank": self.rank,
            "points": self.points,
            "wins": self.wins,
            "losses": self.losses,
            "draws": self.draws,
            "record": self.record,
            "opponentMatchWinPercentage": round(self.opponent_match_win_percentage, 2),
            "gameWinPercentage": round(self.game_win_percentage, 2),
            "opponentGameWinPercentage": round(self.opponent_game_win_percentage, 2),
        }


@dataclass
class _GameRecord:
    wins: int = 0
    losses: int = 0
    draws: int = 0
    games_won: int = 0
    games_lost: int = 0

    @property
    def game_win_fraction(self) -> float:
        played = self.games_won + self.games_lost
        return self.games_won / played if played else 0.0


def _game_records(players: List[Player], rounds: List[Round]) -> Dict[str, _GameRecord]:
    records = {p.id: _GameRecord() for p in players}

    for round_ in rounds:
        for match in round_.matches:
            record_a = records.get(match.player_a_id)

            if match.is_bye:
                if record_a is not None:
                    record_a.wins += 1
                    record_a.games_won += BYE_GAME_WINS
                continue

            result = match.result
            record_b = records.get(match.player_b_id)
            if result is None:
                continue

            sides = (
                (record_a, result.player_a_wins, result.player_b_wins),
                (record_b, result.player_b_wins, result.player_a_wins),
            )
            for record, won, lost in sides:
                if record is None:
                    continue
                record.games_won += won
                record.games_lost += lost
                if result.is_draw:
                    record.draws += 1
                elif won > lost:
                    record.wins += 1
                else:
                    record.losses += 1

    return records


def calculate_standings(players: List[Player], rounds: List[Round]) -> List[PlayerStanding]:
    """
    Compute ranked standings for the roster.

    Args:
        players: Current roster; players who left are not ranked.
        rounds: Every round generated so far, finished or not.

    Returns:
        Standings sorted best first with ``rank`` set 1..N.
    """
    scores = calculate_player_scores(players, rounds)
    records = _game_records(players, rounds)

    def match_win_fraction(player_id: str) -> float | None:
        score = scores[player_id]
        if score.matches_played == 0:
            return None
        return score.points / (score.matches_played * MATCH_POINTS["WIN"])

    standings: List[PlayerStanding] = []
    for player in players:
        score = scores[player.id]
        record = records[player.id]

        omw_total = 0.0
        ogw_total = 0.0
        for opponent_id in score.opponent_ids:
            fraction = match_win_fraction(opponent_id)
            if fraction is not None:
                omw_total += max(MIN_OPPONENT_WIN_PCT, fraction)
            ogw_total += max(MIN_OPPONENT_WIN_PCT, records[opponent_id].game_win_fraction)

        opponents = len(score.opponent_ids)
        standings.append(PlayerStanding(
            player_id=player.id,
            points=record.wins * MATCH_POINTS["WIN"] + record.draws * MATCH_POINTS["DRAW"],
            wins=record.wins,
            losses=record.losses,
            draws=record.draws,
            opponent_match_win_percentage=(omw_total / opponents * 100) if opponents else 0.0,
            game_win_percentage=record.game_win_fraction * 100,
            opponent_game_win_percentage=(ogw_total / opponents * 100) if opponents else 0.0,
        ))

    standings.sort(key=lambda s: (
        -s.points,
        -s.opponent_match_win_percentage,
        -s.game_win_percentage,
    ))
    for rank, standing in enumerate(standings, start=1):
        standing.rank = rank

    return standings
