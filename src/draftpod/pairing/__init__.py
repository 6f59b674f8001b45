"""Swiss pairing engine and standings calculator."""

from draftpod.pairing.standings import PlayerStanding, calculate_standings
from draftpod.pairing.swiss import PlayerScore, calculate_player_scores, generate_swiss_pairings

__all__ = [
    "PlayerScore",
    "PlayerStanding",
    "calculate_player_scores",
    "calculate_standings",
    "generate_swiss_pairings",
]
