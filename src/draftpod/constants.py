"""
Event constants.

Defaults for new events and the fixed scoring rules used by pairing and
standings. Timer durations are in seconds unless the name says minutes.
"""

# Swiss scoring: 3 points for a match win, 1 for a draw, 0 for a loss
MATCH_POINTS = {
    "WIN": 3,
    "DRAW": 1,
    "LOSS": 0,
}

# A bye is recorded as a 2-0 match win
BYE_GAME_WINS = 2

# Opponents' win percentages are floored at 33% (DCI tiebreaker rules)
MIN_OPPONENT_WIN_PCT = 0.33

# Best-of-three matches: no side can win more than 3 games in total
MAX_GAMES_PER_MATCH = 3

DEFAULT_ROUND_TIMER_MINUTES = 50
DEFAULT_DRAFT_PICK_SECONDS = 600  # one timer per pack
DEFAULT_DECKBUILDING_MINUTES = 30
SEALED_DECKBUILDING_MINUTES = 45
DEFAULT_TOTAL_ROUNDS = 3

# Floors for timer adjustments
PICK_TIMER_FLOOR_SECONDS = 10
PHASE_TIMER_FLOOR_SECONDS = 60

PACK_COUNT = 3
PACK_PASS_DIRECTION = {
    1: "left",
    2: "right",
    3: "left",
}

MIN_PLAYERS = 2
MAX_PLAYERS = 16

MANA_COLORS = ("W", "U", "B", "R", "G")

# Event codes avoid 0/O and 1/I/L so they can be read aloud across a table
EVENT_CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
EVENT_CODE_LENGTH = 4
ID_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
