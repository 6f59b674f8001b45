"""Random short identifiers for events, players, matches and log entries."""

from __future__ import annotations

import re
import secrets

from draftpod.constants import EVENT_CODE_ALPHABET, EVENT_CODE_LENGTH, ID_ALPHABET

_EVENT_CODE_RE = re.compile(
    rf"^[{EVENT_CODE_ALPHABET}]{{{EVENT_CODE_LENGTH}}}$"
)


def _random_string(alphabet: str, n: int) -> str:
    return "".join(secrets.choice(alphabet) for _ in range(n))


def create_event_id() -> str:
    """Return an event id formatted as ``xxxx-xxx`` for readability."""
    raw = _random_string(ID_ALPHABET, 7)
    return f"{raw[:4]}-{raw[4:]}"


def create_event_code() -> str:
    return _random_string(EVENT_CODE_ALPHABET, EVENT_CODE_LENGTH)


def create_player_id() -> str:
    return _random_string(ID_ALPHABET, 6)


def create_match_id() -> str:
    return _random_string(ID_ALPHABET, 6)


def create_log_id(timestamp_ms: int) -> str:
    return f"log-{timestamp_ms}-{_random_string(ID_ALPHABET, 9)}"


def normalize_event_code(code: str) -> str:
    return code.strip().upper()


def is_valid_event_code(code: str) -> bool:
    """True when ``code`` (already normalized) uses only the code alphabet."""
    return bool(_EVENT_CODE_RE.match(code))
