"""Exceptions for use in draftpod.

Every error carries a stable ``ErrorCode`` and a user-safe message. The web
layer maps the base classes to HTTP status codes; nothing below the web
layer knows about HTTP.
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Stable machine-readable error codes."""

    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    MATCH_NOT_FOUND = "MATCH_NOT_FOUND"
    EVENT_CODE_NOT_FOUND = "EVENT_CODE_NOT_FOUND"
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_RESULT = "INVALID_RESULT"
    INVALID_EVENT_CODE = "INVALID_EVENT_CODE"
    EVENT_CODE_TAKEN = "EVENT_CODE_TAKEN"
    INVALID_STAGE = "INVALID_STAGE"
    NOT_PARTICIPANT = "NOT_PARTICIPANT"
    TRANSITION_REFUSED = "TRANSITION_REFUSED"
    STORAGE_FAILURE = "STORAGE_FAILURE"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


# ========== Base Application Exception ==========


class DraftpodError(Exception):
    """Base exception for all draftpod errors.

    All custom exceptions in the application inherit from this class so a
    single handler can translate them at the edge.
    """

    code: ErrorCode = ErrorCode.INVALID_INPUT

    def __init__(self, message: str, code: ErrorCode | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


# ========== Not Found ==========


class NotFoundError(DraftpodError):
    """Base exception for lookups that miss."""


class EventNotFoundError(NotFoundError):
    """Raised when an event does not exist (or has expired)."""

    code = ErrorCode.EVENT_NOT_FOUND

    def __init__(self, event_id: str) -> None:
        super().__init__("Event not found")
        self.event_id = event_id


class MatchNotFoundError(NotFoundError):
    """Raised when no round of the event holds the requested match."""

    code = ErrorCode.MATCH_NOT_FOUND

    def __init__(self, match_id: str) -> None:
        super().__init__("Match not found")
        self.match_id = match_id


class EventCodeNotFoundError(NotFoundError):
    """Raised when a human-readable event code resolves to nothing."""

    code = ErrorCode.EVENT_CODE_NOT_FOUND

    def __init__(self, event_code: str) -> None:
        super().__init__("Event not found")
        self.event_code = event_code


# ========== Invalid Input ==========


class InvalidInputError(DraftpodError):
    """Raised for malformed requests. Always raised before any mutation."""

    code = ErrorCode.INVALID_INPUT


class InvalidResultError(InvalidInputError):
    """Raised when a match result has an impossible or ambiguous shape."""

    code = ErrorCode.INVALID_RESULT


class InvalidEventCodeError(InvalidInputError):
    """Raised when an event code is not four characters of the code alphabet."""

    code = ErrorCode.INVALID_EVENT_CODE


class EventCodeTakenError(InvalidInputError):
    """Raised when a new event code already points at another live event."""

    code = ErrorCode.EVENT_CODE_TAKEN

    def __init__(self, event_code: str) -> None:
        super().__init__(f"Event code {event_code} is already in use")
        self.event_code = event_code


class InvalidStageError(InvalidInputError):
    """Raised when a stage token cannot be parsed."""

    code = ErrorCode.INVALID_STAGE

    def __init__(self, token: str) -> None:
        super().__init__(f"Unknown stage: {token}")
        self.token = token


class NotParticipantError(InvalidInputError):
    """Raised when someone other than the two players reports a match."""

    code = ErrorCode.NOT_PARTICIPANT

    def __init__(self, reporter_id: str) -> None:
        super().__init__("Only match participants can report results")
        self.reporter_id = reporter_id


class TransitionRefusedError(InvalidInputError):
    """Raised when the sequence guard refuses a requested stage jump."""

    code = ErrorCode.TRANSITION_REFUSED


# ========== Infrastructure ==========


class StorageError(DraftpodError):
    """Raised when the event store fails. Not retried here."""

    code = ErrorCode.STORAGE_FAILURE


class ConfigurationError(DraftpodError):
    """Raised when required server configuration is missing."""

    code = ErrorCode.CONFIGURATION_ERROR
