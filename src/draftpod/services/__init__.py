"""Application services sitting between the HTTP layer and the event store."""

from draftpod.services.auth import verify_host_password
from draftpod.services.event_service import EventService
from draftpod.services.match_reports import MatchReportService, ReportOutcome

__all__ = [
    "EventService",
    "MatchReportService",
    "ReportOutcome",
    "verify_host_password",
]
