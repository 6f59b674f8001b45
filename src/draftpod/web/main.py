"""
HTTP API for draftpod.

Every route works on a fresh copy of the event from the store; nothing is
cached between requests. Clients poll ``GET /event/{id}`` and re-derive
their view from the document.

Domain errors are raised as ``DraftpodError`` subclasses and turned into
status codes by a single exception handler:

    NotFoundError          404
    NotParticipantError    403
    TransitionRefusedError 409
    InvalidInputError      400
    StorageError           500
    ConfigurationError     500

Run locally:
    python -m draftpod.web.main
"""

import json
import logging
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Any, Dict

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from draftpod import __version__
from draftpod.config import settings
from draftpod.event.controller import EventController
from draftpod.event.guards import available_transitions, can_transition
from draftpod.event.models import EventSession, MatchResult
from draftpod.event.stages import derive_stage, group_display_name, parse_stage
from draftpod.exceptions import (
    ConfigurationError,
    DraftpodError,
    InvalidInputError,
    NotFoundError,
    NotParticipantError,
    StorageError,
    TransitionRefusedError,
)
from draftpod.logging_config import configure_logging
from draftpod.services.auth import verify_host_password
from draftpod.services.event_service import EventService
from draftpod.services.match_reports import MatchReportService
from draftpod.storage import EventStore, build_event_store
from draftpod.timers import now_ms

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level, settings.log_format)
    logger.info("draftpod %s starting (storage=%s)", __version__, settings.storage_backend)
    yield


app = FastAPI(title="draftpod", version=__version__, lifespan=lifespan)


# =============================================================================
# Dependencies
# =============================================================================


@lru_cache
def get_store() -> EventStore:
    """Process-wide event store, built on first request."""
    return build_event_store(settings)


def get_event_service(store: EventStore = Depends(get_store)) -> EventService:
    return EventService(store, ttl_seconds=settings.event_ttl_seconds)


def get_match_service(store: EventStore = Depends(get_store)) -> MatchReportService:
    return MatchReportService(store, ttl_seconds=settings.event_ttl_seconds)


# =============================================================================
# Error handling
# =============================================================================


def _status_for(exc: DraftpodError) -> int:
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, NotParticipantError):
        return 403
    if isinstance(exc, TransitionRefusedError):
        return 409
    if isinstance(exc, InvalidInputError):
        return 400
    return 500


@app.exception_handler(DraftpodError)
async def draftpod_error_handler(request: Request, exc: DraftpodError):
    """Translate domain errors into JSON error bodies with the right status."""
    status_code = _status_for(exc)
    if isinstance(exc, (StorageError, ConfigurationError)):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        {"success": False, "error": exc.message, "code": exc.code.value},
        status_code=status_code,
    )


async def _json_body(request: Request) -> Any:
    """Parse the request body, treating an empty or malformed body as absent."""
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return None


# =============================================================================
# Events
# =============================================================================


@app.post("/event")
async def create_event(
    request: Request,
    service: EventService = Depends(get_event_service),
):
    data = await _json_body(request)
    event = EventSession.from_dict(data)
    service.create_event(event)
    return JSONResponse(event.to_dict(), status_code=201)


@app.get("/event/code/{code}")
def get_event_by_code(code: str, service: EventService = Depends(get_event_service)):
    event = service.get_event_by_code(code)
    return JSONResponse(event.to_dict())


@app.get("/event/{event_id}")
def get_event(event_id: str, service: EventService = Depends(get_event_service)):
    event = service.get_event(event_id)
    return JSONResponse(event.to_dict())


@app.put("/event/{event_id}")
async def update_event(
    event_id: str,
    request: Request,
    service: EventService = Depends(get_event_service),
):
    data = await _json_body(request)
    if not isinstance(data, dict):
        raise InvalidInputError("Event data is required")
    data.setdefault("id", event_id)
    event = EventSession.from_dict(data)
    service.update_event(event_id, event)
    return JSONResponse(event.to_dict())


# =============================================================================
# Match reporting
# =============================================================================


@app.put("/event/{event_id}/match/{match_id}")
async def report_match(
    event_id: str,
    match_id: str,
    request: Request,
    service: MatchReportService = Depends(get_match_service),
):
    data = await _json_body(request)
    if not isinstance(data, dict):
        raise InvalidInputError("Request body is required")
    if "result" not in data or "reportedBy" not in data:
        raise InvalidInputError("result and reportedBy are required")

    result = MatchResult.from_dict(data["result"])
    outcome = service.report(event_id, match_id, result, data["reportedBy"])
    return JSONResponse(outcome.to_dict())


@app.get("/event/{event_id}/match/{match_id}")
def get_match(
    event_id: str,
    match_id: str,
    service: MatchReportService = Depends(get_match_service),
):
    match, round_number = service.get_match(event_id, match_id)
    return JSONResponse({"match": match.to_dict(), "roundNumber": round_number})


# =============================================================================
# Stage control
# =============================================================================


@app.get("/event/{event_id}/stage")
def get_stage(event_id: str, service: EventService = Depends(get_event_service)):
    """Current stage plus the guard verdict for every stage of the event."""
    event = service.get_event(event_id)
    now = now_ms()
    stage = derive_stage(event, now)
    return JSONResponse({
        "stage": stage.token,
        "label": stage.label,
        "group": stage.group,
        "groupName": group_display_name(stage.group),
        "transitions": available_transitions(event, now),
    })


@app.get("/event/{event_id}/standings")
def get_standings(event_id: str, service: EventService = Depends(get_event_service)):
    event = service.get_event(event_id)
    names = {p.id: p.name for p in event.players}
    rows = []
    for standing in EventController(event).standings():
        row: Dict[str, Any] = standing.to_dict()
        row["name"] = names.get(standing.player_id)
        rows.append(row)
    return JSONResponse({"standings": rows})


@app.post("/event/{event_id}/sync")
async def sync_stage(
    event_id: str,
    request: Request,
    service: EventService = Depends(get_event_service),
):
    """
    Jump the event to a stage, forward or backward.

    The guard runs against the same copy the jump is applied to, so a
    refusal never writes anything. ``stage`` in the response is derived
    after the jump, not echoed from the request.
    """
    data = await _json_body(request)
    if not isinstance(data, dict) or not isinstance(data.get("stage"), str):
        raise InvalidInputError("stage is required")
    target = parse_stage(data["stage"])
    checks = {}

    def jump(controller: EventController) -> bool:
        current = controller.stage()
        check = can_transition(controller.event, current, target)
        if not check.allowed:
            raise TransitionRefusedError(check.reason or "Transition not allowed")
        checks["last"] = check
        changed = controller.sync_to_stage(target)
        checks["stage"] = controller.stage()
        return changed

    event, _ = service.mutate(event_id, jump)
    return JSONResponse({
        "event": event.to_dict(),
        "stage": checks["stage"].token,
        "isBackward": checks["last"].is_backward,
    })


# =============================================================================
# Host password
# =============================================================================


@app.post("/verify-password")
async def verify_password(request: Request):
    data = await _json_body(request)
    submitted = data.get("password") if isinstance(data, dict) else None
    valid = verify_host_password(submitted, settings.host_pass)
    return JSONResponse({"valid": valid})


# Only for debugging
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("draftpod.web.main:app", host=settings.api_host, port=settings.api_port, reload=True)
