"""
Control Plane Routes - session registration over HTTP

Provides:
- POST /register    bind a sid to a device token
- POST /unregister  drop a sid
- POST /badge       set the badge for a sid and push it
- GET  /            HTML list of live registrations
- GET  /health      liveness and session count

Request bodies are JSON. Responses are plain text, matching what BOSH
clients already parse: "Registered", "Unregistered", "Badge set" or
"Invalid request.".
"""

import html
import json
import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError


logger = logging.getLogger(__name__)

router = APIRouter()

INVALID_REQUEST = "Invalid request."


# =============================================================================
# Request Models
# =============================================================================


class RegisterRequest(BaseModel):
    """Request to register a session. Extra keys are kept with the registration."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    sid: str = Field(..., min_length=1, description="BOSH session id")
    device_token: str | None = Field(None, alias="device-token", description="Push token")


class UnregisterRequest(BaseModel):
    """Request to unregister a session."""

    sid: str = Field(..., min_length=1, description="BOSH session id")


class BadgeRequest(BaseModel):
    """Request to set a session's badge."""

    sid: str = Field(..., min_length=1, description="BOSH session id")
    badge: int = Field(..., ge=0, description="Badge count to display")


# =============================================================================
# Helpers
# =============================================================================


def _invalid() -> PlainTextResponse:
    return PlainTextResponse(INVALID_REQUEST, status_code=400)


async def _read_json(request: Request) -> dict[str, Any] | None:
    raw = await request.body()
    try:
        data = json.loads(raw)
    except ValueError as e:
        logger.error(f"Exception: {e}, while parsing {raw[:200]!r}")
        return None
    if not isinstance(data, dict):
        logger.debug(f"Rejecting non-object request body on {request.url.path}")
        return None
    return data


def _validate(model: type[BaseModel], data: dict[str, Any]) -> BaseModel | None:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.debug(f"Invalid {model.__name__}: {e.error_count()} error(s)")
        return None


# =============================================================================
# Control Plane
# =============================================================================


@router.post("/register", response_class=PlainTextResponse)
@router.post("/register/", response_class=PlainTextResponse, include_in_schema=False)
async def register(request: Request):
    data = await _read_json(request)
    if data is None:
        return _invalid()

    body = _validate(RegisterRequest, data)
    if body is None:
        return _invalid()

    if not request.app.state.engine.on_register(body.sid, data):
        return _invalid()

    return PlainTextResponse("Registered")


@router.post("/unregister", response_class=PlainTextResponse)
@router.post("/unregister/", response_class=PlainTextResponse, include_in_schema=False)
async def unregister(request: Request):
    data = await _read_json(request)
    if data is None:
        return _invalid()

    body = _validate(UnregisterRequest, data)
    if body is None:
        return _invalid()

    request.app.state.engine.on_unregister(body.sid)
    return PlainTextResponse("Unregistered")


@router.post("/badge", response_class=PlainTextResponse)
@router.post("/badge/", response_class=PlainTextResponse, include_in_schema=False)
async def set_badge(request: Request):
    """
    Set a badge and push it without a chat message.

    Fails for unknown sids. A push that the gateway rejects still counts as
    success here; the failure is logged.
    """
    data = await _read_json(request)
    if data is None:
        return _invalid()

    body = _validate(BadgeRequest, data)
    if body is None:
        return _invalid()

    if not await request.app.state.engine.on_set_badge(body.sid, body.badge):
        return _invalid()

    return PlainTextResponse("Badge set")


# =============================================================================
# Status
# =============================================================================


@router.get("/", response_class=HTMLResponse)
async def status_page(request: Request):
    registrations = request.app.state.engine.registry.snapshot()

    parts = ["<html>", "<title>BOSH Push Bridge</title>", "<body>"]
    for registration in registrations:
        parts.append(f"<p>{html.escape(json.dumps(registration.to_dict()))}</p>")
    parts.extend(["</body>", "</html>"])

    return HTMLResponse("".join(parts))


@router.get("/health")
async def health(request: Request):
    pump = request.app.state.pump
    return {
        "status": "ok",
        "sessions": len(request.app.state.engine.registry),
        "channel": request.app.state.engine.channel.name,
        "pump_running": pump.running,
        "pump": dict(pump.metrics),
    }
