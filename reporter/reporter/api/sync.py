"""Sync, connectivity and location endpoints.

The device layer forwards connectivity changes and location fixes here; the
UI's "sync now" button calls POST /sync.
"""

from __future__ import annotations

import json

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from reporter.api.reports import _error, _parse_location
from reporter.core.errors import InvalidLocation

router = APIRouter(prefix="/api/v1")


async def _json_body(request: Request) -> dict | None:
    try:
        body = json.loads(await request.body())
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return body if isinstance(body, dict) else None


@router.post("/sync")
async def manual_sync() -> JSONResponse:
    """Submit ready queued reports. 503 when offline; nothing changes then."""
    from reporter.main import get_coordinator

    result = get_coordinator().manual_sync()
    content = {"ok": result.ok, "error": result.error, "submitted": result.submitted}
    return JSONResponse(content=content, status_code=200 if result.ok else 503)


@router.post("/connectivity")
async def set_connectivity(request: Request) -> JSONResponse:
    """Body: {"online": true|false}"""
    from reporter.main import get_coordinator

    body = await _json_body(request)
    if body is None or not isinstance(body.get("online"), bool):
        return _error(400, 'expected {"online": bool}')

    coordinator = get_coordinator()
    coordinator.set_online(body["online"])
    return JSONResponse(content={"online": coordinator.online})


@router.post("/location")
async def push_location(request: Request) -> JSONResponse:
    """Body: {"lat": ..., "lon": ..., "accuracy_m": ...}"""
    from reporter.main import get_location_provider

    body = await _json_body(request)
    if body is None:
        return _error(400, "invalid JSON")
    try:
        get_location_provider().push(_parse_location(body))
    except InvalidLocation as exc:
        return _error(422, str(exc), ("location",))
    return JSONResponse(content={"accepted": True})


@router.post("/location/unavailable")
async def location_unavailable() -> JSONResponse:
    """The device could not get a fix (denied, timeout, no signal)."""
    from reporter.main import get_location_provider

    get_location_provider().push_failure()
    return JSONResponse(content={"accepted": True})
