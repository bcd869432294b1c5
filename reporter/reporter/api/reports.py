"""Report API endpoints.

This is the thin FastAPI adapter. It parses JSON requests into internal
models and calls the lifecycle / coordinator. Public views never carry the
exact location or contact details; export and message are the authorized
consumers.
"""

from __future__ import annotations

import json
from dataclasses import replace

from fastapi import APIRouter, Query, Request, Response
from fastapi.responses import JSONResponse

from reporter.core import codec
from reporter.core.errors import (
    InvalidLocation,
    ReportNotFound,
    SafeUploadPending,
    TerminalState,
    ValidationError,
)
from reporter.core.mapping import fit_view, public_feature_collection
from reporter.core.models import (
    CaptureData,
    ContactInfo,
    LocationData,
    MediaItem,
    MediaKind,
    Report,
)
from reporter.core.outbound import compose_message, dial_uri, sms_uri

router = APIRouter(prefix="/api/v1")


def _error(status: int, message: str, fields: tuple[str, ...] = ()) -> JSONResponse:
    content: dict = {"error": message}
    if fields:
        content["fields"] = list(fields)
    return JSONResponse(content=content, status_code=status)


def _parse_location(data: dict | None) -> LocationData | None:
    if data is None:
        return None
    try:
        accuracy = data.get("accuracy_m")
        return LocationData(
            lat=float(data["lat"]),
            lon=float(data["lon"]),
            accuracy_m=float(accuracy) if accuracy is not None else None,
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise InvalidLocation(f"unparseable location: {exc}") from exc


def _parse_capture(body: dict, default_blur_m: int) -> CaptureData:
    """Parse a capture from the form's JSON."""
    contact = None
    if body.get("contact"):
        c = body["contact"]
        contact = ContactInfo(
            phone=str(c.get("phone", "")),
            email=str(c.get("email", "")),
            wants_callback=bool(c.get("wants_callback", False)),
            preferred_time=str(c.get("preferred_time", "")),
        )
    try:
        media = tuple(
            MediaItem(
                kind=MediaKind(m.get("kind", "image")),
                name=str(m.get("name", "")),
                content_ref=str(m.get("content_ref", "")),
            )
            for m in body.get("media", [])
        )
    except ValueError as exc:
        raise ValidationError(["media"], f"invalid media: {exc}") from exc

    return CaptureData(
        category=str(body.get("category", "")),
        description=str(body.get("description", "")),
        location=_parse_location(body.get("location")),
        blur_radius_m=float(body.get("blur_radius_m", default_blur_m)),
        checklist=tuple(str(item) for item in body.get("checklist", [])),
        media=media,
        anonymous=bool(body.get("anonymous", True)),
        contact=contact,
        reward_opt_in=bool(body.get("reward_opt_in", False)),
        stealth=bool(body.get("stealth", False)),
    )


def public_view(report: Report) -> dict:
    """Report as shown to the observer's UI and the public map."""
    pin = report.public_location
    return {
        "id": report.id,
        "created_at": report.created_at.isoformat(),
        "category": report.category,
        "checklist": list(report.checklist),
        "description": report.description,
        "blur_radius_m": report.blur_radius_m,
        "public_location": {"lat": pin.lat, "lon": pin.lon},
        "media": [
            {"kind": m.kind.value, "name": m.name, "locked": m.locked}
            for m in report.media
        ],
        "anonymous": report.anonymous,
        "status": report.status.value,
        "history": [
            {"state": h.state.value, "timestamp": h.timestamp.isoformat()}
            for h in report.history
        ],
        "safe_upload": {
            "required": report.safe_upload.required,
            "ready": report.safe_upload.ready,
        },
    }


@router.post("/reports")
async def create_report(request: Request) -> JSONResponse:
    """Create a report from a capture.

    Without a ``location`` in the body the last known fix is used, then a
    one-shot fix is requested.
    """
    from reporter.main import get_config, get_coordinator

    coordinator = get_coordinator()
    try:
        body = json.loads(await request.body())
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _error(400, "invalid JSON")
    if not isinstance(body, dict):
        return _error(400, "expected a JSON object")

    try:
        capture = _parse_capture(body, get_config().privacy.default_blur_m)
        if capture.location is None:
            location = coordinator.current_location or await coordinator.refresh_location()
            if location is not None:
                capture = replace(capture, location=location)
        report = coordinator.capture(capture)
    except ValidationError as exc:
        return _error(422, str(exc), exc.fields)
    except InvalidLocation as exc:
        return _error(422, str(exc), ("location",))
    except (TypeError, ValueError, OverflowError, AttributeError) as exc:
        return _error(422, f"invalid field: {exc}")

    return JSONResponse(content=public_view(report), status_code=201)


@router.get("/reports")
async def list_reports(
    status: str | None = Query(default=None),
) -> JSONResponse:
    """All reports, newest first, optionally filtered by status."""
    from reporter.main import get_store

    reports = get_store().reports
    if status:
        reports = tuple(r for r in reports if r.status.value == status)
    return JSONResponse(content={
        "reports": [public_view(r) for r in reports],
        "total": len(reports),
    })


@router.get("/reports/{report_id}")
async def get_report(report_id: str) -> JSONResponse:
    from reporter.main import get_store

    try:
        report = get_store().get(report_id)
    except ReportNotFound:
        return _error(404, "report not found")
    return JSONResponse(content=public_view(report))


@router.post("/reports/{report_id}/advance")
async def advance_report(report_id: str) -> JSONResponse:
    from reporter.main import get_lifecycle

    try:
        report = get_lifecycle().advance(report_id)
    except ReportNotFound:
        return _error(404, "report not found")
    except (TerminalState, SafeUploadPending) as exc:
        return _error(409, str(exc))
    return JSONResponse(content=public_view(report))


@router.post("/reports/{report_id}/resolve")
async def resolve_report(report_id: str) -> JSONResponse:
    """Manual closure from any state. Calling it again changes nothing."""
    from reporter.main import get_lifecycle

    try:
        report = get_lifecycle().force_resolve(report_id)
    except ReportNotFound:
        return _error(404, "report not found")
    return JSONResponse(content=public_view(report))


@router.delete("/reports/{report_id}")
async def delete_report(report_id: str) -> JSONResponse:
    from reporter.main import get_lifecycle, get_stats

    try:
        get_lifecycle().delete(report_id)
    except ReportNotFound:
        return _error(404, "report not found")
    get_stats().record_deleted()
    return JSONResponse(content={"deleted": report_id})


@router.get("/reports/{report_id}/export")
async def export_report(report_id: str) -> Response:
    """Download one report in its persisted form."""
    from reporter.main import get_store

    try:
        report = get_store().get(report_id)
    except ReportNotFound:
        return _error(404, "report not found")
    return Response(
        content=codec.export_report(report),
        media_type="application/json",
        headers={"content-disposition": f'attachment; filename="report-{report.id}.json"'},
    )


@router.get("/reports/{report_id}/message")
async def report_message(
    report_id: str,
    exact: bool = Query(default=False),
) -> JSONResponse:
    """Prefilled message body plus SMS/dial handoff URIs, when configured."""
    from reporter.main import get_config, get_store

    store = get_store()
    try:
        report = store.get(report_id)
    except ReportNotFound:
        return _error(404, "report not found")

    body = compose_message(
        report, exact=exact,
        max_description=get_config().privacy.message_max_description,
    )
    contact = store.settings.authority_contact
    return JSONResponse(content={
        "body": body,
        "sms_uri": sms_uri(contact, body) if contact.sms else None,
        "dial_uri": dial_uri(contact) if contact.ussd else None,
    })


@router.get("/map")
async def get_map() -> JSONResponse:
    """Public pins as GeoJSON plus an initial view fitted to them."""
    from reporter.main import get_coordinator, get_store

    reports = get_store().reports
    points = [r.public_location for r in reports]
    observer = get_coordinator().current_location
    if observer is not None:
        points.insert(0, observer)
    return JSONResponse(content={
        "features": public_feature_collection(reports),
        "view": fit_view(points),
    })
