"""JSON codec for reports and settings.

The persisted collection is a JSON array of report objects (newest-first).
An exported report uses exactly the same object shape.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from reporter.core.errors import PersistenceCorrupt
from reporter.core.models import (
    AuthorityContact,
    ContactInfo,
    HistoryEntry,
    LocationData,
    MediaItem,
    MediaKind,
    Report,
    ReportStatus,
    SafePolicy,
    SafeUploadData,
    Settings,
)


def _location_to_dict(loc: LocationData) -> dict:
    data: dict[str, Any] = {"lat": loc.lat, "lon": loc.lon}
    if loc.accuracy_m is not None:
        data["accuracy_m"] = loc.accuracy_m
    return data


def _location_from_dict(data: dict) -> LocationData:
    accuracy = data.get("accuracy_m")
    return LocationData(
        lat=float(data["lat"]),
        lon=float(data["lon"]),
        accuracy_m=float(accuracy) if accuracy is not None else None,
    )


def _timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        raise ValueError(f"timestamp without timezone: {value!r}")
    return parsed


def report_to_dict(report: Report) -> dict:
    """Convert a report to its persisted JSON object."""
    contact = None
    if report.contact is not None:
        contact = {
            "phone": report.contact.phone,
            "email": report.contact.email,
            "wants_callback": report.contact.wants_callback,
            "preferred_time": report.contact.preferred_time,
        }
    return {
        "id": report.id,
        "created_at": report.created_at.isoformat(),
        "category": report.category,
        "checklist": list(report.checklist),
        "description": report.description,
        "exact_location": _location_to_dict(report.exact_location),
        "blur_radius_m": report.blur_radius_m,
        "public_location": _location_to_dict(report.public_location),
        "media": [
            {
                "kind": m.kind.value,
                "name": m.name,
                "content_ref": m.content_ref,
                "locked": m.locked,
            }
            for m in report.media
        ],
        "anonymous": report.anonymous,
        "contact": contact,
        "reward_opt_in": report.reward_opt_in,
        "status": report.status.value,
        "history": [
            {"state": h.state.value, "timestamp": h.timestamp.isoformat()}
            for h in report.history
        ],
        "safe_upload": {
            "required": report.safe_upload.required,
            "ready": report.safe_upload.ready,
            "capture_origin": _location_to_dict(report.safe_upload.capture_origin),
            "created_at": report.safe_upload.created_at.isoformat(),
        },
    }


def report_from_dict(data: dict) -> Report:
    """Build a report from its persisted JSON object.

    Raises KeyError, TypeError or ValueError on malformed input.
    """
    contact_raw = data.get("contact")
    contact = None
    if contact_raw is not None:
        contact = ContactInfo(
            phone=contact_raw.get("phone", ""),
            email=contact_raw.get("email", ""),
            wants_callback=bool(contact_raw.get("wants_callback", False)),
            preferred_time=contact_raw.get("preferred_time", ""),
        )
    safe = data["safe_upload"]
    return Report(
        id=str(data["id"]),
        created_at=_timestamp(data["created_at"]),
        category=data.get("category", ""),
        checklist=tuple(data.get("checklist", [])),
        description=data["description"],
        exact_location=_location_from_dict(data["exact_location"]),
        blur_radius_m=int(data["blur_radius_m"]),
        public_location=_location_from_dict(data["public_location"]),
        media=tuple(
            MediaItem(
                kind=MediaKind(m["kind"]),
                name=m.get("name", ""),
                content_ref=m.get("content_ref", ""),
                locked=bool(m.get("locked", False)),
            )
            for m in data.get("media", [])
        ),
        anonymous=bool(data.get("anonymous", True)),
        contact=contact,
        reward_opt_in=bool(data.get("reward_opt_in", False)),
        status=ReportStatus(data["status"]),
        history=tuple(
            HistoryEntry(
                state=ReportStatus(h["state"]),
                timestamp=_timestamp(h["timestamp"]),
            )
            for h in data["history"]
        ),
        safe_upload=SafeUploadData(
            required=bool(safe["required"]),
            ready=bool(safe["ready"]),
            capture_origin=_location_from_dict(safe["capture_origin"]),
            created_at=_timestamp(safe["created_at"]),
        ),
    )


def settings_to_dict(settings: Settings) -> dict:
    return {
        "authority_contact": {
            "sms": settings.authority_contact.sms,
            "ussd": settings.authority_contact.ussd,
        },
        "safe_policy": {
            "min_meters": settings.safe_policy.min_meters,
            "max_wait_minutes": settings.safe_policy.max_wait_minutes,
        },
    }


def settings_from_dict(data: dict) -> Settings:
    contact = data.get("authority_contact", {})
    policy = data.get("safe_policy", {})
    defaults = SafePolicy()
    return Settings(
        authority_contact=AuthorityContact(
            sms=str(contact.get("sms", "")),
            ussd=str(contact.get("ussd", "")),
        ),
        safe_policy=SafePolicy(
            min_meters=float(policy.get("min_meters", defaults.min_meters)),
            max_wait_minutes=float(policy.get("max_wait_minutes", defaults.max_wait_minutes)),
        ),
    )


def dumps_reports(reports: list[Report] | tuple[Report, ...]) -> str:
    return json.dumps([report_to_dict(r) for r in reports], separators=(",", ":"))


def loads_reports(text: str) -> list[Report]:
    """Decode a persisted collection. Raises PersistenceCorrupt on any defect."""
    try:
        raw = json.loads(text)
        if not isinstance(raw, list):
            raise TypeError(f"expected a list, got {type(raw).__name__}")
        return [report_from_dict(item) for item in raw]
    except (ValueError, KeyError, TypeError, AttributeError) as exc:
        raise PersistenceCorrupt(str(exc)) from exc


def dumps_settings(settings: Settings) -> str:
    return json.dumps(settings_to_dict(settings), separators=(",", ":"))


def loads_settings(text: str) -> Settings:
    """Decode persisted settings. Raises PersistenceCorrupt on any defect."""
    try:
        raw = json.loads(text)
        if not isinstance(raw, dict):
            raise TypeError(f"expected an object, got {type(raw).__name__}")
        return settings_from_dict(raw)
    except (ValueError, KeyError, TypeError, AttributeError) as exc:
        raise PersistenceCorrupt(str(exc)) from exc


def export_report(report: Report) -> str:
    """Serialize one report for user-initiated download."""
    return json.dumps(report_to_dict(report), separators=(",", ":"))
