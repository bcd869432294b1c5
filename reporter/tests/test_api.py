"""Tests for the local API endpoints."""

from __future__ import annotations

import io
import json

import pytest
from PIL import Image

CAPTURE = {
    "category": "Illegal Mining",
    "description": "Excavators dredging the river bank",
    "location": {"lat": 5.6, "lon": -0.2, "accuracy_m": 10},
    "blur_radius_m": 500,
    "stealth": True,
}


async def _create(client, **overrides) -> dict:
    payload = {**CAPTURE, **overrides}
    resp = await client.post(
        "/api/v1/reports",
        content=json.dumps(payload),
        headers={"content-type": "application/json"},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["online"] is False
    assert data["sync_running"] is True
    assert data["location_watch"] is True
    assert data["reports"] == 0


@pytest.mark.asyncio
async def test_create_report_offline(client):
    data = await _create(client)
    assert data["status"] == "Queued"
    assert [h["state"] for h in data["history"]] == ["Queued"]
    assert data["safe_upload"] == {"required": True, "ready": False}
    assert "exact_location" not in data
    assert "contact" not in data
    assert data["public_location"] != {"lat": 5.6, "lon": -0.2}


@pytest.mark.asyncio
async def test_create_uses_default_blur(client):
    payload = {k: v for k, v in CAPTURE.items() if k != "blur_radius_m"}
    data = await _create(client, **payload)
    assert data["blur_radius_m"] == 500


@pytest.mark.asyncio
async def test_create_clamps_blur(client):
    assert (await _create(client, blur_radius_m=5000))["blur_radius_m"] == 2000
    assert (await _create(client, blur_radius_m=-10))["blur_radius_m"] == 0


@pytest.mark.asyncio
async def test_create_missing_fields(client):
    resp = await client.post(
        "/api/v1/reports",
        content=json.dumps({"description": ""}),
        headers={"content-type": "application/json"},
    )
    assert resp.status_code == 422
    assert resp.json()["fields"] == ["category", "description", "location"]


@pytest.mark.asyncio
async def test_create_invalid_location(client):
    resp = await client.post(
        "/api/v1/reports",
        content=json.dumps({**CAPTURE, "location": {"lat": 123, "lon": 0}}),
        headers={"content-type": "application/json"},
    )
    assert resp.status_code == 422
    assert resp.json()["fields"] == ["location"]


@pytest.mark.asyncio
async def test_create_uses_pushed_location(client):
    await client.post("/api/v1/location", content=json.dumps({"lat": 5.61, "lon": -0.21}))
    payload = {k: v for k, v in CAPTURE.items() if k != "location"}
    payload["blur_radius_m"] = 0
    resp = await client.post("/api/v1/reports", content=json.dumps(payload))
    assert resp.status_code == 201
    assert resp.json()["public_location"] == {"lat": 5.61, "lon": -0.21}


@pytest.mark.asyncio
async def test_invalid_json(client):
    resp = await client.post(
        "/api/v1/reports",
        content=b"not json at all",
        headers={"content-type": "application/json"},
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_list_and_filter(client):
    first = await _create(client)
    second = await _create(client, stealth=False)
    await client.post(f"/api/v1/reports/{second['id']}/advance")

    data = (await client.get("/api/v1/reports")).json()
    assert data["total"] == 2
    assert [r["id"] for r in data["reports"]] == [second["id"], first["id"]]

    queued = (await client.get("/api/v1/reports", params={"status": "Queued"})).json()
    assert [r["id"] for r in queued["reports"]] == [first["id"]]


@pytest.mark.asyncio
async def test_get_unknown_report(client):
    assert (await client.get("/api/v1/reports/nope")).status_code == 404


@pytest.mark.asyncio
async def test_advance_resolve_and_terminal(client):
    report = await _create(client)
    resp = await client.post(f"/api/v1/reports/{report['id']}/resolve")
    assert resp.status_code == 200
    assert resp.json()["status"] == "Resolved"

    again = await client.post(f"/api/v1/reports/{report['id']}/resolve")
    assert [h["state"] for h in again.json()["history"]] == ["Queued", "Resolved"]

    resp = await client.post(f"/api/v1/reports/{report['id']}/advance")
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_delete(client):
    report = await _create(client)
    assert (await client.delete(f"/api/v1/reports/{report['id']}")).status_code == 200
    assert (await client.delete(f"/api/v1/reports/{report['id']}")).status_code == 404
    assert (await client.get("/api/v1/stats")).json()["reports_deleted"] == 1


@pytest.mark.asyncio
async def test_export_contains_exact_location(client):
    report = await _create(client, anonymous=False, contact={"phone": "+233200000000"})
    resp = await client.get(f"/api/v1/reports/{report['id']}/export")
    assert resp.status_code == 200
    assert "attachment" in resp.headers["content-disposition"]
    data = resp.json()
    assert data["exact_location"] == {"lat": 5.6, "lon": -0.2, "accuracy_m": 10.0}
    assert data["contact"]["phone"] == "+233200000000"


@pytest.mark.asyncio
async def test_message_with_authority_contact(client):
    await client.put(
        "/api/v1/settings",
        content=json.dumps({"authority_contact": {"sms": "1515", "ussd": "*920#"}}),
    )
    report = await _create(client)
    data = (await client.get(f"/api/v1/reports/{report['id']}/message")).json()
    assert "Location: 5.600,-0.200 (approx.)" in data["body"]
    assert data["sms_uri"].startswith("sms:1515?body=")
    assert data["dial_uri"] == "tel:*920%23"


@pytest.mark.asyncio
async def test_message_without_contact(client):
    report = await _create(client)
    data = (await client.get(f"/api/v1/reports/{report['id']}/message",
                             params={"exact": "true"})).json()
    assert "Location: 5.600000,-0.200000" in data["body"]
    assert data["sms_uri"] is None
    assert data["dial_uri"] is None


@pytest.mark.asyncio
async def test_settings_round_trip(client):
    resp = await client.get("/api/v1/settings")
    assert resp.json()["safe_policy"] == {"min_meters": 1000.0, "max_wait_minutes": 30.0}

    resp = await client.put(
        "/api/v1/settings",
        content=json.dumps({"safe_policy": {"min_meters": 300, "max_wait_minutes": 5}}),
    )
    assert resp.status_code == 200
    assert (await client.get("/api/v1/settings")).json()["safe_policy"] == {
        "min_meters": 300.0, "max_wait_minutes": 5.0,
    }


@pytest.mark.asyncio
async def test_settings_rejects_negative(client):
    resp = await client.put(
        "/api/v1/settings",
        content=json.dumps({"safe_policy": {"min_meters": -5}}),
    )
    assert resp.status_code == 422
    assert resp.json()["fields"] == ["min_meters"]


@pytest.mark.asyncio
async def test_sync_offline_rejected(client):
    report = await _create(client, stealth=False)
    resp = await client.post("/api/v1/sync")
    assert resp.status_code == 503
    assert resp.json() == {"ok": False, "error": "offline", "submitted": 0}
    assert (await client.get(f"/api/v1/reports/{report['id']}")).json()["status"] == "Queued"


@pytest.mark.asyncio
async def test_stealth_flow_end_to_end(client, scheduler):
    report = await _create(client)
    await client.post("/api/v1/connectivity", content=json.dumps({"online": True}))

    # Still at the scene: reconnecting submits nothing.
    data = (await client.get(f"/api/v1/reports/{report['id']}")).json()
    assert data["status"] == "Queued"

    # Observer walks ~1 km away; the next tick latches readiness.
    await client.post("/api/v1/location", content=json.dumps({"lat": 5.6095, "lon": -0.2}))
    scheduler.advance(30)
    data = (await client.get(f"/api/v1/reports/{report['id']}")).json()
    assert data["safe_upload"]["ready"] is True

    resp = await client.post("/api/v1/sync")
    assert resp.json() == {"ok": True, "error": "", "submitted": 1}
    scheduler.advance(1.2)
    data = (await client.get(f"/api/v1/reports/{report['id']}")).json()
    assert [h["state"] for h in data["history"]] == ["Queued", "Submitted", "Received"]


@pytest.mark.asyncio
async def test_connectivity_bad_body(client):
    resp = await client.post("/api/v1/connectivity", content=json.dumps({"online": "yes"}))
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_location_unavailable(client):
    await client.post("/api/v1/location", content=json.dumps({"lat": 5.6, "lon": -0.2}))
    assert (await client.get("/api/v1/health")).json()["has_location"] is True
    await client.post("/api/v1/location/unavailable")
    assert (await client.get("/api/v1/health")).json()["has_location"] is False


@pytest.mark.asyncio
async def test_location_invalid(client):
    resp = await client.post("/api/v1/location", content=json.dumps({"lat": "x"}))
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_map(client):
    empty = (await client.get("/api/v1/map")).json()
    assert empty["view"] == {"center": [5.55, -0.1969], "zoom": 12}

    await _create(client)
    data = (await client.get("/api/v1/map")).json()
    assert len(data["features"]["features"]) == 1
    assert data["view"]["zoom"] == 15


@pytest.mark.asyncio
async def test_media_upload_strips_metadata(client):
    img = Image.new("RGB", (2400, 1200), (10, 20, 30))
    exif = Image.Exif()
    exif[0x010F] = "PhoneMaker"
    buf = io.BytesIO()
    img.save(buf, format="JPEG", exif=exif.tobytes())

    resp = await client.post(
        "/api/v1/media",
        params={"kind": "image", "name": "pit.jpg"},
        content=buf.getvalue(),
        headers={"content-type": "image/jpeg"},
    )
    assert resp.status_code == 201
    ref = resp.json()["content_ref"]
    assert ref.endswith(".jpg")

    from reporter.main import get_media_storage

    with Image.open(io.BytesIO(get_media_storage().get(ref))) as stored:
        assert max(stored.size) <= 1600
        assert len(stored.getexif()) == 0


@pytest.mark.asyncio
async def test_media_upload_rejects_bad_input(client):
    resp = await client.post("/api/v1/media", params={"kind": "hologram"}, content=b"x")
    assert resp.status_code == 422
    resp = await client.post("/api/v1/media", params={"kind": "image"}, content=b"")
    assert resp.status_code == 400
    resp = await client.post("/api/v1/media", params={"kind": "image"}, content=b"junk")
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_stats(client):
    await _create(client)
    data = (await client.get("/api/v1/stats")).json()
    assert data["reports_created"] == 1
    assert data["syncs"] == {"accepted": 0, "rejected": 0}


@pytest.mark.asyncio
async def test_create_clamps_overflowing_blur(client):
    payload = {k: v for k, v in CAPTURE.items() if k != "blur_radius_m"}
    body = json.dumps(payload)[:-1] + ', "blur_radius_m": 1e400}'
    resp = await client.post("/api/v1/reports", content=body)
    assert resp.status_code == 201, resp.text
    assert resp.json()["blur_radius_m"] == 2000


@pytest.mark.asyncio
async def test_create_rejects_nan_blur(client):
    body = json.dumps({**CAPTURE, "blur_radius_m": float("nan")})
    resp = await client.post("/api/v1/reports", content=body)
    assert resp.status_code == 422
    assert resp.json()["fields"] == ["blur_radius_m"]


@pytest.mark.asyncio
async def test_advance_refuses_stealth_report_before_safe_upload(client):
    report = await _create(client)
    resp = await client.post(f"/api/v1/reports/{report['id']}/advance")
    assert resp.status_code == 409
    data = (await client.get(f"/api/v1/reports/{report['id']}")).json()
    assert data["status"] == "Queued"
    assert data["safe_upload"] == {"required": True, "ready": False}


async def _upload(client) -> str:
    buf = io.BytesIO()
    Image.new("RGB", (40, 30), (200, 10, 10)).save(buf, format="JPEG")
    resp = await client.post("/api/v1/media", params={"kind": "image", "name": "pit.jpg"},
                             content=buf.getvalue())
    assert resp.status_code == 201
    return resp.json()["content_ref"]


@pytest.mark.asyncio
async def test_locked_media_is_refused_until_safe(client, lifecycle):
    ref = await _upload(client)
    report = await _create(client, media=[{"kind": "image", "name": "pit.jpg",
                                           "content_ref": ref}])
    assert (await client.get(f"/api/v1/media/{ref}")).status_code == 423

    lifecycle.latch_ready(report["id"])
    resp = await client.get(f"/api/v1/media/{ref}")
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "image/jpeg"

    assert (await client.get("/api/v1/media/missing.jpg")).status_code == 404


@pytest.mark.asyncio
async def test_delete_removes_media(client):
    ref = await _upload(client)
    report = await _create(client, stealth=False,
                           media=[{"kind": "image", "content_ref": ref}])
    assert (await client.get(f"/api/v1/media/{ref}")).status_code == 200
    await client.delete(f"/api/v1/reports/{report['id']}")
    assert (await client.get(f"/api/v1/media/{ref}")).status_code == 404
