"""Media upload and fetch endpoints.

Raw bytes come in, are sanitized, and only the sanitized copy is stored. The
returned content reference goes into a report's media list.
"""

from __future__ import annotations

from fastapi import APIRouter, Query, Request, Response
from fastapi.responses import JSONResponse

from reporter.api.reports import _error
from reporter.core.models import MediaKind
from reporter.media.sanitizer import suffix_for

router = APIRouter(prefix="/api/v1")


@router.post("/media")
async def upload_media(
    request: Request,
    kind: str = Query(default="image"),
    name: str = Query(default=""),
) -> JSONResponse:
    from reporter.main import get_config, get_media_storage, get_sanitizer

    try:
        media_kind = MediaKind(kind)
    except ValueError:
        return _error(422, f"unknown media kind: {kind}", ("kind",))

    data = await request.body()
    if not data:
        return _error(400, "empty body")

    try:
        clean = get_sanitizer().sanitize(
            data, media_kind, get_config().privacy.image_max_dimension,
        )
    except ValueError as exc:
        return _error(422, str(exc))

    ref = get_media_storage().put(clean, suffix_for(media_kind, name))
    return JSONResponse(
        content={"kind": media_kind.value, "name": name, "content_ref": ref,
                 "size": len(clean)},
        status_code=201,
    )


@router.get("/media/{content_ref}")
async def fetch_media(content_ref: str) -> Response:
    """Stored media bytes. Media still locked by a deferred report is refused."""
    from reporter.main import get_media_storage, get_store

    for report in get_store().reports:
        for item in report.media:
            if item.content_ref == content_ref and item.locked:
                return _error(423, "media is locked until safe upload")

    try:
        data = get_media_storage().get(content_ref)
    except (FileNotFoundError, IsADirectoryError):
        return _error(404, "media not found")

    media_type = "image/jpeg" if content_ref.endswith(".jpg") else "application/octet-stream"
    return Response(content=data, media_type=media_type)
