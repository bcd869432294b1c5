"""Health check, statistics and observer settings endpoints."""

from __future__ import annotations

import json
import shutil
from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from reporter.api.reports import _error
from reporter.core import codec
from reporter.core.errors import ValidationError

router = APIRouter(prefix="/api/v1")


@router.get("/health")
async def health() -> dict:
    """Basic health check."""
    from reporter.main import get_config, get_coordinator, get_store

    config = get_config()
    coordinator = get_coordinator()

    storage_path = Path(config.storage.base_dir)
    try:
        disk = shutil.disk_usage(storage_path if storage_path.exists() else ".")
        disk_free_gb = round(disk.free / (1024 ** 3), 1)
    except OSError:
        disk_free_gb = -1

    return {
        "status": "ok",
        "version": "0.1.0",
        "online": coordinator.online,
        "sync_running": coordinator.running,
        "location_watch": coordinator.watching,
        "has_location": coordinator.current_location is not None,
        "reports": len(get_store().reports),
        "storage_backend": config.storage.backend,
        "disk_free_gb": disk_free_gb,
    }


@router.get("/stats")
async def stats() -> dict:
    from reporter.main import get_stats

    return get_stats().snapshot()


@router.get("/settings")
async def get_settings() -> dict:
    from reporter.main import get_store

    return codec.settings_to_dict(get_store().settings)


@router.put("/settings")
async def put_settings(request: Request) -> JSONResponse:
    """Replace the observer's settings. Missing keys fall back to defaults."""
    from reporter.main import get_lifecycle

    try:
        body = json.loads(await request.body())
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _error(400, "invalid JSON")
    if not isinstance(body, dict):
        return _error(400, "expected a JSON object")

    try:
        settings = codec.settings_from_dict(body)
        get_lifecycle().update_settings(settings)
    except ValidationError as exc:
        return _error(422, str(exc), exc.fields)
    except (TypeError, ValueError, AttributeError) as exc:
        return _error(422, f"invalid settings: {exc}")

    return JSONResponse(content=codec.settings_to_dict(settings))
