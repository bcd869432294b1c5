"""Field reporter — local service entry point.

This is the only file that knows about concrete implementations.
It wires together the core, storage, location, media and API layers.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from reporter.api.media import router as media_router
from reporter.api.monitoring import router as monitoring_router
from reporter.api.reports import router as reports_router
from reporter.api.sync import router as sync_router
from reporter.config import AppConfig, load_config
from reporter.core.lifecycle import ReportLifecycle
from reporter.core.persistence import PersistenceStore
from reporter.core.scheduler import AsyncioScheduler
from reporter.core.stats import ReporterStats
from reporter.core.sync import SyncCoordinator
from reporter.location.push_provider import PushLocationProvider
from reporter.media.sanitizer import PillowImageSanitizer
from reporter.storage.file_storage import FileKeyValueStorage, FileMediaStorage
from reporter.storage.memory_storage import MemoryKeyValueStorage

log = structlog.get_logger()

# Module-level singletons (set during startup)
_config: AppConfig | None = None
_store: PersistenceStore | None = None
_lifecycle: ReportLifecycle | None = None
_coordinator: SyncCoordinator | None = None
_stats: ReporterStats | None = None
_location_provider: PushLocationProvider | None = None
_media_storage: FileMediaStorage | None = None
_sanitizer: PillowImageSanitizer | None = None


def get_config() -> AppConfig:
    assert _config is not None, "Reporter not initialized"
    return _config


def get_store() -> PersistenceStore:
    assert _store is not None, "Reporter not initialized"
    return _store


def get_lifecycle() -> ReportLifecycle:
    assert _lifecycle is not None, "Reporter not initialized"
    return _lifecycle


def get_coordinator() -> SyncCoordinator:
    assert _coordinator is not None, "Reporter not initialized"
    return _coordinator


def get_stats() -> ReporterStats:
    assert _stats is not None, "Reporter not initialized"
    return _stats


def get_location_provider() -> PushLocationProvider:
    assert _location_provider is not None, "Reporter not initialized"
    return _location_provider


def get_media_storage() -> FileMediaStorage:
    assert _media_storage is not None, "Reporter not initialized"
    return _media_storage


def get_sanitizer() -> PillowImageSanitizer:
    assert _sanitizer is not None, "Reporter not initialized"
    return _sanitizer


def _setup_logging(config: AppConfig) -> None:
    """Configure structlog based on the logging config."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if config.logging.format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(config.logging.level.upper()),
        ),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    global _config, _store, _lifecycle, _coordinator, _stats
    global _location_provider, _media_storage, _sanitizer

    _config = load_config()
    _setup_logging(_config)

    log.info("reporter_starting",
             env=_config.api.env,
             storage_backend=_config.storage.backend,
             storage_dir=_config.storage.base_dir)

    # Create components
    if _config.storage.backend == "memory":
        backend = MemoryKeyValueStorage()
    else:
        backend = FileKeyValueStorage(base_dir=_config.storage.base_dir)
    _store = PersistenceStore(
        backend,
        reports_key=_config.storage.reports_key,
        settings_key=_config.storage.settings_key,
    )
    _store.load()

    _stats = ReporterStats()
    _media_storage = FileMediaStorage(base_dir=_config.storage.media_dir)
    _lifecycle = ReportLifecycle(_store, media=_media_storage)
    _location_provider = PushLocationProvider()
    _sanitizer = PillowImageSanitizer()
    _coordinator = SyncCoordinator(
        _lifecycle,
        _store,
        AsyncioScheduler(),
        _location_provider,
        _stats,
        tick_seconds=_config.sync.tick_seconds,
        ack_delay_seconds=_config.sync.ack_delay_seconds,
        fix_timeout_seconds=_config.location.fix_timeout_seconds,
        auto_sync_on_reconnect=_config.sync.auto_sync_on_reconnect,
    )
    _coordinator.start()

    log.info("reporter_started",
             host=_config.api.host,
             port=_config.api.port,
             reports=len(_store.reports))

    yield

    # Shutdown
    _coordinator.stop()
    log.info("reporter_stopped")


app = FastAPI(
    title="Field Reporter",
    description="Offline-first incident reporting with location privacy",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(reports_router)
app.include_router(sync_router)
app.include_router(media_router)
app.include_router(monitoring_router)
