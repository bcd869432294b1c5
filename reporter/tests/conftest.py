"""Shared test fixtures."""

from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient

import reporter.main as main_module
from reporter.config import AppConfig
from reporter.core.lifecycle import ReportLifecycle
from reporter.core.persistence import PersistenceStore
from reporter.core.stats import ReporterStats
from reporter.core.sync import SyncCoordinator
from reporter.location.push_provider import PushLocationProvider
from reporter.media.sanitizer import PillowImageSanitizer
from reporter.storage.file_storage import FileMediaStorage
from reporter.storage.memory_storage import MemoryKeyValueStorage

T0 = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class _VirtualHandle:
    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class VirtualScheduler:
    """Scheduler on virtual time: nothing fires until ``advance`` is called."""

    def __init__(self, clock: FakeClock) -> None:
        self._clock = clock
        self._elapsed = 0.0
        self._seq = 0
        # (due, seq, interval or None, callback, handle)
        self._timers: list[tuple[float, int, float | None, object, _VirtualHandle]] = []

    def _add(self, due, interval, callback, handle):
        self._seq += 1
        self._timers.append((due, self._seq, interval, callback, handle))

    def call_later(self, delay, callback):
        handle = _VirtualHandle()
        self._add(self._elapsed + delay, None, callback, handle)
        return handle

    def call_every(self, interval, callback):
        handle = _VirtualHandle()
        self._add(self._elapsed + interval, interval, callback, handle)
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for t in self._timers if not t[4].cancelled)

    def advance(self, seconds: float) -> None:
        target = self._elapsed + seconds
        while True:
            live = [t for t in self._timers if not t[4].cancelled and t[0] <= target]
            if not live:
                break
            timer = min(live, key=lambda t: (t[0], t[1]))
            self._timers.remove(timer)
            due, _, interval, callback, handle = timer
            self._clock.advance(due - self._elapsed)
            self._elapsed = due
            if interval is not None:
                self._add(due + interval, interval, callback, handle)
            callback()
        self._clock.advance(target - self._elapsed)
        self._elapsed = target
        self._timers = [t for t in self._timers if not t[4].cancelled]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler(clock):
    return VirtualScheduler(clock)


@pytest.fixture
def backend():
    return MemoryKeyValueStorage()


@pytest.fixture
def store(backend):
    s = PersistenceStore(backend)
    s.load()
    return s


@pytest.fixture
def media_storage(tmp_path):
    return FileMediaStorage(tmp_path / "media")


@pytest.fixture
def lifecycle(store, clock, media_storage):
    return ReportLifecycle(store, rng=random.Random(42), clock=clock, media=media_storage)


@pytest.fixture
def stats():
    return ReporterStats()


@pytest.fixture
def location_provider():
    return PushLocationProvider()


@pytest.fixture
def coordinator(lifecycle, store, scheduler, location_provider, stats, clock):
    c = SyncCoordinator(
        lifecycle, store, scheduler, location_provider, stats,
        clock=clock, fix_timeout_seconds=0.05,
    )
    c.start()
    yield c
    c.stop()


@pytest.fixture(autouse=True)
def _init_reporter(tmp_path, store, lifecycle, coordinator, stats, location_provider,
                   media_storage):
    """Initialize reporter singletons for every test, on virtual time."""
    config = AppConfig()
    config.storage.backend = "memory"
    config.storage.base_dir = str(tmp_path / "data")
    config.storage.media_dir = str(tmp_path / "media")
    config.logging.level = "warning"

    # Patch module-level singletons
    main_module._config = config
    main_module._store = store
    main_module._lifecycle = lifecycle
    main_module._coordinator = coordinator
    main_module._stats = stats
    main_module._location_provider = location_provider
    main_module._media_storage = media_storage
    main_module._sanitizer = PillowImageSanitizer()

    yield

    # Cleanup
    for name in ("_config", "_store", "_lifecycle", "_coordinator", "_stats",
                 "_location_provider", "_media_storage", "_sanitizer"):
        setattr(main_module, name, None)


@pytest.fixture
async def client():
    from reporter.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
