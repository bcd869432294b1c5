"""Sync coordinator — ties the lifecycle and the safe-upload gate to time,
connectivity and the observer's movements.

This is the core orchestration logic. It depends on the Scheduler and
LocationProvider protocols, not concrete implementations.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Callable

import structlog

from reporter.core.gate import SafeUploadGate
from reporter.core.lifecycle import utcnow
from reporter.core.models import ReportStatus, SyncResult

if TYPE_CHECKING:
    from reporter.core.lifecycle import ReportLifecycle
    from reporter.core.models import CaptureData, LocationData, Report
    from reporter.core.persistence import PersistenceStore
    from reporter.core.scheduler import Scheduler, TimerHandle
    from reporter.core.stats import ReporterStats
    from reporter.location.base import LocationProvider, WatchSubscription

log = structlog.get_logger()

# Defaults; the wiring in main.py passes the configured values.
TICK_SECONDS = 30.0
ACK_DELAY_SECONDS = 1.2
FIX_TIMEOUT_SECONDS = 15.0


class SyncCoordinator:
    """Re-evaluates readiness on a fixed tick and drives submission on sync."""

    def __init__(
        self,
        lifecycle: ReportLifecycle,
        store: PersistenceStore,
        scheduler: Scheduler,
        location_provider: LocationProvider,
        stats: ReporterStats,
        *,
        clock: Callable[[], datetime] = utcnow,
        tick_seconds: float = TICK_SECONDS,
        ack_delay_seconds: float = ACK_DELAY_SECONDS,
        fix_timeout_seconds: float = FIX_TIMEOUT_SECONDS,
        auto_sync_on_reconnect: bool = True,
    ) -> None:
        self._lifecycle = lifecycle
        self._store = store
        self._scheduler = scheduler
        self._location_provider = location_provider
        self._stats = stats
        self._clock = clock
        self._tick_seconds = tick_seconds
        self._ack_delay_seconds = ack_delay_seconds
        self._fix_timeout_seconds = fix_timeout_seconds
        self._auto_sync_on_reconnect = auto_sync_on_reconnect

        self._online = False
        self._current_location: LocationData | None = None
        self._tick_handle: TimerHandle | None = None
        self._pending_acks: set[TimerHandle] = set()
        self._watch: WatchSubscription | None = None

    # -- lifecycle of the coordinator itself ----------------------------------

    @property
    def running(self) -> bool:
        return self._tick_handle is not None

    @property
    def watching(self) -> bool:
        """True while the continuous location watch is held."""
        return self._watch is not None and self._watch.active

    def start(self) -> None:
        if self.running:
            return
        self._tick_handle = self._scheduler.call_every(self._tick_seconds, self._on_tick)
        self._watch = self._location_provider.watch(self._on_location)
        log.info("sync_coordinator_started", tick_seconds=self._tick_seconds)

    def stop(self) -> None:
        """Cancel the tick and pending acknowledgements, release the location watch."""
        if self._tick_handle is not None:
            self._tick_handle.cancel()
            self._tick_handle = None
        for handle in self._pending_acks:
            handle.cancel()
        self._pending_acks.clear()
        if self._watch is not None:
            self._watch.close()
            self._watch = None
        log.info("sync_coordinator_stopped")

    # -- environment inputs --------------------------------------------------------

    @property
    def online(self) -> bool:
        return self._online

    @property
    def current_location(self) -> LocationData | None:
        return self._current_location

    def set_online(self, online: bool) -> None:
        """Connectivity-change notification from the environment."""
        was_online, self._online = self._online, online
        self._stats.set_online(online)
        if was_online == online:
            return
        log.info("connectivity_changed", online=online)
        if online and self._auto_sync_on_reconnect:
            self.manual_sync()

    def _on_location(self, fix: LocationData | None) -> None:
        self._current_location = fix
        self._stats.record_location(fix is not None)

    async def refresh_location(self) -> LocationData | None:
        """One-shot fix; resolves to None on failure or timeout."""
        fix = await self._location_provider.get_fix(self._fix_timeout_seconds)
        self._on_location(fix)
        return fix

    # -- operations ---------------------------------------------------------------

    def _gate(self) -> SafeUploadGate:
        return SafeUploadGate(self._store.settings.safe_policy)

    def capture(self, capture: CaptureData) -> Report:
        """Create a report with the current connectivity."""
        report = self._lifecycle.create(capture, online=self._online)
        self._stats.record_created()
        if report.status is ReportStatus.SUBMITTED:
            self._stats.record_submitted()
            self._schedule_ack()
        return report

    def tick(self) -> int:
        """Latch readiness for every pending deferred report. Returns the number latched."""
        gate = self._gate()
        now = self._clock()
        latched = 0
        for report in self._store.reports:
            if not report.safe_upload.required or report.safe_upload.ready:
                continue
            if gate.is_ready(report, self._current_location, now):
                self._lifecycle.latch_ready(report.id)
                latched += 1
        self._stats.record_tick(latched)
        if latched:
            log.info("sync_tick", latched=latched)
        return latched

    def manual_sync(self) -> SyncResult:
        """Submit every ready Queued report, then schedule the acknowledgement.

        Fails closed when offline: nothing changes.
        """
        if not self._online:
            self._stats.record_sync(accepted=False)
            log.info("sync_rejected_offline")
            return SyncResult(ok=False, error="offline")

        gate = self._gate()
        now = self._clock()
        submitted = 0
        for report in self._store.reports:
            if report.status is not ReportStatus.QUEUED:
                continue
            if report.safe_upload.ready or gate.is_ready(report, self._current_location, now):
                self._lifecycle.submit(report.id)
                submitted += 1

        self._schedule_ack()
        self._stats.record_sync(accepted=True, submitted=submitted)
        log.info("sync_started", submitted=submitted)
        return SyncResult(ok=True, submitted=submitted)

    def _schedule_ack(self) -> None:
        handle: TimerHandle | None = None

        def fire() -> None:
            self._pending_acks.discard(handle)
            self._on_ack()

        handle = self._scheduler.call_later(self._ack_delay_seconds, fire)
        self._pending_acks.add(handle)

    def acknowledge(self) -> int:
        """Advance every report still Submitted to Received. Returns the count."""
        acked = 0
        for report in self._store.reports:
            if report.status is ReportStatus.SUBMITTED:
                self._lifecycle.advance(report.id)
                acked += 1
        self._stats.record_acknowledged(acked)
        if acked:
            log.info("sync_acknowledged", received=acked)
        return acked

    # -- scheduled callbacks ---------------------------------------------------------

    def _on_tick(self) -> None:
        try:
            self.tick()
        except Exception:
            log.error("tick_failed", exc_info=True)
            self._stats.record_callback_error()

    def _on_ack(self) -> None:
        try:
            self.acknowledge()
        except Exception:
            log.error("ack_failed", exc_info=True)
            self._stats.record_callback_error()
