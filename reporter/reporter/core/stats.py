"""Reporter statistics.

In-memory counters for report activity, safe-upload latches and sync
outcomes. No framework dependencies.
"""

from __future__ import annotations

import threading
import time


class ReporterStats:
    """Thread-safe counters, snapshotted by the monitoring endpoint.

    ``online`` mirrors the coordinator's connectivity flag at the time of the
    last change; it is informational only.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._started_at = time.time()

        # Counters
        self.reports_created: int = 0
        self.reports_deleted: int = 0
        self.ticks: int = 0
        self.ready_latched: int = 0
        self.syncs_accepted: int = 0
        self.syncs_rejected: int = 0
        self.reports_submitted: int = 0
        self.reports_acknowledged: int = 0
        self.location_fixes: int = 0
        self.location_failures: int = 0
        self.callback_errors: int = 0
        self.online: bool = False

    def record_created(self) -> None:
        with self._lock:
            self.reports_created += 1

    def record_deleted(self) -> None:
        with self._lock:
            self.reports_deleted += 1

    def record_tick(self, latched: int) -> None:
        with self._lock:
            self.ticks += 1
            self.ready_latched += latched

    def record_sync(self, *, accepted: bool, submitted: int = 0) -> None:
        with self._lock:
            if accepted:
                self.syncs_accepted += 1
                self.reports_submitted += submitted
            else:
                self.syncs_rejected += 1

    def record_submitted(self, count: int = 1) -> None:
        with self._lock:
            self.reports_submitted += count

    def record_acknowledged(self, count: int) -> None:
        with self._lock:
            self.reports_acknowledged += count

    def record_location(self, ok: bool) -> None:
        with self._lock:
            if ok:
                self.location_fixes += 1
            else:
                self.location_failures += 1

    def record_callback_error(self) -> None:
        with self._lock:
            self.callback_errors += 1

    def set_online(self, online: bool) -> None:
        with self._lock:
            self.online = online

    def snapshot(self) -> dict:
        """Return a JSON-serializable snapshot of all stats."""
        with self._lock:
            return {
                "uptime_seconds": round(time.time() - self._started_at, 1),
                "online": self.online,
                "reports_created": self.reports_created,
                "reports_deleted": self.reports_deleted,
                "ticks": self.ticks,
                "ready_latched": self.ready_latched,
                "syncs": {
                    "accepted": self.syncs_accepted,
                    "rejected": self.syncs_rejected,
                },
                "reports_submitted": self.reports_submitted,
                "reports_acknowledged": self.reports_acknowledged,
                "location": {
                    "fixes": self.location_fixes,
                    "failures": self.location_failures,
                },
                "callback_errors": self.callback_errors,
            }
