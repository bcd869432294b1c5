"""Safe-upload gate — may a capture's artifacts leave the device yet?

Submitting right at the scene would let anyone watching network traffic
place the observer there. A capture is released once the observer has moved
at least ``min_meters`` from the capture point, or once ``max_wait_minutes``
have elapsed (so a report without any location fix is never stuck).
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from reporter.core.geo import distance_m
from reporter.core.models import SafePolicy

if TYPE_CHECKING:
    from reporter.core.models import LocationData, Report


class SafeUploadGate:
    """Pure readiness predicate over (report, location, time, policy).

    The gate keeps no memory of earlier evaluations; latching ``ready`` is
    the caller's job.
    """

    def __init__(self, policy: SafePolicy | None = None) -> None:
        self.policy = policy or SafePolicy()

    def is_ready(
        self,
        report: Report,
        current_location: LocationData | None,
        now: datetime,
    ) -> bool:
        safe = report.safe_upload
        if not safe.required:
            return True

        if now - safe.created_at >= timedelta(minutes=self.policy.max_wait_minutes):
            return True

        if current_location is None:
            return False

        return distance_m(current_location, safe.capture_origin) >= self.policy.min_meters
