"""Report lifecycle — creation, forward transitions, closure and deletion.

This is the only place that mutates reports. Each operation validates,
computes the new entity, and commits it through the PersistenceStore in a
single whole-collection replace.
"""

from __future__ import annotations

import math
import random
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable

import structlog

from reporter.core.errors import SafeUploadPending, TerminalState, ValidationError
from reporter.core.geo import clamp_radius, sample_offset, validate_location
from reporter.core.models import (
    STATUS_ORDER,
    HistoryEntry,
    Report,
    ReportStatus,
    SafeUploadData,
)

if TYPE_CHECKING:
    from reporter.core.models import CaptureData, Settings
    from reporter.core.persistence import PersistenceStore
    from reporter.storage.base import MediaStorage

log = structlog.get_logger()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def next_status(status: ReportStatus) -> ReportStatus:
    """Return the state following ``status``. Raises TerminalState from Resolved."""
    if status is ReportStatus.RESOLVED:
        raise TerminalState("report is already Resolved")
    return STATUS_ORDER[STATUS_ORDER.index(status) + 1]


def _missing_fields(capture: CaptureData) -> list[str]:
    missing = []
    if not capture.category.strip() and not capture.checklist:
        missing.append("category")
    if not capture.description.strip():
        missing.append("description")
    if capture.location is None:
        missing.append("location")
    return missing


class ReportLifecycle:
    """Owns every report mutation.

    ``force_resolve`` is idempotent: on an already Resolved report it is a
    no-op and appends no history entry.
    """

    def __init__(
        self,
        store: PersistenceStore,
        *,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
        media: MediaStorage | None = None,
    ) -> None:
        self._store = store
        self._media = media
        self._rng = rng or random.Random()
        self._clock = clock
        self._id_factory = id_factory

    # -- helpers ------------------------------------------------------------

    def _commit(self, updated: Report) -> Report:
        self._store.replace_reports(
            [updated if r.id == updated.id else r for r in self._store.reports]
        )
        return updated

    def _transition(self, report: Report, state: ReportStatus) -> Report:
        # History timestamps never go backwards, even if the wall clock does.
        now = max(self._clock(), report.history[-1].timestamp)
        return replace(
            report,
            status=state,
            history=report.history + (HistoryEntry(state=state, timestamp=now),),
        )

    @staticmethod
    def _latched(report: Report) -> Report:
        return replace(
            report,
            safe_upload=replace(report.safe_upload, ready=True),
            media=tuple(replace(m, locked=False) for m in report.media),
        )

    # -- operations -------------------------------------------------------------

    def create(self, capture: CaptureData, *, online: bool) -> Report:
        """Validate a capture and persist it as a new report.

        The report starts in Submitted only when the device is online and no
        safe-upload deferral is pending; otherwise it starts Queued.
        """
        missing = _missing_fields(capture)
        if missing:
            raise ValidationError(missing)

        exact = validate_location(capture.location)
        try:
            blur = clamp_radius(capture.blur_radius_m)
        except ValueError as exc:
            raise ValidationError(["blur_radius_m"], str(exc)) from exc
        public = sample_offset(exact, blur, self._rng)
        if blur > 0:
            public = replace(public, accuracy_m=None)

        now = self._clock()
        required = capture.stealth
        ready = not required
        status = ReportStatus.SUBMITTED if online and ready else ReportStatus.QUEUED

        anonymous = capture.anonymous
        report = Report(
            id=self._id_factory(),
            created_at=now,
            category=capture.category.strip(),
            checklist=tuple(capture.checklist),
            description=capture.description.strip(),
            exact_location=exact,
            blur_radius_m=blur,
            public_location=public,
            media=tuple(replace(m, locked=required) for m in capture.media),
            anonymous=anonymous,
            contact=None if anonymous else capture.contact,
            reward_opt_in=False if anonymous else capture.reward_opt_in,
            status=status,
            history=(HistoryEntry(state=status, timestamp=now),),
            safe_upload=SafeUploadData(
                required=required,
                ready=ready,
                capture_origin=exact,
                created_at=now,
            ),
        )

        self._store.replace_reports((report,) + self._store.reports)
        log.info("report_created", report=report.short_id, status=report.status.value,
                 blur_radius_m=blur, stealth=required, media=len(report.media))
        return report

    def advance(self, report_id: str) -> Report:
        """Move a report one step forward along the lifecycle.

        A Queued report still waiting on its safe-upload gate raises
        SafeUploadPending; only a sync may submit it once the gate clears.
        """
        report = self._store.get(report_id)
        if report.status is ReportStatus.QUEUED and not report.safe_upload.ready:
            raise SafeUploadPending(f"report {report.short_id} is waiting for safe upload")
        updated = self._commit(self._transition(report, next_status(report.status)))
        log.info("report_advanced", report=updated.short_id,
                 from_status=report.status.value, to_status=updated.status.value)
        return updated

    def force_resolve(self, report_id: str) -> Report:
        """Close a report from any state. No-op if it is already Resolved."""
        report = self._store.get(report_id)
        if report.status is ReportStatus.RESOLVED:
            return report
        updated = self._commit(self._transition(report, ReportStatus.RESOLVED))
        log.info("report_force_resolved", report=updated.short_id,
                 from_status=report.status.value)
        return updated

    def delete(self, report_id: str) -> None:
        """Remove a report, then the media blobs no other report references."""
        report = self._store.get(report_id)
        remaining = [r for r in self._store.reports if r.id != report_id]
        self._store.replace_reports(remaining)
        log.info("report_deleted", report=report.short_id)

        if self._media is None:
            return
        still_used = {m.content_ref for r in remaining for m in r.media}
        for item in report.media:
            if not item.content_ref or item.content_ref in still_used:
                continue
            try:
                self._media.delete(item.content_ref)
            except OSError:
                # The report is already gone; the blob stays orphaned.
                log.warning("media_delete_failed", report=report.short_id,
                            ref=item.content_ref, exc_info=True)

    def latch_ready(self, report_id: str) -> Report:
        """Mark a report's safe-upload as ready for good and unlock its media."""
        report = self._store.get(report_id)
        if report.safe_upload.ready:
            return report
        updated = self._commit(self._latched(report))
        log.info("safe_upload_latched", report=updated.short_id)
        return updated

    def submit(self, report_id: str) -> Report:
        """Queued -> Submitted, latching readiness in the same commit."""
        report = self._store.get(report_id)
        if report.status is not ReportStatus.QUEUED:
            log.debug("submit_skipped", report=report.short_id, status=report.status.value)
            return report
        updated = self._commit(
            self._transition(self._latched(report), ReportStatus.SUBMITTED)
        )
        log.info("report_submitted", report=updated.short_id)
        return updated

    def update_settings(self, settings: Settings) -> Settings:
        policy = settings.safe_policy
        bad = [
            name for name, value in (
                ("min_meters", policy.min_meters),
                ("max_wait_minutes", policy.max_wait_minutes),
            )
            if not math.isfinite(value) or value < 0
        ]
        if bad:
            raise ValidationError(bad, f"invalid safe policy value(s): {', '.join(bad)}")
        self._store.replace_settings(settings)
        log.info("settings_updated", min_meters=policy.min_meters,
                 max_wait_minutes=policy.max_wait_minutes)
        return settings
