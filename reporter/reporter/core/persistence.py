"""Persistence store — sole owner of the report collection and settings.

Every mutation replaces the whole collection: the new collection is encoded
and written first, and only then swapped in memory, so readers never observe
a state that was not persisted.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from reporter.core import codec
from reporter.core.errors import PersistenceCorrupt, ReportNotFound
from reporter.core.models import Settings

if TYPE_CHECKING:
    from reporter.core.models import Report
    from reporter.storage.base import KeyValueStorage

log = structlog.get_logger()

REPORTS_KEY = "reports"
SETTINGS_KEY = "settings"


class PersistenceStore:
    """Load-whole / save-whole store over a KeyValueStorage backend."""

    def __init__(
        self,
        backend: KeyValueStorage,
        reports_key: str = REPORTS_KEY,
        settings_key: str = SETTINGS_KEY,
    ) -> None:
        self._backend = backend
        self._reports_key = reports_key
        self._settings_key = settings_key
        self._reports: tuple[Report, ...] = ()
        self._settings = Settings()

    def load(self) -> None:
        """Load reports and settings, substituting empty/default values on corruption."""
        raw = self._backend.read(self._reports_key)
        if raw is None:
            self._reports = ()
        else:
            try:
                self._reports = tuple(codec.loads_reports(raw))
            except PersistenceCorrupt as exc:
                log.warning("reports_corrupt", key=self._reports_key, error=str(exc))
                self._preserve_corrupt(self._reports_key, raw)
                self._reports = ()

        raw = self._backend.read(self._settings_key)
        if raw is None:
            self._settings = Settings()
        else:
            try:
                self._settings = codec.loads_settings(raw)
            except PersistenceCorrupt as exc:
                log.warning("settings_corrupt", key=self._settings_key, error=str(exc))
                self._preserve_corrupt(self._settings_key, raw)
                self._settings = Settings()

        log.info("store_loaded", reports=len(self._reports))

    def _preserve_corrupt(self, key: str, raw: str) -> None:
        # Keep the unreadable payload around; the next save would destroy it.
        if not raw:
            return
        try:
            self._backend.write(f"{key}.corrupt", raw)
        except OSError:
            log.error("corrupt_preserve_failed", key=key, exc_info=True)

    @property
    def reports(self) -> tuple[Report, ...]:
        """All reports, newest first."""
        return self._reports

    @property
    def settings(self) -> Settings:
        return self._settings

    def get(self, report_id: str) -> Report:
        for report in self._reports:
            if report.id == report_id:
                return report
        raise ReportNotFound(report_id)

    def replace_reports(self, reports: list[Report] | tuple[Report, ...]) -> None:
        reports = tuple(reports)
        self._backend.write(self._reports_key, codec.dumps_reports(reports))
        self._reports = reports

    def replace_settings(self, settings: Settings) -> None:
        self._backend.write(self._settings_key, codec.dumps_settings(settings))
        self._settings = settings
