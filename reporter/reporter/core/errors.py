"""Error taxonomy for the reporter core.

An unavailable location is not an error: it is represented as ``None``
wherever a ``LocationData`` is expected.
"""

from __future__ import annotations


class ReporterError(Exception):
    """Base class for every recoverable core error."""


class ValidationError(ReporterError):
    """Required creation fields are missing or settings values are invalid."""

    def __init__(self, fields: list[str] | tuple[str, ...], message: str = "") -> None:
        self.fields = tuple(fields)
        super().__init__(message or f"missing required field(s): {', '.join(self.fields)}")


class InvalidLocation(ReporterError, ValueError):
    """Coordinates are non-finite or out of range."""


class TerminalState(ReporterError):
    """A transition was attempted from Resolved."""


class SafeUploadPending(ReporterError):
    """A deferred report cannot leave Queued before its safe-upload gate clears."""


class ReportNotFound(ReporterError, LookupError):
    """No report with the given id exists in the store."""


class PersistenceCorrupt(ReporterError):
    """A stored collection or settings payload could not be decoded."""
