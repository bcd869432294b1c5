"""Field reporter — core internal data models.

These are plain frozen dataclasses with no framework dependencies.
JSON payloads are converted to/from these at the boundary (see codec.py).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class ReportStatus(str, Enum):
    QUEUED = "Queued"
    SUBMITTED = "Submitted"
    RECEIVED = "Received"
    IN_PROGRESS = "InProgress"
    RESOLVED = "Resolved"


# Forward-only lifecycle order.
STATUS_ORDER: tuple[ReportStatus, ...] = (
    ReportStatus.QUEUED,
    ReportStatus.SUBMITTED,
    ReportStatus.RECEIVED,
    ReportStatus.IN_PROGRESS,
    ReportStatus.RESOLVED,
)


class MediaKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"


@dataclass(frozen=True)
class LocationData:
    lat: float
    lon: float
    accuracy_m: float | None = None


@dataclass(frozen=True)
class MediaItem:
    kind: MediaKind
    name: str
    content_ref: str
    locked: bool = False


@dataclass(frozen=True)
class ContactInfo:
    phone: str = ""
    email: str = ""
    wants_callback: bool = False
    preferred_time: str = ""


@dataclass(frozen=True)
class HistoryEntry:
    state: ReportStatus
    timestamp: datetime


@dataclass(frozen=True)
class SafeUploadData:
    required: bool
    ready: bool
    capture_origin: LocationData
    created_at: datetime


@dataclass(frozen=True)
class Report:
    id: str
    created_at: datetime
    category: str
    description: str
    exact_location: LocationData
    blur_radius_m: int
    public_location: LocationData
    status: ReportStatus
    history: tuple[HistoryEntry, ...]
    safe_upload: SafeUploadData
    checklist: tuple[str, ...] = ()
    media: tuple[MediaItem, ...] = ()
    anonymous: bool = True
    contact: ContactInfo | None = None
    reward_opt_in: bool = False

    @property
    def short_id(self) -> str:
        return self.id[:8]


@dataclass(frozen=True)
class AuthorityContact:
    sms: str = ""
    ussd: str = ""


@dataclass(frozen=True)
class SafePolicy:
    min_meters: float = 1000.0
    max_wait_minutes: float = 30.0


@dataclass(frozen=True)
class Settings:
    authority_contact: AuthorityContact = field(default_factory=AuthorityContact)
    safe_policy: SafePolicy = field(default_factory=SafePolicy)


@dataclass(frozen=True)
class CaptureData:
    """Raw observation handed over by the form, before it becomes a Report."""
    category: str = ""
    description: str = ""
    location: LocationData | None = None
    blur_radius_m: float = 0  # clamped to whole meters at creation
    checklist: tuple[str, ...] = ()
    media: tuple[MediaItem, ...] = ()
    anonymous: bool = True
    contact: ContactInfo | None = None
    reward_opt_in: bool = False
    stealth: bool = False  # defer upload until the observer is clear of the scene


@dataclass(frozen=True)
class SyncResult:
    ok: bool
    error: str = ""
    submitted: int = 0
