"""File-based storage implementations.

Key-value entries live as one JSON file per key: base_dir/<key>.json.
Writes go to a temporary file in the same directory which is then renamed
over the target, so a crash mid-write leaves the previous value intact.

Media blobs live as base_dir/<uuid><suffix> and are referenced by file name.
"""

from __future__ import annotations

import os
import tempfile
import uuid
from pathlib import Path

import structlog

log = structlog.get_logger()


class FileKeyValueStorage:
    """KeyValueStorage backed by one file per key on disk."""

    def __init__(self, base_dir: str | Path) -> None:
        self._base_dir = Path(base_dir)
        self._base_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self._base_dir / f"{key}.json"

    def read(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError):
            # Unreadable bytes are handed back as garbage so the caller's
            # corruption fallback applies.
            log.warning("storage_read_failed", key=key, exc_info=True)
            return ""

    def write(self, key: str, value: str) -> None:
        path = self._path(key)
        fd, tmp_name = tempfile.mkstemp(dir=self._base_dir, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        log.debug("storage_written", key=key, size=len(value))


class FileMediaStorage:
    """MediaStorage backed by flat files in a single directory."""

    def __init__(self, base_dir: str | Path) -> None:
        self._base_dir = Path(base_dir)
        self._base_dir.mkdir(parents=True, exist_ok=True)

    def put(self, data: bytes, suffix: str) -> str:
        name = f"{uuid.uuid4().hex}{suffix}"
        (self._base_dir / name).write_bytes(data)
        log.debug("media_written", ref=name, size=len(data))
        return name

    def _path(self, content_ref: str) -> Path:
        # References are bare file names; anything else is not ours.
        if content_ref in ("", ".", "..") or Path(content_ref).name != content_ref:
            raise FileNotFoundError(content_ref)
        return self._base_dir / content_ref

    def get(self, content_ref: str) -> bytes:
        return self._path(content_ref).read_bytes()

    def delete(self, content_ref: str) -> None:
        """Remove a blob. Unknown references are ignored."""
        try:
            path = self._path(content_ref)
        except FileNotFoundError:
            return
        path.unlink(missing_ok=True)
        log.debug("media_deleted", ref=content_ref)
