"""Storage interfaces (ports) for durable key-value and media blobs."""

from __future__ import annotations

from typing import Protocol


class KeyValueStorage(Protocol):
    """Port: durable text values under string keys.

    ``write`` must replace the value atomically: a reader sees either the old
    value or the new one, never a partial write.
    """

    def read(self, key: str) -> str | None: ...

    def write(self, key: str, value: str) -> None: ...


class MediaStorage(Protocol):
    """Port: stores sanitized media bytes and hands back a content reference."""

    def put(self, data: bytes, suffix: str) -> str: ...

    def get(self, content_ref: str) -> bytes: ...

    def delete(self, content_ref: str) -> None: ...
