"""In-process dict implementation of KeyValueStorage."""

from __future__ import annotations


class MemoryKeyValueStorage:
    """KeyValueStorage backed by a dict. Nothing survives the process."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def read(self, key: str) -> str | None:
        return self._values.get(key)

    def write(self, key: str, value: str) -> None:
        self._values[key] = value
