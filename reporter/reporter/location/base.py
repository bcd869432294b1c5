"""Location provider interface (port).

A failed or timed-out fix is reported as ``None``, never raised.
"""

from __future__ import annotations

from typing import Callable, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from reporter.core.models import LocationData


class WatchSubscription(Protocol):
    """Scoped handle for a continuous location watch. Must be closed on teardown."""

    @property
    def active(self) -> bool: ...

    def close(self) -> None: ...


class LocationProvider(Protocol):
    """Port: one-shot fixes and continuous watches."""

    async def get_fix(self, timeout: float) -> LocationData | None: ...

    def watch(self, callback: Callable[[LocationData | None], None]) -> WatchSubscription: ...
