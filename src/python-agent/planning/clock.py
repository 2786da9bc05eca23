"""Server clock estimate - projects server time from the last sync and local elapsed time."""

import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)


class ServerClock:
    """
    Tracks the offset between server time and the local clock.

    Not protected against local clock adjustments: "now" moves with the
    local clock between syncs.
    """

    def __init__(self, time_fn: Callable[[], float] = time.time):
        self._time_fn = time_fn
        self.server_time_ms = 0
        self.local_time_at_sync_ms = 0

    def _local_ms(self) -> int:
        return int(self._time_fn() * 1000)

    @property
    def synced(self) -> bool:
        return self.server_time_ms > 0

    def sync(self, server_time_ms: int) -> None:
        """Record a server-reported time (ms) against the local clock."""
        self.server_time_ms = int(server_time_ms)
        self.local_time_at_sync_ms = self._local_ms()
        logger.debug(f"Server clock synced: {self.server_time_ms} (local {self.local_time_at_sync_ms})")

    def now_seconds(self) -> int:
        """Estimated server time in whole seconds; local wall clock before the first sync."""
        local_ms = self._local_ms()
        if not self.server_time_ms:
            return local_ms // 1000
        elapsed = local_ms - self.local_time_at_sync_ms
        return (self.server_time_ms + elapsed) // 1000
