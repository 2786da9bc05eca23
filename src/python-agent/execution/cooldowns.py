"""Retry cooldowns for land unlock/upgrade after a failed attempt."""

import logging
from typing import Dict, Iterable, List

from constants import EXPAND_RETRY_INTERVAL

logger = logging.getLogger(__name__)

UNLOCK = "unlock"
UPGRADE = "upgrade"


class RetryCooldowns:
    """
    Per-kind map of land id -> last failure time (seconds).

    Only gates expansion (unlock/upgrade). Maintenance and harvest are
    retried every cycle.
    """

    def __init__(self, retry_interval: float = EXPAND_RETRY_INTERVAL):
        self.retry_interval = retry_interval
        self._failures: Dict[str, Dict[int, float]] = {UNLOCK: {}, UPGRADE: {}}

    def _kind(self, kind: str) -> Dict[int, float]:
        if kind not in self._failures:
            raise ValueError(f"Unknown cooldown kind: {kind}")
        return self._failures[kind]

    def is_eligible(self, kind: str, land_id: int, now: float) -> bool:
        last_failed = self._kind(kind).get(land_id)
        return last_failed is None or now - last_failed >= self.retry_interval

    def filter_eligible(self, kind: str, land_ids: Iterable[int], now: float) -> List[int]:
        return [i for i in land_ids if self.is_eligible(kind, i, now)]

    def record_failure(self, kind: str, land_id: int, now: float) -> None:
        self._kind(kind)[land_id] = now

    def clear(self, kind: str, land_id: int) -> None:
        self._kind(kind).pop(land_id, None)

    def clear_all(self) -> None:
        for entries in self._failures.values():
            entries.clear()
        logger.debug("Expansion cooldowns cleared")

    def cooling_down(self, kind: str) -> List[int]:
        return list(self._kind(kind))
