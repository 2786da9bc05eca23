"""
Phase Resolver - which scheduled growth phase is active right now.

A plant carries its whole phase schedule up front (seed at t0, germination
at t1, ... mature at tN). The server does not tell us the current phase;
we compare the schedule against the estimated server time.
"""

import logging
from typing import Any, List, Optional

from constants import MS_TIMESTAMP_THRESHOLD, phase_name
from farm_client import Phase, to_num

logger = logging.getLogger(__name__)


def to_time_sec(value: Any) -> int:
    """Normalize a timestamp to seconds. Values above 1e12 are milliseconds; <= 0 means unset."""
    n = to_num(value)
    if n <= 0:
        return 0
    if n > MS_TIMESTAMP_THRESHOLD:
        return n // 1000
    return n


def get_current_phase(phases: List[Phase], now_sec: int, label: str = "") -> Optional[Phase]:
    """
    Return the phase whose begin time is the latest one at or before now_sec.

    Returns None for an empty schedule. If no phase has started yet (or none
    has a begin time), the first phase in the list is returned.
    """
    if not phases:
        return None

    if logger.isEnabledFor(logging.DEBUG):
        for i, p in enumerate(phases):
            begin = to_time_sec(p.begin_time)
            diff = begin - now_sec if begin > 0 else 0
            when = f"(in {diff}s)" if diff > 0 else f"({-diff}s ago)" if diff < 0 else ""
            logger.debug(
                f"  {label} [{i}] {phase_name(p.phase)}({p.phase}) begin={begin} {when} "
                f"dry={to_time_sec(p.dry_time)} weed={to_time_sec(p.weeds_time)} "
                f"insect={to_time_sec(p.insect_time)}"
            )

    for phase in reversed(phases):
        begin = to_time_sec(phase.begin_time)
        if 0 < begin <= now_sec:
            return phase

    logger.debug(f"  {label} all phases in the future, using first: {phase_name(phases[0].phase)}")
    return phases[0]


def is_due(value: Any, now_sec: int) -> bool:
    """True if a scheduled timestamp is set and has already passed."""
    t = to_time_sec(value)
    return 0 < t <= now_sec
