"""
Farm Scheduler - the self-rescheduling check loop.

Architecture:
    start() -> [startup delay] -> check_farm -> [interval] -> check_farm -> ...
    landsChanged push -> [debounce] -> [settle delay] -> check_farm

Only one check runs at a time; a trigger that arrives while a check is in
flight is dropped, never queued.
"""

import asyncio
import logging
import time
from typing import Any, Callable, List, Optional, Set

from constants import (
    DEFAULT_CHECK_INTERVAL,
    PUSH_DEBOUNCE,
    PUSH_SETTLE_DELAY,
    STARTUP_DELAY,
    STATS_INTERVAL,
)
from farm_client import TOPIC_LANDS_CHANGED, PushChannel
from planning.clock import ServerClock
from planning.models import LandStats, LandStatus
from planning.plot_classifier import analyze_lands, count_land_types

from .orchestrator import FarmOrchestrator
from .results import CycleReport

logger = logging.getLogger(__name__)


class FarmScheduler:
    """Runs farm checks on an interval and on pushed land changes."""

    def __init__(
        self,
        client: Any,
        clock: ServerClock,
        orchestrator: FarmOrchestrator,
        push_channel: PushChannel,
        check_interval: float = DEFAULT_CHECK_INTERVAL,
        startup_delay: float = STARTUP_DELAY,
        push_debounce: float = PUSH_DEBOUNCE,
        push_settle_delay: float = PUSH_SETTLE_DELAY,
        stats_interval: float = STATS_INTERVAL,
        on_first_cycle_complete: Optional[Callable[[Optional[LandStats]], None]] = None,
        monotonic_fn: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.clock = clock
        self.orchestrator = orchestrator
        self.push_channel = push_channel
        self.check_interval = check_interval
        self.startup_delay = startup_delay
        self.push_debounce = push_debounce
        self.push_settle_delay = push_settle_delay
        self.stats_interval = stats_interval
        self.on_first_cycle_complete = on_first_cycle_complete
        self._monotonic = monotonic_fn

        self.running = False
        self.last_stats: Optional[LandStats] = None
        self.last_report: Optional[CycleReport] = None
        self._checking = False
        self._first_cycle_reported = False
        self._last_push_time: Optional[float] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._start_handle: Optional[asyncio.TimerHandle] = None
        self._push_handles: Set[asyncio.TimerHandle] = set()
        self._loop_task: Optional[asyncio.Task] = None
        self._stats_task: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def in_flight(self) -> bool:
        return self._checking

    # =========================================================================
    # One cycle
    # =========================================================================

    async def check_farm(self) -> Optional[CycleReport]:
        """Fetch, classify and act once. Returns None when skipped or failed."""
        if self._checking or not self.client.state.gid:
            return None
        self._checking = True

        try:
            await self._refresh_session()
            snapshot = await self.client.get_all_lands()
            if not snapshot.lands:
                logger.info("[farm] no land data")
                self._report_first_cycle(None)
                return None

            lands = snapshot.lands
            self.last_stats = count_land_types(lands)
            self._report_first_cycle(self.last_stats)

            status = analyze_lands(lands, self.clock.now_seconds())
            unlocked_count = sum(1 for land in lands if land.unlocked)

            report = await self.orchestrator.run(status, unlocked_count)
            self.last_report = report
            self._log_cycle(status, report)
            return report
        except Exception as e:
            self._report_first_cycle(None)
            logger.warning(f"[check] farm check failed: {e}")
            return None
        finally:
            self._checking = False

    async def _refresh_session(self) -> None:
        """Reload level and gold; on failure the cached state is used for this cycle."""
        try:
            await self.client.refresh_session()
        except Exception as e:
            logger.warning(f"[farm] session refresh failed: {e}")

    def _report_first_cycle(self, stats: Optional[LandStats]) -> None:
        if self._first_cycle_reported:
            return
        self._first_cycle_reported = True
        if self.on_first_cycle_complete:
            try:
                self.on_first_cycle_complete(stats)
            except Exception as e:
                logger.warning(f"[farm] first-cycle callback failed: {e}")

    def _log_cycle(self, status: LandStatus, report: CycleReport) -> None:
        if not status.has_work():
            return
        actions = f" → {'/'.join(report.actions)}" if report.actions else ""
        logger.info(f"[farm] [{' '.join(status.summary_parts())}]{actions}")

    async def expand_lands_now(self) -> Optional[CycleReport]:
        """Unlock/upgrade immediately with all cooldowns cleared (called after login)."""
        try:
            await self._refresh_session()
            snapshot = await self.client.get_all_lands()
            if not snapshot.lands:
                return None
            status = analyze_lands(snapshot.lands, self.clock.now_seconds())
            return await self.orchestrator.expand_lands(status)
        except Exception as e:
            logger.warning(f"[farm] expansion check after login failed: {e}")
            return None

    # =========================================================================
    # Loop control
    # =========================================================================

    def start(self) -> None:
        """Start the loop. Must be called from a running event loop."""
        if self.running:
            return
        self.running = True
        loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()

        self.push_channel.subscribe(TOPIC_LANDS_CHANGED, self.on_lands_changed)
        self._start_handle = loop.call_later(self.startup_delay, self._start_loop)
        self._stats_task = loop.create_task(self._stats_loop())
        logger.info(f"Farm check loop starting (interval {self.check_interval}s)")

    def stop(self) -> None:
        """Stop scheduling. A check already in flight finishes on its own."""
        if not self.running:
            return
        self.running = False
        if self._stop_event:
            self._stop_event.set()

        if self._start_handle:
            self._start_handle.cancel()
            self._start_handle = None
        for handle in self._push_handles:
            handle.cancel()
        self._push_handles.clear()
        if self._stats_task:
            self._stats_task.cancel()
            self._stats_task = None

        self.push_channel.unsubscribe(TOPIC_LANDS_CHANGED, self.on_lands_changed)
        logger.info("Farm check loop stopped")

    async def wait_closed(self) -> None:
        """Wait for the loop and any push-triggered check to finish."""
        pending = [t for t in (self._loop_task, *self._tasks) if t is not None]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _start_loop(self) -> None:
        self._start_handle = None
        if self._loop_task is not None and not self._loop_task.done():
            # Restarted while the old loop was mid-check; it sees running again and carries on
            return
        if self.running:
            self._loop_task = asyncio.get_running_loop().create_task(self._check_loop())

    async def _sleep(self, seconds: float) -> None:
        """Sleep that ends early when stop() is called."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def _check_loop(self) -> None:
        while self.running:
            await self.check_farm()
            if not self.running:
                break
            await self._sleep(self.check_interval)

    async def _stats_loop(self) -> None:
        while self.running:
            await self._sleep(self.stats_interval)
            if self.running and self.last_stats:
                logger.info(f"[land] {self.last_stats.summary()}")

    # =========================================================================
    # Push
    # =========================================================================

    def on_lands_changed(self, land_ids: List[int]) -> None:
        """landsChanged push handler: debounced, delayed out-of-band check."""
        if self._checking or not self.running:
            return
        now = self._monotonic()
        if self._last_push_time is not None and now - self._last_push_time < self.push_debounce:
            return

        self._last_push_time = now
        logger.info(f"[farm] push: {len(land_ids)} land(s) changed, checking...")

        handle: Optional[asyncio.TimerHandle] = None

        def fire():
            self._push_handles.discard(handle)
            if self.running and not self._checking:
                self._spawn(self.check_farm())

        handle = asyncio.get_running_loop().call_later(self.push_settle_delay, fire)
        self._push_handles.add(handle)
