"""
Farm Orchestrator - turns a LandStatus into remote actions.

Order within one cycle:
1. Weed / bug / water      - batched, issued concurrently
2. Harvest                 - batched
3. Unlock                  - one land at a time, cooldown-gated
4. Upgrade                 - one land at a time, cooldown-gated
5. Remove -> buy -> plant -> fertilize

Each step records a StepResult / ItemBatchResult; only the purchase gates
what follows it. No exception leaves run().
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, List

from constants import EXPAND_DELAY, NORMAL_FERTILIZER_ID, PLANT_DELAY
from planning.models import LandStatus
from planning.seed_selector import SeedSelector

from .cooldowns import UNLOCK, UPGRADE, RetryCooldowns
from .results import CycleReport, ItemBatchResult, PlantingResult, StepResult

logger = logging.getLogger(__name__)


class FarmOrchestrator:
    """Executes one cycle's worth of farm actions against the bridge client."""

    def __init__(
        self,
        client: Any,
        cooldowns: RetryCooldowns,
        selector: SeedSelector,
        auto_expand_land: bool = False,
        auto_upgrade_land: bool = False,
        fertilizer_id: int = NORMAL_FERTILIZER_ID,
        plant_delay: float = PLANT_DELAY,
        expand_delay: float = EXPAND_DELAY,
        time_fn: Callable[[], float] = time.time,
    ):
        self.client = client
        self.cooldowns = cooldowns
        self.selector = selector
        self.auto_expand_land = auto_expand_land
        self.auto_upgrade_land = auto_upgrade_land
        self.fertilizer_id = fertilizer_id
        self.plant_delay = plant_delay
        self.expand_delay = expand_delay
        self._time_fn = time_fn

    # =========================================================================
    # Building blocks
    # =========================================================================

    async def _batch(
        self, name: str, call: Callable[[List[int]], Awaitable[Any]], land_ids: List[int]
    ) -> StepResult:
        """One batched call over all ids; failure is logged and returned, never raised."""
        try:
            await call(land_ids)
            return StepResult.ok(name, len(land_ids))
        except Exception as e:
            logger.warning(f"[{name}] {e}")
            return StepResult.failed(name, str(e))

    async def _one_by_one(
        self,
        name: str,
        land_ids: List[int],
        call: Callable[[int], Awaitable[Any]],
        delay: float,
        stop_on_failure: bool = False,
    ) -> ItemBatchResult:
        """Call per land with a pacing delay between calls."""
        result = ItemBatchResult()
        for index, land_id in enumerate(land_ids):
            if index > 0 and delay > 0:
                await asyncio.sleep(delay)
            try:
                await call(land_id)
                result.success_ids.append(land_id)
            except Exception as e:
                result.failed_ids.append(land_id)
                if stop_on_failure:
                    logger.debug(f"[{name}] land#{land_id} failed, stopping: {e}")
                    result.stopped_early = True
                    break
                logger.warning(f"[{name}] land#{land_id} failed: {e}")
        return result

    # =========================================================================
    # Remote actions
    # =========================================================================

    async def unlock_lands(self, land_ids: List[int]) -> ItemBatchResult:
        """Unlock lands one at a time (the server rejects batched unlocks)."""
        result = await self._one_by_one("unlock", land_ids, self.client.unlock_land, self.expand_delay)
        for land_id in result.success_ids:
            logger.info(f"[unlock] ✓ land#{land_id} unlocked")
        return result

    async def upgrade_lands(self, land_ids: List[int]) -> ItemBatchResult:
        """Upgrade lands one at a time."""
        result = await self._one_by_one("upgrade", land_ids, self.client.upgrade_land, self.expand_delay)
        for land_id in result.success_ids:
            logger.info(f"[upgrade] ✓ land#{land_id} upgraded")
        return result

    async def plant_seeds(self, seed_id: int, land_ids: List[int]) -> ItemBatchResult:
        async def plant_one(land_id: int):
            return await self.client.plant(seed_id, land_id)

        return await self._one_by_one("plant", land_ids, plant_one, self.plant_delay)

    async def fertilize(self, land_ids: List[int]) -> ItemBatchResult:
        """Fertilize one at a time; the first failure means we're out of fertilizer."""
        async def fertilize_one(land_id: int):
            return await self.client.fertilize(land_id, self.fertilizer_id)

        return await self._one_by_one(
            "fertilize", land_ids, fertilize_one, self.plant_delay, stop_on_failure=True
        )

    # =========================================================================
    # Cycle
    # =========================================================================

    async def run(self, status: LandStatus, unlocked_count: int) -> CycleReport:
        """Act on one classified snapshot."""
        report = CycleReport()

        await self._run_maintenance(status, report)
        await self._run_harvest(status, report)

        if self.auto_expand_land and status.eligible_for_unlock:
            report.unlock = await self._run_gated(UNLOCK, status.eligible_for_unlock, report)

        failed_upgrade_ids: List[int] = []
        if self.auto_upgrade_land and status.eligible_for_upgrade:
            report.upgrade = await self._run_gated(UPGRADE, status.eligible_for_upgrade, report)
            if report.upgrade:
                failed_upgrade_ids = report.upgrade.failed_ids

        # Upgrade candidates (including cooling-down ones) keep their land empty
        # until the upgrade goes through; a failed upgrade keeps its harvest residue.
        upgrade_eligible = set(status.eligible_for_upgrade)
        failed_upgrade = set(failed_upgrade_ids)
        to_clear = status.dead + [i for i in report.harvested_ids if i not in failed_upgrade]
        to_seed = [i for i in status.empty if i not in upgrade_eligible]

        if to_clear or to_seed:
            try:
                report.planting = await self.auto_plant(to_clear, to_seed, unlocked_count)
                if report.planting.planted:
                    report.actions.append(f"plant{len(report.planting.planted)}")
            except Exception as e:
                logger.warning(f"[plant] {e}")

        return report

    async def _run_maintenance(self, status: LandStatus, report: CycleReport) -> None:
        """Weed, bug and water are independent one-click actions; run them together."""
        jobs = []
        if status.need_weed:
            jobs.append(("weed", self._batch("weed", self.client.weed_out, status.need_weed)))
        if status.need_bug:
            jobs.append(("bug", self._batch("bug", self.client.insecticide, status.need_bug)))
        if status.need_water:
            jobs.append(("water", self._batch("water", self.client.water_land, status.need_water)))
        if not jobs:
            return

        results = await asyncio.gather(*(job for _, job in jobs))
        for (label, _), step in zip(jobs, results):
            report.add(step, label)

    async def _run_harvest(self, status: LandStatus, report: CycleReport) -> None:
        if not status.harvestable:
            return

        step = report.add(
            await self._batch("harvest", self.client.harvest, status.harvestable), "harvest"
        )
        if not step.success:
            return

        report.harvested_ids = list(status.harvestable)
        # A freshly harvested land is worth another upgrade attempt right away
        for land_id in report.harvested_ids:
            self.cooldowns.clear(UPGRADE, land_id)

        if status.harvestable_info:
            names = ", ".join(info.name for info in status.harvestable_info)
            total_exp = sum(info.exp for info in status.harvestable_info)
            logger.info(f"[harvest] {names} (+{total_exp} exp)")

    async def _run_gated(self, kind: str, candidates: List[int], report: CycleReport):
        """Unlock/upgrade the candidates that are not cooling down."""
        to_try = self.cooldowns.filter_eligible(kind, candidates, self._time_fn())
        if not to_try:
            return None

        call = self.unlock_lands if kind == UNLOCK else self.upgrade_lands
        try:
            result = await call(to_try)
        except Exception as e:
            logger.warning(f"[{kind}] {e}")
            return None

        failed_at = self._time_fn()
        for land_id in result.failed_ids:
            self.cooldowns.record_failure(kind, land_id, failed_at)
        for land_id in result.success_ids:
            self.cooldowns.clear(kind, land_id)

        if result.success_count > 0:
            report.actions.append(f"{kind}{result.success_count}")
            done = "unlocked" if kind == UNLOCK else "upgraded"
            logger.info(f"[farm] 🎉 {done} {result.success_count} land(s): {result.success_ids}")
        else:
            logger.warning(
                f"[farm] {kind} failed for all {len(to_try)} land(s), retrying in "
                f"{int(self.cooldowns.retry_interval // 60)} min"
            )
        return result

    # =========================================================================
    # Planting pipeline
    # =========================================================================

    async def auto_plant(self, dead_ids: List[int], empty_ids: List[int], unlocked_count: int) -> PlantingResult:
        """
        Clear residue, buy seeds and plant every candidate land.

        Args:
            dead_ids: Lands holding a dead or harvested plant (removed first)
            empty_ids: Lands ready for seeding
            unlocked_count: Unlocked land count, handed to the seed selector
        """
        result = PlantingResult()
        lands_to_plant = list(empty_ids)
        state = self.client.state

        # 1. Clear residue (best effort - plant anyway if it fails)
        if dead_ids:
            result.removed = await self._batch("remove", self.client.remove_plant, dead_ids)
            if result.removed.success:
                logger.info(f"[remove] cleared {len(dead_ids)} land(s) ({','.join(map(str, dead_ids))})")
            lands_to_plant.extend(dead_ids)

        if not lands_to_plant:
            result.aborted = "nothing to plant"
            return result

        # 2. Choose a seed
        try:
            best = await self.selector.find_best_seed(state.level, unlocked_count)
        except Exception as e:
            logger.warning(f"[shop] lookup failed: {e}")
            result.aborted = "seed lookup failed"
            return result
        if best is None:
            result.aborted = "no seed available"
            return result
        logger.info(f"[shop] best seed: {best.seed_id} price={best.price} gold")

        # 3. Afford what we can
        total_cost = best.price * len(lands_to_plant)
        if total_cost > state.gold:
            logger.warning(f"[shop] not enough gold! need {total_cost}, have {state.gold}")
            can_buy = state.gold // best.price
            if can_buy <= 0:
                result.aborted = "not enough gold"
                result.skipped = len(lands_to_plant)
                return result
            result.skipped = len(lands_to_plant) - can_buy
            lands_to_plant = lands_to_plant[:can_buy]
            logger.info(f"[shop] limited gold, planting only {can_buy} land(s), skipping {result.skipped}")

        # 4. Buy (nothing to plant without it)
        seed_id = best.seed_id
        try:
            receipt = await self.client.buy_goods(best.goods_id, len(lands_to_plant), best.price)
        except Exception as e:
            logger.warning(f"[buy] {e}")
            result.aborted = "purchase failed"
            return result

        if receipt.get_items:
            got = receipt.get_items[0]
            logger.info(f"[buy] received item {got.id} x{got.count}")
            if got.id > 0:
                seed_id = got.id
        for item in receipt.cost_items:
            state.gold -= item.count
        result.seed_id = seed_id
        result.bought = len(lands_to_plant)
        logger.info(f"[buy] bought seed {seed_id} x{result.bought}, cost {best.price * result.bought} gold")

        # 5. Plant one land at a time
        planted = await self.plant_seeds(seed_id, lands_to_plant)
        result.planted = planted.success_ids
        logger.info(f"[plant] planted {planted.success_count} land(s) ({','.join(map(str, lands_to_plant))})")

        # 6. Fertilize what was planted
        if result.planted:
            fertilized = await self.fertilize(result.planted)
            result.fertilized = fertilized.success_count
            if fertilized.success_count > 0:
                logger.info(f"[fertilize] fertilized {fertilized.success_count}/{len(result.planted)} land(s)")

        return result

    # =========================================================================
    # Expand now (after login)
    # =========================================================================

    async def expand_lands(self, status: LandStatus) -> CycleReport:
        """Clear every cooldown and try all unlock/upgrade candidates immediately."""
        report = CycleReport()
        self.cooldowns.clear_all()

        if self.auto_expand_land and status.eligible_for_unlock:
            report.unlock = await self.unlock_lands(status.eligible_for_unlock)
            if report.unlock.success_count > 0:
                logger.info(f"[farm] 🎉 unlocked {report.unlock.success_count} land(s) after login: {report.unlock.success_ids}")
            else:
                logger.warning(f"[farm] unlock after login failed for all {len(status.eligible_for_unlock)} land(s)")

        if self.auto_upgrade_land and status.eligible_for_upgrade:
            report.upgrade = await self.upgrade_lands(status.eligible_for_upgrade)
            if report.upgrade.success_count > 0:
                logger.info(f"[farm] ⬆️ upgraded {report.upgrade.success_count} land(s) after login: {report.upgrade.success_ids}")
            else:
                logger.warning(f"[farm] upgrade after login failed for all {len(status.eligible_for_upgrade)} land(s)")

        return report
