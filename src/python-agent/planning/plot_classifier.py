"""
Plot Classifier - buckets every land in a snapshot by what it needs.

Answers: "What should the cycle do to each land?"
- Locked land: only interesting if it can be unlocked
- Unlocked land: upgrade candidate (regardless of crop), then
  empty / dead / harvestable / growing
- Growing land: water / weed / bug needs, each from an explicit marker
  OR an elapsed timer
"""

import logging
from typing import List

from constants import LandTier, PlantPhase, phase_name
from farm_client import Plot

from .models import HarvestInfo, LandStats, LandStatus
from .phase_resolver import get_current_phase, is_due

logger = logging.getLogger(__name__)


def count_land_types(lands: List[Plot]) -> LandStats:
    """Count lands by tier plus upgrade/unlock eligibility."""
    stats = LandStats()
    for land in lands:
        stats.total += 1
        if land.could_unlock and not land.unlocked:
            stats.unlockable += 1
        if not land.unlocked:
            continue

        if land.level == LandTier.RED:
            stats.red += 1
        elif land.level == LandTier.BLACK:
            stats.black += 1
        elif land.level == LandTier.GOLD:
            stats.gold += 1

        if land.could_upgrade:
            stats.upgradable += 1
    return stats


def analyze_lands(lands: List[Plot], now_sec: int) -> LandStatus:
    """Classify a snapshot against the estimated server time (seconds)."""
    result = LandStatus()

    for land in lands:
        land_id = land.id

        if land.could_unlock and not land.unlocked:
            result.eligible_for_unlock.append(land_id)
        if not land.unlocked:
            continue

        if land.could_upgrade:
            result.eligible_for_upgrade.append(land_id)

        plant = land.plant
        if land.is_empty:
            result.empty.append(land_id)
            continue

        label = f"land#{land_id}({plant.name or 'unknown crop'})"
        current = get_current_phase(plant.phases, now_sec, label)
        if current is None:
            result.empty.append(land_id)
            continue

        if current.phase == PlantPhase.DEAD:
            result.dead.append(land_id)
            logger.debug(f"  {label} -> dead")
            continue

        if current.phase == PlantPhase.MATURE:
            result.harvestable.append(land_id)
            result.harvestable_info.append(HarvestInfo(
                land_id=land_id,
                plant_id=plant.id,
                name=plant.name or "unknown crop",
                exp=plant.exp,
            ))
            logger.debug(f"  {label} -> harvestable (+{plant.exp} exp)")
            continue

        needs = []
        if plant.dry_num > 0 or is_due(current.dry_time, now_sec):
            result.need_water.append(land_id)
            needs.append("water")

        if plant.weed_owners or is_due(current.weeds_time, now_sec):
            result.need_weed.append(land_id)
            needs.append("weed")

        if plant.insect_owners or is_due(current.insect_time, now_sec):
            result.need_bug.append(land_id)
            needs.append("bug")

        result.growing.append(land_id)
        if needs:
            logger.debug(f"  {label} -> growing ({phase_name(current.phase)}) needs: {','.join(needs)}")

    return result
