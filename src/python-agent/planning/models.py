"""
Data models for the farm decision cycle.

Each cycle rebuilds these from a fresh land snapshot:
1. LandStats - tier/expansion counts used by the periodic summary log
2. LandStatus - per-category land id lists produced by the classifier
3. HarvestInfo - what a harvestable land is carrying (for logging only)

Nothing here is persisted between cycles.
"""

from dataclasses import dataclass, field
from typing import List


@dataclass
class HarvestInfo:
    """A mature plant about to be harvested."""
    land_id: int
    plant_id: int
    name: str
    exp: int = 0


@dataclass
class LandStats:
    """Land counts by tier. Tiers and upgradable count unlocked land only."""
    total: int = 0
    red: int = 0
    black: int = 0
    gold: int = 0
    upgradable: int = 0
    unlockable: int = 0

    def summary(self) -> str:
        return (
            f"total {self.total} | red {self.red} black {self.black} gold {self.gold}"
            f" | upgradable {self.upgradable} unlockable {self.unlockable}"
        )


@dataclass
class LandStatus:
    """
    Classification of every land in a snapshot.

    A land lands in exactly one of dead / harvestable / empty / growing.
    need_water, need_weed and need_bug are subsets of growing and may overlap.
    Unlock and upgrade candidates are tracked independently of occupancy.
    """
    harvestable: List[int] = field(default_factory=list)
    need_water: List[int] = field(default_factory=list)
    need_weed: List[int] = field(default_factory=list)
    need_bug: List[int] = field(default_factory=list)
    growing: List[int] = field(default_factory=list)
    empty: List[int] = field(default_factory=list)
    dead: List[int] = field(default_factory=list)
    harvestable_info: List[HarvestInfo] = field(default_factory=list)
    eligible_for_unlock: List[int] = field(default_factory=list)
    eligible_for_upgrade: List[int] = field(default_factory=list)

    def has_work(self) -> bool:
        return bool(
            self.harvestable or self.need_weed or self.need_bug
            or self.need_water or self.dead or self.empty
        )

    def summary_parts(self) -> List[str]:
        """Short counters for the one-line cycle log."""
        parts = []
        if self.harvestable:
            parts.append(f"harvest:{len(self.harvestable)}")
        if self.need_weed:
            parts.append(f"weed:{len(self.need_weed)}")
        if self.need_bug:
            parts.append(f"bug:{len(self.need_bug)}")
        if self.need_water:
            parts.append(f"water:{len(self.need_water)}")
        if self.dead:
            parts.append(f"dead:{len(self.dead)}")
        if self.empty:
            parts.append(f"empty:{len(self.empty)}")
        parts.append(f"grow:{len(self.growing)}")
        return parts
