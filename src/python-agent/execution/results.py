"""Dataclasses for per-step outcomes inside a farm cycle."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class StepResult:
    """Outcome of one batched step (weed, water, harvest, remove, buy...)."""
    name: str
    success: bool
    count: int = 0
    error: Optional[str] = None

    @classmethod
    def ok(cls, name: str, count: int = 0) -> "StepResult":
        return cls(name=name, success=True, count=count)

    @classmethod
    def failed(cls, name: str, error: str) -> "StepResult":
        return cls(name=name, success=False, error=error)


@dataclass
class ItemBatchResult:
    """Outcome of a one-land-at-a-time loop (unlock, upgrade, plant, fertilize)."""
    success_ids: List[int] = field(default_factory=list)
    failed_ids: List[int] = field(default_factory=list)
    stopped_early: bool = False

    @property
    def success_count(self) -> int:
        return len(self.success_ids)


@dataclass
class PlantingResult:
    """Outcome of the remove -> buy -> plant -> fertilize pipeline."""
    removed: Optional[StepResult] = None
    seed_id: int = 0
    bought: int = 0
    skipped: int = 0
    planted: List[int] = field(default_factory=list)
    fertilized: int = 0
    aborted: Optional[str] = None


@dataclass
class CycleReport:
    """What one cycle did, for the summary log line."""
    actions: List[str] = field(default_factory=list)
    steps: List[StepResult] = field(default_factory=list)
    harvested_ids: List[int] = field(default_factory=list)
    unlock: Optional[ItemBatchResult] = None
    upgrade: Optional[ItemBatchResult] = None
    planting: Optional[PlantingResult] = None

    def add(self, step: StepResult, label: Optional[str] = None) -> StepResult:
        self.steps.append(step)
        if step.success and label:
            self.actions.append(f"{label}{step.count}")
        return step
