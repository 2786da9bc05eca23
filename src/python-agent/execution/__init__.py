"""Execution modules for acting on a classified farm snapshot."""

from .cooldowns import UNLOCK, UPGRADE, RetryCooldowns
from .orchestrator import FarmOrchestrator
from .results import CycleReport, ItemBatchResult, PlantingResult, StepResult
from .scheduler import FarmScheduler

__all__ = [
    "UNLOCK",
    "UPGRADE",
    "RetryCooldowns",
    "FarmOrchestrator",
    "FarmScheduler",
    "CycleReport",
    "ItemBatchResult",
    "PlantingResult",
    "StepResult",
]
