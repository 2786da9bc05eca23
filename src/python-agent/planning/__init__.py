"""
Farm Planning Module - decides what every land needs this cycle.

Provides:
- ServerClock: estimated server time from the last sync
- get_current_phase: active growth phase from a phase schedule
- analyze_lands / count_land_types: snapshot classification and stats
- SeedSelector: which seed to buy before planting

Everything here is side-effect free except SeedSelector, which reads the
seed shop through the bridge client it is given.
"""

from .clock import ServerClock
from .models import HarvestInfo, LandStats, LandStatus
from .phase_resolver import get_current_phase, is_due, to_time_sec
from .plot_classifier import analyze_lands, count_land_types
from .seed_selector import SeedChoice, SeedSelector, fallback_choice, filter_available

__all__ = [
    # Time
    "ServerClock",
    "get_current_phase",
    "is_due",
    "to_time_sec",
    # Classification
    "HarvestInfo",
    "LandStats",
    "LandStatus",
    "analyze_lands",
    "count_land_types",
    # Seed choice
    "SeedChoice",
    "SeedSelector",
    "fallback_choice",
    "filter_available",
]
