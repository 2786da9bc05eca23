"""
Centralized constants for FarmPilot.

All hardcoded game values should be defined here for easy maintenance.
Timing values are DEFAULTS - settings.yaml overrides most of them.
"""

from enum import IntEnum


# =============================================================================
# PLANT PHASES (server-side enum values)
# =============================================================================

class PlantPhase(IntEnum):
    """Growth phase reported in each plant's phase schedule."""
    UNKNOWN = 0
    SEED = 1
    GERMINATION = 2
    SMALL_LEAVES = 3
    LARGE_LEAVES = 4
    BLOOMING = 5
    MATURE = 6
    DEAD = 7


PHASE_NAMES = {
    PlantPhase.UNKNOWN: "unknown",
    PlantPhase.SEED: "seed",
    PlantPhase.GERMINATION: "germination",
    PlantPhase.SMALL_LEAVES: "small leaves",
    PlantPhase.LARGE_LEAVES: "large leaves",
    PlantPhase.BLOOMING: "blooming",
    PlantPhase.MATURE: "mature",
    PlantPhase.DEAD: "dead",
}


# =============================================================================
# LAND TIERS
# =============================================================================

class LandTier(IntEnum):
    """Soil tier of an unlocked plot (land level on the server)."""
    BASE = 1
    RED = 2
    BLACK = 3
    GOLD = 4


# =============================================================================
# SHOP / ITEM IDS
# =============================================================================
SEED_SHOP_ID = 2
NORMAL_FERTILIZER_ID = 1011

# Shop goods condition type that gates on player level
COND_TYPE_LEVEL = 1

# Fallback seed choice: at or below this level prefer the cheapest-level seed
FALLBACK_LEVEL_THRESHOLD = 28

# Plot count handed to the recommender when the real count is unknown
DEFAULT_PLOT_COUNT = 18

# How many ranked entries to request from the recommender
RECOMMEND_TOP = 50

# =============================================================================
# TIMING (seconds)
# =============================================================================
EXPAND_RETRY_INTERVAL = 10 * 60      # unlock/upgrade cooldown after failure
PUSH_DEBOUNCE = 0.5                  # ignore pushes closer than this
PUSH_SETTLE_DELAY = 0.1              # wait after a push before checking
STARTUP_DELAY = 2.0                  # delay before the first cycle
STATS_INTERVAL = 5 * 60              # land summary log period
EVENT_RETRY_DELAY = 1.0              # after a failed event poll
PLANT_DELAY = 0.05                   # between plant/fertilize calls
EXPAND_DELAY = 0.2                   # between unlock/upgrade calls
MIN_CHECK_INTERVAL = 1.0
DEFAULT_CHECK_INTERVAL = 1.0

# Timestamps above this are milliseconds
MS_TIMESTAMP_THRESHOLD = 1e12


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def phase_name(phase: int) -> str:
    """Readable name for a phase value (falls back to the raw number)."""
    try:
        return PHASE_NAMES[PlantPhase(phase)]
    except ValueError:
        return f"phase {phase}"

