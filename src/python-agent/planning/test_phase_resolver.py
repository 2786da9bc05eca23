from constants import PlantPhase
from farm_client import Phase
from planning.phase_resolver import get_current_phase, is_due, to_time_sec

NOW = 1_700_000_000


def _schedule(*offsets):
    """Phases SEED, GERMINATION, ... starting at NOW + offset (None = unset)."""
    return [
        Phase(phase=PlantPhase.SEED + i, begin_time=0 if off is None else NOW + off)
        for i, off in enumerate(offsets)
    ]


def test_empty_schedule_has_no_phase():
    assert get_current_phase([], NOW) is None


def test_latest_started_phase_wins():
    phases = _schedule(-300, -200, -100, 100)
    assert get_current_phase(phases, NOW) is phases[2]


def test_phase_starting_exactly_now_is_current():
    phases = _schedule(-300, 0, 100)
    assert get_current_phase(phases, NOW) is phases[1]


def test_all_future_falls_back_to_first_phase():
    phases = _schedule(100, 200, 300)
    assert get_current_phase(phases, NOW) is phases[0]


def test_unset_begin_times_fall_back_to_first_phase():
    phases = _schedule(None, None)
    assert get_current_phase(phases, NOW) is phases[0]


def test_unset_begin_time_is_skipped():
    phases = _schedule(-300, None)
    assert get_current_phase(phases, NOW) is phases[0]


def test_millisecond_begin_times_are_normalized():
    phases = [
        Phase(phase=PlantPhase.SEED, begin_time=(NOW - 600) * 1000),
        Phase(phase=PlantPhase.MATURE, begin_time=(NOW - 60) * 1000),
        Phase(phase=PlantPhase.DEAD, begin_time=(NOW + 600) * 1000),
    ]
    assert get_current_phase(phases, NOW).phase == PlantPhase.MATURE


def test_to_time_sec():
    assert to_time_sec(0) == 0
    assert to_time_sec(-5) == 0
    assert to_time_sec(None) == 0
    assert to_time_sec(NOW) == NOW
    assert to_time_sec(NOW * 1000 + 999) == NOW
    assert to_time_sec(str(NOW)) == NOW


def test_is_due():
    assert is_due(NOW - 1, NOW)
    assert is_due(NOW, NOW)
    assert not is_due(NOW + 1, NOW)
    assert not is_due(0, NOW)
