from __future__ import annotations


LEVEL_CAP = 10
BASE_XP = 100

# Experience needed to go from level L-1 to L. Roughly BASE_XP * 1.5^(L-2),
# truncated the way the live schedule was published; the table is canonical.
_LEVEL_XP_REQUIREMENTS = {
    1: 0,
    2: 100,
    3: 150,
    4: 225,
    5: 337,
    6: 506,
    7: 759,
    8: 1139,
    9: 1706,
    10: 2559,
}

DEFAULT_BASE_SLOTS = 3
DEFAULT_MAX_EXTRA_SLOTS = 200
DEFAULT_SLOT_BATCH_SIZE = 5
DEFAULT_REQUEST_TIMEOUT_SECONDS = 3600.0
DEFAULT_CREATION_FEE = 10


def xp_required_for_level(level: int) -> int:
    target = int(level)
    if target < 1 or target > LEVEL_CAP:
        raise ValueError(f"Level must be between 1 and {LEVEL_CAP}")
    return _LEVEL_XP_REQUIREMENTS[target]


def xp_schedule() -> list[tuple[int, int]]:
    return [(level, _LEVEL_XP_REQUIREMENTS[level]) for level in range(2, LEVEL_CAP + 1)]


def total_xp_to_reach(level: int) -> int:
    return sum(xp_required_for_level(step) for step in range(2, int(level) + 1))
