from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from heroforge.domain.models.stats import (
    ATTRIBUTE_NAMES,
    MAX_STAT,
    MIN_STAT,
    RARITY_TIERS,
    TOTAL_STATS,
    AttributeScores,
)
from heroforge.domain.services.seed_chain import MixFunction, SeedChain, sha256_mix


_LOGGER = logging.getLogger(__name__)

_SLOT_COUNT = len(ATTRIBUTE_NAMES)
_SLOT_HEADROOM = MAX_STAT - MIN_STAT


@dataclass(frozen=True)
class SlotDraw:
    slot: int
    tier_cap: int
    bonus: int


@dataclass(frozen=True)
class AllocationResult:
    attributes: AttributeScores
    name_set: bool
    seed_after: int
    repaired: bool = False
    draws: tuple[SlotDraw, ...] = ()


def rarity_cap(roll: int) -> int:
    percentile = int(roll) % 100
    for upper_bound, cap in RARITY_TIERS:
        if percentile < upper_bound:
            return cap
    return RARITY_TIERS[-1][1]


def allocation_is_valid(values: Sequence[int]) -> bool:
    return (
        len(values) == _SLOT_COUNT
        and sum(values) == TOTAL_STATS
        and all(MIN_STAT <= int(value) <= MAX_STAT for value in values)
    )


def allocate_attributes(seed: int, name_set: bool = False, *, mix: MixFunction = sha256_mix) -> AllocationResult:
    """Spread ``TOTAL_STATS`` over the six attributes from a single seed.

    Every slot starts at ``MIN_STAT``. Slots are visited in a seed-derived
    order; each draws a rarity tier, then a bonus in ``[0, cap]`` where the cap
    is the tier cap limited by the points left after keeping ``MIN_STAT`` in
    reserve for each unvisited slot. Points the draws leave over go first to
    the last visited slot, then one at a time to seed-chosen slots below
    ``MAX_STAT``.
    """

    chain = SeedChain(seed, mix)
    values = [MIN_STAT] * _SLOT_COUNT
    remaining = TOTAL_STATS - MIN_STAT * _SLOT_COUNT
    unvisited = list(range(_SLOT_COUNT))
    draws: list[SlotDraw] = []

    while unvisited:
        pick = chain.draw_below("order", len(unvisited))
        slot = unvisited[pick]
        unvisited[pick] = unvisited[-1]
        unvisited.pop()

        tier_cap = rarity_cap(chain.draw("tier"))
        affordable = max(0, remaining - MIN_STAT * len(unvisited))
        cap = min(tier_cap, affordable, _SLOT_HEADROOM)
        bonus = chain.draw_below("bonus", cap + 1)

        values[slot] += bonus
        remaining -= bonus
        draws.append(SlotDraw(slot=slot, tier_cap=tier_cap, bonus=bonus))

    if draws and remaining > 0:
        last = draws[-1].slot
        absorbed = min(remaining, MAX_STAT - values[last])
        values[last] += absorbed
        remaining -= absorbed
    _spread_residue(values, remaining, chain)

    repaired = False
    if not allocation_is_valid(values):
        _LOGGER.warning(
            "Attribute allocation out of bounds; repairing",
            extra={"values": list(values), "total": sum(values)},
        )
        values = repair_attributes(values, chain)
        repaired = True

    return AllocationResult(
        attributes=AttributeScores.from_sequence(values),
        name_set=bool(name_set),
        seed_after=chain.seed,
        repaired=repaired,
        draws=tuple(draws),
    )


def _spread_residue(values: list[int], residue: int, chain: SeedChain) -> None:
    while residue > 0:
        candidates = [index for index, value in enumerate(values) if value < MAX_STAT]
        if not candidates:
            return
        values[candidates[chain.draw_below("residue", len(candidates))]] += 1
        residue -= 1


def repair_attributes(values: Sequence[int], chain: SeedChain) -> list[int]:
    """Clamp into bounds, then nudge seed-chosen attributes one unit at a time until the total is exact.

    Only attributes with room in the needed direction are eligible, so every
    nudge makes progress and the loop ends after ``abs(deficit)`` steps.
    """

    repaired = [min(max(int(value), MIN_STAT), MAX_STAT) for value in values]
    deficit = TOTAL_STATS - sum(repaired)

    while deficit > 0:
        candidates = [index for index, value in enumerate(repaired) if value < MAX_STAT]
        index = candidates[chain.draw_below("repair_up", len(candidates))]
        repaired[index] += 1
        deficit -= 1

    while deficit < 0:
        candidates = [index for index, value in enumerate(repaired) if value > MIN_STAT]
        index = candidates[chain.draw_below("repair_down", len(candidates))]
        repaired[index] -= 1
        deficit += 1

    return repaired


def derive_name_indices(chain: SeedChain, *, first_name_count: int, surname_count: int) -> tuple[int, int]:
    first = chain.draw_below("first_name", max(1, int(first_name_count)))
    surname = chain.draw_below("surname", max(1, int(surname_count)))
    return first, surname
