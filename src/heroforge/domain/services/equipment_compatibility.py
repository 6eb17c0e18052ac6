from __future__ import annotations

from heroforge.domain.errors import RequirementsNotMet
from heroforge.domain.models.stats import ATTRIBUTE_NAMES, AttributeRequirements, AttributeScores


def unmet_requirements(
    attributes: AttributeScores,
    *requirement_sets: AttributeRequirements,
) -> list[str]:
    failing: list[str] = []
    for name in ATTRIBUTE_NAMES:
        value = attributes.get(name)
        needed = max((int(getattr(requirements, name)) for requirements in requirement_sets), default=0)
        if value < needed:
            failing.append(f"{name} {value} < {needed}")
    return failing


def check_requirements(
    attributes: AttributeScores,
    weapon_requirements: AttributeRequirements,
    armor_requirements: AttributeRequirements,
) -> None:
    failing = unmet_requirements(attributes, weapon_requirements, armor_requirements)
    if failing:
        raise RequirementsNotMet(failing)
