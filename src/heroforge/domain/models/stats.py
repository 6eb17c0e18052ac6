from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Mapping

from heroforge.domain.errors import InvalidAttribute


ATTRIBUTE_NAMES: tuple[str, ...] = ("strength", "constitution", "size", "agility", "stamina", "luck")

TOTAL_STATS = 72
MIN_STAT = 3
MAX_STAT = 21
MAX_LEVELING_STAT = 25

# (cumulative percentile upper bound, bonus cap above MIN_STAT)
RARITY_TIERS: tuple[tuple[int, int], ...] = (
    (50, 9),
    (80, 12),
    (95, 15),
    (100, 18),
)


def normalize_attribute_name(raw: str | None) -> str:
    name = str(raw or "").strip().lower()
    if name not in ATTRIBUTE_NAMES:
        raise InvalidAttribute(f"Unknown attribute: {raw}")
    return name


@dataclass(frozen=True)
class AttributeScores:
    strength: int = MIN_STAT
    constitution: int = MIN_STAT
    size: int = MIN_STAT
    agility: int = MIN_STAT
    stamina: int = MIN_STAT
    luck: int = MIN_STAT

    @property
    def total(self) -> int:
        return sum(self.as_tuple())

    def as_tuple(self) -> tuple[int, ...]:
        return tuple(int(getattr(self, name)) for name in ATTRIBUTE_NAMES)

    def as_dict(self) -> dict[str, int]:
        return {name: int(getattr(self, name)) for name in ATTRIBUTE_NAMES}

    def get(self, name: str) -> int:
        return int(getattr(self, normalize_attribute_name(name)))

    def with_value(self, name: str, value: int) -> "AttributeScores":
        return replace(self, **{normalize_attribute_name(name): int(value)})

    def with_delta(self, name: str, delta: int) -> "AttributeScores":
        key = normalize_attribute_name(name)
        return replace(self, **{key: int(getattr(self, key)) + int(delta)})

    def within_creation_bounds(self) -> bool:
        return self.total == TOTAL_STATS and all(MIN_STAT <= value <= MAX_STAT for value in self.as_tuple())

    @classmethod
    def from_sequence(cls, values) -> "AttributeScores":
        items = [int(value) for value in values]
        if len(items) != len(ATTRIBUTE_NAMES):
            raise InvalidAttribute(f"Expected {len(ATTRIBUTE_NAMES)} attribute values, got {len(items)}")
        return cls(**dict(zip(ATTRIBUTE_NAMES, items)))

    @classmethod
    def from_mapping(cls, attributes: Mapping[str, Any] | None) -> "AttributeScores":
        attrs = attributes or {}
        known = {field.name for field in fields(cls)}
        unknown = [str(key) for key in attrs if str(key).strip().lower() not in known]
        if unknown:
            raise InvalidAttribute(f"Unknown attribute(s): {', '.join(sorted(unknown))}")
        normalized = {str(key).strip().lower(): int(value) for key, value in attrs.items()}
        return cls(**normalized)


@dataclass(frozen=True)
class AttributeRequirements:
    """Per-attribute minimums an equipment category asks of its wearer."""

    strength: int = 0
    constitution: int = 0
    size: int = 0
    agility: int = 0
    stamina: int = 0
    luck: int = 0

    def as_dict(self) -> dict[str, int]:
        return {name: int(getattr(self, name)) for name in ATTRIBUTE_NAMES}

    @classmethod
    def from_mapping(cls, minimums: Mapping[str, Any] | None) -> "AttributeRequirements":
        payload = {normalize_attribute_name(key): int(value) for key, value in (minimums or {}).items()}
        return cls(**payload)


NO_REQUIREMENTS = AttributeRequirements()
