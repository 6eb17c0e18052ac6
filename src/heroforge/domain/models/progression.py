from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ExperiencePoints:
    value: int

    def __post_init__(self) -> None:
        if int(self.value) < 0:
            raise ValueError("Experience points cannot be negative")


@dataclass(frozen=True)
class Level:
    value: int

    def __post_init__(self) -> None:
        if int(self.value) < 1:
            raise ValueError("Level must be at least 1")


@dataclass(frozen=True)
class ExperienceAwardResult:
    character_id: int
    from_level: int
    to_level: int
    points_gained: int
    xp_after: int

    @property
    def levels_gained(self) -> int:
        return self.to_level - self.from_level
