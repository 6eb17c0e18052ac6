from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from heroforge.domain.errors import InvalidStance
from heroforge.domain.models.stats import AttributeScores


NO_SPECIALIZATION: Optional[int] = None


class Stance(str, Enum):
    DEFENSIVE = "defensive"
    BALANCED = "balanced"
    OFFENSIVE = "offensive"

    @classmethod
    def normalize(cls, value: "str | Stance | None") -> "Stance":
        if isinstance(value, Stance):
            return value
        raw = str(value or "").strip().lower()
        for item in cls:
            if item.value == raw:
                return item
        raise InvalidStance(f"Unknown stance: {value}")


@dataclass(frozen=True)
class SkinRef:
    collection_index: int = 0
    token_id: int = 0


DEFAULT_SKIN = SkinRef()


@dataclass(frozen=True)
class NameIndices:
    name_set: bool = False
    first_name_index: int = 0
    surname_index: int = 0


@dataclass
class CharacterRecord:
    id: Optional[int]
    owner: str
    attributes: AttributeScores
    name: NameIndices = field(default_factory=NameIndices)
    equipped_skin: SkinRef = DEFAULT_SKIN
    stance: Stance = Stance.BALANCED
    level: int = 1
    current_xp: int = 0
    weapon_specialization: Optional[int] = NO_SPECIALIZATION
    armor_specialization: Optional[int] = NO_SPECIALIZATION
    retired: bool = False
    immortal: bool = False
    created_at: float = 0.0

    def __post_init__(self) -> None:
        self.stance = Stance.normalize(self.stance)
        self.level = max(1, int(self.level))
        self.current_xp = max(0, int(self.current_xp))

    def is_owned_by(self, caller: str) -> bool:
        return str(self.owner) == str(caller)
