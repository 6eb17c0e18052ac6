from dataclasses import dataclass


@dataclass
class CreationRequested:
    request_id: str
    owner: str
    name_set: bool
    payment_method: str
    created_at: float


@dataclass
class CharacterCreated:
    character_id: int
    owner: str
    request_id: str
    attributes: dict
    repaired: bool


@dataclass
class CreationRecovered:
    request_id: str
    owner: str
    refunded: int
    by_operator: bool


@dataclass
class ExperienceAwarded:
    character_id: int
    amount: int
    xp_after: int
    level_after: int


@dataclass
class LevelUpAppliedEvent:
    character_id: int
    from_level: int
    to_level: int
    points_balance: int


@dataclass
class AttributePointSpent:
    character_id: int
    attribute: str
    new_value: int
    points_remaining: int


@dataclass
class AttributesSwapped:
    character_id: int
    decreased: str
    increased: str


@dataclass
class CharacterRetirementChanged:
    character_id: int
    owner: str
    retired: bool
