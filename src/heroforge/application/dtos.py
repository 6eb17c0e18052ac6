from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass(frozen=True)
class ProgressionView:
    character_id: int
    level: int
    current_xp: int
    xp_for_next_level: Optional[int]
    attribute_points: int
    at_level_cap: bool


@dataclass(frozen=True)
class CharacterSummaryView:
    character_id: int
    owner: str
    level: int
    current_xp: int
    attribute_points: int
    stance: str
    retired: bool
    immortal: bool
    attributes: Dict[str, int] = field(default_factory=dict)
    name_set: bool = False
    first_name_index: int = 0
    surname_index: int = 0


@dataclass(frozen=True)
class PendingRequestView:
    request_id: str
    owner: str
    state: str
    created_at: float
    recoverable_at: float
    payment_method: str
    refundable_amount: int


@dataclass(frozen=True)
class OwnerRosterView:
    owner: str
    active_count: int
    allowance: int
    pending: Optional[PendingRequestView]
    characters: list[CharacterSummaryView] = field(default_factory=list)
