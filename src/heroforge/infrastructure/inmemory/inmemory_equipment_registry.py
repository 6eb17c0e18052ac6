from __future__ import annotations

from typing import Dict, Mapping, Set, Tuple

from heroforge.domain.models.character import DEFAULT_SKIN, SkinRef
from heroforge.domain.models.stats import NO_REQUIREMENTS, AttributeRequirements
from heroforge.domain.repositories import EquipmentRegistry


class InMemoryEquipmentRegistry(EquipmentRegistry):
    """Skin ownership and category requirement tables held in memory.

    The default skin is owned by everyone and maps to category 0 for both
    weapon and armor, which carries no requirements unless configured.
    """

    def __init__(
        self,
        *,
        weapon_requirements: Mapping[int, Mapping[str, int]] | None = None,
        armor_requirements: Mapping[int, Mapping[str, int]] | None = None,
        skin_categories: Mapping[SkinRef, Tuple[int, int]] | None = None,
    ) -> None:
        self._weapon = {int(key): AttributeRequirements.from_mapping(value) for key, value in (weapon_requirements or {}).items()}
        self._armor = {int(key): AttributeRequirements.from_mapping(value) for key, value in (armor_requirements or {}).items()}
        self._skins: Dict[SkinRef, Tuple[int, int]] = {DEFAULT_SKIN: (0, 0)}
        self._skins.update(dict(skin_categories or {}))
        self._owned: Dict[str, Set[SkinRef]] = {}

    def register_skin(self, skin: SkinRef, weapon_category: int, armor_category: int) -> None:
        self._skins[skin] = (int(weapon_category), int(armor_category))

    def grant_skin(self, owner: str, skin: SkinRef) -> None:
        if skin not in self._skins:
            raise KeyError(f"Unknown skin: {skin}")
        self._owned.setdefault(str(owner), set()).add(skin)

    def owns_skin(self, owner: str, skin: SkinRef) -> bool:
        if skin == DEFAULT_SKIN:
            return True
        return skin in self._owned.get(str(owner), set())

    def skin_categories(self, skin: SkinRef) -> tuple[int, int]:
        if skin not in self._skins:
            raise KeyError(f"Unknown skin: {skin}")
        return self._skins[skin]

    def weapon_requirements(self, category: int) -> AttributeRequirements:
        return self._weapon.get(int(category), NO_REQUIREMENTS)

    def armor_requirements(self, category: int) -> AttributeRequirements:
        return self._armor.get(int(category), NO_REQUIREMENTS)
