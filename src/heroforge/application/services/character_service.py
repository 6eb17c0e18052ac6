from __future__ import annotations

import logging
from typing import Optional

from heroforge.application.dtos import CharacterSummaryView, OwnerRosterView
from heroforge.application.mappers.character_mapper import to_character_summary_view, to_pending_request_view
from heroforge.application.policies import CreationPolicy
from heroforge.domain.errors import (
    CharacterImmortal,
    CharacterNotFound,
    InsufficientCharges,
    InvalidNameIndex,
    NotCharacterOwner,
    SkinNotOwned,
    SlotLimitReached,
    TooManyCharacters,
    UnauthorizedCaller,
)
from heroforge.domain.events import CharacterRetirementChanged
from heroforge.domain.models.character import NO_SPECIALIZATION, CharacterRecord, NameIndices, SkinRef, Stance
from heroforge.domain.models.economy import TicketKind
from heroforge.domain.models.stats import NO_REQUIREMENTS
from heroforge.domain.repositories import (
    CharacterRepository,
    EquipmentRegistry,
    NameRegistry,
    PendingRequestRepository,
    TicketLedger,
)
from heroforge.domain.services.equipment_compatibility import check_requirements


def _run_directly(operation):
    return operation()


class CharacterService:
    """Owner and operator mutations on existing character records."""

    def __init__(
        self,
        character_repo: CharacterRepository,
        *,
        policy: CreationPolicy | None = None,
        request_repo: PendingRequestRepository | None = None,
        equipment_registry: EquipmentRegistry | None = None,
        name_registry: NameRegistry | None = None,
        ticket_ledger: TicketLedger | None = None,
        event_publisher=None,
        atomic_runner=None,
    ) -> None:
        self.character_repo = character_repo
        self.policy = policy or CreationPolicy()
        self._request_repo = request_repo
        self._equipment = equipment_registry
        self._names = name_registry
        self._tickets = ticket_ledger
        self._event_publisher = event_publisher
        self._atomic = atomic_runner or _run_directly
        self._logger = logging.getLogger(__name__)

    def _publish(self, event: object) -> None:
        if callable(self._event_publisher):
            self._event_publisher(event)

    def _load(self, character_id: int, owner: str | None = None) -> CharacterRecord:
        record = self.character_repo.get(int(character_id))
        if record is None:
            raise CharacterNotFound(int(character_id))
        if owner is not None and not record.is_owned_by(owner):
            raise NotCharacterOwner(int(character_id), str(owner))
        return record

    def _require_operator(self, operator: str) -> None:
        if not self.policy.is_operator(operator):
            raise UnauthorizedCaller(f"{operator} is not an operator")

    def _consume(self, owner: str, kind: TicketKind) -> None:
        if self._tickets is None or not self._tickets.consume(owner, kind):
            raise InsufficientCharges(f"Owner {owner} holds no {kind.value} charge")

    def _save(self, record: CharacterRecord, *, charge: TicketKind | None = None) -> None:
        def _apply() -> None:
            if charge is not None:
                self._consume(record.owner, charge)
            self.character_repo.save(record)

        self._atomic(_apply)

    def get_summary(self, character_id: int) -> CharacterSummaryView:
        record = self._load(character_id)
        return to_character_summary_view(
            record,
            attribute_points=self.character_repo.get_attribute_points(int(record.id)),
        )

    def roster(self, owner: str) -> OwnerRosterView:
        owner = str(owner)
        pending = None
        if self._request_repo is not None:
            request_id = self._request_repo.pending_for_owner(owner)
            request = self._request_repo.get(request_id) if request_id else None
            if request is not None and not request.fulfilled:
                pending = to_pending_request_view(request, timeout_seconds=self.policy.request_timeout_seconds)
        characters = [
            to_character_summary_view(record, attribute_points=self.character_repo.get_attribute_points(int(record.id)))
            for record in self.character_repo.list_by_owner(owner)
        ]
        return OwnerRosterView(
            owner=owner,
            active_count=self.character_repo.active_count(owner),
            allowance=self.policy.allowance(self.character_repo.extra_slots(owner)),
            pending=pending,
            characters=characters,
        )

    def retire(self, character_id: int, owner: str) -> CharacterRecord:
        record = self._load(character_id, owner)
        if record.retired:
            return record
        if record.immortal:
            raise CharacterImmortal(f"Character {record.id} is immortal and cannot be retired")
        active = self.character_repo.active_count(record.owner)

        def _apply() -> None:
            record.retired = True
            self.character_repo.save(record)
            self.character_repo.set_active_count(record.owner, max(0, active - 1))

        self._atomic(_apply)
        self._publish(CharacterRetirementChanged(character_id=int(record.id), owner=record.owner, retired=True))
        return record

    def unretire(self, character_id: int, owner: str) -> CharacterRecord:
        record = self._load(character_id, owner)
        if not record.retired:
            return record
        active = self.character_repo.active_count(record.owner)
        allowance = self.policy.allowance(self.character_repo.extra_slots(record.owner))
        if active >= allowance:
            raise TooManyCharacters(record.owner, active, allowance)

        def _apply() -> None:
            record.retired = False
            self.character_repo.save(record)
            self.character_repo.set_active_count(record.owner, active + 1)

        self._atomic(_apply)
        self._publish(CharacterRetirementChanged(character_id=int(record.id), owner=record.owner, retired=False))
        return record

    def set_immortal(self, operator: str, character_id: int, immortal: bool = True) -> CharacterRecord:
        self._require_operator(operator)
        record = self._load(character_id)
        if record.immortal == bool(immortal):
            return record
        record.immortal = bool(immortal)
        self._save(record)
        self._logger.info(
            "Immortality changed",
            extra={"character_id": record.id, "immortal": record.immortal, "operator": operator},
        )
        return record

    def set_stance(self, character_id: int, owner: str, stance: Stance | str) -> CharacterRecord:
        resolved = Stance.normalize(stance)
        record = self._load(character_id, owner)
        record.stance = resolved
        self._save(record)
        return record

    def equip(self, character_id: int, owner: str, skin: SkinRef) -> CharacterRecord:
        record = self._load(character_id, owner)
        if self._equipment is None or not self._equipment.owns_skin(record.owner, skin):
            raise SkinNotOwned(f"Owner {record.owner} does not own skin {skin}")
        weapon_category, armor_category = self._equipment.skin_categories(skin)
        check_requirements(
            record.attributes,
            self._equipment.weapon_requirements(weapon_category),
            self._equipment.armor_requirements(armor_category),
        )
        record.equipped_skin = skin
        self._save(record)
        return record

    def specialize_weapon(self, character_id: int, owner: str, category: Optional[int]) -> CharacterRecord:
        return self._specialize(character_id, owner, category, armor=False)

    def specialize_armor(self, character_id: int, owner: str, category: Optional[int]) -> CharacterRecord:
        return self._specialize(character_id, owner, category, armor=True)

    def _specialize(self, character_id: int, owner: str, category: Optional[int], *, armor: bool) -> CharacterRecord:
        record = self._load(character_id, owner)
        if category is not NO_SPECIALIZATION:
            if self._equipment is None:
                requirements = NO_REQUIREMENTS
            elif armor:
                requirements = self._equipment.armor_requirements(int(category))
            else:
                requirements = self._equipment.weapon_requirements(int(category))
            check_requirements(record.attributes, requirements, NO_REQUIREMENTS)

        kind = TicketKind.ARMOR_SPECIALIZATION if armor else TicketKind.WEAPON_SPECIALIZATION
        resolved = None if category is NO_SPECIALIZATION else int(category)
        if armor:
            record.armor_specialization = resolved
        else:
            record.weapon_specialization = resolved
        self._save(record, charge=kind)
        return record

    def rename(self, character_id: int, owner: str, first_name_index: int, surname_index: int) -> CharacterRecord:
        record = self._load(character_id, owner)
        if self._names is None:
            raise InvalidNameIndex("No name registry is configured")
        if not self._names.is_valid_first_name_index(first_name_index, record.name.name_set):
            raise InvalidNameIndex(f"First name index {first_name_index} is out of range")
        if not self._names.is_valid_surname_index(surname_index):
            raise InvalidNameIndex(f"Surname index {surname_index} is out of range")
        record.name = NameIndices(
            name_set=record.name.name_set,
            first_name_index=int(first_name_index),
            surname_index=int(surname_index),
        )
        self._save(record, charge=TicketKind.NAME_CHANGE)
        return record

    def grant_slot_batch(self, owner: str) -> int:
        owner = str(owner)
        current = self.character_repo.extra_slots(owner)
        updated = current + int(self.policy.slot_batch_size)
        if updated > int(self.policy.max_extra_slots):
            raise SlotLimitReached(
                f"Owner {owner} would exceed {self.policy.max_extra_slots} extra slots"
            )
        self._atomic(lambda: self.character_repo.set_extra_slots(owner, updated))
        return self.policy.allowance(updated)
