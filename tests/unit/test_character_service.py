import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from heroforge.application.policies import CreationPolicy
from heroforge.application.services.character_service import CharacterService
from heroforge.domain.errors import (
    CharacterImmortal,
    InsufficientCharges,
    InvalidNameIndex,
    InvalidStance,
    NotCharacterOwner,
    RequirementsNotMet,
    SkinNotOwned,
    SlotLimitReached,
    TooManyCharacters,
    UnauthorizedCaller,
)
from heroforge.domain.events import CharacterRetirementChanged
from heroforge.domain.models.character import NO_SPECIALIZATION, CharacterRecord, SkinRef, Stance
from heroforge.domain.models.creation_request import PendingCreationRequest
from heroforge.domain.models.economy import TicketKind
from heroforge.domain.models.stats import AttributeScores
from heroforge.infrastructure.inmemory.atomic_persistence import create_inmemory_atomic_runner
from heroforge.infrastructure.inmemory.inmemory_equipment_registry import InMemoryEquipmentRegistry
from heroforge.infrastructure.inmemory.inmemory_ticket_ledger import InMemoryTicketLedger
from heroforge.infrastructure.inmemory.repos import InMemoryCharacterRepository, InMemoryPendingRequestRepository
from heroforge.infrastructure.name_generation.static_name_registry import StaticNameRegistry


_HEAVY_SKIN = SkinRef(collection_index=1, token_id=7)
_LIGHT_SKIN = SkinRef(collection_index=1, token_id=8)


class CharacterServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.repo = InMemoryCharacterRepository()
        self.request_repo = InMemoryPendingRequestRepository()
        self.tickets = InMemoryTicketLedger()
        self.equipment = InMemoryEquipmentRegistry(
            weapon_requirements={2: {"strength": 15}},
            armor_requirements={3: {"constitution": 10}},
            skin_categories={_HEAVY_SKIN: (2, 3), _LIGHT_SKIN: (0, 3)},
        )
        self.events: list[object] = []
        self.service = CharacterService(
            self.repo,
            policy=CreationPolicy(max_extra_slots=10, slot_batch_size=5, operators=frozenset({"ops"})),
            request_repo=self.request_repo,
            equipment_registry=self.equipment,
            name_registry=StaticNameRegistry(),
            ticket_ledger=self.tickets,
            event_publisher=self.events.append,
            atomic_runner=create_inmemory_atomic_runner(self.repo, self.request_repo, self.tickets),
        )
        created = self.repo.create(
            CharacterRecord(id=None, owner="A", attributes=AttributeScores.from_sequence([10, 12, 12, 14, 12, 12]))
        )
        self.character_id = int(created.id)
        self.repo.set_active_count("A", 1)

    def test_retire_and_unretire_track_active_count(self) -> None:
        self.assertTrue(self.service.retire(self.character_id, "A").retired)
        self.assertEqual(0, self.repo.active_count("A"))

        self.assertFalse(self.service.unretire(self.character_id, "A").retired)
        self.assertEqual(1, self.repo.active_count("A"))
        self.assertEqual([True, False], [event.retired for event in self.events if isinstance(event, CharacterRetirementChanged)])

    def test_unretire_respects_allowance(self) -> None:
        self.service.retire(self.character_id, "A")
        self.repo.set_active_count("A", 3)

        with self.assertRaises(TooManyCharacters):
            self.service.unretire(self.character_id, "A")
        self.assertTrue(self.repo.get(self.character_id).retired)

    def test_immortal_characters_cannot_retire(self) -> None:
        with self.assertRaises(UnauthorizedCaller):
            self.service.set_immortal("A", self.character_id)

        self.service.set_immortal("ops", self.character_id)
        with self.assertRaises(CharacterImmortal):
            self.service.retire(self.character_id, "A")

    def test_owner_is_checked(self) -> None:
        with self.assertRaises(NotCharacterOwner):
            self.service.set_stance(self.character_id, "B", Stance.OFFENSIVE)

    def test_set_stance_accepts_names(self) -> None:
        self.service.set_stance(self.character_id, "A", "Defensive")
        self.assertIs(Stance.DEFENSIVE, self.repo.get(self.character_id).stance)
        with self.assertRaises(InvalidStance):
            self.service.set_stance(self.character_id, "A", "reckless")
        self.assertIs(Stance.DEFENSIVE, self.repo.get(self.character_id).stance)

    def test_equip_requires_ownership_and_attributes(self) -> None:
        with self.assertRaises(SkinNotOwned):
            self.service.equip(self.character_id, "A", _LIGHT_SKIN)

        self.equipment.grant_skin("A", _HEAVY_SKIN)
        self.equipment.grant_skin("A", _LIGHT_SKIN)
        with self.assertRaises(RequirementsNotMet) as ctx:
            self.service.equip(self.character_id, "A", _HEAVY_SKIN)
        self.assertEqual(("strength 10 < 15",), ctx.exception.failing)

        self.assertEqual(_LIGHT_SKIN, self.service.equip(self.character_id, "A", _LIGHT_SKIN).equipped_skin)

    def test_specialization_consumes_ticket_after_requirement_check(self) -> None:
        self.tickets.grant("A", TicketKind.WEAPON_SPECIALIZATION)

        with self.assertRaises(RequirementsNotMet):
            self.service.specialize_weapon(self.character_id, "A", 2)
        self.assertEqual(1, self.tickets.balance("A", TicketKind.WEAPON_SPECIALIZATION))

        self.assertEqual(0, self.service.specialize_weapon(self.character_id, "A", 0).weapon_specialization)
        with self.assertRaises(InsufficientCharges):
            self.service.specialize_weapon(self.character_id, "A", NO_SPECIALIZATION)
        self.assertEqual(0, self.repo.get(self.character_id).weapon_specialization)

    def test_armor_specialization(self) -> None:
        self.tickets.grant("A", TicketKind.ARMOR_SPECIALIZATION, 2)

        self.assertEqual(3, self.service.specialize_armor(self.character_id, "A", 3).armor_specialization)
        self.assertIsNone(self.service.specialize_armor(self.character_id, "A", NO_SPECIALIZATION).armor_specialization)

    def test_rename_validates_indices(self) -> None:
        with self.assertRaises(InvalidNameIndex):
            self.service.rename(self.character_id, "A", 8, 0)
        with self.assertRaises(InsufficientCharges):
            self.service.rename(self.character_id, "A", 2, 3)

        self.tickets.grant("A", TicketKind.NAME_CHANGE)
        renamed = self.service.rename(self.character_id, "A", 2, 3)
        self.assertEqual((2, 3), (renamed.name.first_name_index, renamed.name.surname_index))

    def test_slot_batches_are_capped(self) -> None:
        self.assertEqual(8, self.service.grant_slot_batch("A"))
        self.assertEqual(13, self.service.grant_slot_batch("A"))
        with self.assertRaises(SlotLimitReached):
            self.service.grant_slot_batch("A")
        self.assertEqual(10, self.repo.extra_slots("A"))

    def test_roster_includes_pending_request(self) -> None:
        self.request_repo.save(PendingCreationRequest(request_id="9", owner="A", name_set=False, created_at=50.0))
        self.request_repo.set_owner_pending("A", "9")

        roster = self.service.roster("A")

        self.assertEqual(3, roster.allowance)
        self.assertEqual("pending", roster.pending.state)
        self.assertEqual(50.0 + 3600.0, roster.pending.recoverable_at)
        self.assertEqual([self.character_id], [view.character_id for view in roster.characters])
        self.assertEqual(10, self.service.get_summary(self.character_id).attributes["strength"])


if __name__ == "__main__":
    unittest.main()
