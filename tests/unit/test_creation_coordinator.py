import sys
from pathlib import Path
import unittest
from unittest import mock

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from heroforge.application.policies import CreationPolicy
from heroforge.application.services.creation_coordinator import CreationCoordinator
from heroforge.application.services.event_bus import EventBus
from heroforge.application.services.seed_policy import derive_creation_seed
from heroforge.domain.errors import (
    AlreadyFulfilled,
    NoPendingRequest,
    NotTimedOutYet,
    PaymentRequired,
    RequestAlreadyPending,
    TooManyCharacters,
    UnauthorizedCaller,
    UnknownRequest,
)
from heroforge.domain.events import CharacterCreated, CreationRecovered, CreationRequested
from heroforge.domain.models.creation_request import (
    CreationPayment,
    PaymentMethod,
    PendingCreationRequest,
    RequestState,
)
from heroforge.domain.models.economy import TicketKind
from heroforge.domain.services.attribute_allocator import allocate_attributes
from heroforge.infrastructure.inmemory.atomic_persistence import create_inmemory_atomic_runner
from heroforge.infrastructure.inmemory.inmemory_payment_gateway import InMemoryPaymentGateway
from heroforge.infrastructure.inmemory.inmemory_ticket_ledger import InMemoryTicketLedger
from heroforge.infrastructure.inmemory.repos import InMemoryCharacterRepository, InMemoryPendingRequestRepository
from heroforge.infrastructure.name_generation.static_name_registry import StaticNameRegistry
from heroforge.infrastructure.randomness.inmemory_oracle import InMemoryRandomnessOracle


class CreationCoordinatorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.now = [1000.0]
        self.character_repo = InMemoryCharacterRepository()
        self.request_repo = InMemoryPendingRequestRepository()
        self.tickets = InMemoryTicketLedger()
        self.gateway = InMemoryPaymentGateway()
        self.oracle = InMemoryRandomnessOracle(entropy=lambda: 12345)
        self.event_bus = EventBus()
        self.events: list[object] = []
        self.event_bus.subscribe_many((CreationRequested, CharacterCreated, CreationRecovered), self.events.append)
        self.coordinator = CreationCoordinator(
            self.character_repo,
            self.request_repo,
            self.oracle,
            policy=CreationPolicy(request_timeout_seconds=60.0, creation_fee=10, operators=frozenset({"ops"})),
            ticket_ledger=self.tickets,
            payment_gateway=self.gateway,
            name_registry=StaticNameRegistry(),
            event_publisher=self.event_bus.publish,
            atomic_runner=create_inmemory_atomic_runner(
                self.character_repo, self.request_repo, self.tickets, self.gateway
            ),
            clock=lambda: self.now[0],
        )

    def _request(self, owner: str = "A", **kwargs) -> str:
        self.tickets.grant(owner, TicketKind.CREATION)
        return self.coordinator.request_creation(owner, **kwargs)

    def test_request_then_fulfill_creates_character(self) -> None:
        request_id = self._request(name_set=True)
        self.assertEqual(RequestState.PENDING, self.coordinator.request_state("A"))

        created = self.oracle.deliver(request_id)

        self.assertEqual(1, created.id)
        self.assertEqual("A", created.owner)
        self.assertTrue(created.attributes.within_creation_bounds())
        self.assertTrue(created.name.name_set)
        self.assertIn(created.name.first_name_index, range(8))
        self.assertEqual(1, self.coordinator.active_count_for("A"))
        self.assertEqual(0, self.character_repo.get_attribute_points(1))
        self.assertEqual(RequestState.NONE, self.coordinator.request_state("A"))
        self.assertEqual(0, self.tickets.balance("A", TicketKind.CREATION))
        self.assertEqual(
            [CreationRequested, CharacterCreated],
            [type(event) for event in self.events],
        )

    def test_regression_fixture_matches_direct_allocation(self) -> None:
        request_id = self._request()
        self.assertEqual("1", request_id)

        created = self.oracle.deliver(request_id, 12345)

        expected = allocate_attributes(derive_creation_seed(12345, "1", "A")).attributes
        self.assertEqual(expected, created.attributes)
        self.assertEqual((13, 5, 21, 9, 16, 8), created.attributes.as_tuple())

    def test_full_roster_rejects_request(self) -> None:
        self.character_repo.set_active_count("A", 3)
        self.tickets.grant("A", TicketKind.CREATION)

        with self.assertRaises(TooManyCharacters) as ctx:
            self.coordinator.request_creation("A")

        self.assertEqual(3, ctx.exception.allowance)
        self.assertEqual(3, ctx.exception.active_count)
        self.assertEqual(1, self.tickets.balance("A", TicketKind.CREATION))
        self.assertEqual([], self.oracle.outstanding())

    def test_extra_slots_raise_allowance(self) -> None:
        self.character_repo.set_active_count("A", 3)
        self.character_repo.set_extra_slots("A", 2)

        self.assertEqual(5, self.coordinator.allowance_for("A"))
        self._request()

    def test_one_pending_request_per_owner(self) -> None:
        self._request()
        self.tickets.grant("A", TicketKind.CREATION)

        with self.assertRaises(RequestAlreadyPending):
            self.coordinator.request_creation("A")

        self.assertEqual(1, self.tickets.balance("A", TicketKind.CREATION))
        self.assertEqual(1, len(self.oracle.outstanding()))
        self._request("B")
        self.assertEqual(2, len(self.request_repo.list_all()))

    def test_payment_is_required(self) -> None:
        with self.assertRaises(PaymentRequired):
            self.coordinator.request_creation("A")
        with self.assertRaises(PaymentRequired):
            self.coordinator.request_creation("A", payment=CreationPayment(PaymentMethod.FEE, 5))

        self.assertEqual(RequestState.NONE, self.coordinator.request_state("A"))

    def test_oracle_failure_returns_ticket(self) -> None:
        self.tickets.grant("A", TicketKind.CREATION)
        with mock.patch.object(self.oracle, "request", side_effect=RuntimeError("oracle down")):
            with self.assertRaises(RuntimeError):
                self.coordinator.request_creation("A")

        self.assertEqual(1, self.tickets.balance("A", TicketKind.CREATION))
        self.assertEqual(RequestState.NONE, self.coordinator.request_state("A"))

    def test_only_bound_oracle_may_fulfill(self) -> None:
        request_id = self._request()

        with self.assertRaises(UnauthorizedCaller):
            self.coordinator.fulfill(request_id, 1, source=object())
        with self.assertRaises(UnauthorizedCaller):
            self.coordinator.fulfill(request_id, 1)

        self.assertEqual([], self.character_repo.list_all())
        self.assertEqual(RequestState.PENDING, self.coordinator.request_state("A"))

    def test_unknown_request_leaves_store_untouched(self) -> None:
        with self.assertRaises(UnknownRequest):
            self.coordinator.fulfill("999", 1, source=self.oracle)

        self.assertEqual([], self.character_repo.list_all())

    def test_fulfilled_request_cannot_fulfill_again(self) -> None:
        self.request_repo.save(
            PendingCreationRequest(request_id="7", owner="A", name_set=False, created_at=0.0, fulfilled=True)
        )
        with self.assertRaises(AlreadyFulfilled):
            self.coordinator.fulfill("7", 1, source=self.oracle)

        request_id = self._request()
        self.oracle.deliver(request_id)
        with self.assertRaises(UnknownRequest):
            self.coordinator.fulfill(request_id, 5, source=self.oracle)

        self.assertEqual(1, len(self.character_repo.list_all()))
        self.assertEqual(1, self.coordinator.active_count_for("A"))

    def test_fulfill_rechecks_allowance_and_keeps_request_pending(self) -> None:
        request_id = self._request()
        self.character_repo.set_active_count("A", 3)

        with self.assertRaises(TooManyCharacters):
            self.coordinator.fulfill(request_id, 5, source=self.oracle)

        self.assertEqual([], self.character_repo.list_all())
        self.assertEqual(request_id, self.coordinator.pending_request_for("A").request_id)

    def test_failed_persist_rolls_back(self) -> None:
        request_id = self._request()

        with mock.patch.object(self.character_repo, "set_active_count", side_effect=RuntimeError("disk full")):
            with self.assertRaises(RuntimeError):
                self.coordinator.fulfill(request_id, 99, source=self.oracle)

        self.assertEqual([], self.character_repo.list_all())
        self.assertEqual(RequestState.PENDING, self.coordinator.request_state("A"))
        self.assertIsNotNone(self.request_repo.get(request_id))

        created = self.coordinator.fulfill(request_id, 99, source=self.oracle)
        self.assertEqual(1, created.id)

    def test_timeout_recovery_happens_once_after_deadline(self) -> None:
        request_id = self._request()

        self.now[0] = 1060.0
        with self.assertRaises(NotTimedOutYet):
            self.coordinator.recover_timed_out("A")

        self.now[0] = 1060.5
        self.assertEqual(0, self.coordinator.recover_timed_out("A"))
        self.assertEqual(RequestState.NONE, self.coordinator.request_state("A"))

        with self.assertRaises(NoPendingRequest):
            self.coordinator.recover_timed_out("A")
        with self.assertRaises(UnknownRequest):
            self.oracle.deliver(request_id)
        self.assertEqual([], self.character_repo.list_all())

    def test_recovery_refunds_fee(self) -> None:
        self.coordinator.request_creation("A", payment=CreationPayment(PaymentMethod.FEE, 12))
        self.now[0] = 2000.0

        self.assertEqual(12, self.coordinator.recover_timed_out("A"))
        self.assertEqual(12, self.gateway.refunded_total("A"))
        recovered = [event for event in self.events if isinstance(event, CreationRecovered)]
        self.assertEqual(12, recovered[0].refunded)
        self.assertFalse(recovered[0].by_operator)

    def test_operator_clear(self) -> None:
        self.coordinator.request_creation("A", payment=CreationPayment(PaymentMethod.FEE, 10))

        with self.assertRaises(UnauthorizedCaller):
            self.coordinator.admin_clear_pending("A", "A")

        self.assertEqual(0, self.coordinator.admin_clear_pending("ops", "A", refund=False))
        self.assertEqual(0, self.gateway.refunded_total("A"))
        self.assertIsNone(self.coordinator.pending_request_for("A"))
        with self.assertRaises(NoPendingRequest):
            self.coordinator.admin_clear_pending("ops", "A")

    def test_owner_can_request_again_after_fulfillment(self) -> None:
        for expected_id in (1, 2, 3):
            request_id = self._request()
            self.assertEqual(expected_id, self.oracle.deliver(request_id).id)

        self.tickets.grant("A", TicketKind.CREATION)
        with self.assertRaises(TooManyCharacters):
            self.coordinator.request_creation("A")

    def test_deliver_all_reports_rejections(self) -> None:
        first = self._request("A")
        second = self._request("B")
        self.coordinator.admin_clear_pending("ops", "B")

        results = dict(self.oracle.deliver_all())

        self.assertEqual("A", results[first].owner)
        self.assertIsInstance(results[second], UnknownRequest)


if __name__ == "__main__":
    unittest.main()
