from __future__ import annotations

import logging
import time
from typing import Callable, Optional, TypeVar

from heroforge.application.policies import CreationPolicy
from heroforge.application.services.request_ledger import RequestLedger
from heroforge.application.services.seed_policy import derive_creation_seed
from heroforge.domain.errors import NotTimedOutYet, PaymentRequired, TooManyCharacters, UnauthorizedCaller
from heroforge.domain.events import CharacterCreated, CreationRecovered, CreationRequested
from heroforge.domain.models.character import CharacterRecord, NameIndices
from heroforge.domain.models.creation_request import (
    CreationPayment,
    PaymentMethod,
    PendingCreationRequest,
    RequestState,
)
from heroforge.domain.models.economy import TicketKind
from heroforge.domain.repositories import (
    CharacterRepository,
    NameRegistry,
    PaymentGateway,
    PendingRequestRepository,
    RandomnessOracle,
    TicketLedger,
)
from heroforge.domain.services.attribute_allocator import allocate_attributes, derive_name_indices
from heroforge.domain.services.seed_chain import MixFunction, SeedChain, sha256_mix


T = TypeVar("T")
AtomicRunner = Callable[[Callable[[], T]], T]


def _run_directly(operation: Callable[[], T]) -> T:
    return operation()


class CreationCoordinator:
    """Turns a paid creation request into a persisted character once randomness arrives."""

    def __init__(
        self,
        character_repo: CharacterRepository,
        request_repo: PendingRequestRepository,
        oracle: RandomnessOracle,
        *,
        policy: CreationPolicy | None = None,
        ticket_ledger: TicketLedger | None = None,
        payment_gateway: PaymentGateway | None = None,
        name_registry: NameRegistry | None = None,
        event_publisher=None,
        atomic_runner: AtomicRunner | None = None,
        clock: Callable[[], float] = time.time,
        mix: MixFunction = sha256_mix,
    ) -> None:
        self.character_repo = character_repo
        self.request_repo = request_repo
        self.policy = policy or CreationPolicy()
        self.ledger = RequestLedger(request_repo)
        self._oracle = oracle
        self._ticket_ledger = ticket_ledger
        self._payment_gateway = payment_gateway
        self._name_registry = name_registry
        self._event_publisher = event_publisher
        self._atomic = atomic_runner or _run_directly
        self._clock = clock
        self._mix = mix
        self._logger = logging.getLogger(__name__)
        oracle.bind(self)

    def _publish(self, event: object) -> None:
        if callable(self._event_publisher):
            self._event_publisher(event)

    def allowance_for(self, owner: str) -> int:
        return self.policy.allowance(self.character_repo.extra_slots(owner))

    def active_count_for(self, owner: str) -> int:
        return int(self.character_repo.active_count(owner))

    def pending_request_for(self, owner: str) -> Optional[PendingCreationRequest]:
        return self.ledger.live_request_for(owner)

    def request_state(self, owner: str) -> RequestState:
        return self.ledger.state_for(owner)

    def _ensure_slot_available(self, owner: str) -> int:
        active = self.active_count_for(owner)
        allowance = self.allowance_for(owner)
        if active >= allowance:
            raise TooManyCharacters(owner, active, allowance)
        return active

    def _collect_payment(self, owner: str, payment: CreationPayment) -> int:
        if payment.method is PaymentMethod.FEE:
            if self._payment_gateway is None:
                raise PaymentRequired("Fee payments are not accepted without a payment gateway")
            if int(payment.amount) < int(self.policy.creation_fee):
                raise PaymentRequired(
                    f"Creation fee is {self.policy.creation_fee}, received {int(payment.amount)}"
                )
            return int(payment.amount)

        if self._ticket_ledger is None or not self._ticket_ledger.consume(owner, TicketKind.CREATION):
            raise PaymentRequired(f"Owner {owner} holds no creation ticket")
        return 0

    def request_creation(
        self,
        owner: str,
        name_set: bool = False,
        payment: CreationPayment | None = None,
    ) -> str:
        owner = str(owner)
        payment = payment or CreationPayment()
        self._ensure_slot_available(owner)
        self.ledger.ensure_can_open(owner)

        def _open() -> PendingCreationRequest:
            # Payment is rolled back with the ledger if the oracle call fails.
            fee_paid = self._collect_payment(owner, payment)
            opened = PendingCreationRequest(
                request_id=str(self._oracle.request(owner)),
                owner=owner,
                name_set=bool(name_set),
                created_at=float(self._clock()),
                payment_method=payment.method,
                fee_paid=fee_paid,
            )
            self.ledger.open(opened)
            return opened

        request = self._atomic(_open)
        request_id = request.request_id
        self._publish(
            CreationRequested(
                request_id=request_id,
                owner=owner,
                name_set=request.name_set,
                payment_method=request.payment_method.value,
                created_at=request.created_at,
            )
        )
        return request_id

    def fulfill(self, request_id: str, random_value: int, *, source: object = None) -> CharacterRecord:
        if source is not self._oracle:
            raise UnauthorizedCaller("Only the bound randomness oracle may fulfill creation requests")

        request = self.ledger.require_fulfillable(request_id)
        owner = request.owner
        active = self._ensure_slot_available(owner)

        seed = derive_creation_seed(random_value, request.request_id, owner)
        allocation = allocate_attributes(seed, request.name_set, mix=self._mix)
        record = CharacterRecord(
            id=None,
            owner=owner,
            attributes=allocation.attributes,
            name=self._derive_name(allocation.seed_after, request.name_set),
            created_at=float(self._clock()),
        )

        def _persist() -> CharacterRecord:
            created = self.character_repo.create(record)
            self.character_repo.set_attribute_points(int(created.id), 0)
            self.character_repo.set_active_count(owner, active + 1)
            self.ledger.complete(request)
            return created

        created = self._atomic(_persist)
        self._logger.info(
            "Character created",
            extra={"character_id": created.id, "owner": owner, "request_id": request.request_id},
        )
        self._publish(
            CharacterCreated(
                character_id=int(created.id),
                owner=owner,
                request_id=request.request_id,
                attributes=created.attributes.as_dict(),
                repaired=allocation.repaired,
            )
        )
        return created

    def _derive_name(self, seed: int, name_set: bool) -> NameIndices:
        if self._name_registry is None:
            return NameIndices(name_set=bool(name_set))
        chain = SeedChain(seed, self._mix)
        first, surname = derive_name_indices(
            chain,
            first_name_count=self._name_registry.first_name_count(name_set),
            surname_count=self._name_registry.surname_count(),
        )
        return NameIndices(name_set=bool(name_set), first_name_index=first, surname_index=surname)

    def recover_timed_out(self, owner: str) -> int:
        request = self.ledger.require_pending_for(str(owner))
        eligible_at = request.recoverable_at(self.policy.request_timeout_seconds)
        if float(self._clock()) <= eligible_at:
            raise NotTimedOutYet(request.request_id, eligible_at)
        return self._recover(request, refund=True, by_operator=False)

    def admin_clear_pending(self, operator: str, owner: str, *, refund: bool = True) -> int:
        if not self.policy.is_operator(operator):
            raise UnauthorizedCaller(f"{operator} is not an operator")
        request = self.ledger.require_pending_for(str(owner))
        return self._recover(request, refund=refund, by_operator=True)

    def _recover(self, request: PendingCreationRequest, *, refund: bool, by_operator: bool) -> int:
        amount = request.refundable_amount if refund else 0

        def _apply() -> None:
            self.ledger.clear(request)
            if amount > 0 and self._payment_gateway is not None:
                self._payment_gateway.refund(request.owner, amount)

        self._atomic(_apply)
        if by_operator:
            self._logger.warning(
                "Pending creation request force-cleared by operator",
                extra={"request_id": request.request_id, "owner": request.owner, "refunded": amount},
            )
        self._publish(
            CreationRecovered(
                request_id=request.request_id,
                owner=request.owner,
                refunded=amount,
                by_operator=by_operator,
            )
        )
        return amount
