import logging
import os
from dataclasses import dataclass
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError

from heroforge.application.policies import CreationPolicy
from heroforge.application.services.balance_tables import (
    DEFAULT_BASE_SLOTS,
    DEFAULT_CREATION_FEE,
    DEFAULT_MAX_EXTRA_SLOTS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_SLOT_BATCH_SIZE,
)
from heroforge.application.services.character_service import CharacterService
from heroforge.application.services.creation_coordinator import CreationCoordinator
from heroforge.application.services.event_bus import EventBus
from heroforge.application.services.progression_service import ProgressionService
from heroforge.domain.events import CharacterCreated, CreationRecovered, LevelUpAppliedEvent
from heroforge.domain.repositories import CharacterRepository, PendingRequestRepository, RandomnessOracle
from heroforge.infrastructure.inmemory.atomic_persistence import create_inmemory_atomic_runner
from heroforge.infrastructure.inmemory.inmemory_equipment_registry import InMemoryEquipmentRegistry
from heroforge.infrastructure.inmemory.inmemory_payment_gateway import InMemoryPaymentGateway
from heroforge.infrastructure.inmemory.inmemory_ticket_ledger import InMemoryTicketLedger
from heroforge.infrastructure.inmemory.repos import InMemoryCharacterRepository, InMemoryPendingRequestRepository
from heroforge.infrastructure.name_generation.static_name_registry import StaticNameRegistry
from heroforge.infrastructure.randomness.http_oracle import HttpRandomnessOracle
from heroforge.infrastructure.randomness.inmemory_oracle import InMemoryRandomnessOracle


_LOGGER = logging.getLogger(__name__)


@dataclass
class ForgeServices:
    coordinator: CreationCoordinator
    progression: ProgressionService
    characters: CharacterService
    event_bus: EventBus
    oracle: RandomnessOracle
    ticket_ledger: InMemoryTicketLedger
    payment_gateway: InMemoryPaymentGateway
    equipment_registry: InMemoryEquipmentRegistry
    name_registry: StaticNameRegistry
    backend: str


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


def policy_from_env() -> CreationPolicy:
    operators = [item.strip() for item in os.getenv("HEROFORGE_OPERATORS", "").split(",") if item.strip()]
    return CreationPolicy(
        base_slots=_env_int("HEROFORGE_BASE_SLOTS", DEFAULT_BASE_SLOTS),
        max_extra_slots=_env_int("HEROFORGE_MAX_EXTRA_SLOTS", DEFAULT_MAX_EXTRA_SLOTS),
        slot_batch_size=_env_int("HEROFORGE_SLOT_BATCH_SIZE", DEFAULT_SLOT_BATCH_SIZE),
        request_timeout_seconds=_env_float("HEROFORGE_REQUEST_TIMEOUT_S", DEFAULT_REQUEST_TIMEOUT_SECONDS),
        creation_fee=_env_int("HEROFORGE_CREATION_FEE", DEFAULT_CREATION_FEE),
        operators=frozenset(operators),
    )


def _build_oracle() -> RandomnessOracle:
    base_url = os.getenv("HEROFORGE_ORACLE_URL", "").strip()
    if not base_url:
        return InMemoryRandomnessOracle()

    return HttpRandomnessOracle(
        base_url,
        timeout=_env_float("HEROFORGE_ORACLE_TIMEOUT_S", 5.0),
        retries=_env_int("HEROFORGE_ORACLE_RETRIES", 2),
        backoff_seconds=_env_float("HEROFORGE_ORACLE_BACKOFF_S", 0.2),
    )


def _log_event(event: object) -> None:
    _LOGGER.info("Domain event", extra={"event_type": type(event).__name__, "payload": vars(event)})


def _assemble(
    character_repo: CharacterRepository,
    request_repo: PendingRequestRepository,
    atomic_runner: Callable,
    *,
    policy: CreationPolicy,
    oracle: RandomnessOracle,
    ticket_ledger: InMemoryTicketLedger,
    payment_gateway: InMemoryPaymentGateway,
    backend: str,
) -> ForgeServices:
    event_bus = EventBus()
    event_bus.subscribe_many((CharacterCreated, CreationRecovered, LevelUpAppliedEvent), _log_event)
    name_registry = StaticNameRegistry()
    equipment_registry = InMemoryEquipmentRegistry()

    coordinator = CreationCoordinator(
        character_repo,
        request_repo,
        oracle,
        policy=policy,
        ticket_ledger=ticket_ledger,
        payment_gateway=payment_gateway,
        name_registry=name_registry,
        event_publisher=event_bus.publish,
        atomic_runner=atomic_runner,
    )
    progression = ProgressionService(
        character_repo,
        ticket_ledger=ticket_ledger,
        event_publisher=event_bus.publish,
        atomic_runner=atomic_runner,
    )
    characters = CharacterService(
        character_repo,
        policy=policy,
        request_repo=request_repo,
        equipment_registry=equipment_registry,
        name_registry=name_registry,
        ticket_ledger=ticket_ledger,
        event_publisher=event_bus.publish,
        atomic_runner=atomic_runner,
    )
    return ForgeServices(
        coordinator=coordinator,
        progression=progression,
        characters=characters,
        event_bus=event_bus,
        oracle=oracle,
        ticket_ledger=ticket_ledger,
        payment_gateway=payment_gateway,
        equipment_registry=equipment_registry,
        name_registry=name_registry,
        backend=backend,
    )


def _build_inmemory_services(policy: CreationPolicy, oracle: RandomnessOracle) -> ForgeServices:
    character_repo = InMemoryCharacterRepository()
    request_repo = InMemoryPendingRequestRepository()
    ticket_ledger = InMemoryTicketLedger()
    payment_gateway = InMemoryPaymentGateway()
    atomic_runner = create_inmemory_atomic_runner(character_repo, request_repo, ticket_ledger, payment_gateway)
    return _assemble(
        character_repo,
        request_repo,
        atomic_runner,
        policy=policy,
        oracle=oracle,
        ticket_ledger=ticket_ledger,
        payment_gateway=payment_gateway,
        backend="memory",
    )


def _build_sql_services(url: str, policy: CreationPolicy, oracle: RandomnessOracle) -> ForgeServices:
    from heroforge.infrastructure.db.sql.atomic_persistence import create_sql_atomic_runner
    from heroforge.infrastructure.db.sql.connection import SessionScope, create_forge_engine
    from heroforge.infrastructure.db.sql.repos import SqlCharacterRepository, SqlPendingRequestRepository
    from heroforge.infrastructure.db.sql.schema import apply_schema

    engine = create_forge_engine(url)
    # Fails fast on an unreachable database so the caller can fall back.
    apply_schema(engine)
    scope = SessionScope.for_engine(engine)
    ticket_ledger = InMemoryTicketLedger()
    payment_gateway = InMemoryPaymentGateway()
    return _assemble(
        SqlCharacterRepository(scope),
        SqlPendingRequestRepository(scope),
        create_sql_atomic_runner(scope, ticket_ledger, payment_gateway),
        policy=policy,
        oracle=oracle,
        ticket_ledger=ticket_ledger,
        payment_gateway=payment_gateway,
        backend="sql",
    )


def create_forge_services(*, oracle: RandomnessOracle | None = None, policy: CreationPolicy | None = None) -> ForgeServices:
    policy = policy or policy_from_env()
    oracle = oracle or _build_oracle()
    database_url = os.getenv("HEROFORGE_DATABASE_URL", "").strip()
    if database_url:
        try:
            return _build_sql_services(database_url, policy, oracle)
        except SQLAlchemyError as exc:
            _LOGGER.warning("Database unavailable, falling back to in-memory", extra={"reason": str(exc)})
    return _build_inmemory_services(policy, oracle)
