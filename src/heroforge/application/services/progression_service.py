from __future__ import annotations

import logging

from heroforge.application.dtos import ProgressionView
from heroforge.application.services.balance_tables import LEVEL_CAP, xp_required_for_level
from heroforge.domain.errors import (
    AttributeAtCap,
    CharacterNotFound,
    InsufficientCharges,
    InsufficientPoints,
    InvalidAmount,
    InvalidAttribute,
    NotCharacterOwner,
)
from heroforge.domain.events import (
    AttributePointSpent,
    AttributesSwapped,
    ExperienceAwarded,
    LevelUpAppliedEvent,
)
from heroforge.domain.models.character import CharacterRecord
from heroforge.domain.models.economy import TicketKind
from heroforge.domain.models.progression import ExperienceAwardResult, ExperiencePoints, Level
from heroforge.domain.models.stats import MAX_LEVELING_STAT, MAX_STAT, MIN_STAT, normalize_attribute_name
from heroforge.domain.repositories import CharacterRepository, TicketLedger


def _run_directly(operation):
    return operation()


class ProgressionService:
    def __init__(
        self,
        character_repo: CharacterRepository,
        *,
        ticket_ledger: TicketLedger | None = None,
        event_publisher=None,
        atomic_runner=None,
    ) -> None:
        self.character_repo = character_repo
        self._ticket_ledger = ticket_ledger
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

    def preview(self, character_id: int) -> ProgressionView:
        record = self._load(character_id)
        level = Level(record.level)
        xp = ExperiencePoints(record.current_xp)
        next_required = None
        if level.value < LEVEL_CAP:
            next_required = xp_required_for_level(level.value + 1)
        return ProgressionView(
            character_id=int(record.id),
            level=level.value,
            current_xp=xp.value,
            xp_for_next_level=next_required,
            attribute_points=self.character_repo.get_attribute_points(int(record.id)),
            at_level_cap=level.value >= LEVEL_CAP,
        )

    def award_experience(self, character_id: int, amount: int) -> ExperienceAwardResult:
        if int(amount) < 0:
            raise InvalidAmount("Experience awards cannot be negative")
        record = self._load(character_id)
        points = self.character_repo.get_attribute_points(int(record.id))

        from_level = record.level
        level = record.level
        xp = record.current_xp + int(amount)
        level_ups: list[LevelUpAppliedEvent] = []
        while level < LEVEL_CAP and xp >= xp_required_for_level(level + 1):
            xp -= xp_required_for_level(level + 1)
            level += 1
            points += 1
            level_ups.append(
                LevelUpAppliedEvent(
                    character_id=int(record.id),
                    from_level=level - 1,
                    to_level=level,
                    points_balance=points,
                )
            )

        def _apply() -> None:
            record.level = level
            record.current_xp = xp
            self.character_repo.save(record)
            self.character_repo.set_attribute_points(int(record.id), points)

        self._atomic(_apply)

        if level_ups:
            self._logger.info(
                "Character levelled up",
                extra={"character_id": record.id, "from_level": from_level, "to_level": level},
            )
        for event in level_ups:
            self._publish(event)
        self._publish(
            ExperienceAwarded(
                character_id=int(record.id),
                amount=int(amount),
                xp_after=xp,
                level_after=level,
            )
        )
        return ExperienceAwardResult(
            character_id=int(record.id),
            from_level=from_level,
            to_level=level,
            points_gained=len(level_ups),
            xp_after=xp,
        )

    def spend_attribute_point(self, character_id: int, attribute: str, *, owner: str | None = None) -> int:
        name = normalize_attribute_name(attribute)
        record = self._load(character_id, owner)
        points = self.character_repo.get_attribute_points(int(record.id))
        if points <= 0:
            raise InsufficientPoints(f"Character {record.id} has no attribute points to spend")
        current = record.attributes.get(name)
        if current >= MAX_LEVELING_STAT:
            raise AttributeAtCap(name, current, MAX_LEVELING_STAT)

        def _apply() -> None:
            record.attributes = record.attributes.with_delta(name, 1)
            self.character_repo.save(record)
            self.character_repo.set_attribute_points(int(record.id), points - 1)

        self._atomic(_apply)
        self._publish(
            AttributePointSpent(
                character_id=int(record.id),
                attribute=name,
                new_value=current + 1,
                points_remaining=points - 1,
            )
        )
        return current + 1

    def swap_attributes(
        self,
        character_id: int,
        decrease: str,
        increase: str,
        *,
        owner: str | None = None,
    ) -> CharacterRecord:
        """Move one point between attributes, paid for with a swap ticket.

        Swaps live on the creation scale: the lowered attribute must start at
        least one above ``MIN_STAT`` and the raised one at least one below
        ``MAX_STAT``. The leveling ceiling plays no part here.
        """

        lowered = normalize_attribute_name(decrease)
        raised = normalize_attribute_name(increase)
        if lowered == raised:
            raise InvalidAttribute("Cannot swap an attribute with itself")
        record = self._load(character_id, owner)

        lowered_value = record.attributes.get(lowered)
        raised_value = record.attributes.get(raised)
        if lowered_value < MIN_STAT + 1:
            raise AttributeAtCap(lowered, lowered_value, MIN_STAT + 1)
        if raised_value > MAX_STAT - 1:
            raise AttributeAtCap(raised, raised_value, MAX_STAT - 1)

        def _apply() -> None:
            if self._ticket_ledger is None or not self._ticket_ledger.consume(record.owner, TicketKind.ATTRIBUTE_SWAP):
                raise InsufficientCharges(f"Owner {record.owner} holds no attribute swap charge")
            record.attributes = record.attributes.with_delta(lowered, -1).with_delta(raised, 1)
            self.character_repo.save(record)

        self._atomic(_apply)
        self._publish(AttributesSwapped(character_id=int(record.id), decreased=lowered, increased=raised))
        return record
