from __future__ import annotations

from heroforge.application.dtos import CharacterSummaryView, PendingRequestView
from heroforge.domain.models.character import CharacterRecord
from heroforge.domain.models.creation_request import PendingCreationRequest


def to_character_summary_view(record: CharacterRecord, *, attribute_points: int) -> CharacterSummaryView:
    return CharacterSummaryView(
        character_id=int(record.id or 0),
        owner=str(record.owner),
        level=int(record.level),
        current_xp=int(record.current_xp),
        attribute_points=int(attribute_points),
        stance=record.stance.value,
        retired=bool(record.retired),
        immortal=bool(record.immortal),
        attributes=record.attributes.as_dict(),
        name_set=bool(record.name.name_set),
        first_name_index=int(record.name.first_name_index),
        surname_index=int(record.name.surname_index),
    )


def to_pending_request_view(request: PendingCreationRequest, *, timeout_seconds: float) -> PendingRequestView:
    return PendingRequestView(
        request_id=request.request_id,
        owner=request.owner,
        state=request.state.value,
        created_at=float(request.created_at),
        recoverable_at=request.recoverable_at(timeout_seconds),
        payment_method=request.payment_method.value,
        refundable_amount=request.refundable_amount,
    )
