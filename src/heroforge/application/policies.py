from __future__ import annotations

from dataclasses import dataclass, field

from heroforge.application.services.balance_tables import (
    DEFAULT_BASE_SLOTS,
    DEFAULT_CREATION_FEE,
    DEFAULT_MAX_EXTRA_SLOTS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_SLOT_BATCH_SIZE,
)


@dataclass(frozen=True)
class CreationPolicy:
    base_slots: int = DEFAULT_BASE_SLOTS
    max_extra_slots: int = DEFAULT_MAX_EXTRA_SLOTS
    slot_batch_size: int = DEFAULT_SLOT_BATCH_SIZE
    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS
    creation_fee: int = DEFAULT_CREATION_FEE
    operators: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if int(self.base_slots) < 0 or int(self.max_extra_slots) < 0:
            raise ValueError("Slot counts cannot be negative")
        if int(self.slot_batch_size) < 1:
            raise ValueError("Slot batch size must be at least 1")
        if float(self.request_timeout_seconds) < 0:
            raise ValueError("Request timeout cannot be negative")
        if int(self.creation_fee) < 0:
            raise ValueError("Creation fee cannot be negative")
        object.__setattr__(self, "operators", frozenset(str(item) for item in self.operators))

    def allowance(self, extra_slots: int) -> int:
        return int(self.base_slots) + min(max(0, int(extra_slots)), int(self.max_extra_slots))

    def is_operator(self, caller: str) -> bool:
        return str(caller) in self.operators
