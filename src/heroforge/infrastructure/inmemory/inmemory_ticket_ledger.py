from __future__ import annotations

from typing import Dict, Tuple

from heroforge.domain.models.economy import TicketKind
from heroforge.domain.repositories import TicketLedger


class InMemoryTicketLedger(TicketLedger):
    def __init__(self) -> None:
        self._balances: Dict[Tuple[str, TicketKind], int] = {}

    def grant(self, owner: str, kind: TicketKind, count: int = 1) -> int:
        if int(count) < 0:
            raise ValueError("Ticket grants cannot be negative")
        key = (str(owner), TicketKind(kind))
        self._balances[key] = self._balances.get(key, 0) + int(count)
        return self._balances[key]

    def balance(self, owner: str, kind: TicketKind) -> int:
        return int(self._balances.get((str(owner), TicketKind(kind)), 0))

    def consume(self, owner: str, kind: TicketKind) -> bool:
        key = (str(owner), TicketKind(kind))
        held = self._balances.get(key, 0)
        if held <= 0:
            return False
        self._balances[key] = held - 1
        return True

    def snapshot(self) -> Dict[Tuple[str, TicketKind], int]:
        return dict(self._balances)

    def restore(self, state: Dict[Tuple[str, TicketKind], int]) -> None:
        self._balances = dict(state)
