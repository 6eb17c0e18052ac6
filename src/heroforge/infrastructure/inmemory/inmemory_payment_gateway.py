from __future__ import annotations

from heroforge.domain.repositories import PaymentGateway


class InMemoryPaymentGateway(PaymentGateway):
    def __init__(self) -> None:
        self._refunds: list[tuple[str, int]] = []

    def refund(self, owner: str, amount: int) -> None:
        if int(amount) <= 0:
            raise ValueError("Refund amount must be positive")
        self._refunds.append((str(owner), int(amount)))

    def refunds(self) -> list[tuple[str, int]]:
        return list(self._refunds)

    def refunded_total(self, owner: str) -> int:
        return sum(amount for refunded_owner, amount in self._refunds if refunded_owner == str(owner))

    def snapshot(self) -> list[tuple[str, int]]:
        return list(self._refunds)

    def restore(self, state: list[tuple[str, int]]) -> None:
        self._refunds = list(state)
