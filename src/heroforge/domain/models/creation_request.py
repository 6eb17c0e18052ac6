from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class PaymentMethod(str, Enum):
    TICKET = "ticket"
    FEE = "fee"


class RequestState(str, Enum):
    NONE = "none"
    PENDING = "pending"
    FULFILLED = "fulfilled"
    RECOVERED = "recovered"


@dataclass(frozen=True)
class CreationPayment:
    method: PaymentMethod = PaymentMethod.TICKET
    amount: int = 0


@dataclass
class PendingCreationRequest:
    request_id: str
    owner: str
    name_set: bool
    created_at: float
    payment_method: PaymentMethod = PaymentMethod.TICKET
    fee_paid: int = 0
    fulfilled: bool = False

    def __post_init__(self) -> None:
        self.request_id = str(self.request_id)
        self.payment_method = PaymentMethod(self.payment_method)
        self.fee_paid = max(0, int(self.fee_paid))

    @property
    def state(self) -> RequestState:
        return RequestState.FULFILLED if self.fulfilled else RequestState.PENDING

    def recoverable_at(self, timeout_seconds: float) -> float:
        return float(self.created_at) + float(timeout_seconds)

    @property
    def refundable_amount(self) -> int:
        if self.payment_method is PaymentMethod.FEE:
            return self.fee_paid
        return 0
