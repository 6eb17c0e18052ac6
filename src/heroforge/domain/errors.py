from __future__ import annotations

from typing import Iterable


class ForgeError(ValueError):
    """Base class for every rejected operation. Raising one never leaves partial state."""


class TooManyCharacters(ForgeError):
    def __init__(self, owner: str, active_count: int, allowance: int) -> None:
        super().__init__(f"Owner {owner} has {active_count} active characters (allowance {allowance})")
        self.owner = owner
        self.active_count = active_count
        self.allowance = allowance


class RequestAlreadyPending(ForgeError):
    def __init__(self, owner: str, request_id: str) -> None:
        super().__init__(f"Owner {owner} already has pending request {request_id}")
        self.owner = owner
        self.request_id = request_id


class UnknownRequest(ForgeError):
    def __init__(self, request_id: str) -> None:
        super().__init__(f"Unknown creation request: {request_id}")
        self.request_id = request_id


class AlreadyFulfilled(ForgeError):
    def __init__(self, request_id: str) -> None:
        super().__init__(f"Creation request {request_id} was already fulfilled")
        self.request_id = request_id


class NoPendingRequest(ForgeError):
    def __init__(self, owner: str) -> None:
        super().__init__(f"Owner {owner} has no pending creation request")
        self.owner = owner


class NotTimedOutYet(ForgeError):
    def __init__(self, request_id: str, eligible_at: float) -> None:
        super().__init__(f"Creation request {request_id} cannot be recovered before {eligible_at:.0f}")
        self.request_id = request_id
        self.eligible_at = eligible_at


class PaymentRequired(ForgeError):
    pass


class UnauthorizedCaller(ForgeError):
    pass


class CharacterNotFound(ForgeError):
    def __init__(self, character_id: int) -> None:
        super().__init__(f"Character {character_id} does not exist")
        self.character_id = character_id


class NotCharacterOwner(ForgeError):
    def __init__(self, character_id: int, caller: str) -> None:
        super().__init__(f"{caller} does not own character {character_id}")
        self.character_id = character_id
        self.caller = caller


class InvalidAttribute(ForgeError):
    pass


class InvalidStance(ForgeError):
    pass


class InvalidAmount(ForgeError):
    pass


class InsufficientPoints(ForgeError):
    pass


class InsufficientCharges(ForgeError):
    pass


class AttributeAtCap(ForgeError):
    def __init__(self, attribute: str, value: int, bound: int) -> None:
        super().__init__(f"{attribute} is {value}, which is at its bound of {bound}")
        self.attribute = attribute
        self.value = value
        self.bound = bound


class RequirementsNotMet(ForgeError):
    def __init__(self, failing: Iterable[str]) -> None:
        self.failing = tuple(failing)
        super().__init__("Equipment requirements not met: " + ", ".join(self.failing))


class SkinNotOwned(ForgeError):
    pass


class InvalidNameIndex(ForgeError):
    pass


class SlotLimitReached(ForgeError):
    pass


class CharacterImmortal(ForgeError):
    pass
