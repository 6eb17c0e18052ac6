from abc import ABC, abstractmethod
from typing import List, Optional

from heroforge.domain.models.character import CharacterRecord, SkinRef
from heroforge.domain.models.creation_request import PendingCreationRequest
from heroforge.domain.models.economy import TicketKind
from heroforge.domain.models.stats import AttributeRequirements


class CharacterRepository(ABC):
    @abstractmethod
    def get(self, character_id: int) -> Optional[CharacterRecord]:
        raise NotImplementedError

    @abstractmethod
    def list_all(self) -> List[CharacterRecord]:
        raise NotImplementedError

    @abstractmethod
    def list_by_owner(self, owner: str) -> List[CharacterRecord]:
        raise NotImplementedError

    @abstractmethod
    def create(self, record: CharacterRecord) -> CharacterRecord:
        """Persist a new record under the next unused id and return it."""
        raise NotImplementedError

    @abstractmethod
    def save(self, record: CharacterRecord) -> None:
        raise NotImplementedError

    @abstractmethod
    def get_attribute_points(self, character_id: int) -> int:
        raise NotImplementedError

    @abstractmethod
    def set_attribute_points(self, character_id: int, points: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def active_count(self, owner: str) -> int:
        raise NotImplementedError

    @abstractmethod
    def set_active_count(self, owner: str, count: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def extra_slots(self, owner: str) -> int:
        raise NotImplementedError

    @abstractmethod
    def set_extra_slots(self, owner: str, count: int) -> None:
        raise NotImplementedError


class PendingRequestRepository(ABC):
    @abstractmethod
    def get(self, request_id: str) -> Optional[PendingCreationRequest]:
        raise NotImplementedError

    @abstractmethod
    def list_all(self) -> List[PendingCreationRequest]:
        raise NotImplementedError

    @abstractmethod
    def save(self, request: PendingCreationRequest) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, request_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def pending_for_owner(self, owner: str) -> Optional[str]:
        raise NotImplementedError

    @abstractmethod
    def set_owner_pending(self, owner: str, request_id: Optional[str]) -> None:
        raise NotImplementedError


class RandomnessOracle(ABC):
    """Issues request ids now and calls ``fulfill`` on its consumer later, once per id."""

    @abstractmethod
    def request(self, owner: str) -> str:
        raise NotImplementedError

    @abstractmethod
    def bind(self, consumer) -> None:
        raise NotImplementedError


class NameRegistry(ABC):
    @abstractmethod
    def first_name_count(self, name_set: bool) -> int:
        raise NotImplementedError

    @abstractmethod
    def surname_count(self) -> int:
        raise NotImplementedError

    def is_valid_first_name_index(self, index: int, name_set: bool) -> bool:
        return 0 <= int(index) < self.first_name_count(name_set)

    def is_valid_surname_index(self, index: int) -> bool:
        return 0 <= int(index) < self.surname_count()


class EquipmentRegistry(ABC):
    @abstractmethod
    def owns_skin(self, owner: str, skin: SkinRef) -> bool:
        raise NotImplementedError

    @abstractmethod
    def skin_categories(self, skin: SkinRef) -> tuple[int, int]:
        """Return ``(weapon_category, armor_category)`` for a skin."""
        raise NotImplementedError

    @abstractmethod
    def weapon_requirements(self, category: int) -> AttributeRequirements:
        raise NotImplementedError

    @abstractmethod
    def armor_requirements(self, category: int) -> AttributeRequirements:
        raise NotImplementedError


class TicketLedger(ABC):
    @abstractmethod
    def consume(self, owner: str, kind: TicketKind) -> bool:
        raise NotImplementedError


class PaymentGateway(ABC):
    @abstractmethod
    def refund(self, owner: str, amount: int) -> None:
        raise NotImplementedError
