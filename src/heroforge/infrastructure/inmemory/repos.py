import copy
from typing import Dict, List, Optional

from heroforge.domain.models.character import CharacterRecord
from heroforge.domain.models.creation_request import PendingCreationRequest
from heroforge.domain.repositories import CharacterRepository, PendingRequestRepository


class InMemoryCharacterRepository(CharacterRepository):
    def __init__(self, initial: Optional[Dict[int, CharacterRecord]] = None) -> None:
        self._characters: Dict[int, CharacterRecord] = {
            int(key): copy.deepcopy(value) for key, value in (initial or {}).items()
        }
        self._next_id = max(self._characters.keys(), default=0) + 1
        self._attribute_points: Dict[int, int] = {}
        self._active_counts: Dict[str, int] = {}
        self._extra_slots: Dict[str, int] = {}

    def get(self, character_id: int) -> Optional[CharacterRecord]:
        record = self._characters.get(int(character_id))
        return copy.deepcopy(record) if record is not None else None

    def list_all(self) -> List[CharacterRecord]:
        return [copy.deepcopy(self._characters[key]) for key in sorted(self._characters)]

    def list_by_owner(self, owner: str) -> List[CharacterRecord]:
        return [record for record in self.list_all() if record.is_owned_by(owner)]

    def create(self, record: CharacterRecord) -> CharacterRecord:
        stored = copy.deepcopy(record)
        stored.id = self._next_id
        self._next_id += 1
        self._characters[stored.id] = stored
        return copy.deepcopy(stored)

    def save(self, record: CharacterRecord) -> None:
        if record.id is None or int(record.id) not in self._characters:
            raise KeyError(f"Character {record.id} has not been created")
        self._characters[int(record.id)] = copy.deepcopy(record)

    def get_attribute_points(self, character_id: int) -> int:
        return int(self._attribute_points.get(int(character_id), 0))

    def set_attribute_points(self, character_id: int, points: int) -> None:
        if int(points) < 0:
            raise ValueError("Attribute points cannot be negative")
        self._attribute_points[int(character_id)] = int(points)

    def active_count(self, owner: str) -> int:
        return int(self._active_counts.get(str(owner), 0))

    def set_active_count(self, owner: str, count: int) -> None:
        self._active_counts[str(owner)] = max(0, int(count))

    def extra_slots(self, owner: str) -> int:
        return int(self._extra_slots.get(str(owner), 0))

    def set_extra_slots(self, owner: str, count: int) -> None:
        self._extra_slots[str(owner)] = max(0, int(count))


class InMemoryPendingRequestRepository(PendingRequestRepository):
    def __init__(self) -> None:
        self._requests: Dict[str, PendingCreationRequest] = {}
        self._owner_pending: Dict[str, str] = {}

    def get(self, request_id: str) -> Optional[PendingCreationRequest]:
        request = self._requests.get(str(request_id))
        return copy.deepcopy(request) if request is not None else None

    def list_all(self) -> List[PendingCreationRequest]:
        return [copy.deepcopy(request) for request in self._requests.values()]

    def save(self, request: PendingCreationRequest) -> None:
        self._requests[request.request_id] = copy.deepcopy(request)

    def delete(self, request_id: str) -> None:
        self._requests.pop(str(request_id), None)

    def pending_for_owner(self, owner: str) -> Optional[str]:
        return self._owner_pending.get(str(owner))

    def set_owner_pending(self, owner: str, request_id: Optional[str]) -> None:
        if request_id is None:
            self._owner_pending.pop(str(owner), None)
        else:
            self._owner_pending[str(owner)] = str(request_id)
