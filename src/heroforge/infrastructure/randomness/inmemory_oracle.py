from __future__ import annotations

import logging
import secrets
from typing import Callable, Dict, List, Optional, Tuple

from heroforge.domain.errors import ForgeError
from heroforge.domain.repositories import RandomnessOracle


class InMemoryRandomnessOracle(RandomnessOracle):
    """Queues requests and delivers one random value per id when told to.

    Delivery is driven by the caller (a test, the CLI simulator, a scheduler),
    which stands in for the out-of-band callback of a real oracle.
    """

    def __init__(self, *, entropy: Callable[[], int] | None = None, first_id: int = 1) -> None:
        self._entropy = entropy or (lambda: secrets.randbits(256))
        self._next_id = int(first_id)
        self._outstanding: Dict[str, str] = {}
        self._consumer = None
        self._logger = logging.getLogger(__name__)

    def bind(self, consumer) -> None:
        self._consumer = consumer

    def request(self, owner: str) -> str:
        request_id = str(self._next_id)
        self._next_id += 1
        self._outstanding[request_id] = str(owner)
        return request_id

    def outstanding(self) -> List[str]:
        return list(self._outstanding)

    def deliver(self, request_id: str, random_value: Optional[int] = None):
        request_id = str(request_id)
        if request_id not in self._outstanding:
            raise KeyError(f"Request {request_id} is not outstanding")
        if self._consumer is None:
            raise RuntimeError("Randomness oracle has no bound consumer")
        value = int(random_value) if random_value is not None else int(self._entropy())
        del self._outstanding[request_id]
        return self._consumer.fulfill(request_id, value, source=self)

    def deliver_all(self) -> List[Tuple[str, object]]:
        """Deliver every outstanding request; rejected fulfillments are returned, not raised."""

        results: List[Tuple[str, object]] = []
        for request_id in list(self._outstanding):
            try:
                results.append((request_id, self.deliver(request_id)))
            except ForgeError as exc:
                self._logger.warning(
                    "Fulfillment rejected",
                    extra={"request_id": request_id, "reason": str(exc)},
                )
                results.append((request_id, exc))
        return results
