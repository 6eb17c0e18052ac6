from __future__ import annotations

import logging
from typing import Dict, List

import httpx

from heroforge.domain.errors import ForgeError
from heroforge.domain.repositories import RandomnessOracle
from heroforge.infrastructure.resilient_http import ServiceCircuit, fetch_request_status, submit_request


def _parse_random_value(raw) -> int:
    if isinstance(raw, int):
        return raw
    text_value = str(raw).strip().lower()
    if text_value.startswith("0x"):
        return int(text_value, 16)
    return int(text_value)


class HttpRandomnessOracle(RandomnessOracle):
    """Client for a remote randomness service.

    ``POST /requests`` returns ``{"request_id": ...}``; ``GET /requests/{id}``
    returns ``{"status": "pending"}`` until it can answer
    ``{"status": "fulfilled", "random_value": "0x..."}``. Values are handed to
    the bound consumer from :meth:`poll`.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 5.0,
        retries: int = 2,
        backoff_seconds: float = 0.2,
        client: httpx.Client | None = None,
        circuit: ServiceCircuit | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.retries = retries
        self.backoff_seconds = backoff_seconds
        self._client = client or httpx.Client(base_url=self.base_url, timeout=timeout)
        self.circuit = circuit or ServiceCircuit.from_env(self.base_url)
        self._outstanding: Dict[str, str] = {}
        self._consumer = None
        self._logger = logging.getLogger(__name__)

    def close(self) -> None:
        self._client.close()

    def bind(self, consumer) -> None:
        self._consumer = consumer

    def request(self, owner: str) -> str:
        payload = submit_request(self._client, self.circuit, str(owner))
        request_id = str(payload.get("request_id", "") or "").strip()
        if not request_id:
            raise RuntimeError("Randomness service returned no request id")
        self._outstanding[request_id] = str(owner)
        return request_id

    def outstanding(self) -> List[str]:
        return list(self._outstanding)

    def poll(self) -> int:
        """Check every outstanding request once and deliver those that are ready."""

        if self._consumer is None:
            raise RuntimeError("Randomness oracle has no bound consumer")
        delivered = 0
        for request_id in list(self._outstanding):
            payload = fetch_request_status(
                self._client,
                self.circuit,
                request_id,
                retries=self.retries,
                backoff_seconds=self.backoff_seconds,
            )
            if str(payload.get("status", "")).lower() != "fulfilled":
                continue
            value = _parse_random_value(payload.get("random_value"))
            del self._outstanding[request_id]
            delivered += 1
            try:
                self._consumer.fulfill(request_id, value, source=self)
            except ForgeError as exc:
                self._logger.warning(
                    "Fulfillment rejected",
                    extra={"request_id": request_id, "reason": str(exc)},
                )
        return delivered
