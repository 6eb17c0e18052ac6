import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import httpx


_TRANSIENT_STATUS_CODES = {408, 425, 429, 500, 502, 503, 504}
_LOGGER = logging.getLogger(__name__)


class OracleUnavailable(RuntimeError):
    def __init__(self, service: str, reopen_at: float, request_id: Optional[str] = None) -> None:
        self.service = service
        self.reopen_at = reopen_at
        self.request_id = request_id
        super().__init__(f"Randomness service {service} unavailable until {int(reopen_at)}")


@dataclass
class ServiceCircuit:
    """Consecutive-failure breaker for one randomness service.

    Only transient failures count. Once ``failure_threshold`` is reached the
    circuit stays open for ``reset_seconds``; the first call after that is let
    through with a clean slate.
    """

    service: str
    failure_threshold: int = 3
    reset_seconds: float = 60.0
    enabled: bool = True
    clock: Callable[[], float] = time.time
    failures: int = field(default=0, init=False)
    open_until: float = field(default=0.0, init=False)
    last_failed_request: Optional[str] = field(default=None, init=False)

    @classmethod
    def from_env(cls, service: str) -> "ServiceCircuit":
        enabled = os.getenv("HEROFORGE_HTTP_CIRCUIT_BREAKER_ENABLED", "1").strip().lower() in {"1", "true", "yes"}
        return cls(
            service=service,
            failure_threshold=max(1, int(os.getenv("HEROFORGE_HTTP_CIRCUIT_FAILURE_THRESHOLD", "3"))),
            reset_seconds=max(0.0, float(os.getenv("HEROFORGE_HTTP_CIRCUIT_RESET_SECONDS", "60"))),
            enabled=enabled,
        )

    @property
    def is_open(self) -> bool:
        return self.enabled and self.open_until > self.clock()

    def check(self, request_id: Optional[str] = None) -> None:
        if not self.enabled:
            return
        if self.open_until > self.clock():
            raise OracleUnavailable(self.service, self.open_until, request_id)
        if self.open_until > 0:
            self.failures = 0
            self.open_until = 0.0

    def succeeded(self) -> None:
        self.failures = 0
        self.open_until = 0.0
        self.last_failed_request = None

    def failed(self, request_id: Optional[str] = None) -> None:
        if not self.enabled:
            return
        self.failures += 1
        self.last_failed_request = request_id
        if self.failures >= self.failure_threshold:
            self.open_until = self.clock() + self.reset_seconds
            _LOGGER.warning(
                "Randomness service circuit opened",
                extra={"service": self.service, "failures": self.failures, "request_id": request_id},
            )


def _is_transient(exc: Exception) -> bool:
    if isinstance(exc, (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in _TRANSIENT_STATUS_CODES
    return False


def _read_object(response: httpx.Response) -> dict[str, Any]:
    if response.status_code in _TRANSIENT_STATUS_CODES:
        raise httpx.HTTPStatusError(
            f"Transient HTTP status: {response.status_code}",
            request=response.request,
            response=response,
        )
    response.raise_for_status()
    payload = response.json()
    if not isinstance(payload, dict):
        raise ValueError("Randomness service answered with a non-object payload")
    return payload


def submit_request(client: httpx.Client, circuit: ServiceCircuit, owner: str) -> dict[str, Any]:
    """``POST /requests`` exactly once; a resend could open a second paid request."""

    circuit.check()
    try:
        payload = _read_object(client.post("/requests", json={"owner": str(owner)}))
    except Exception as exc:
        if _is_transient(exc):
            circuit.failed()
        raise
    circuit.succeeded()
    return payload


def fetch_request_status(
    client: httpx.Client,
    circuit: ServiceCircuit,
    request_id: str,
    *,
    retries: int = 0,
    backoff_seconds: float = 0.2,
) -> dict[str, Any]:
    """``GET /requests/{id}``, retrying transient failures with exponential backoff."""

    attempts = max(0, int(retries)) + 1
    for attempt_index in range(attempts):
        circuit.check(request_id)
        try:
            payload = _read_object(client.get(f"/requests/{request_id}"))
        except Exception as exc:
            transient = _is_transient(exc)
            if transient:
                circuit.failed(request_id)
            if not transient or attempt_index >= attempts - 1:
                raise
            delay = max(0.0, backoff_seconds) * (2 ** attempt_index)
            if delay > 0:
                time.sleep(delay)
            continue
        circuit.succeeded()
        return payload
    return {}
