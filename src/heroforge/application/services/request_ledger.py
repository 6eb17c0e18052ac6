from __future__ import annotations

import logging
from typing import Optional

from heroforge.domain.errors import AlreadyFulfilled, NoPendingRequest, RequestAlreadyPending, UnknownRequest
from heroforge.domain.models.creation_request import PendingCreationRequest, RequestState
from heroforge.domain.repositories import PendingRequestRepository


class RequestLedger:
    """Per-owner creation request state: NONE -> PENDING -> FULFILLED | RECOVERED.

    Terminal states are not stored; reaching one removes the entry and the
    owner index, which puts the owner back in NONE.
    """

    def __init__(self, request_repo: PendingRequestRepository) -> None:
        self._requests = request_repo
        self._logger = logging.getLogger(__name__)

    def live_request_for(self, owner: str) -> Optional[PendingCreationRequest]:
        request_id = self._requests.pending_for_owner(owner)
        if not request_id:
            return None
        request = self._requests.get(request_id)
        if request is None or request.fulfilled:
            return None
        return request

    def state_for(self, owner: str) -> RequestState:
        return RequestState.PENDING if self.live_request_for(owner) is not None else RequestState.NONE

    def ensure_can_open(self, owner: str) -> None:
        live = self.live_request_for(owner)
        if live is not None:
            raise RequestAlreadyPending(owner, live.request_id)

    def open(self, request: PendingCreationRequest) -> None:
        self.ensure_can_open(request.owner)
        if self._requests.get(request.request_id) is not None:
            raise RequestAlreadyPending(request.owner, request.request_id)
        self._requests.save(request)
        self._requests.set_owner_pending(request.owner, request.request_id)
        self._logger.info(
            "Creation request pending",
            extra={"request_id": request.request_id, "owner": request.owner},
        )

    def require_fulfillable(self, request_id: str) -> PendingCreationRequest:
        request = self._requests.get(str(request_id))
        if request is None:
            raise UnknownRequest(str(request_id))
        if request.fulfilled:
            raise AlreadyFulfilled(request.request_id)
        return request

    def require_pending_for(self, owner: str) -> PendingCreationRequest:
        live = self.live_request_for(owner)
        if live is None:
            raise NoPendingRequest(owner)
        return live

    def complete(self, request: PendingCreationRequest) -> None:
        self._requests.set_owner_pending(request.owner, None)
        request.fulfilled = True
        self._requests.save(request)
        self._requests.delete(request.request_id)
        self._logger.info(
            "Creation request fulfilled",
            extra={"request_id": request.request_id, "owner": request.owner},
        )

    def clear(self, request: PendingCreationRequest) -> None:
        self._requests.set_owner_pending(request.owner, None)
        self._requests.delete(request.request_id)
        self._logger.info(
            "Creation request recovered",
            extra={"request_id": request.request_id, "owner": request.owner},
        )
