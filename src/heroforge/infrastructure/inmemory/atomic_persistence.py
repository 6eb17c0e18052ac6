from __future__ import annotations

import copy
from collections.abc import Callable
from typing import TypeVar


T = TypeVar("T")

_CHARACTER_STATE = ("_characters", "_next_id", "_attribute_points", "_active_counts", "_extra_slots")
_REQUEST_STATE = ("_requests", "_owner_pending")


def _snapshot(repo, names: tuple[str, ...]) -> dict[str, object]:
    return {name: copy.deepcopy(getattr(repo, name)) for name in names if hasattr(repo, name)}


def _restore(repo, snapshot: dict[str, object]) -> None:
    for name, value in snapshot.items():
        setattr(repo, name, value)


def create_inmemory_atomic_runner(character_repo, request_repo, *extra_stores) -> Callable[[Callable[[], T]], T]:
    """Run an operation against the in-memory stores, restoring every store if it raises.

    ``extra_stores`` are collaborators such as ticket ledgers exposing a
    ``snapshot()`` / ``restore(state)`` pair.
    """

    def _run(operation: Callable[[], T]) -> T:
        character_state = _snapshot(character_repo, _CHARACTER_STATE)
        request_state = _snapshot(request_repo, _REQUEST_STATE)
        extra_state = [store.snapshot() for store in extra_stores]
        try:
            return operation()
        except Exception:
            _restore(character_repo, character_state)
            _restore(request_repo, request_state)
            for store, state in zip(extra_stores, extra_state):
                store.restore(state)
            raise

    return _run
