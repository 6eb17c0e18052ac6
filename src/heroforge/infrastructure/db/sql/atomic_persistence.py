from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

from .connection import SessionScope


T = TypeVar("T")


def create_sql_atomic_runner(scope: SessionScope, *extra_stores) -> Callable[[Callable[[], T]], T]:
    """Run an operation inside one DB transaction shared by every repository on ``scope``.

    ``extra_stores`` live outside the database (ticket ledgers, payment
    gateways) and expose ``snapshot()`` / ``restore(state)``; they are put
    back when the transaction rolls back.
    """

    def _run(operation: Callable[[], T]) -> T:
        extra_state = [store.snapshot() for store in extra_stores]
        try:
            return scope.run_atomic(operation)
        except Exception:
            for store, state in zip(extra_stores, extra_state):
                store.restore(state)
            raise

    return _run
