from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool


DEFAULT_DATABASE_URL = "sqlite:///./heroforge.db"

T = TypeVar("T")


def database_url() -> str:
    return os.getenv("HEROFORGE_DATABASE_URL", DEFAULT_DATABASE_URL)


def _is_sqlite_memory(url: str) -> bool:
    return url in {"sqlite://", "sqlite:///:memory:"}


def create_forge_engine(url: str | None = None) -> Engine:
    resolved = url or database_url()
    if _is_sqlite_memory(resolved):
        # Every session must see the same in-memory database.
        return create_engine(
            resolved,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(resolved, future=True, pool_pre_ping=not resolved.startswith("sqlite"))


class SessionScope:
    """Hands repositories a session, sharing one transaction while ``transaction()`` is open."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory
        self._active: Session | None = None

    @classmethod
    def for_engine(cls, engine: Engine) -> "SessionScope":
        return cls(sessionmaker(bind=engine, autoflush=False, future=True))

    @property
    def in_transaction(self) -> bool:
        return self._active is not None

    @contextmanager
    def session(self) -> Iterator[Session]:
        if self._active is not None:
            yield self._active
            return
        with self._session_factory.begin() as session:
            yield session

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        if self._active is not None:
            yield self._active
            return
        with self._session_factory.begin() as session:
            self._active = session
            try:
                yield session
            finally:
                self._active = None

    def run_atomic(self, operation: Callable[[], T]) -> T:
        with self.transaction():
            return operation()
