"""Shared test fixtures.

Settings are read at import time, so the environment is prepared before any
src/ module is imported. Integration tests run on a throw-away SQLite file
(aiosqlite) built from the ORM metadata; the repositories' SQL is portable.
"""

import os

os.environ.setdefault("JWT_SECRET", "test-secret-not-for-production")
os.environ.setdefault("EVENTS_REDIS_ENABLED", "false")
# SQLite serializes writers; one bet at a time keeps settlement deterministic there
os.environ.setdefault("SETTLEMENT_MAX_PARALLEL", "1")
os.environ.setdefault("LOCK_TIMEOUT_SECONDS", "5")

from collections.abc import AsyncIterator  # noqa: E402
from pathlib import Path  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker  # noqa: E402

import src.nb_account.infrastructure.db_models  # noqa: E402,F401
import src.nb_betting.infrastructure.db_models  # noqa: E402,F401
import src.nb_market.infrastructure.db_models  # noqa: E402,F401
from src.nb_common.database import Base, build_engine, build_session_factory  # noqa: E402
from src.nb_common.locks import KeyedLocks  # noqa: E402
from src.nb_events.emitter import EventEmitter  # noqa: E402


@pytest_asyncio.fixture
async def sqlite_engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    """Fresh database file per test; no pool, so every session gets its own connection."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'numbers_betting.db'}"
    engine = build_engine(url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(sqlite_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(sqlite_engine)


@pytest_asyncio.fixture
async def db(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def locks() -> KeyedLocks:
    """Per-test lock registry (asyncio locks must not outlive their event loop)."""
    return KeyedLocks("test-account", timeout=5.0, max_attempts=2, backoff=0.01)


@pytest.fixture
def target_locks() -> KeyedLocks:
    return KeyedLocks("test-target", timeout=5.0, max_attempts=2, backoff=0.01)


class RecordingEmitter(EventEmitter):
    """EventEmitter that also keeps every published event, in order."""

    def __init__(self) -> None:
        super().__init__()
        self.published: list = []

    def publish(self, event) -> None:  # type: ignore[no-untyped-def,override]
        self.published.append(event)
        super().publish(event)

    def names(self) -> list[str]:
        return [e.name for e in self.published]


@pytest.fixture
def emitter() -> RecordingEmitter:
    return RecordingEmitter()
