"""Integration fixtures: real repositories and services on the per-test SQLite file.

Every service gets the test's own lock registries and a RecordingEmitter, so
nothing leaks between tests (or between event loops).
"""

from collections.abc import Awaitable, Callable
from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.nb_account.application.ledger import LedgerStore
from src.nb_betting.application.service import BetRegistry
from src.nb_common.datetime_utils import utc_now
from src.nb_common.enums import TransactionKind
from src.nb_common.locks import KeyedLocks
from src.nb_market.application.schemas import (
    CreateMarketRequest,
    CreateOptionGameRequest,
    GameTypeConfigIn,
)
from src.nb_market.application.service import MarketCatalogueService
from src.nb_settlement.application.engine import SettlementEngine
from src.nb_events.emitter import EventEmitter

# Odds used by every integration market: JODI x90, HURF x9 (both x72), CROSS x3, ODD_EVEN x1.9
MARKET_ODDS = [
    GameTypeConfigIn(game_type="JODI", odds_bps=900_000),
    GameTypeConfigIn(game_type="HURF", odds_bps=90_000),
    GameTypeConfigIn(game_type="CROSS", odds_bps=30_000),
    GameTypeConfigIn(game_type="ODD_EVEN", odds_bps=19_000),
]


@pytest.fixture
def ledger(emitter: EventEmitter, locks: KeyedLocks) -> LedgerStore:
    return LedgerStore(emitter=emitter, locks=locks)


@pytest.fixture
def catalogue() -> MarketCatalogueService:
    return MarketCatalogueService()


@pytest.fixture
def registry(
    ledger: LedgerStore, emitter: EventEmitter, target_locks: KeyedLocks
) -> BetRegistry:
    return BetRegistry(ledger=ledger, emitter=emitter, locks=target_locks)


@pytest.fixture
def settlement(
    session_factory: async_sessionmaker[AsyncSession],
    ledger: LedgerStore,
    emitter: EventEmitter,
    target_locks: KeyedLocks,
) -> SettlementEngine:
    return SettlementEngine(
        session_factory=session_factory,
        ledger=ledger,
        emitter=emitter,
        locks=target_locks,
        max_parallel=1,
    )


@pytest.fixture
def fund(ledger: LedgerStore, db: AsyncSession) -> Callable[[str, int], Awaitable[None]]:
    """Open an account and seed it with an applied deposit."""

    async def _fund(account_id: str, balance: int) -> None:
        await ledger.open_account(db, account_id)
        if balance:
            await ledger.credit(db, account_id, balance, TransactionKind.DEPOSIT, remarks="seed")

    return _fund


@pytest.fixture
def new_market(
    catalogue: MarketCatalogueService, db: AsyncSession
) -> Callable[[], Awaitable[str]]:
    """Create a market that is OPEN right now (opening time already passed)."""

    async def _create() -> str:
        now = utc_now()
        out = await catalogue.create_market(
            db,
            CreateMarketRequest(
                name="Kalyan",
                opening_time=now - timedelta(minutes=5),
                closing_time=now + timedelta(hours=2),
                game_types=MARKET_ODDS,
            ),
        )
        return out.id

    return _create


@pytest.fixture
def new_option_game(
    catalogue: MarketCatalogueService, db: AsyncSession
) -> Callable[[], Awaitable[str]]:
    async def _create() -> str:
        now = utc_now()
        out = await catalogue.create_option_game(
            db,
            CreateOptionGameRequest(
                title="Cup final",
                team_a="Lions",
                team_b="Tigers",
                opening_time=now - timedelta(minutes=5),
                closing_time=now + timedelta(hours=2),
                odds_bps=19_000,
            ),
        )
        return out.id

    return _create
