"""End-to-end settlement on a real database.

Scenarios mirror the operator playbook: place bets on an open market, close
it, declare the two-digit result, check every balance and bet status.
"""

import asyncio
from collections.abc import Awaitable, Callable

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.nb_account.application.ledger import LedgerStore
from src.nb_betting.application.service import BetRegistry
from src.nb_common.enums import GameType, TargetType
from src.nb_common.errors import (
    AlreadyDeclaredError,
    InvalidResultError,
    MarketClosedError,
    NotClosedError,
    ResultNotDeclaredError,
)
from src.nb_common.locks import KeyedLocks
from src.nb_events.emitter import EventEmitter
from src.nb_events.events import AccountSettled, SettlementCompleted
from src.nb_market.application.service import MarketCatalogueService
from src.nb_market.domain.models import Market, OptionGame
from src.nb_market.infrastructure.persistence import MarketRepository, OptionGameRepository
from src.nb_settlement.application.engine import SettlementEngine
from src.nb_settlement.domain.report import SettlementReport

Fund = Callable[[str, int], Awaitable[None]]
Create = Callable[[], Awaitable[str]]


async def _balance(ledger: LedgerStore, db: AsyncSession, account_id: str) -> int:
    return (await ledger.get_account(db, account_id)).balance


class TestMarketScenarios:
    async def test_jodi_exact_match_pays_odds(
        self,
        registry: BetRegistry,
        catalogue: MarketCatalogueService,
        settlement: SettlementEngine,
        ledger: LedgerStore,
        db: AsyncSession,
        fund: Fund,
        new_market: Create,
    ) -> None:
        await fund("p1", 1_000)
        await fund("p2", 1_000)
        market_id = await new_market()
        winner = await registry.place_market_bet(db, "p1", market_id, GameType.JODI, "45", 100)
        loser = await registry.place_market_bet(db, "p2", market_id, GameType.JODI, "54", 100)
        await catalogue.close_market(db, market_id)

        report = await settlement.declare_result(TargetType.MARKET, market_id, "45")

        assert (report.won, report.lost, report.failed) == (1, 1, 0)
        assert report.total_paid == 9_000
        assert await _balance(ledger, db, "p1") == 9_900
        assert await _balance(ledger, db, "p2") == 900
        assert (await registry.get_bet(db, winner.id)).status == "WON"
        assert (await registry.get_bet(db, loser.id)).status == "LOST"
        assert (await registry.get_bet(db, loser.id)).settled_at is not None
        assert (await ledger.reconcile(db, "p1")).consistent

    async def test_hurf_left_digit(
        self,
        registry: BetRegistry,
        catalogue: MarketCatalogueService,
        settlement: SettlementEngine,
        ledger: LedgerStore,
        db: AsyncSession,
        fund: Fund,
        new_market: Create,
    ) -> None:
        await fund("p1", 1_000)
        market_id = await new_market()
        left = await registry.place_market_bet(db, "p1", market_id, GameType.HURF, "Left: 5", 100)
        right = await registry.place_market_bet(db, "p1", market_id, GameType.HURF, "Right: 5", 100)
        await catalogue.close_market(db, market_id)

        report = await settlement.declare_result(TargetType.MARKET, market_id, "52")

        statuses = {o.bet_id: o.status for o in report.outcomes}
        assert statuses == {left.id: "WON", right.id: "LOST"}
        assert await _balance(ledger, db, "p1") == 800 + 900

    async def test_odd_even_loses_on_even_result(
        self,
        registry: BetRegistry,
        catalogue: MarketCatalogueService,
        settlement: SettlementEngine,
        ledger: LedgerStore,
        db: AsyncSession,
        fund: Fund,
        new_market: Create,
    ) -> None:
        await fund("p1", 1_000)
        market_id = await new_market()
        bet = await registry.place_market_bet(db, "p1", market_id, GameType.ODD_EVEN, "odd", 200)
        await catalogue.close_market(db, market_id)

        report = await settlement.declare_result(TargetType.MARKET, market_id, "46")

        assert report.lost == 1
        assert report.total_paid == 0
        assert (await registry.get_bet(db, bet.id)).status == "LOST"
        assert await _balance(ledger, db, "p1") == 800

    async def test_cross_any_digit(
        self,
        registry: BetRegistry,
        catalogue: MarketCatalogueService,
        settlement: SettlementEngine,
        ledger: LedgerStore,
        db: AsyncSession,
        fund: Fund,
        new_market: Create,
    ) -> None:
        await fund("p1", 1_000)
        market_id = await new_market()
        await registry.place_market_bet(db, "p1", market_id, GameType.CROSS, "1,2,3", 100)
        await registry.place_market_bet(db, "p1", market_id, GameType.CROSS, "7,8", 100)
        await catalogue.close_market(db, market_id)

        report = await settlement.declare_result(TargetType.MARKET, market_id, "52")

        assert (report.won, report.lost) == (1, 1)
        assert await _balance(ledger, db, "p1") == 800 + 300


class TestOptionGameScenario:
    async def test_winning_team_paid(
        self,
        registry: BetRegistry,
        catalogue: MarketCatalogueService,
        settlement: SettlementEngine,
        ledger: LedgerStore,
        db: AsyncSession,
        fund: Fund,
        new_option_game: Create,
    ) -> None:
        await fund("p1", 1_000)
        await fund("p2", 1_000)
        game_id = await new_option_game()
        await registry.place_option_bet(db, "p1", game_id, "A", 500)
        await registry.place_option_bet(db, "p2", game_id, "B", 500)
        await catalogue.close_option_game(db, game_id)

        report = await settlement.declare_result(TargetType.OPTION_GAME, game_id, "a")

        assert report.result_value == "A"
        assert await _balance(ledger, db, "p1") == 500 + 950
        assert await _balance(ledger, db, "p2") == 500
        game = await catalogue.get_option_game(db, game_id)
        assert game.result_status == "DECLARED"
        assert game.winning_team == "A"


class TestDeclarationGuards:
    async def test_declare_twice(
        self,
        catalogue: MarketCatalogueService,
        settlement: SettlementEngine,
        db: AsyncSession,
        new_market: Create,
    ) -> None:
        market_id = await new_market()
        await catalogue.close_market(db, market_id)
        await settlement.declare_result(TargetType.MARKET, market_id, "45")

        with pytest.raises(AlreadyDeclaredError):
            await settlement.declare_result(TargetType.MARKET, market_id, "46")

        market = await catalogue.get_market(db, market_id)
        assert market.result_value == "45"

    async def test_declare_on_open_market(
        self, settlement: SettlementEngine, new_market: Create
    ) -> None:
        market_id = await new_market()
        with pytest.raises(NotClosedError):
            await settlement.declare_result(TargetType.MARKET, market_id, "45")

    @pytest.mark.parametrize("bad", ["4", "456", "ab", "", "\u0664\u0665"])
    async def test_invalid_result_changes_nothing(
        self,
        catalogue: MarketCatalogueService,
        settlement: SettlementEngine,
        db: AsyncSession,
        new_market: Create,
        bad: str,
    ) -> None:
        market_id = await new_market()
        await catalogue.close_market(db, market_id)

        with pytest.raises(InvalidResultError):
            await settlement.declare_result(TargetType.MARKET, market_id, bad)

        market = await catalogue.get_market(db, market_id)
        assert market.result_status == "PENDING"
        assert market.result_value is None

    async def test_declared_market_cannot_reopen(
        self,
        catalogue: MarketCatalogueService,
        settlement: SettlementEngine,
        db: AsyncSession,
        new_market: Create,
    ) -> None:
        market_id = await new_market()
        await catalogue.close_market(db, market_id)
        await settlement.declare_result(TargetType.MARKET, market_id, "00")

        with pytest.raises(AlreadyDeclaredError):
            await catalogue.open_market(db, market_id)

    async def test_resume_requires_declaration(
        self, settlement: SettlementEngine, new_market: Create
    ) -> None:
        market_id = await new_market()
        with pytest.raises(ResultNotDeclaredError):
            await settlement.resume_settlement(TargetType.MARKET, market_id)


class TestResume:
    async def test_failed_bet_resumed_without_double_credit(
        self,
        registry: BetRegistry,
        catalogue: MarketCatalogueService,
        settlement: SettlementEngine,
        ledger: LedgerStore,
        db: AsyncSession,
        fund: Fund,
        new_market: Create,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        await fund("p1", 1_000)
        await fund("p2", 1_000)
        market_id = await new_market()
        await registry.place_market_bet(db, "p1", market_id, GameType.JODI, "45", 100)
        stuck = await registry.place_market_bet(db, "p2", market_id, GameType.JODI, "45", 100)
        await catalogue.close_market(db, market_id)

        real_credit = ledger.apply_credit

        async def _flaky_credit(  # type: ignore[no-untyped-def]
            session, account_id, *args, **kwargs
        ):
            if account_id == "p2":
                raise ConnectionError("simulated crash")
            return await real_credit(session, account_id, *args, **kwargs)

        monkeypatch.setattr(ledger, "apply_credit", _flaky_credit)
        first = await settlement.declare_result(TargetType.MARKET, market_id, "45")

        assert first.failed_bet_ids == [stuck.id]
        assert not first.complete
        assert (await registry.get_bet(db, stuck.id)).status == "PENDING"
        assert await _balance(ledger, db, "p2") == 900

        monkeypatch.setattr(ledger, "apply_credit", real_credit)
        resumed = await settlement.resume_settlement(TargetType.MARKET, market_id)

        assert resumed.resumed
        assert [o.bet_id for o in resumed.outcomes] == [stuck.id]
        assert resumed.total_paid == 9_000
        assert await _balance(ledger, db, "p1") == 9_900
        assert await _balance(ledger, db, "p2") == 9_900

        again = await settlement.resume_settlement(TargetType.MARKET, market_id)
        assert again.outcomes == []
        assert await _balance(ledger, db, "p2") == 9_900
        assert (await ledger.reconcile(db, "p2")).consistent


class TestEvents:
    async def test_settlement_events_after_commit(
        self,
        registry: BetRegistry,
        catalogue: MarketCatalogueService,
        settlement: SettlementEngine,
        emitter: EventEmitter,
        db: AsyncSession,
        fund: Fund,
        new_market: Create,
    ) -> None:
        await fund("p1", 1_000)
        market_id = await new_market()
        await registry.place_market_bet(db, "p1", market_id, GameType.JODI, "45", 100)
        await registry.place_market_bet(db, "p1", market_id, GameType.JODI, "99", 100)
        await catalogue.close_market(db, market_id)

        await settlement.declare_result(TargetType.MARKET, market_id, "45")

        published = emitter.published  # type: ignore[attr-defined]
        settled = [e for e in published if isinstance(e, AccountSettled)]
        completed = [e for e in published if isinstance(e, SettlementCompleted)]
        assert len(settled) == 1
        assert settled[0].total_paid == 9_000
        assert settled[0].new_balance == 800 + 9_000
        assert len(settled[0].outcomes) == 2
        assert completed[0].won == 1
        assert completed[0].lost == 1
        assert emitter.names()[-1] == "settlement.completed"  # type: ignore[attr-defined]

    async def test_summary_lookup_failure_still_returns_report(
        self,
        registry: BetRegistry,
        catalogue: MarketCatalogueService,
        settlement: SettlementEngine,
        ledger: LedgerStore,
        emitter: EventEmitter,
        db: AsyncSession,
        fund: Fund,
        new_market: Create,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        await fund("p1", 1_000)
        market_id = await new_market()
        await registry.place_market_bet(db, "p1", market_id, GameType.JODI, "45", 100)
        await catalogue.close_market(db, market_id)

        async def _broken_lookup(*args, **kwargs):  # type: ignore[no-untyped-def]
            raise ConnectionError("replica down")

        monkeypatch.setattr(ledger, "get_account", _broken_lookup)
        report = await settlement.declare_result(TargetType.MARKET, market_id, "45")
        monkeypatch.undo()

        assert report.won == 1
        assert report.complete
        assert await _balance(ledger, db, "p1") == 900 + 9_000
        names = emitter.names()  # type: ignore[attr-defined]
        assert "settlement.account_settled" not in names
        assert names[-1] == "settlement.completed"


class _ResultLandsAfterRead(MarketRepository):
    """Market repository whose first read is followed by close + declare."""

    def __init__(self, declare: Callable[[str], Awaitable[object]]) -> None:
        self._declare = declare
        self._fired = False

    async def get_market(self, db: AsyncSession, market_id: str) -> Market | None:
        market = await super().get_market(db, market_id)
        if not self._fired:
            self._fired = True
            await self._declare(market_id)
        return market


class _WinnerLandsAfterRead(OptionGameRepository):
    def __init__(self, declare: Callable[[str], Awaitable[object]]) -> None:
        self._declare = declare
        self._fired = False

    async def get_option_game(self, db: AsyncSession, option_game_id: str) -> OptionGame | None:
        game = await super().get_option_game(db, option_game_id)
        if not self._fired:
            self._fired = True
            await self._declare(option_game_id)
        return game


class TestLateBets:
    async def test_bet_validated_before_declaration_is_refused(
        self,
        catalogue: MarketCatalogueService,
        settlement: SettlementEngine,
        ledger: LedgerStore,
        emitter: EventEmitter,
        target_locks: KeyedLocks,
        session_factory: async_sessionmaker[AsyncSession],
        db: AsyncSession,
        fund: Fund,
        new_market: Create,
    ) -> None:
        await fund("p1", 1_000)
        market_id = await new_market()
        reports: list[SettlementReport] = []

        async def _close_and_declare(target_id: str) -> None:
            async with session_factory() as other:
                await catalogue.close_market(other, target_id)
            reports.append(await settlement.declare_result(TargetType.MARKET, target_id, "45"))

        registry = BetRegistry(
            ledger=ledger,
            market_repo=_ResultLandsAfterRead(_close_and_declare),
            emitter=emitter,
            locks=target_locks,
        )

        with pytest.raises(MarketClosedError):
            await registry.place_market_bet(db, "p1", market_id, GameType.JODI, "45", 100)

        assert reports[0].outcomes == []
        assert await registry.list_bets_by_account(db, "p1") == []
        assert await _balance(ledger, db, "p1") == 1_000
        assert (await ledger.reconcile(db, "p1")).consistent
        resumed = await settlement.resume_settlement(TargetType.MARKET, market_id)
        assert resumed.outcomes == []

    async def test_option_bet_validated_before_declaration_is_refused(
        self,
        catalogue: MarketCatalogueService,
        settlement: SettlementEngine,
        ledger: LedgerStore,
        emitter: EventEmitter,
        target_locks: KeyedLocks,
        session_factory: async_sessionmaker[AsyncSession],
        db: AsyncSession,
        fund: Fund,
        new_option_game: Create,
    ) -> None:
        await fund("p1", 1_000)
        game_id = await new_option_game()

        async def _close_and_declare(target_id: str) -> None:
            async with session_factory() as other:
                await catalogue.close_option_game(other, target_id)
            await settlement.declare_result(TargetType.OPTION_GAME, target_id, "A")

        registry = BetRegistry(
            ledger=ledger,
            option_repo=_WinnerLandsAfterRead(_close_and_declare),
            emitter=emitter,
            locks=target_locks,
        )

        with pytest.raises(MarketClosedError):
            await registry.place_option_bet(db, "p1", game_id, "A", 500)

        assert await _balance(ledger, db, "p1") == 1_000
        assert await registry.list_bets_by_target(db, TargetType.OPTION_GAME, game_id) == []


class TestConcurrentDeclaration:
    async def test_exactly_one_declaration_wins(
        self,
        registry: BetRegistry,
        catalogue: MarketCatalogueService,
        settlement: SettlementEngine,
        ledger: LedgerStore,
        db: AsyncSession,
        fund: Fund,
        new_market: Create,
    ) -> None:
        await fund("p1", 1_000)
        market_id = await new_market()
        await registry.place_market_bet(db, "p1", market_id, GameType.JODI, "45", 100)
        await catalogue.close_market(db, market_id)

        results = await asyncio.gather(
            settlement.declare_result(TargetType.MARKET, market_id, "45"),
            settlement.declare_result(TargetType.MARKET, market_id, "45"),
            return_exceptions=True,
        )

        reports = [r for r in results if isinstance(r, SettlementReport)]
        refused = [r for r in results if isinstance(r, AlreadyDeclaredError)]
        assert (len(reports), len(refused)) == (1, 1)
        assert reports[0].won == 1
        assert await _balance(ledger, db, "p1") == 900 + 9_000
        assert (await ledger.reconcile(db, "p1")).consistent
