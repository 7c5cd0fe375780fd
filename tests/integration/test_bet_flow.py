"""Bet placement against a real database: stake debit and bet row commit together."""

from collections.abc import Awaitable, Callable
from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from src.nb_account.application.ledger import LedgerStore
from src.nb_betting.application.service import BetRegistry
from src.nb_common.datetime_utils import utc_now
from src.nb_common.enums import GameType, TargetType
from src.nb_common.errors import (
    AlreadyDeclaredError,
    ForbiddenError,
    GameTypeUnavailableError,
    InsufficientFundsError,
    InvalidMarketConfigError,
    InvalidSelectionError,
    MarketClosedError,
)
from src.nb_market.application.schemas import (
    CreateMarketRequest,
    GameTypeConfigIn,
    UpdateGameTypeRequest,
)
from src.nb_market.application.service import MarketCatalogueService
from src.nb_settlement.application.engine import SettlementEngine

Fund = Callable[[str, int], Awaitable[None]]
Create = Callable[[], Awaitable[str]]


class TestPlaceMarketBet:
    async def test_debit_and_bet_are_linked(
        self,
        registry: BetRegistry,
        ledger: LedgerStore,
        db: AsyncSession,
        fund: Fund,
        new_market: Create,
    ) -> None:
        await fund("p1", 1_000)
        market_id = await new_market()

        bet = await registry.place_market_bet(db, "p1", market_id, GameType.JODI, "45", 100)

        assert (await ledger.get_account(db, "p1")).balance == 900
        debit = await ledger.get_transaction(db, bet.debit_transaction_id)  # type: ignore[arg-type]
        assert debit.kind == "BET_DEBIT"
        assert debit.amount == -100
        assert debit.reference_id == bet.id

        stored = await registry.get_bet(db, bet.id, account_id="p1")
        assert stored.status == "PENDING"
        assert stored.odds_bps == 900_000
        assert stored.potential_winning == 9_000

    async def test_insufficient_funds_creates_no_bet(
        self,
        registry: BetRegistry,
        ledger: LedgerStore,
        db: AsyncSession,
        fund: Fund,
        new_market: Create,
    ) -> None:
        await fund("p1", 50)
        market_id = await new_market()

        with pytest.raises(InsufficientFundsError):
            await registry.place_market_bet(db, "p1", market_id, GameType.JODI, "45", 100)

        assert await registry.list_bets_by_account(db, "p1") == []
        assert (await ledger.get_account(db, "p1")).balance == 50
        assert (await ledger.reconcile(db, "p1")).consistent

    async def test_closed_market_rejects_bets(
        self,
        registry: BetRegistry,
        catalogue: MarketCatalogueService,
        db: AsyncSession,
        fund: Fund,
        new_market: Create,
    ) -> None:
        await fund("p1", 1_000)
        market_id = await new_market()
        await catalogue.close_market(db, market_id)

        with pytest.raises(MarketClosedError):
            await registry.place_market_bet(db, "p1", market_id, GameType.JODI, "45", 100)

    async def test_upcoming_market_rejects_bets(
        self,
        registry: BetRegistry,
        catalogue: MarketCatalogueService,
        db: AsyncSession,
        fund: Fund,
    ) -> None:
        await fund("p1", 1_000)
        now = utc_now()
        market = await catalogue.create_market(
            db,
            CreateMarketRequest(
                name="Later",
                opening_time=now + timedelta(hours=1),
                closing_time=now + timedelta(hours=3),
                game_types=[GameTypeConfigIn(game_type="JODI", odds_bps=900_000)],
            ),
        )

        with pytest.raises(MarketClosedError):
            await registry.place_market_bet(db, "p1", market.id, GameType.JODI, "45", 100)

        await catalogue.open_market(db, market.id)
        bet = await registry.place_market_bet(db, "p1", market.id, GameType.JODI, "45", 100)
        assert bet.market_id == market.id

    async def test_inactive_game_type(
        self,
        registry: BetRegistry,
        catalogue: MarketCatalogueService,
        db: AsyncSession,
        fund: Fund,
    ) -> None:
        await fund("p1", 1_000)
        now = utc_now()
        market = await catalogue.create_market(
            db,
            CreateMarketRequest(
                name="Partial",
                opening_time=now - timedelta(minutes=1),
                closing_time=now + timedelta(hours=1),
                game_types=[
                    GameTypeConfigIn(game_type="JODI", odds_bps=900_000),
                    GameTypeConfigIn(game_type="CROSS", odds_bps=30_000, is_active=False),
                ],
            ),
        )

        with pytest.raises(GameTypeUnavailableError) as exc:
            await registry.place_market_bet(db, "p1", market.id, GameType.CROSS, "1,2", 100)
        assert exc.value.code == 4002

    async def test_invalid_selection(
        self, registry: BetRegistry, db: AsyncSession, fund: Fund, new_market: Create
    ) -> None:
        await fund("p1", 1_000)
        market_id = await new_market()

        with pytest.raises(InvalidSelectionError):
            await registry.place_market_bet(db, "p1", market_id, GameType.HURF, "Left: 55", 100)

    async def test_hurf_both_defaults_to_factor(
        self, registry: BetRegistry, db: AsyncSession, fund: Fund, new_market: Create
    ) -> None:
        await fund("p1", 1_000)
        market_id = await new_market()

        bet = await registry.place_market_bet(db, "p1", market_id, GameType.HURF, "Both: 52", 100)

        assert bet.odds_bps == 720_000
        assert bet.potential_winning == 7_200


class TestPlaceOptionBet:
    async def test_option_bet(
        self,
        registry: BetRegistry,
        ledger: LedgerStore,
        db: AsyncSession,
        fund: Fund,
        new_option_game: Create,
    ) -> None:
        await fund("p1", 1_000)
        game_id = await new_option_game()

        bet = await registry.place_option_bet(db, "p1", game_id, "a", 500)

        assert bet.selection == "A"
        assert bet.potential_winning == 950
        assert (await ledger.get_account(db, "p1")).balance == 500
        listed = await registry.list_bets_by_target(db, TargetType.OPTION_GAME, game_id)
        assert [b.id for b in listed] == [bet.id]


class TestReads:
    async def test_other_players_bet_is_forbidden(
        self, registry: BetRegistry, db: AsyncSession, fund: Fund, new_market: Create
    ) -> None:
        await fund("p1", 1_000)
        market_id = await new_market()
        bet = await registry.place_market_bet(db, "p1", market_id, GameType.ODD_EVEN, "odd", 100)

        with pytest.raises(ForbiddenError):
            await registry.get_bet(db, bet.id, account_id="p2")
        assert (await registry.get_bet(db, bet.id)).id == bet.id

    async def test_list_by_account_filters_status(
        self, registry: BetRegistry, db: AsyncSession, fund: Fund, new_market: Create
    ) -> None:
        await fund("p1", 1_000)
        market_id = await new_market()
        await registry.place_market_bet(db, "p1", market_id, GameType.JODI, "11", 100)
        await registry.place_market_bet(db, "p1", market_id, GameType.CROSS, "1,2,3", 100)

        assert len(await registry.list_bets_by_account(db, "p1", status="PENDING")) == 2
        assert await registry.list_bets_by_account(db, "p1", status="WON") == []


class TestGameTypeUpdates:
    async def test_new_odds_apply_to_new_bets_only(
        self,
        registry: BetRegistry,
        catalogue: MarketCatalogueService,
        db: AsyncSession,
        fund: Fund,
        new_market: Create,
    ) -> None:
        await fund("p1", 1_000)
        market_id = await new_market()
        before = await registry.place_market_bet(db, "p1", market_id, GameType.JODI, "45", 100)

        out = await catalogue.update_game_type_config(
            db, market_id, GameType.JODI, UpdateGameTypeRequest(odds_bps=950_000)
        )

        jodi = next(g for g in out.game_types if g.game_type == "JODI")
        assert jodi.odds_bps == 950_000
        after = await registry.place_market_bet(db, "p1", market_id, GameType.JODI, "45", 100)
        assert after.potential_winning == 9_500
        assert (await registry.get_bet(db, before.id)).potential_winning == 9_000

    async def test_deactivated_game_type_refuses_bets(
        self,
        registry: BetRegistry,
        catalogue: MarketCatalogueService,
        db: AsyncSession,
        fund: Fund,
        new_market: Create,
    ) -> None:
        await fund("p1", 1_000)
        market_id = await new_market()

        await catalogue.update_game_type_config(
            db, market_id, GameType.HURF, UpdateGameTypeRequest(is_active=False)
        )

        with pytest.raises(GameTypeUnavailableError):
            await registry.place_market_bet(db, "p1", market_id, GameType.HURF, "0-5", 100)
        market = await catalogue.get_market(db, market_id)
        hurf = next(g for g in market.game_types if g.game_type == "HURF")
        assert hurf.is_active is False
        assert hurf.both_odds_bps == 720_000

        await catalogue.update_game_type_config(
            db, market_id, GameType.HURF, UpdateGameTypeRequest(is_active=True)
        )
        bet = await registry.place_market_bet(db, "p1", market_id, GameType.HURF, "0-5", 100)
        assert bet.odds_bps == 90_000

    async def test_both_odds_only_for_hurf(
        self, catalogue: MarketCatalogueService, db: AsyncSession, new_market: Create
    ) -> None:
        market_id = await new_market()
        with pytest.raises(InvalidMarketConfigError):
            await catalogue.update_game_type_config(
                db, market_id, GameType.JODI, UpdateGameTypeRequest(both_odds_bps=800_000)
            )
        with pytest.raises(InvalidMarketConfigError):
            await catalogue.update_game_type_config(
                db, market_id, GameType.OPTION, UpdateGameTypeRequest(is_active=False)
            )

    async def test_declared_market_is_frozen(
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
            await catalogue.update_game_type_config(
                db, market_id, GameType.JODI, UpdateGameTypeRequest(odds_bps=100_000)
            )
