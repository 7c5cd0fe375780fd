"""BetRegistry — validate and place bets; read them back.

Placement is one atomic unit. Under the target lock and then the player's
account lock, in ONE DB transaction:
  1. re-check the target still takes bets (row-locking conditional UPDATE);
     a close or declaration that landed after validation raises MarketClosedError
  2. debit the stake (BET_DEBIT, reference = bet id), fails on insufficient funds
  3. insert the bet row pointing at that debit
  4. commit
Any failure rolls back both, so a bet without its debit (or a debit without
its bet) can never be observed. Events go out only after the commit.

All validation happens before the lock is taken, in this order:
amount → target exists and is open → game type offered → selection grammar.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.nb_account.application.ledger import LedgerStore
from src.nb_betting.domain.models import Bet
from src.nb_betting.domain.odds import resolve_odds_bps, resolve_option_odds_bps
from src.nb_betting.domain.repository import BetRepositoryProtocol
from src.nb_betting.infrastructure.persistence import BetRepository
from src.nb_common.datetime_utils import utc_now
from src.nb_common.enums import BetStatus, GameType, TargetType, TransactionKind
from src.nb_common.errors import (
    BetNotFoundError,
    ForbiddenError,
    GameTypeUnavailableError,
    MarketClosedError,
    MarketNotFoundError,
    OptionGameNotFoundError,
)
from src.nb_common.ids import new_id
from src.nb_common.locks import KeyedLocks, target_locks
from src.nb_common.money import calculate_payout, validate_amount
from src.nb_events.emitter import EventEmitter, event_emitter
from src.nb_events.events import BetPlaced
from src.nb_market.domain.repository import (
    MarketRepositoryProtocol,
    OptionGameRepositoryProtocol,
)
from src.nb_market.infrastructure.persistence import MarketRepository, OptionGameRepository
from src.nb_rules.selection import parse_selection

logger = logging.getLogger(__name__)


class BetRegistry:
    def __init__(
        self,
        ledger: LedgerStore | None = None,
        bet_repo: BetRepositoryProtocol | None = None,
        market_repo: MarketRepositoryProtocol | None = None,
        option_repo: OptionGameRepositoryProtocol | None = None,
        emitter: EventEmitter | None = None,
        locks: KeyedLocks | None = None,
    ) -> None:
        self._ledger = ledger or LedgerStore()
        self._bets: BetRepositoryProtocol = bet_repo or BetRepository()
        self._markets: MarketRepositoryProtocol = market_repo or MarketRepository()
        self._options: OptionGameRepositoryProtocol = option_repo or OptionGameRepository()
        self._emitter = emitter or event_emitter
        self._target_locks = locks or target_locks

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    async def place_market_bet(
        self,
        db: AsyncSession,
        account_id: str,
        market_id: str,
        game_type: GameType,
        selection: str,
        amount: int,
        now: datetime | None = None,
    ) -> Bet:
        validate_amount(amount)
        now = now or utc_now()
        market = await self._markets.get_market(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        if not market.accepts_bets(now):
            raise MarketClosedError(market_id)
        config = market.config_for(game_type)
        if config is None or not config.is_active:
            raise GameTypeUnavailableError(game_type.value, market_id)
        parsed = parse_selection(game_type, selection)
        odds_bps = resolve_odds_bps(config, parsed)

        bet = Bet(
            id=new_id("bet"),
            account_id=account_id,
            target_type=TargetType.MARKET.value,
            market_id=market_id,
            option_game_id=None,
            game_type=game_type.value,
            selection=parsed.encode(),
            amount=amount,
            odds_bps=odds_bps,
            potential_winning=calculate_payout(amount, odds_bps),
            status=BetStatus.PENDING.value,
            created_at=now,
        )
        return await self._commit_bet(db, bet)

    async def place_option_bet(
        self,
        db: AsyncSession,
        account_id: str,
        option_game_id: str,
        selection: str,
        amount: int,
        now: datetime | None = None,
    ) -> Bet:
        validate_amount(amount)
        now = now or utc_now()
        game = await self._options.get_option_game(db, option_game_id)
        if game is None:
            raise OptionGameNotFoundError(option_game_id)
        if not game.accepts_bets(now):
            raise MarketClosedError(option_game_id)
        parsed = parse_selection(GameType.OPTION, selection)
        odds_bps = resolve_option_odds_bps(game)

        bet = Bet(
            id=new_id("bet"),
            account_id=account_id,
            target_type=TargetType.OPTION_GAME.value,
            market_id=None,
            option_game_id=option_game_id,
            game_type=GameType.OPTION.value,
            selection=parsed.encode(),
            amount=amount,
            odds_bps=odds_bps,
            potential_winning=calculate_payout(amount, odds_bps),
            status=BetStatus.PENDING.value,
            created_at=now,
        )
        return await self._commit_bet(db, bet)

    async def _commit_bet(self, db: AsyncSession, bet: Bet) -> Bet:
        async with self._target_locks.hold(f"{bet.target_type}:{bet.target_id}"):
            async with self._ledger.account_lock(bet.account_id):
                try:
                    if not await self._hold_target_open(db, bet):
                        raise MarketClosedError(bet.target_id)
                    account, txn = await self._ledger.apply_debit(
                        db,
                        bet.account_id,
                        bet.amount,
                        TransactionKind.BET_DEBIT,
                        reference_type="bet",
                        reference_id=bet.id,
                        remarks=f"{bet.game_type} {bet.selection} on {bet.target_id}",
                    )
                    bet.debit_transaction_id = txn.id
                    await self._bets.insert_bet(db, bet)
                    await db.commit()
                except Exception:
                    await db.rollback()
                    raise

        logger.info(
            "Bet placed: %s account=%s %s %s=%s amount=%d potential=%d",
            bet.id, bet.account_id, bet.target_id, bet.game_type, bet.selection,
            bet.amount, bet.potential_winning,
        )
        self._emitter.publish_all(
            [
                self._ledger.balance_event(txn),
                BetPlaced(
                    account_id=bet.account_id,
                    bet_id=bet.id,
                    target_type=bet.target_type,
                    target_id=bet.target_id,
                    game_type=bet.game_type,
                    selection=bet.selection,
                    amount=bet.amount,
                    potential_winning=bet.potential_winning,
                    new_balance=account.balance,
                ),
            ]
        )
        return bet

    async def _hold_target_open(self, db: AsyncSession, bet: Bet) -> bool:
        now = bet.created_at or utc_now()
        if bet.target_type == TargetType.MARKET.value:
            return await self._markets.hold_open(db, bet.target_id, now)
        return await self._options.hold_open(db, bet.target_id, now)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_bet(self, db: AsyncSession, bet_id: str, account_id: str | None = None) -> Bet:
        """account_id restricts the lookup to the caller's own bets."""
        bet = await self._bets.get_bet(db, bet_id)
        if bet is None:
            raise BetNotFoundError(bet_id)
        if account_id is not None and bet.account_id != account_id:
            raise ForbiddenError("Not your bet")
        return bet

    async def list_bets_by_account(
        self, db: AsyncSession, account_id: str, status: str | None = None, limit: int = 50
    ) -> list[Bet]:
        return await self._bets.list_bets_by_account(db, account_id, status, limit)

    async def list_bets_by_target(
        self,
        db: AsyncSession,
        target_type: TargetType,
        target_id: str,
        status: str | None = None,
    ) -> list[Bet]:
        return await self._bets.list_bets_by_target(db, target_type.value, target_id, status)
