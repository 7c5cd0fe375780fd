"""SettlementEngine — declare a result once, then pay every bet exactly once.

Declaration (under the per-target lock, one DB transaction):
    validate result format → target exists → not yet declared → effectively
    CLOSED → conditional UPDATE ... WHERE result_status = 'PENDING'.
    0 rows updated means another caller won the race: AlreadyDeclaredError.

Payout run (after the declaration is committed):
    every PENDING bet of the target is settled in its OWN DB transaction,
    under its account's lock:
        evaluate → UPDATE bets ... WHERE status = 'PENDING' → WINNING_CREDIT
    Bets run concurrently, bounded by a semaphore. A bet whose conditional
    update matches nothing was settled by an earlier run and is skipped.
    A bet that raises is rolled back, logged, reported in failed_bet_ids and
    stays PENDING; resume_settlement() picks it up later.

Events are published only after the corresponding commit.
"""

import asyncio
import logging
from collections import defaultdict

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import settings
from src.nb_account.application.ledger import LedgerStore
from src.nb_account.domain.models import Transaction
from src.nb_betting.domain.models import Bet
from src.nb_betting.domain.repository import BetRepositoryProtocol
from src.nb_betting.infrastructure.persistence import BetRepository
from src.nb_common.database import async_session_factory
from src.nb_common.datetime_utils import utc_now
from src.nb_common.enums import BetStatus, GameType, MarketStatus, TargetType, TransactionKind
from src.nb_common.errors import (
    AlreadyDeclaredError,
    MarketNotFoundError,
    NotClosedError,
    OptionGameNotFoundError,
    ResultNotDeclaredError,
)
from src.nb_common.locks import KeyedLocks, target_locks
from src.nb_events.emitter import EventEmitter, event_emitter
from src.nb_events.events import AccountSettled, DomainEvent, SettlementCompleted
from src.nb_market.domain.models import Market, OptionGame
from src.nb_market.domain.repository import (
    MarketRepositoryProtocol,
    OptionGameRepositoryProtocol,
)
from src.nb_market.infrastructure.persistence import MarketRepository, OptionGameRepository
from src.nb_rules.evaluator import evaluate
from src.nb_rules.result import parse_market_result, parse_option_result
from src.nb_settlement.domain.report import SKIPPED, BetOutcome, SettlementReport

logger = logging.getLogger(__name__)


class SettlementEngine:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        ledger: LedgerStore | None = None,
        bet_repo: BetRepositoryProtocol | None = None,
        market_repo: MarketRepositoryProtocol | None = None,
        option_repo: OptionGameRepositoryProtocol | None = None,
        emitter: EventEmitter | None = None,
        locks: KeyedLocks | None = None,
        max_parallel: int = settings.SETTLEMENT_MAX_PARALLEL,
    ) -> None:
        self._session_factory = session_factory or async_session_factory
        self._emitter = emitter or event_emitter
        self._ledger = ledger or LedgerStore(emitter=self._emitter)
        self._bets: BetRepositoryProtocol = bet_repo or BetRepository()
        self._markets: MarketRepositoryProtocol = market_repo or MarketRepository()
        self._options: OptionGameRepositoryProtocol = option_repo or OptionGameRepository()
        self._locks = locks or target_locks
        self._max_parallel = max(1, max_parallel)

    # ------------------------------------------------------------------
    # Declaration
    # ------------------------------------------------------------------

    async def declare_result(
        self, target_type: TargetType, target_id: str, result_value: str
    ) -> SettlementReport:
        if target_type is TargetType.MARKET:
            return await self.declare_market_result(target_id, result_value)
        return await self.declare_option_result(target_id, result_value)

    async def declare_market_result(self, market_id: str, result_value: str) -> SettlementReport:
        value = parse_market_result(result_value)
        async with self._locks.hold(f"{TargetType.MARKET.value}:{market_id}"):
            async with self._session_factory() as db:
                try:
                    market = await self._markets.get_market(db, market_id)
                    if market is None:
                        raise MarketNotFoundError(market_id)
                    self._check_declarable(market, market_id)
                    if not await self._markets.declare_result(db, market_id, value, utc_now()):
                        raise AlreadyDeclaredError(market_id)
                    await db.commit()
                except Exception:
                    await db.rollback()
                    raise
        logger.info("Result declared: market=%s result=%s", market_id, value)
        return await self._settle_target(TargetType.MARKET, market_id, value, resumed=False)

    async def declare_option_result(
        self, option_game_id: str, winning_team: str
    ) -> SettlementReport:
        team = parse_option_result(winning_team).value
        async with self._locks.hold(f"{TargetType.OPTION_GAME.value}:{option_game_id}"):
            async with self._session_factory() as db:
                try:
                    game = await self._options.get_option_game(db, option_game_id)
                    if game is None:
                        raise OptionGameNotFoundError(option_game_id)
                    self._check_declarable(game, option_game_id)
                    if not await self._options.declare_result(
                        db, option_game_id, team, utc_now()
                    ):
                        raise AlreadyDeclaredError(option_game_id)
                    await db.commit()
                except Exception:
                    await db.rollback()
                    raise
        logger.info("Result declared: option_game=%s winner=%s", option_game_id, team)
        return await self._settle_target(
            TargetType.OPTION_GAME, option_game_id, team, resumed=False
        )

    @staticmethod
    def _check_declarable(target: Market | OptionGame, target_id: str) -> None:
        if target.is_declared:
            raise AlreadyDeclaredError(target_id)
        if target.effective_status(utc_now()) is not MarketStatus.CLOSED:
            raise NotClosedError(target_id)

    # ------------------------------------------------------------------
    # Resume
    # ------------------------------------------------------------------

    async def resume_settlement(self, target_type: TargetType, target_id: str) -> SettlementReport:
        """Re-run the payout for a declared target; settled bets are skipped."""
        async with self._session_factory() as db:
            result_value = await self._declared_result(db, target_type, target_id)
        logger.info(
            "Resuming settlement: %s=%s result=%s", target_type.value, target_id, result_value
        )
        return await self._settle_target(target_type, target_id, result_value, resumed=True)

    async def _declared_result(
        self, db: AsyncSession, target_type: TargetType, target_id: str
    ) -> str:
        if target_type is TargetType.MARKET:
            market = await self._markets.get_market(db, target_id)
            if market is None:
                raise MarketNotFoundError(target_id)
            if not market.is_declared or market.result_value is None:
                raise ResultNotDeclaredError(target_id)
            return market.result_value
        game = await self._options.get_option_game(db, target_id)
        if game is None:
            raise OptionGameNotFoundError(target_id)
        if not game.is_declared or game.winning_team is None:
            raise ResultNotDeclaredError(target_id)
        return game.winning_team

    # ------------------------------------------------------------------
    # Payout run
    # ------------------------------------------------------------------

    async def _settle_target(
        self, target_type: TargetType, target_id: str, result_value: str, resumed: bool
    ) -> SettlementReport:
        async with self._session_factory() as db:
            bets = await self._bets.list_bets_by_target(
                db, target_type.value, target_id, BetStatus.PENDING.value
            )

        report = SettlementReport(
            target_type=target_type.value,
            target_id=target_id,
            result_value=result_value,
            resumed=resumed,
        )
        credits: list[Transaction] = []
        semaphore = asyncio.Semaphore(self._max_parallel)

        async def _run(bet: Bet) -> None:
            async with semaphore:
                try:
                    outcome, txn = await self._settle_bet(bet, result_value)
                except Exception:
                    logger.exception(
                        "Settlement failed for bet %s (%s=%s); left PENDING",
                        bet.id, target_type.value, target_id,
                    )
                    report.failed_bet_ids.append(bet.id)
                    return
                report.record(outcome)
                if txn is not None:
                    credits.append(txn)

        await asyncio.gather(*(_run(bet) for bet in bets))

        logger.info(
            "Settlement %s %s=%s: won=%d lost=%d skipped=%d failed=%d paid=%d",
            "resumed" if resumed else "run",
            target_type.value, target_id,
            report.won, report.lost, report.skipped, report.failed, report.total_paid,
        )
        await self._publish(report, credits)
        return report

    async def _settle_bet(
        self, bet: Bet, result_value: str
    ) -> tuple[BetOutcome, Transaction | None]:
        """One bet, one DB transaction, under the bet owner's account lock."""
        won = evaluate(GameType(bet.game_type), bet.selection, result_value)
        status = BetStatus.WON if won else BetStatus.LOST

        async with self._session_factory() as db:
            async with self._ledger.account_lock(bet.account_id):
                try:
                    if not await self._bets.mark_settled(db, bet.id, status.value, utc_now()):
                        await db.rollback()
                        return BetOutcome(bet.id, bet.account_id, SKIPPED, 0), None
                    txn: Transaction | None = None
                    if won:
                        _, txn = await self._ledger.apply_credit(
                            db,
                            bet.account_id,
                            bet.potential_winning,
                            TransactionKind.WINNING_CREDIT,
                            reference_type="bet",
                            reference_id=bet.id,
                            remarks=f"{bet.game_type} {bet.selection} won on {result_value}",
                        )
                    await db.commit()
                except Exception:
                    await db.rollback()
                    raise

        payout = bet.potential_winning if won else 0
        return BetOutcome(bet.id, bet.account_id, status.value, payout), txn

    async def _publish(self, report: SettlementReport, credits: list[Transaction]) -> None:
        """Runs after every commit: a failure here is logged, never raised."""
        events: list[DomainEvent] = [self._ledger.balance_event(txn) for txn in credits]
        try:
            events.extend(await self._account_summaries(report))
        except Exception:
            logger.exception(
                "Account summaries skipped for %s=%s; settlement is committed",
                report.target_type, report.target_id,
            )
        events.append(
            SettlementCompleted(
                target_type=report.target_type,
                target_id=report.target_id,
                result_value=report.result_value,
                won=report.won,
                lost=report.lost,
                failed=report.failed,
                total_paid=report.total_paid,
            )
        )
        self._emitter.publish_all(events)

    async def _account_summaries(self, report: SettlementReport) -> list[DomainEvent]:
        by_account: dict[str, list[BetOutcome]] = defaultdict(list)
        for outcome in report.outcomes:
            if outcome.status != SKIPPED:
                by_account[outcome.account_id].append(outcome)
        if not by_account:
            return []

        summaries: list[DomainEvent] = []
        async with self._session_factory() as db:
            for account_id, outcomes in by_account.items():
                account = await self._ledger.get_account(db, account_id)
                summaries.append(
                    AccountSettled(
                        account_id=account_id,
                        target_type=report.target_type,
                        target_id=report.target_id,
                        result_value=report.result_value,
                        outcomes=tuple(o.to_dict() for o in outcomes),
                        total_paid=sum(o.payout for o in outcomes),
                        new_balance=account.balance,
                    )
                )
        return summaries
