"""LedgerStore — the only component that mutates account balances.

Two layers:

* ``apply_*`` building blocks mutate the balance and append the matching
  transaction row inside the CALLER's DB transaction. The caller must hold
  the account lock and commit. The Bet Registry uses them to debit a stake
  in the same transaction as the bet insert; the Settlement Engine uses them
  to credit a winning in the same transaction as the bet status update.

* ``debit`` / ``credit`` / ``adjust`` / ``create_pending_transaction`` /
  ``settle_transaction`` are complete units: lock, apply, commit (rollback on
  any error), then publish events. Events are only published after commit.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

from src.nb_account.domain.models import (
    WORKFLOW_KINDS,
    Account,
    Reconciliation,
    Transaction,
    signed_amount,
)
from src.nb_account.domain.repository import LedgerRepositoryProtocol
from src.nb_account.infrastructure.persistence import LedgerRepository
from src.nb_common.datetime_utils import utc_now
from src.nb_common.enums import ApprovalOutcome, TransactionKind, TransactionStatus
from src.nb_common.errors import (
    AccountNotFoundError,
    AlreadySettledError,
    InsufficientFundsError,
    InvalidAmountError,
    InvalidTransactionKindError,
    TransactionNotFoundError,
)
from src.nb_common.locks import KeyedLocks, account_locks
from src.nb_common.money import validate_amount
from src.nb_events.emitter import EventEmitter, event_emitter
from src.nb_events.events import BalanceChanged, DomainEvent, TransactionStatusChanged

logger = logging.getLogger(__name__)


class LedgerStore:
    def __init__(
        self,
        repo: LedgerRepositoryProtocol | None = None,
        emitter: EventEmitter | None = None,
        locks: KeyedLocks | None = None,
    ) -> None:
        self._repo: LedgerRepositoryProtocol = repo or LedgerRepository()
        self._emitter = emitter or event_emitter
        self._locks = locks or account_locks

    # ------------------------------------------------------------------
    # Locking
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def account_lock(self, account_id: str) -> AsyncIterator[None]:
        """Serialize balance mutations on one account (bounded retry)."""
        async with self._locks.hold(account_id):
            yield

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_account(self, db: AsyncSession, account_id: str) -> Account:
        account = await self._repo.get_account(db, account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    async def get_transaction(self, db: AsyncSession, transaction_id: int) -> Transaction:
        txn = await self._repo.get_transaction(db, transaction_id)
        if txn is None:
            raise TransactionNotFoundError(str(transaction_id))
        return txn

    async def list_transactions(
        self,
        db: AsyncSession,
        account_id: str | None,
        status: str | None,
        kind: str | None,
        cursor_id: int | None,
        limit: int,
    ) -> list[Transaction]:
        return await self._repo.list_transactions(
            db, account_id, status, kind, cursor_id, limit
        )

    async def reconcile(self, db: AsyncSession, account_id: str) -> Reconciliation:
        """Replay the ledger and compare with the cached balance."""
        account = await self.get_account(db, account_id)
        replayed, applied = await self._repo.replay_balance(db, account_id)
        rec = Reconciliation(
            account_id=account_id,
            cached_balance=account.balance,
            replayed_balance=replayed,
            applied_transactions=applied,
        )
        if not rec.consistent:
            logger.error(
                "Ledger drift: account=%s cached=%d replayed=%d",
                account_id, account.balance, replayed,
            )
        return rec

    # ------------------------------------------------------------------
    # Building blocks: caller owns the DB transaction and the account lock
    # ------------------------------------------------------------------

    async def apply_debit(
        self,
        db: AsyncSession,
        account_id: str,
        amount: int,
        kind: TransactionKind,
        reference_type: str | None = None,
        reference_id: str | None = None,
        remarks: str | None = None,
        approved_by: str | None = None,
    ) -> tuple[Account, Transaction]:
        validate_amount(amount)
        account = await self._repo.subtract_from_balance(db, account_id, amount)
        if account is None:
            current = await self._repo.get_account(db, account_id)
            if current is None:
                raise AccountNotFoundError(account_id)
            raise InsufficientFundsError(amount, current.balance)
        txn = await self._repo.insert_transaction(
            db,
            Transaction(
                id=0,
                account_id=account_id,
                kind=kind.value,
                amount=-amount,
                status=TransactionStatus.APPROVED.value,
                balance_after=account.balance,
                reference_type=reference_type,
                reference_id=reference_id,
                remarks=remarks,
                approved_by=approved_by,
                settled_at=utc_now(),
            ),
        )
        return account, txn

    async def apply_credit(
        self,
        db: AsyncSession,
        account_id: str,
        amount: int,
        kind: TransactionKind,
        reference_type: str | None = None,
        reference_id: str | None = None,
        remarks: str | None = None,
        approved_by: str | None = None,
    ) -> tuple[Account, Transaction]:
        validate_amount(amount)
        account = await self._repo.add_to_balance(db, account_id, amount)
        if account is None:
            raise AccountNotFoundError(account_id)
        txn = await self._repo.insert_transaction(
            db,
            Transaction(
                id=0,
                account_id=account_id,
                kind=kind.value,
                amount=amount,
                status=TransactionStatus.APPROVED.value,
                balance_after=account.balance,
                reference_type=reference_type,
                reference_id=reference_id,
                remarks=remarks,
                approved_by=approved_by,
                settled_at=utc_now(),
            ),
        )
        return account, txn

    # ------------------------------------------------------------------
    # Complete units
    # ------------------------------------------------------------------

    async def open_account(self, db: AsyncSession, account_id: str) -> Account:
        """Idempotent: opening an existing account returns it unchanged."""
        try:
            account = await self._repo.create_account(db, account_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return account

    async def debit(
        self,
        db: AsyncSession,
        account_id: str,
        amount: int,
        kind: TransactionKind,
        reference_type: str | None = None,
        reference_id: str | None = None,
        remarks: str | None = None,
    ) -> Transaction:
        async with self.account_lock(account_id):
            try:
                _, txn = await self.apply_debit(
                    db, account_id, amount, kind, reference_type, reference_id, remarks
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        self._publish_balance(txn)
        return txn

    async def credit(
        self,
        db: AsyncSession,
        account_id: str,
        amount: int,
        kind: TransactionKind,
        reference_type: str | None = None,
        reference_id: str | None = None,
        remarks: str | None = None,
    ) -> Transaction:
        async with self.account_lock(account_id):
            try:
                _, txn = await self.apply_credit(
                    db, account_id, amount, kind, reference_type, reference_id, remarks
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        self._publish_balance(txn)
        return txn

    async def adjust(
        self,
        db: AsyncSession,
        account_id: str,
        delta: int,
        actor_id: str,
        remarks: str | None = None,
    ) -> Transaction:
        """Manual wallet adjustment by staff; negative delta may not overdraw."""
        if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
            raise InvalidAmountError(delta)
        note = remarks or "Staff adjustment"
        async with self.account_lock(account_id):
            try:
                if delta > 0:
                    _, txn = await self.apply_credit(
                        db, account_id, delta, TransactionKind.ADJUSTMENT,
                        remarks=note, approved_by=actor_id,
                    )
                else:
                    _, txn = await self.apply_debit(
                        db, account_id, -delta, TransactionKind.ADJUSTMENT,
                        remarks=note, approved_by=actor_id,
                    )
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        logger.info("Adjustment: account=%s delta=%d by=%s", account_id, delta, actor_id)
        self._publish_balance(txn)
        return txn

    async def create_pending_transaction(
        self,
        db: AsyncSession,
        account_id: str,
        kind: TransactionKind,
        amount: int,
        remarks: str | None = None,
    ) -> Transaction:
        """Record a deposit/withdrawal request. The balance is NOT touched."""
        if kind not in WORKFLOW_KINDS:
            raise InvalidTransactionKindError(kind.value, "only DEPOSIT/WITHDRAWAL need approval")
        validate_amount(amount)
        try:
            if await self._repo.get_account(db, account_id) is None:
                raise AccountNotFoundError(account_id)
            txn = await self._repo.insert_transaction(
                db,
                Transaction(
                    id=0,
                    account_id=account_id,
                    kind=kind.value,
                    amount=signed_amount(kind, amount),
                    status=TransactionStatus.PENDING.value,
                    remarks=remarks,
                ),
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        self._emitter.publish(
            TransactionStatusChanged(
                account_id=account_id,
                transaction_id=str(txn.id),
                kind=txn.kind,
                status=txn.status,
                amount=txn.amount,
                new_balance=None,
            )
        )
        return txn

    async def settle_transaction(
        self,
        db: AsyncSession,
        transaction_id: int,
        outcome: ApprovalOutcome,
        approver_id: str | None = None,
    ) -> Transaction:
        """PENDING -> APPROVED (balance applied now) or REJECTED (balance untouched).

        Raises AlreadySettledError for any non-PENDING transaction, including
        the loser of two concurrent settle calls.
        """
        txn = await self.get_transaction(db, transaction_id)
        if txn.is_terminal:
            raise AlreadySettledError(str(transaction_id), txn.status)

        events: list[DomainEvent] = []
        async with self.account_lock(txn.account_id):
            try:
                balance_after: int | None = None
                if outcome is ApprovalOutcome.APPROVE:
                    balance_after = await self._apply_approved(db, txn)
                    status = TransactionStatus.APPROVED
                else:
                    status = TransactionStatus.REJECTED
                settled = await self._repo.finalize_transaction(
                    db, transaction_id, status.value, approver_id, balance_after, utc_now()
                )
                if settled is None:
                    raise AlreadySettledError(str(transaction_id), "not PENDING")
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        logger.info(
            "Transaction %s %s -> %s by %s",
            transaction_id, settled.kind, settled.status, approver_id,
        )
        events.append(
            TransactionStatusChanged(
                account_id=settled.account_id,
                transaction_id=str(settled.id),
                kind=settled.kind,
                status=settled.status,
                amount=settled.amount,
                new_balance=balance_after,
            )
        )
        if balance_after is not None:
            events.append(
                BalanceChanged(
                    account_id=settled.account_id,
                    transaction_id=str(settled.id),
                    kind=settled.kind,
                    amount=settled.amount,
                    new_balance=balance_after,
                )
            )
        self._emitter.publish_all(events)
        return settled

    async def _apply_approved(self, db: AsyncSession, txn: Transaction) -> int:
        """Move the money of an approved request; returns the new balance."""
        if txn.amount > 0:
            account = await self._repo.add_to_balance(db, txn.account_id, txn.amount)
            if account is None:
                raise AccountNotFoundError(txn.account_id)
            return account.balance
        account = await self._repo.subtract_from_balance(db, txn.account_id, -txn.amount)
        if account is None:
            current = await self._repo.get_account(db, txn.account_id)
            if current is None:
                raise AccountNotFoundError(txn.account_id)
            raise InsufficientFundsError(-txn.amount, current.balance)
        return account.balance

    def _publish_balance(self, txn: Transaction) -> None:
        self._emitter.publish(self.balance_event(txn))

    def balance_event(self, txn: Transaction) -> BalanceChanged:
        """Event for a transaction written via apply_*; publish after commit."""
        return BalanceChanged(
            account_id=txn.account_id,
            transaction_id=str(txn.id),
            kind=txn.kind,
            amount=txn.amount,
            new_balance=txn.balance_after if txn.balance_after is not None else 0,
        )
