"""TransactionApprovalService — deposit/withdrawal requests and their approval.

Players create requests; staff (admin or subadmin) approve or reject them.
Only approval touches the balance, and it happens through LedgerStore under
the account lock, so an approved withdrawal is re-checked against the balance
at approval time: InsufficientFundsError leaves the request PENDING.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.nb_account.application.ledger import LedgerStore
from src.nb_account.application.schemas import TransactionItem
from src.nb_common.enums import ApprovalOutcome, TransactionKind
from src.nb_common.errors import SelfApprovalForbiddenError
from src.nb_gateway.auth.dependencies import Principal
from src.nb_wallet.domain.state_machine import ensure_transition

logger = logging.getLogger(__name__)


class TransactionApprovalService:
    def __init__(self, ledger: LedgerStore | None = None) -> None:
        self._ledger = ledger or LedgerStore()

    async def request_deposit(
        self, db: AsyncSession, account_id: str, amount: int, remarks: str | None = None
    ) -> TransactionItem:
        txn = await self._ledger.create_pending_transaction(
            db, account_id, TransactionKind.DEPOSIT, amount, remarks
        )
        logger.info("Deposit requested: account=%s amount=%d txn=%s", account_id, amount, txn.id)
        return TransactionItem.from_domain(txn)

    async def request_withdrawal(
        self, db: AsyncSession, account_id: str, amount: int, remarks: str | None = None
    ) -> TransactionItem:
        # No balance check here: the money only moves on approval.
        txn = await self._ledger.create_pending_transaction(
            db, account_id, TransactionKind.WITHDRAWAL, amount, remarks
        )
        logger.info(
            "Withdrawal requested: account=%s amount=%d txn=%s", account_id, amount, txn.id
        )
        return TransactionItem.from_domain(txn)

    async def settle(
        self,
        db: AsyncSession,
        transaction_id: int,
        outcome: ApprovalOutcome,
        approver: Principal,
    ) -> TransactionItem:
        txn = await self._ledger.get_transaction(db, transaction_id)
        if txn.account_id == approver.user_id:
            raise SelfApprovalForbiddenError()
        ensure_transition(transaction_id, txn.status, outcome)
        settled = await self._ledger.settle_transaction(
            db, transaction_id, outcome, approver.user_id
        )
        return TransactionItem.from_domain(settled)
