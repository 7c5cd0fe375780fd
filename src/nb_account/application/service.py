"""AccountApplicationService — thin composition layer over LedgerStore.

Combines ledger calls with schema transformations for the API layer.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from src.nb_account.application.ledger import LedgerStore
from src.nb_account.application.schemas import (
    AccountResponse,
    ReconciliationResponse,
    TransactionItem,
    TransactionPage,
    cursor_decode,
    cursor_encode,
)


class AccountApplicationService:
    def __init__(self, ledger: LedgerStore | None = None) -> None:
        self._ledger = ledger or LedgerStore()

    async def open_account(self, db: AsyncSession, account_id: str) -> AccountResponse:
        account = await self._ledger.open_account(db, account_id)
        return AccountResponse.from_domain(account)

    async def get_account(self, db: AsyncSession, account_id: str) -> AccountResponse:
        account = await self._ledger.get_account(db, account_id)
        return AccountResponse.from_domain(account)

    async def adjust(
        self,
        db: AsyncSession,
        account_id: str,
        delta_cents: int,
        actor_id: str,
        remarks: str | None,
    ) -> TransactionItem:
        txn = await self._ledger.adjust(db, account_id, delta_cents, actor_id, remarks)
        return TransactionItem.from_domain(txn)

    async def reconcile(self, db: AsyncSession, account_id: str) -> ReconciliationResponse:
        rec = await self._ledger.reconcile(db, account_id)
        return ReconciliationResponse.from_domain(rec)

    async def list_transactions(
        self,
        db: AsyncSession,
        account_id: str | None,
        cursor: str | None,
        limit: int,
        status: str | None = None,
        kind: str | None = None,
    ) -> TransactionPage:
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        rows = await self._ledger.list_transactions(
            db, account_id, status, kind, cursor_id, limit + 1
        )
        has_more = len(rows) > limit
        page = rows[:limit]
        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return TransactionPage(
            items=[TransactionItem.from_domain(t) for t in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )
