"""Repository Protocol — dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.nb_account.domain.models import Account, Transaction


class LedgerRepositoryProtocol(Protocol):
    async def create_account(self, db: AsyncSession, account_id: str) -> Account: ...

    async def get_account(self, db: AsyncSession, account_id: str) -> Account | None: ...

    async def add_to_balance(
        self, db: AsyncSession, account_id: str, amount: int
    ) -> Account | None: ...

    async def subtract_from_balance(
        self, db: AsyncSession, account_id: str, amount: int
    ) -> Account | None: ...

    async def insert_transaction(self, db: AsyncSession, txn: Transaction) -> Transaction: ...

    async def get_transaction(
        self, db: AsyncSession, transaction_id: int
    ) -> Transaction | None: ...

    async def finalize_transaction(
        self,
        db: AsyncSession,
        transaction_id: int,
        status: str,
        approved_by: str | None,
        balance_after: int | None,
        settled_at: datetime,
    ) -> Transaction | None: ...

    async def list_transactions(
        self,
        db: AsyncSession,
        account_id: str | None,
        status: str | None,
        kind: str | None,
        cursor_id: int | None,
        limit: int,
    ) -> list[Transaction]: ...

    async def replay_balance(self, db: AsyncSession, account_id: str) -> tuple[int, int]: ...
