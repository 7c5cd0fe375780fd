"""LedgerRepository — concrete implementation of LedgerRepositoryProtocol.

All balance-mutating operations are single conditional UPDATE ... RETURNING
statements. A result of 0 rows means a business constraint was violated
(insufficient funds, unknown account, transaction no longer PENDING).

Transaction ownership: The CALLER (LedgerStore or another application service)
is responsible for committing or rolling back. Nothing here commits.

SQL stays portable (explicit :now parameters instead of NOW(), no FOR UPDATE)
so the same statements run on PostgreSQL and on SQLite in tests.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.nb_account.domain.models import Account, Transaction
from src.nb_common.datetime_utils import as_utc, utc_now
from src.nb_common.errors import InternalError

# ---------------------------------------------------------------------------
# SQL: accounts
# ---------------------------------------------------------------------------

_ACCOUNT_COLUMNS = "id, balance, version, created_at, updated_at"

_CREATE_ACCOUNT_SQL = text("""
    INSERT INTO accounts (id, balance, version, created_at, updated_at)
    VALUES (:account_id, 0, 0, :now, :now)
    ON CONFLICT (id) DO NOTHING
""")

_GET_ACCOUNT_SQL = text(f"""
    SELECT {_ACCOUNT_COLUMNS}
    FROM accounts
    WHERE id = :account_id
""")

_CREDIT_SQL = text(f"""
    UPDATE accounts
    SET balance = balance + :amount,
        version = version + 1,
        updated_at = :now
    WHERE id = :account_id
    RETURNING {_ACCOUNT_COLUMNS}
""")

_DEBIT_SQL = text(f"""
    UPDATE accounts
    SET balance = balance - :amount,
        version = version + 1,
        updated_at = :now
    WHERE id = :account_id AND balance >= :amount
    RETURNING {_ACCOUNT_COLUMNS}
""")

# ---------------------------------------------------------------------------
# SQL: transactions
# ---------------------------------------------------------------------------

_TXN_COLUMNS = """
    id, account_id, kind, amount, status, balance_after,
    reference_type, reference_id, remarks, approved_by, created_at, settled_at
"""

_INSERT_TXN_SQL = text(f"""
    INSERT INTO transactions
        (account_id, kind, amount, status, balance_after,
         reference_type, reference_id, remarks, approved_by, created_at, settled_at)
    VALUES
        (:account_id, :kind, :amount, :status, :balance_after,
         :reference_type, :reference_id, :remarks, :approved_by, :created_at, :settled_at)
    RETURNING {_TXN_COLUMNS}
""")

_GET_TXN_SQL = text(f"""
    SELECT {_TXN_COLUMNS}
    FROM transactions
    WHERE id = :transaction_id
""")

# The WHERE status = 'PENDING' guard is what makes approval exactly-once:
# of two concurrent settle calls only one UPDATE matches.
_FINALIZE_TXN_SQL = text(f"""
    UPDATE transactions
    SET status = :status,
        approved_by = :approved_by,
        balance_after = :balance_after,
        settled_at = :settled_at
    WHERE id = :transaction_id AND status = 'PENDING'
    RETURNING {_TXN_COLUMNS}
""")

_LIST_TXN_SQL = text(f"""
    SELECT {_TXN_COLUMNS}
    FROM transactions
    WHERE (CAST(:account_id AS TEXT) IS NULL OR account_id = CAST(:account_id AS TEXT))
      AND (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
      AND (CAST(:kind AS TEXT) IS NULL OR kind = CAST(:kind AS TEXT))
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < CAST(:cursor_id AS BIGINT))
    ORDER BY id DESC
    LIMIT :limit
""")

_REPLAY_SQL = text("""
    SELECT COALESCE(SUM(amount), 0) AS total, COUNT(*) AS applied
    FROM transactions
    WHERE account_id = :account_id AND status = 'APPROVED'
""")


def _row_to_account(row: Any) -> Account:
    return Account(
        id=row.id,
        balance=int(row.balance),
        version=int(row.version),
        created_at=as_utc(row.created_at),  # type: ignore[arg-type]
        updated_at=as_utc(row.updated_at),  # type: ignore[arg-type]
    )


def _row_to_transaction(row: Any) -> Transaction:
    return Transaction(
        id=int(row.id),
        account_id=row.account_id,
        kind=row.kind,
        amount=int(row.amount),
        status=row.status,
        balance_after=row.balance_after,
        reference_type=row.reference_type,
        reference_id=row.reference_id,
        remarks=row.remarks,
        approved_by=row.approved_by,
        created_at=as_utc(row.created_at),
        settled_at=as_utc(row.settled_at),
    )


class LedgerRepository:
    """Concrete repository — every mutation atomic at the SQL level."""

    async def create_account(self, db: AsyncSession, account_id: str) -> Account:
        await db.execute(_CREATE_ACCOUNT_SQL, {"account_id": account_id, "now": utc_now()})
        account = await self.get_account(db, account_id)
        if account is None:
            raise InternalError(f"Account insert for {account_id} not visible")
        return account

    async def get_account(self, db: AsyncSession, account_id: str) -> Account | None:
        result = await db.execute(_GET_ACCOUNT_SQL, {"account_id": account_id})
        row = result.fetchone()
        return _row_to_account(row) if row else None

    async def add_to_balance(
        self, db: AsyncSession, account_id: str, amount: int
    ) -> Account | None:
        """None means the account does not exist."""
        result = await db.execute(
            _CREDIT_SQL, {"account_id": account_id, "amount": amount, "now": utc_now()}
        )
        row = result.fetchone()
        return _row_to_account(row) if row else None

    async def subtract_from_balance(
        self, db: AsyncSession, account_id: str, amount: int
    ) -> Account | None:
        """None means insufficient funds or no such account; caller disambiguates."""
        result = await db.execute(
            _DEBIT_SQL, {"account_id": account_id, "amount": amount, "now": utc_now()}
        )
        row = result.fetchone()
        return _row_to_account(row) if row else None

    async def insert_transaction(self, db: AsyncSession, txn: Transaction) -> Transaction:
        result = await db.execute(
            _INSERT_TXN_SQL,
            {
                "account_id": txn.account_id,
                "kind": txn.kind,
                "amount": txn.amount,
                "status": txn.status,
                "balance_after": txn.balance_after,
                "reference_type": txn.reference_type,
                "reference_id": txn.reference_id,
                "remarks": txn.remarks,
                "approved_by": txn.approved_by,
                "created_at": txn.created_at or utc_now(),
                "settled_at": txn.settled_at,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Transaction insert returned no rows")
        return _row_to_transaction(row)

    async def get_transaction(
        self, db: AsyncSession, transaction_id: int
    ) -> Transaction | None:
        result = await db.execute(_GET_TXN_SQL, {"transaction_id": transaction_id})
        row = result.fetchone()
        return _row_to_transaction(row) if row else None

    async def finalize_transaction(
        self,
        db: AsyncSession,
        transaction_id: int,
        status: str,
        approved_by: str | None,
        balance_after: int | None,
        settled_at: datetime,
    ) -> Transaction | None:
        """None means the row was not PENDING any more (or does not exist)."""
        result = await db.execute(
            _FINALIZE_TXN_SQL,
            {
                "transaction_id": transaction_id,
                "status": status,
                "approved_by": approved_by,
                "balance_after": balance_after,
                "settled_at": settled_at,
            },
        )
        row = result.fetchone()
        return _row_to_transaction(row) if row else None

    async def list_transactions(
        self,
        db: AsyncSession,
        account_id: str | None,
        status: str | None,
        kind: str | None,
        cursor_id: int | None,
        limit: int,
    ) -> list[Transaction]:
        result = await db.execute(
            _LIST_TXN_SQL,
            {
                "account_id": account_id,
                "status": status,
                "kind": kind,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_transaction(row) for row in result.fetchall()]

    async def replay_balance(self, db: AsyncSession, account_id: str) -> tuple[int, int]:
        """(sum of applied amounts, number of applied transactions)."""
        row = (await db.execute(_REPLAY_SQL, {"account_id": account_id})).fetchone()
        if row is None:
            return 0, 0
        return int(row.total), int(row.applied)
