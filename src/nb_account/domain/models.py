"""Domain models for nb_account — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.nb_common.enums import TransactionKind, TransactionStatus

# Kinds whose sign is fixed; ADJUSTMENT may go either way.
CREDIT_KINDS = frozenset({TransactionKind.DEPOSIT, TransactionKind.WINNING_CREDIT})
DEBIT_KINDS = frozenset({TransactionKind.WITHDRAWAL, TransactionKind.BET_DEBIT})
# Kinds that go through the approval workflow; everything else is applied at creation.
WORKFLOW_KINDS = frozenset({TransactionKind.DEPOSIT, TransactionKind.WITHDRAWAL})


@dataclass
class Account:
    id: str
    balance: int             # cents, cached sum of APPROVED transaction amounts
    version: int
    created_at: datetime
    updated_at: datetime


@dataclass
class Transaction:
    id: int                         # BIGSERIAL, 0 until inserted
    account_id: str
    kind: str                       # TransactionKind value
    amount: int                     # cents, positive=income negative=expense
    status: str                     # TransactionStatus value
    balance_after: int | None = None    # set when the amount hits the balance
    reference_type: str | None = None
    reference_id: str | None = None
    remarks: str | None = None
    approved_by: str | None = None
    created_at: datetime | None = None
    settled_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status != TransactionStatus.PENDING.value


@dataclass
class Reconciliation:
    """Audit result: cached balance vs. replay of the ledger."""

    account_id: str
    cached_balance: int
    replayed_balance: int
    applied_transactions: int

    @property
    def consistent(self) -> bool:
        return self.cached_balance == self.replayed_balance


def signed_amount(kind: TransactionKind, amount: int) -> int:
    """Ledger sign convention for an unsigned request amount."""
    if kind in DEBIT_KINDS:
        return -amount
    return amount
