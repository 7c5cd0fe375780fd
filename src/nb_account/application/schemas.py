"""Pydantic schemas and cursor utilities for nb_account / nb_wallet APIs."""

import base64
import json

from pydantic import BaseModel, Field

from src.nb_account.domain.models import Account, Reconciliation, Transaction
from src.nb_common.datetime_utils import iso_or_none
from src.nb_common.money import cents_to_display

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: int) -> str:
    """Encode a BIGINT primary key into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Decode a cursor string back to the last seen id. Returns None on error."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return int(payload["id"])
    except Exception:
        return None


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class OpenAccountRequest(BaseModel):
    account_id: str = Field(..., min_length=1, max_length=64)


class FundsRequest(BaseModel):
    amount_cents: int = Field(..., gt=0, description="Amount in cents")
    remarks: str | None = Field(None, max_length=500)


class AdjustmentRequest(BaseModel):
    delta_cents: int = Field(..., description="Signed cents; negative debits the wallet")
    remarks: str | None = Field(None, max_length=500)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class AccountResponse(BaseModel):
    account_id: str
    balance_cents: int
    balance_display: str
    version: int

    @classmethod
    def from_domain(cls, account: Account) -> "AccountResponse":
        return cls(
            account_id=account.id,
            balance_cents=account.balance,
            balance_display=cents_to_display(account.balance),
            version=account.version,
        )


class TransactionItem(BaseModel):
    id: int
    account_id: str
    kind: str
    status: str
    amount_cents: int
    amount_display: str
    balance_after_cents: int | None
    reference_type: str | None
    reference_id: str | None
    remarks: str | None
    approved_by: str | None
    created_at: str | None
    settled_at: str | None

    @classmethod
    def from_domain(cls, t: Transaction) -> "TransactionItem":
        return cls(
            id=t.id,
            account_id=t.account_id,
            kind=t.kind,
            status=t.status,
            amount_cents=t.amount,
            amount_display=cents_to_display(t.amount),
            balance_after_cents=t.balance_after,
            reference_type=t.reference_type,
            reference_id=t.reference_id,
            remarks=t.remarks,
            approved_by=t.approved_by,
            created_at=iso_or_none(t.created_at),
            settled_at=iso_or_none(t.settled_at),
        )


class TransactionPage(BaseModel):
    items: list[TransactionItem]
    next_cursor: str | None
    has_more: bool


class ReconciliationResponse(BaseModel):
    account_id: str
    cached_balance_cents: int
    replayed_balance_cents: int
    applied_transactions: int
    consistent: bool

    @classmethod
    def from_domain(cls, rec: Reconciliation) -> "ReconciliationResponse":
        return cls(
            account_id=rec.account_id,
            cached_balance_cents=rec.cached_balance,
            replayed_balance_cents=rec.replayed_balance,
            applied_transactions=rec.applied_transactions,
            consistent=rec.consistent,
        )
