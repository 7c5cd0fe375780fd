"""Domain events published after a successful commit.

Consumers (WebSocket push, notifications, UI caches) subscribe by name or
pattern; the core never waits on them.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, ClassVar

from src.nb_common.datetime_utils import utc_now


@dataclass(frozen=True)
class DomainEvent:
    name: ClassVar[str] = "event"

    def to_payload(self) -> dict[str, Any]:
        body = asdict(self)
        occurred_at = body.pop("occurred_at")
        return {
            "event": self.name,
            "occurred_at": occurred_at.isoformat(),
            "data": body,
        }


@dataclass(frozen=True)
class BalanceChanged(DomainEvent):
    name: ClassVar[str] = "balance.changed"

    account_id: str
    transaction_id: str
    kind: str
    amount: int            # signed cents
    new_balance: int       # cents
    occurred_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class TransactionStatusChanged(DomainEvent):
    name: ClassVar[str] = "transaction.status_changed"

    account_id: str
    transaction_id: str
    kind: str
    status: str
    amount: int
    new_balance: int | None    # None when the balance was not touched
    occurred_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class BetPlaced(DomainEvent):
    name: ClassVar[str] = "bet.placed"

    account_id: str
    bet_id: str
    target_type: str
    target_id: str
    game_type: str
    selection: str
    amount: int
    potential_winning: int
    new_balance: int
    occurred_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class AccountSettled(DomainEvent):
    """Per-account summary of one settlement run."""

    name: ClassVar[str] = "settlement.account_settled"

    account_id: str
    target_type: str
    target_id: str
    result_value: str
    outcomes: tuple[dict[str, Any], ...]   # ({"bet_id", "status", "payout"}, ...)
    total_paid: int
    new_balance: int | None
    occurred_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class SettlementCompleted(DomainEvent):
    name: ClassVar[str] = "settlement.completed"

    target_type: str
    target_id: str
    result_value: str
    won: int
    lost: int
    failed: int
    total_paid: int
    occurred_at: datetime = field(default_factory=utc_now)
