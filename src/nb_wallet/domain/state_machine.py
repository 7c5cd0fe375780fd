"""Deposit / withdrawal approval state machine.

    PENDING ──approve──▶ APPROVED   (balance applied at this moment)
       │
       └─────reject───▶ REJECTED    (balance never touched)

APPROVED and REJECTED are terminal. The database enforces the same rule with
a conditional UPDATE ... WHERE status = 'PENDING'; this table is what the
service checks first so the common case fails fast with a clear error.
"""

from src.nb_common.enums import ApprovalOutcome, TransactionStatus
from src.nb_common.errors import AlreadySettledError

VALID_TRANSITIONS: dict[TransactionStatus, set[TransactionStatus]] = {
    TransactionStatus.PENDING: {TransactionStatus.APPROVED, TransactionStatus.REJECTED},
    TransactionStatus.APPROVED: set(),
    TransactionStatus.REJECTED: set(),
}

OUTCOME_TARGET: dict[ApprovalOutcome, TransactionStatus] = {
    ApprovalOutcome.APPROVE: TransactionStatus.APPROVED,
    ApprovalOutcome.REJECT: TransactionStatus.REJECTED,
}


def can_transition(current: TransactionStatus, target: TransactionStatus) -> bool:
    return target in VALID_TRANSITIONS.get(current, set())


def ensure_transition(
    transaction_id: int, current: str, outcome: ApprovalOutcome
) -> TransactionStatus:
    """Return the target status or raise AlreadySettledError."""
    target = OUTCOME_TARGET[outcome]
    if not can_transition(TransactionStatus(current), target):
        raise AlreadySettledError(str(transaction_id), current)
    return target
