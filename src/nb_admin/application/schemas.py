"""Response schemas for staff-only endpoints."""

from pydantic import BaseModel

from src.nb_common.money import cents_to_display
from src.nb_settlement.domain.report import SettlementReport


class BetOutcomeOut(BaseModel):
    bet_id: str
    account_id: str
    status: str
    payout_cents: int


class SettlementReportOut(BaseModel):
    target_type: str
    target_id: str
    result_value: str
    resumed: bool
    won: int
    lost: int
    skipped: int
    failed: int
    failed_bet_ids: list[str]
    total_paid_cents: int
    total_paid_display: str
    complete: bool
    outcomes: list[BetOutcomeOut]

    @classmethod
    def from_domain(cls, r: SettlementReport) -> "SettlementReportOut":
        return cls(
            target_type=r.target_type,
            target_id=r.target_id,
            result_value=r.result_value,
            resumed=r.resumed,
            won=r.won,
            lost=r.lost,
            skipped=r.skipped,
            failed=r.failed,
            failed_bet_ids=list(r.failed_bet_ids),
            total_paid_cents=r.total_paid,
            total_paid_display=cents_to_display(r.total_paid),
            complete=r.complete,
            outcomes=[
                BetOutcomeOut(
                    bet_id=o.bet_id,
                    account_id=o.account_id,
                    status=o.status,
                    payout_cents=o.payout,
                )
                for o in r.outcomes
            ],
        )
