"""Settlement run results."""

from dataclasses import dataclass, field

SKIPPED = "SKIPPED"


@dataclass(frozen=True)
class BetOutcome:
    bet_id: str
    account_id: str
    status: str          # WON | LOST | SKIPPED (already settled by an earlier run)
    payout: int          # cents credited by THIS run

    def to_dict(self) -> dict[str, object]:
        return {"bet_id": self.bet_id, "status": self.status, "payout": self.payout}


@dataclass
class SettlementReport:
    target_type: str
    target_id: str
    result_value: str
    resumed: bool = False
    won: int = 0
    lost: int = 0
    skipped: int = 0
    total_paid: int = 0
    failed_bet_ids: list[str] = field(default_factory=list)
    outcomes: list[BetOutcome] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failed_bet_ids)

    @property
    def complete(self) -> bool:
        """True when no bet of this run was left PENDING by an error."""
        return not self.failed_bet_ids

    def record(self, outcome: BetOutcome) -> None:
        self.outcomes.append(outcome)
        if outcome.status == "WON":
            self.won += 1
            self.total_paid += outcome.payout
        elif outcome.status == "LOST":
            self.lost += 1
        else:
            self.skipped += 1
