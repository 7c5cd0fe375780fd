"""SQLAlchemy ORM model for the bets table.

persistence.py uses raw text() SQL; this model feeds metadata.create_all in
tests. Alembic migrations are the authoritative DDL.
"""

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from src.nb_common.database import Base


class BetORM(Base):
    __tablename__ = "bets"
    __table_args__ = (
        CheckConstraint("target_type IN ('MARKET', 'OPTION_GAME')", name="ck_bets_target_type"),
        # Exactly one target FK, matching target_type
        CheckConstraint(
            "(target_type = 'MARKET' AND market_id IS NOT NULL AND option_game_id IS NULL)"
            " OR (target_type = 'OPTION_GAME' AND option_game_id IS NOT NULL"
            " AND market_id IS NULL)",
            name="ck_bets_one_target",
        ),
        CheckConstraint(
            "game_type IN ('JODI', 'HURF', 'CROSS', 'ODD_EVEN', 'OPTION')",
            name="ck_bets_game_type",
        ),
        CheckConstraint("status IN ('PENDING', 'WON', 'LOST')", name="ck_bets_status"),
        CheckConstraint("amount > 0", name="ck_bets_amount_gt_0"),
        CheckConstraint("potential_winning >= 0", name="ck_bets_potential_winning"),
        Index("idx_bets_account", "account_id", "created_at"),
        Index("idx_bets_market_status", "market_id", "status"),
        Index("idx_bets_option_status", "option_game_id", "status"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    account_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("accounts.id"), nullable=False
    )
    target_type: Mapped[str] = mapped_column(String(12), nullable=False)
    market_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("markets.id"), nullable=True
    )
    option_game_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("option_games.id"), nullable=True
    )
    game_type: Mapped[str] = mapped_column(String(10), nullable=False)
    selection: Mapped[str] = mapped_column(String(32), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    odds_bps: Mapped[int] = mapped_column(BigInteger, nullable=False)
    potential_winning: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[str] = mapped_column(String(10), nullable=False, default="PENDING")
    debit_transaction_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("transactions.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    settled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
