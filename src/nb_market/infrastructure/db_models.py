"""SQLAlchemy ORM models for markets, their game-type configuration and
option games.

persistence.py uses raw text() SQL; these models describe the tables for
metadata.create_all in tests. Alembic migrations are the authoritative DDL.
"""

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from src.nb_common.database import Base


class MarketORM(Base):
    __tablename__ = "markets"
    __table_args__ = (
        CheckConstraint("status IN ('UPCOMING', 'OPEN', 'CLOSED')", name="ck_markets_status"),
        CheckConstraint(
            "result_status IN ('PENDING', 'DECLARED')", name="ck_markets_result_status"
        ),
        CheckConstraint("closing_time > opening_time", name="ck_markets_window"),
        CheckConstraint(
            "(result_status = 'PENDING' AND result_value IS NULL)"
            " OR (result_status = 'DECLARED' AND result_value IS NOT NULL)",
            name="ck_markets_declared_value",
        ),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    opening_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    closing_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(10), nullable=False, default="UPCOMING")
    result_status: Mapped[str] = mapped_column(String(10), nullable=False, default="PENDING")
    result_value: Mapped[str | None] = mapped_column(String(2), nullable=True)
    declared_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class MarketGameTypeORM(Base):
    __tablename__ = "market_game_types"
    __table_args__ = (
        CheckConstraint(
            "game_type IN ('JODI', 'HURF', 'CROSS', 'ODD_EVEN')",
            name="ck_market_game_types_game_type",
        ),
        CheckConstraint("odds_bps >= 10000", name="ck_market_game_types_odds"),
    )

    market_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("markets.id"), primary_key=True
    )
    game_type: Mapped[str] = mapped_column(String(10), primary_key=True)
    odds_bps: Mapped[int] = mapped_column(BigInteger, nullable=False)
    both_odds_bps: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class OptionGameORM(Base):
    __tablename__ = "option_games"
    __table_args__ = (
        CheckConstraint(
            "status IN ('UPCOMING', 'OPEN', 'CLOSED')", name="ck_option_games_status"
        ),
        CheckConstraint(
            "result_status IN ('PENDING', 'DECLARED')", name="ck_option_games_result_status"
        ),
        CheckConstraint(
            "winning_team IS NULL OR winning_team IN ('A', 'B')",
            name="ck_option_games_winning_team",
        ),
        CheckConstraint("odds_bps >= 10000", name="ck_option_games_odds"),
        CheckConstraint("closing_time > opening_time", name="ck_option_games_window"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    team_a: Mapped[str] = mapped_column(String(100), nullable=False)
    team_b: Mapped[str] = mapped_column(String(100), nullable=False)
    opening_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    closing_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(10), nullable=False, default="UPCOMING")
    result_status: Mapped[str] = mapped_column(String(10), nullable=False, default="PENDING")
    winning_team: Mapped[str | None] = mapped_column(String(1), nullable=True)
    odds_bps: Mapped[int] = mapped_column(BigInteger, nullable=False)
    declared_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
