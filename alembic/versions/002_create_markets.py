"""002: create markets and market_game_types tables

Revision ID: 002
Revises: 001
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE markets (
            id              VARCHAR(64)  PRIMARY KEY,
            name            VARCHAR(100) NOT NULL,
            opening_time    TIMESTAMPTZ  NOT NULL,
            closing_time    TIMESTAMPTZ  NOT NULL,
            status          VARCHAR(10)  NOT NULL DEFAULT 'UPCOMING',
            result_status   VARCHAR(10)  NOT NULL DEFAULT 'PENDING',
            result_value    VARCHAR(2),
            declared_at     TIMESTAMPTZ,
            created_at      TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_markets_status CHECK (status IN ('UPCOMING', 'OPEN', 'CLOSED')),
            CONSTRAINT ck_markets_result_status CHECK (result_status IN ('PENDING', 'DECLARED')),
            CONSTRAINT ck_markets_window CHECK (closing_time > opening_time),
            CONSTRAINT ck_markets_declared_value CHECK (
                (result_status = 'PENDING' AND result_value IS NULL)
                OR (result_status = 'DECLARED' AND result_value IS NOT NULL)
            )
        );
    """)

    op.execute("""
        CREATE TABLE market_game_types (
            market_id       VARCHAR(64) NOT NULL REFERENCES markets(id),
            game_type       VARCHAR(10) NOT NULL,
            odds_bps        BIGINT      NOT NULL,
            both_odds_bps   BIGINT,
            is_active       BOOLEAN     NOT NULL DEFAULT TRUE,
            PRIMARY KEY (market_id, game_type),
            CONSTRAINT ck_market_game_types_game_type CHECK (
                game_type IN ('JODI', 'HURF', 'CROSS', 'ODD_EVEN')
            ),
            CONSTRAINT ck_market_game_types_odds CHECK (odds_bps >= 10000),
            CONSTRAINT ck_market_game_types_both CHECK (
                both_odds_bps IS NULL OR (game_type = 'HURF' AND both_odds_bps >= 10000)
            )
        );
    """)
    op.execute("COMMENT ON COLUMN market_game_types.odds_bps IS 'Payout multiplier in basis points: 19000 = x1.9';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS market_game_types CASCADE;")
    op.execute("DROP TABLE IF EXISTS markets CASCADE;")
