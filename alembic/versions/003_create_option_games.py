"""003: create option_games table

Revision ID: 003
Revises: 002
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE option_games (
            id              VARCHAR(64)  PRIMARY KEY,
            title           VARCHAR(200) NOT NULL,
            team_a          VARCHAR(100) NOT NULL,
            team_b          VARCHAR(100) NOT NULL,
            opening_time    TIMESTAMPTZ  NOT NULL,
            closing_time    TIMESTAMPTZ  NOT NULL,
            status          VARCHAR(10)  NOT NULL DEFAULT 'UPCOMING',
            result_status   VARCHAR(10)  NOT NULL DEFAULT 'PENDING',
            winning_team    VARCHAR(1),
            odds_bps        BIGINT       NOT NULL,
            declared_at     TIMESTAMPTZ,
            created_at      TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_option_games_status CHECK (status IN ('UPCOMING', 'OPEN', 'CLOSED')),
            CONSTRAINT ck_option_games_result_status CHECK (result_status IN ('PENDING', 'DECLARED')),
            CONSTRAINT ck_option_games_winning_team CHECK (
                winning_team IS NULL OR winning_team IN ('A', 'B')
            ),
            CONSTRAINT ck_option_games_odds CHECK (odds_bps >= 10000),
            CONSTRAINT ck_option_games_window CHECK (closing_time > opening_time)
        );
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS option_games CASCADE;")
