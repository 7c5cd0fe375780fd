"""004: create bets table

Revision ID: 004
Revises: 003
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE bets (
            id                      VARCHAR(64) PRIMARY KEY,
            account_id              VARCHAR(64) NOT NULL REFERENCES accounts(id),
            target_type             VARCHAR(12) NOT NULL,
            market_id               VARCHAR(64) REFERENCES markets(id),
            option_game_id          VARCHAR(64) REFERENCES option_games(id),
            game_type               VARCHAR(10) NOT NULL,
            selection               VARCHAR(32) NOT NULL,
            amount                  BIGINT      NOT NULL,
            odds_bps                BIGINT      NOT NULL,
            potential_winning       BIGINT      NOT NULL,
            status                  VARCHAR(10) NOT NULL DEFAULT 'PENDING',
            debit_transaction_id    BIGINT      REFERENCES transactions(id),
            created_at              TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            settled_at              TIMESTAMPTZ,
            CONSTRAINT ck_bets_target_type CHECK (target_type IN ('MARKET', 'OPTION_GAME')),
            CONSTRAINT ck_bets_one_target CHECK (
                (target_type = 'MARKET' AND market_id IS NOT NULL AND option_game_id IS NULL)
                OR (target_type = 'OPTION_GAME' AND option_game_id IS NOT NULL AND market_id IS NULL)
            ),
            CONSTRAINT ck_bets_game_type CHECK (
                game_type IN ('JODI', 'HURF', 'CROSS', 'ODD_EVEN', 'OPTION')
            ),
            CONSTRAINT ck_bets_status CHECK (status IN ('PENDING', 'WON', 'LOST')),
            CONSTRAINT ck_bets_amount_gt_0 CHECK (amount > 0),
            CONSTRAINT ck_bets_potential_winning CHECK (potential_winning >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_bets_account ON bets (account_id, created_at DESC);")
    # Settlement loads PENDING bets per target
    op.execute("CREATE INDEX idx_bets_market_status ON bets (market_id, status) WHERE market_id IS NOT NULL;")
    op.execute("CREATE INDEX idx_bets_option_status ON bets (option_game_id, status) WHERE option_game_id IS NOT NULL;")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS bets CASCADE;")
