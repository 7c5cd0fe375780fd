"""001: create accounts and transactions tables

Revision ID: 001
Revises: 
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE accounts (
            id          VARCHAR(64) PRIMARY KEY,
            balance     BIGINT      NOT NULL DEFAULT 0,
            version     BIGINT      NOT NULL DEFAULT 0,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_accounts_balance_gte_0 CHECK (balance >= 0)
        );
    """)
    op.execute("COMMENT ON TABLE accounts IS 'Player wallets. balance = SUM(amount) of APPROVED transactions, in cents';")

    op.execute("""
        CREATE TABLE transactions (
            id              BIGSERIAL    PRIMARY KEY,
            account_id      VARCHAR(64)  NOT NULL REFERENCES accounts(id),
            kind            VARCHAR(20)  NOT NULL,
            amount          BIGINT       NOT NULL,
            status          VARCHAR(10)  NOT NULL,
            balance_after   BIGINT,
            reference_type  VARCHAR(30),
            reference_id    VARCHAR(64),
            remarks         VARCHAR(500),
            approved_by     VARCHAR(64),
            created_at      TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            settled_at      TIMESTAMPTZ,
            CONSTRAINT ck_transactions_kind CHECK (
                kind IN ('DEPOSIT', 'WITHDRAWAL', 'BET_DEBIT', 'WINNING_CREDIT', 'ADJUSTMENT')
            ),
            CONSTRAINT ck_transactions_status CHECK (
                status IN ('PENDING', 'APPROVED', 'REJECTED')
            ),
            CONSTRAINT ck_transactions_amount_ne_0 CHECK (amount <> 0),
            CONSTRAINT uq_transactions_kind_reference UNIQUE (kind, reference_id)
        );
    """)
    op.execute("CREATE INDEX idx_transactions_account ON transactions (account_id, id DESC);")
    op.execute("CREATE INDEX idx_transactions_status ON transactions (status, id DESC);")
    op.execute("COMMENT ON TABLE transactions IS 'Append-only wallet ledger; a row changes at most once (PENDING -> terminal)';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS transactions CASCADE;")
    op.execute("DROP TABLE IF EXISTS accounts CASCADE;")
