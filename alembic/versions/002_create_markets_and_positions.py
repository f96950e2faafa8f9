"""002: create markets and positions

Revision ID: 002
Revises: 001
Create Date: 2026-03-02
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
            id                  BIGINT       PRIMARY KEY,
            start_price         BIGINT       NOT NULL,
            end_price           BIGINT       NOT NULL DEFAULT 0,
            total_up_stake      BIGINT       NOT NULL DEFAULT 0,
            total_down_stake    BIGINT       NOT NULL DEFAULT 0,
            start_block         BIGINT       NOT NULL,
            end_block           BIGINT       NOT NULL,
            resolved            BOOLEAN      NOT NULL DEFAULT FALSE,
            created_by          VARCHAR(128) NOT NULL,
            resolved_by         VARCHAR(128),
            resolved_at         TIMESTAMPTZ,
            created_at          TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_markets_start_price_gt_0   CHECK (start_price > 0),
            CONSTRAINT ck_markets_start_block_gte_0  CHECK (start_block >= 0),
            CONSTRAINT ck_markets_block_window       CHECK (end_block > start_block),
            CONSTRAINT ck_markets_totals_gte_0       CHECK (total_up_stake >= 0 AND total_down_stake >= 0),
            CONSTRAINT ck_markets_resolved_price     CHECK (NOT resolved OR end_price > 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_markets_updated_at
            BEFORE UPDATE ON markets
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("""
        CREATE TABLE positions (
            market_id       BIGINT       NOT NULL REFERENCES markets(id),
            user_id         VARCHAR(128) NOT NULL,
            side            VARCHAR(4)   NOT NULL,
            stake           BIGINT       NOT NULL,
            claimed         BOOLEAN      NOT NULL DEFAULT FALSE,
            payout          BIGINT,
            fee             BIGINT,
            claimed_at      TIMESTAMPTZ,
            created_at      TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            CONSTRAINT pk_positions PRIMARY KEY (market_id, user_id),
            CONSTRAINT ck_positions_side        CHECK (side IN ('UP', 'DOWN')),
            CONSTRAINT ck_positions_stake_gt_0  CHECK (stake > 0),
            CONSTRAINT ck_positions_claim_amounts CHECK (
                NOT claimed OR (payout >= 0 AND fee >= 0)
            )
        );
    """)
    op.execute("CREATE INDEX idx_positions_user ON positions (user_id, market_id DESC);")
    op.execute("""
        CREATE TRIGGER trg_positions_updated_at
            BEFORE UPDATE ON positions
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS positions CASCADE;")
    op.execute("DROP TABLE IF EXISTS markets CASCADE;")
