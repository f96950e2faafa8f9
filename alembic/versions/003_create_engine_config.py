"""003: create engine_config singleton and seed it

Revision ID: 003
Revises: 002
Create Date: 2026-03-02
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

from config.settings import settings

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE engine_config (
            id              SMALLINT     PRIMARY KEY DEFAULT 1,
            reporter_id     VARCHAR(128) NOT NULL,
            minimum_stake   BIGINT       NOT NULL,
            fee_rate        SMALLINT     NOT NULL,
            next_market_id  BIGINT       NOT NULL DEFAULT 0,
            version         BIGINT       NOT NULL DEFAULT 0,
            updated_at      TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_engine_config_singleton   CHECK (id = 1),
            CONSTRAINT ck_engine_config_min_stake   CHECK (minimum_stake > 0),
            CONSTRAINT ck_engine_config_fee_rate    CHECK (fee_rate BETWEEN 0 AND 100),
            CONSTRAINT ck_engine_config_next_id     CHECK (next_market_id >= 0)
        );
    """)
    # The administrator is the initial reporter
    op.execute(
        sa.text("""
            INSERT INTO engine_config (id, reporter_id, minimum_stake, fee_rate)
            VALUES (1, :reporter_id, :minimum_stake, :fee_rate)
        """).bindparams(
            reporter_id=settings.ADMIN_PRINCIPAL,
            minimum_stake=settings.INITIAL_MINIMUM_STAKE,
            fee_rate=settings.INITIAL_FEE_RATE,
        )
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS engine_config CASCADE;")
