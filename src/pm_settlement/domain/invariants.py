"""Value-conservation checks over the persisted state.

Per market:  total_up_stake + total_down_stake == SUM(positions.stake)
Custody:     ENGINE_CUSTODY balance == SUM(pools) - SUM(claimed payout + fee)
                                        - SUM(fee withdrawals)
Global:      SUM(all account balances) == SUM(DEPOSIT) + SUM(WITHDRAW)
             (withdraw ledger amounts are negative)

Each check returns a list of violation strings; an empty list means OK.
"""

import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.constants import ENGINE_CUSTODY_ID

logger = logging.getLogger(__name__)

_MARKET_POOL_MISMATCH_SQL = text("""
    SELECT m.id, m.total_up_stake, m.total_down_stake,
           COALESCE(SUM(p.stake) FILTER (WHERE p.side = 'UP'), 0) AS up_sum,
           COALESCE(SUM(p.stake) FILTER (WHERE p.side = 'DOWN'), 0) AS down_sum
    FROM markets m
    LEFT JOIN positions p ON p.market_id = m.id
    GROUP BY m.id, m.total_up_stake, m.total_down_stake
    HAVING m.total_up_stake != COALESCE(SUM(p.stake) FILTER (WHERE p.side = 'UP'), 0)
        OR m.total_down_stake != COALESCE(SUM(p.stake) FILTER (WHERE p.side = 'DOWN'), 0)
    ORDER BY m.id
""")

_CUSTODY_BALANCE_SQL = text(
    "SELECT COALESCE(MAX(available_balance), 0) FROM accounts WHERE user_id = :user_id"
)
_TOTAL_POOL_SQL = text(
    "SELECT COALESCE(SUM(total_up_stake + total_down_stake), 0) FROM markets"
)
_TOTAL_CLAIMED_SQL = text("""
    SELECT COALESCE(SUM(payout + fee), 0) FROM positions WHERE claimed = TRUE
""")
_TOTAL_FEE_WITHDRAWN_SQL = text("""
    SELECT COALESCE(SUM(amount), 0) FROM ledger_entries
    WHERE entry_type = 'FEE_WITHDRAWAL'
""")

_TOTAL_BALANCE_SQL = text("SELECT COALESCE(SUM(available_balance), 0) FROM accounts")
_NET_DEPOSIT_SQL = text("""
    SELECT COALESCE(SUM(amount), 0)
    FROM ledger_entries
    WHERE entry_type IN ('DEPOSIT', 'WITHDRAW')
""")


async def verify_market_pools(db: AsyncSession) -> list[str]:
    violations: list[str] = []
    for row in (await db.execute(_MARKET_POOL_MISMATCH_SQL)).fetchall():
        msg = (
            f"market {row.id}: totals up={row.total_up_stake} down={row.total_down_stake} "
            f"!= position sums up={row.up_sum} down={row.down_sum}"
        )
        violations.append(msg)
        logger.error(msg)
    return violations


async def verify_custody(db: AsyncSession) -> list[str]:
    custody = int(
        (await db.execute(_CUSTODY_BALANCE_SQL, {"user_id": ENGINE_CUSTODY_ID})).scalar_one()
    )
    pools = int((await db.execute(_TOTAL_POOL_SQL)).scalar_one())
    claimed = int((await db.execute(_TOTAL_CLAIMED_SQL)).scalar_one())
    withdrawn = int((await db.execute(_TOTAL_FEE_WITHDRAWN_SQL)).scalar_one())

    expected = pools - claimed - withdrawn
    if custody != expected:
        msg = (
            f"custody balance {custody} != pools({pools}) - claimed({claimed}) "
            f"- fee_withdrawals({withdrawn}) = {expected}"
        )
        logger.error(msg)
        return [msg]
    return []


async def verify_global_conservation(db: AsyncSession) -> list[str]:
    total = int((await db.execute(_TOTAL_BALANCE_SQL)).scalar_one())
    net_deposits = int((await db.execute(_NET_DEPOSIT_SQL)).scalar_one())
    if total != net_deposits:
        msg = f"account balances {total} != net deposits {net_deposits}"
        logger.error(msg)
        return [msg]
    return []
