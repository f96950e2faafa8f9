"""AdminService — Configuration Authority.

Every mutation here is gated on the administrator principal fixed at
deployment (settings.ADMIN_PRINCIPAL), followed by a range check, then a
single-row update of engine_config that bumps its version.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_account.domain.constants import ENGINE_CUSTODY_ID, SYSTEM_ACCOUNT_IDS
from src.pm_account.domain.repository import AccountRepositoryProtocol
from src.pm_account.infrastructure.persistence import AccountRepository
from src.pm_admin.application.schemas import (
    ConfigResponse,
    InvariantReport,
    WithdrawFeesResponse,
)
from src.pm_admin.domain.repository import ConfigRepositoryProtocol
from src.pm_admin.infrastructure.persistence import ConfigRepository
from src.pm_common.amounts import MAX_AMOUNT, validate_fee_rate
from src.pm_common.enums import LedgerEntryType
from src.pm_common.errors import (
    InsufficientBalanceError,
    InvalidParameterError,
    UnauthorizedError,
)
from src.pm_settlement.domain.invariants import (
    verify_custody,
    verify_global_conservation,
    verify_market_pools,
)

logger = logging.getLogger(__name__)


class AdminService:
    def __init__(
        self,
        config_repo: ConfigRepositoryProtocol | None = None,
        account_repo: AccountRepositoryProtocol | None = None,
        admin_id: str | None = None,
    ) -> None:
        self._config_repo: ConfigRepositoryProtocol = config_repo or ConfigRepository()
        self._account_repo: AccountRepositoryProtocol = account_repo or AccountRepository()
        self._admin_id = admin_id or settings.ADMIN_PRINCIPAL

    def _require_admin(self, caller: str, action: str) -> None:
        if caller != self._admin_id:
            raise UnauthorizedError(action)

    async def get_config(self, db: AsyncSession) -> ConfigResponse:
        cfg = await self._config_repo.get_config(db)
        return ConfigResponse.from_domain(cfg, self._admin_id)

    async def set_reporter(
        self, db: AsyncSession, caller: str, reporter_id: str
    ) -> ConfigResponse:
        self._require_admin(caller, "set reporter")
        reporter_id = reporter_id.strip()
        if not reporter_id or reporter_id in SYSTEM_ACCOUNT_IDS:
            raise InvalidParameterError(f"invalid reporter identity {reporter_id!r}")
        try:
            cfg = await self._config_repo.set_reporter(db, reporter_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Config changed: reporter=%s version=%d", reporter_id, cfg.version)
        return ConfigResponse.from_domain(cfg, self._admin_id)

    async def set_minimum_stake(
        self, db: AsyncSession, caller: str, minimum_stake: int
    ) -> ConfigResponse:
        self._require_admin(caller, "set minimum stake")
        if minimum_stake <= 0:
            raise InvalidParameterError(
                f"minimum stake must be positive, got {minimum_stake}"
            )
        if minimum_stake > MAX_AMOUNT:
            raise InvalidParameterError(
                f"minimum stake exceeds {MAX_AMOUNT}, got {minimum_stake}"
            )
        try:
            cfg = await self._config_repo.set_minimum_stake(db, minimum_stake)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Config changed: minimum_stake=%d version=%d", minimum_stake, cfg.version)
        return ConfigResponse.from_domain(cfg, self._admin_id)

    async def set_fee_rate(
        self, db: AsyncSession, caller: str, fee_rate: int
    ) -> ConfigResponse:
        self._require_admin(caller, "set fee rate")
        try:
            validate_fee_rate(fee_rate)
        except ValueError as e:
            raise InvalidParameterError(str(e)) from e
        try:
            cfg = await self._config_repo.set_fee_rate(db, fee_rate)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Config changed: fee_rate=%d version=%d", fee_rate, cfg.version)
        return ConfigResponse.from_domain(cfg, self._admin_id)

    async def withdraw_fees(
        self, db: AsyncSession, caller: str, amount: int
    ) -> WithdrawFeesResponse:
        """Move up to the whole custody balance to the administrator.

        Custody is one pool: the bound is its balance, which includes stakes
        that winners have not claimed yet.
        """
        self._require_admin(caller, "withdraw fees")
        if amount <= 0:
            raise InvalidParameterError(f"withdraw amount must be positive, got {amount}")
        try:
            custody = await self._account_repo.get_account(db, ENGINE_CUSTODY_ID)
            available = custody.available_balance if custody else 0
            if amount > available:
                raise InsufficientBalanceError(amount, available)
            source, target = await self._account_repo.transfer(
                db,
                ENGINE_CUSTODY_ID,
                self._admin_id,
                amount,
                LedgerEntryType.CUSTODY_OUT,
                LedgerEntryType.FEE_WITHDRAWAL,
                "FEE_WITHDRAWAL",
                None,
                "Administrator fee withdrawal",
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Fees withdrawn: amount=%d custody_balance=%d", amount, source.available_balance
        )
        return WithdrawFeesResponse(
            withdrawn=amount,
            custody_balance=source.available_balance,
            administrator_balance=target.available_balance,
        )

    async def verify_all_invariants(self, db: AsyncSession, caller: str) -> InvariantReport:
        """Run the per-market, custody and global conservation checks."""
        self._require_admin(caller, "verify invariants")
        violations: list[str] = []
        violations.extend(await verify_market_pools(db))
        violations.extend(await verify_custody(db))
        violations.extend(await verify_global_conservation(db))
        return InvariantReport(ok=len(violations) == 0, violations=violations)
