"""AccountApplicationService — participant balances and engine custody.

Deposit and withdraw commit on success and roll back on any error.
Balance, custody and ledger reads run without an explicit transaction.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.application.schemas import (
    BalanceResponse,
    CustodyBalanceResponse,
    DepositResponse,
    LedgerEntryItem,
    LedgerResponse,
    WithdrawResponse,
    cursor_decode,
    cursor_encode,
)
from src.pm_account.domain.constants import ENGINE_CUSTODY_ID, SYSTEM_ACCOUNT_IDS
from src.pm_account.domain.repository import AccountRepositoryProtocol
from src.pm_account.infrastructure.persistence import AccountRepository
from src.pm_common.amounts import MAX_AMOUNT, within_bigint
from src.pm_common.errors import InvalidParameterError, UnauthorizedError

logger = logging.getLogger(__name__)


class AccountApplicationService:
    def __init__(self, repo: AccountRepositoryProtocol | None = None) -> None:
        self._repo: AccountRepositoryProtocol = repo or AccountRepository()

    async def get_balance(self, db: AsyncSession, user_id: str) -> BalanceResponse:
        account = await self._repo.get_account(db, user_id)
        available = account.available_balance if account else 0
        return BalanceResponse(user_id=user_id, available_balance=available)

    async def get_custody_balance(self, db: AsyncSession) -> CustodyBalanceResponse:
        account = await self._repo.get_account(db, ENGINE_CUSTODY_ID)
        return CustodyBalanceResponse(
            custody_account=ENGINE_CUSTODY_ID,
            balance=account.available_balance if account else 0,
        )

    async def deposit(
        self, db: AsyncSession, user_id: str, amount: int
    ) -> DepositResponse:
        self._check_participant(user_id, "deposit")
        if amount <= 0:
            raise InvalidParameterError(f"deposit amount must be positive, got {amount}")
        try:
            current = await self._repo.get_account(db, user_id)
            balance = current.available_balance if current else 0
            if not within_bigint(balance + amount):
                raise InvalidParameterError(
                    f"deposit of {amount} would push the balance past {MAX_AMOUNT}"
                )
            account, entry = await self._repo.deposit(db, user_id, amount)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Deposit: user=%s amount=%d balance=%d", user_id, amount, account.available_balance)
        return DepositResponse(
            available_balance=account.available_balance,
            deposited=amount,
            ledger_entry_id=entry.id,
        )

    async def withdraw(
        self, db: AsyncSession, user_id: str, amount: int
    ) -> WithdrawResponse:
        self._check_participant(user_id, "withdraw")
        if amount <= 0:
            raise InvalidParameterError(f"withdraw amount must be positive, got {amount}")
        if amount > MAX_AMOUNT:
            raise InvalidParameterError(f"withdraw amount exceeds {MAX_AMOUNT}, got {amount}")
        try:
            account, entry = await self._repo.withdraw(db, user_id, amount)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Withdraw: user=%s amount=%d balance=%d", user_id, amount, account.available_balance)
        return WithdrawResponse(
            available_balance=account.available_balance,
            withdrawn=amount,
            ledger_entry_id=entry.id,
        )

    async def list_ledger(
        self,
        db: AsyncSession,
        user_id: str,
        cursor: str | None,
        limit: int,
        entry_type: str | None,
    ) -> LedgerResponse:
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        entries = await self._repo.list_ledger_entries(
            db, user_id, cursor_id, limit + 1, entry_type
        )
        has_more = len(entries) > limit
        page = entries[:limit]

        items = [
            LedgerEntryItem(
                id=e.id,
                entry_type=e.entry_type,
                amount=e.amount,
                balance_after=e.balance_after,
                reference_type=e.reference_type,
                reference_id=e.reference_id,
                description=e.description,
                created_at=e.created_at.isoformat() if e.created_at else "",
            )
            for e in page
        ]

        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return LedgerResponse(items=items, next_cursor=next_cursor, has_more=has_more)

    @staticmethod
    def _check_participant(user_id: str, action: str) -> None:
        # System accounts move value only through stake / claim / withdraw_fees
        if user_id in SYSTEM_ACCOUNT_IDS:
            raise UnauthorizedError(action)
