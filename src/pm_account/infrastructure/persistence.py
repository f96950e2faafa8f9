"""AccountRepository — concrete implementation of AccountRepositoryProtocol.

All balance-mutating operations use atomic PostgreSQL UPDATE ... RETURNING.
A result of 0 rows on a guarded debit means the balance was insufficient.
Credits upsert, so recipient accounts are created on first credit.

Transaction ownership: the CALLER (application service) commits or rolls back.
Every balance change writes exactly one ledger_entries row.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.constants import ENGINE_CUSTODY_ID
from src.pm_account.domain.models import Account, LedgerEntry
from src.pm_common.enums import LedgerEntryType
from src.pm_common.errors import InsufficientBalanceError, InternalError

# ---------------------------------------------------------------------------
# SQL: accounts mutations
# ---------------------------------------------------------------------------

_CREDIT_SQL = text("""
    INSERT INTO accounts (user_id, available_balance)
    VALUES (:user_id, :amount)
    ON CONFLICT (user_id) DO UPDATE
        SET available_balance = accounts.available_balance + EXCLUDED.available_balance,
            version = accounts.version + 1,
            updated_at = NOW()
    RETURNING user_id, available_balance, version, created_at, updated_at
""")

_DEBIT_SQL = text("""
    UPDATE accounts
    SET available_balance = available_balance - :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id AND available_balance >= :amount
    RETURNING user_id, available_balance, version, created_at, updated_at
""")

# Transfers lock ENGINE_CUSTODY before any participant row, so every
# value-moving transaction queues on custody first and lock waits never cycle.
_LOCK_ACCOUNT_SQL = text("""
    SELECT user_id
    FROM accounts
    WHERE user_id = :user_id
    FOR UPDATE
""")

_GET_ACCOUNT_SQL = text("""
    SELECT user_id, available_balance, version, created_at, updated_at
    FROM accounts
    WHERE user_id = :user_id
""")

_INSERT_LEDGER_SQL = text("""
    INSERT INTO ledger_entries
        (user_id, entry_type, amount, balance_after,
         reference_type, reference_id, description)
    VALUES
        (:user_id, :entry_type, :amount, :balance_after,
         :reference_type, :reference_id, :description)
    RETURNING id, user_id, entry_type, amount, balance_after,
              reference_type, reference_id, description, created_at
""")

_LIST_LEDGER_SQL = text("""
    SELECT id, user_id, entry_type, amount, balance_after,
           reference_type, reference_id, description, created_at
    FROM ledger_entries
    WHERE user_id = :user_id
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < CAST(:cursor_id AS BIGINT))
      AND (CAST(:entry_type AS TEXT) IS NULL OR entry_type = CAST(:entry_type AS TEXT))
    ORDER BY id DESC
    LIMIT :limit
""")


def lock_order(*user_ids: str) -> list[str]:
    """Custody first, then participants by user_id."""
    return sorted(set(user_ids), key=lambda uid: (uid != ENGINE_CUSTODY_ID, uid))


def _row_to_account(row: object) -> Account:
    return Account(
        user_id=row.user_id,  # type: ignore[attr-defined]
        available_balance=row.available_balance,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_ledger(row: object) -> LedgerEntry:
    return LedgerEntry(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        entry_type=row.entry_type,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        balance_after=row.balance_after,  # type: ignore[attr-defined]
        reference_type=row.reference_type,  # type: ignore[attr-defined]
        reference_id=row.reference_id,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class AccountRepository:
    """Concrete repository — all operations atomic at the SQL level."""

    async def get_account(
        self, db: AsyncSession, user_id: str
    ) -> Account | None:
        result = await db.execute(_GET_ACCOUNT_SQL, {"user_id": user_id})
        row = result.fetchone()
        return _row_to_account(row) if row else None

    async def deposit(
        self, db: AsyncSession, user_id: str, amount: int
    ) -> tuple[Account, LedgerEntry]:
        account = await self._credit(db, user_id, amount)
        entry = await self._write_ledger(
            db, account, LedgerEntryType.DEPOSIT, amount, "DEPOSIT", None, "Deposit"
        )
        return account, entry

    async def withdraw(
        self, db: AsyncSession, user_id: str, amount: int
    ) -> tuple[Account, LedgerEntry]:
        account = await self._debit(db, user_id, amount)
        entry = await self._write_ledger(
            db, account, LedgerEntryType.WITHDRAW, -amount, "WITHDRAW", None, "Withdrawal"
        )
        return account, entry

    async def transfer(
        self,
        db: AsyncSession,
        from_user_id: str,
        to_user_id: str,
        amount: int,
        debit_type: str,
        credit_type: str,
        ref_type: str,
        ref_id: str | None,
        description: str,
    ) -> tuple[Account, Account]:
        """Move amount between two accounts: guarded debit, then credit.

        Both rows are locked up front, custody first (see lock_order), so a
        stake and a claim never wait on each other in opposite directions.
        Both legs and both ledger rows share the caller's transaction.
        """
        if amount <= 0:
            raise ValueError(f"transfer amount must be positive, got {amount}")
        for user_id in lock_order(from_user_id, to_user_id):
            await db.execute(_LOCK_ACCOUNT_SQL, {"user_id": user_id})
        source = await self._debit(db, from_user_id, amount)
        await self._write_ledger(
            db, source, debit_type, -amount, ref_type, ref_id, description
        )
        target = await self._credit(db, to_user_id, amount)
        await self._write_ledger(
            db, target, credit_type, amount, ref_type, ref_id, description
        )
        return source, target

    async def list_ledger_entries(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[LedgerEntry]:
        result = await db.execute(
            _LIST_LEDGER_SQL,
            {
                "user_id": user_id,
                "cursor_id": cursor_id,
                "entry_type": entry_type,
                "limit": limit,
            },
        )
        rows = result.fetchall()
        return [_row_to_ledger(row) for row in rows]

    # -----------------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------------

    async def _credit(self, db: AsyncSession, user_id: str, amount: int) -> Account:
        result = await db.execute(_CREDIT_SQL, {"user_id": user_id, "amount": amount})
        row = result.fetchone()
        if row is None:
            raise InternalError(f"Credit to {user_id} returned no rows")
        return _row_to_account(row)

    async def _debit(self, db: AsyncSession, user_id: str, amount: int) -> Account:
        result = await db.execute(_DEBIT_SQL, {"user_id": user_id, "amount": amount})
        row = result.fetchone()
        if row is None:
            acc_result = await db.execute(_GET_ACCOUNT_SQL, {"user_id": user_id})
            acc_row = acc_result.fetchone()
            available = acc_row.available_balance if acc_row else 0
            raise InsufficientBalanceError(amount, available)
        return _row_to_account(row)

    async def _write_ledger(
        self,
        db: AsyncSession,
        account: Account,
        entry_type: str,
        amount: int,
        ref_type: str | None,
        ref_id: str | None,
        description: str,
    ) -> LedgerEntry:
        result = await db.execute(
            _INSERT_LEDGER_SQL,
            {
                "user_id": account.user_id,
                "entry_type": LedgerEntryType(entry_type).value,
                "amount": amount,
                "balance_after": account.available_balance,
                "reference_type": ref_type,
                "reference_id": ref_id,
                "description": description,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Ledger insert returned no rows — this should never happen")
        return _row_to_ledger(row)
