from collections.abc import Iterable
from datetime import UTC, datetime

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from transfer_service.domain.exceptions import AccountNotFoundError, InsufficientFundsError


class BalanceRepository:
    """The only writer of ``accounts.balance_cents``.

    Every change is a single conditional UPDATE so the non-negative check and
    the write happen atomically in the database. Concurrent adjustments of
    the same row are serialized by its row lock.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_balance(self, account_id: str) -> int | None:
        result = await self._session.execute(
            text("SELECT balance_cents FROM accounts WHERE id = :account_id"),
            {"account_id": account_id},
        )
        row = result.fetchone()
        return row.balance_cents if row else None

    async def lock_accounts(self, account_ids: Iterable[str]) -> dict[str, int]:
        """Row-lock the given accounts in id order and return their balances.

        A fixed lock order keeps A->B and B->A transfers from deadlocking.
        """
        ids = sorted(set(account_ids))
        result = await self._session.execute(
            text("""
                SELECT id, balance_cents
                FROM accounts
                WHERE id IN :ids
                ORDER BY id
                FOR UPDATE
            """).bindparams(bindparam("ids", expanding=True)),
            {"ids": ids},
        )
        return {row.id: row.balance_cents for row in result.fetchall()}

    async def adjust_balance(self, account_id: str, delta_cents: int) -> int:
        """Apply ``delta_cents`` and return the new balance.

        Raises InsufficientFundsError without touching the row when a debit
        would take the balance below zero.
        """
        result = await self._session.execute(
            text("""
                UPDATE accounts
                SET balance_cents = balance_cents + :delta,
                    updated_at = :updated_at
                WHERE id = :account_id AND balance_cents + :delta >= 0
                RETURNING balance_cents
            """),
            {
                "account_id": account_id,
                "delta": delta_cents,
                "updated_at": datetime.now(UTC),
            },
        )
        row = result.fetchone()
        if row is not None:
            return int(row.balance_cents)

        available = await self.get_balance(account_id)
        if available is None:
            raise AccountNotFoundError(account_id)
        raise InsufficientFundsError(account_id, required=-delta_cents, available=available)
