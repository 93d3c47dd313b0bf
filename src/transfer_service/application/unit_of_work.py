from types import TracebackType
from typing import Self

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from transfer_service.infrastructure.repositories import (
    AccountRepository,
    BalanceRepository,
    IdempotencyRepository,
    TransactionRepository,
)


logger = structlog.get_logger()


class UnitOfWork:
    """Repositories sharing one session, and therefore one database transaction.

    Leaving the block without ``commit()`` rolls back, so a failed transfer
    releases its row locks and idempotency claim, and a read releases its
    snapshot, before the session goes back to the pool.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._committed = False
        self.accounts = AccountRepository(session)
        self.balances = BalanceRepository(session)
        self.transactions = TransactionRepository(session)
        self.idempotency = IdempotencyRepository(session)

    @property
    def committed(self) -> bool:
        return self._committed

    async def __aenter__(self) -> Self:
        self._committed = False
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            logger.debug("unit_of_work_rolled_back", reason=exc_type.__name__)
            await self.rollback()
        elif not self._committed:
            await self.rollback()

    async def commit(self) -> None:
        await self._session.commit()
        self._committed = True

    async def rollback(self) -> None:
        await self._session.rollback()
