from datetime import UTC, datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from transfer_service.domain.models import IdempotencyRecord, IdempotencyStatus


class IdempotencyRepository:
    """Idempotency keys for client retries of money-moving requests.

    Keys are stored scoped by account so two callers can reuse the same
    client-generated value without colliding.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @staticmethod
    def scoped_key(account_id: str, key: str) -> str:
        return f"{account_id}:{key}"

    async def get(self, account_id: str, key: str) -> IdempotencyRecord | None:
        result = await self._session.execute(
            text("""
                SELECT key, account_id, status, transaction_id, created_at, expires_at, request_hash
                FROM idempotency_keys
                WHERE key = :key AND expires_at > :now
            """),
            {"key": self.scoped_key(account_id, key), "now": datetime.now(UTC)},
        )
        row = result.fetchone()
        if not row:
            return None
        return IdempotencyRecord(
            key=key,
            account_id=row.account_id,
            status=IdempotencyStatus(row.status),
            transaction_id=row.transaction_id,
            created_at=row.created_at,
            expires_at=row.expires_at,
            request_hash=row.request_hash,
        )

    async def claim(
        self,
        account_id: str,
        key: str,
        expires_at: datetime,
        request_hash: str | None = None,
    ) -> bool:
        """Take ownership of ``key`` for this request.

        An expired row is taken over. Returns False when a live row exists,
        committed or still held by a concurrent transaction (which we wait
        for).
        """
        now = datetime.now(UTC)
        result = await self._session.execute(
            text("""
                INSERT INTO idempotency_keys (key, account_id, status, created_at, expires_at, request_hash)
                VALUES (:key, :account_id, 'PENDING', :now, :expires_at, :request_hash)
                ON CONFLICT (key) DO UPDATE
                SET status = 'PENDING',
                    transaction_id = NULL,
                    created_at = EXCLUDED.created_at,
                    expires_at = EXCLUDED.expires_at,
                    request_hash = EXCLUDED.request_hash
                WHERE idempotency_keys.expires_at <= :now
                RETURNING key
            """),
            {
                "key": self.scoped_key(account_id, key),
                "account_id": account_id,
                "now": now,
                "expires_at": expires_at,
                "request_hash": request_hash,
            },
        )
        return result.fetchone() is not None

    async def mark_completed(self, account_id: str, key: str, transaction_id: str) -> None:
        await self._session.execute(
            text("""
                UPDATE idempotency_keys
                SET status = 'COMPLETED',
                    transaction_id = :transaction_id
                WHERE key = :key
            """),
            {
                "key": self.scoped_key(account_id, key),
                "transaction_id": transaction_id,
            },
        )
