from sqlalchemy import text
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncSession

from transfer_service.domain.models import (
    FrequentRecipient,
    TransactionRecord,
    TransactionStatus,
    TransactionType,
)


_TRANSACTION_COLUMNS = """
    id, transfer_id, account_id, type, amount_cents, description, counterparty,
    counterparty_name, counterparty_account_id, status, created_at
"""


def _to_record(row: Row) -> TransactionRecord:
    return TransactionRecord(
        id=row.id,
        transfer_id=row.transfer_id,
        account_id=row.account_id,
        type=TransactionType(row.type),
        amount_cents=row.amount_cents,
        description=row.description,
        counterparty=row.counterparty,
        counterparty_name=row.counterparty_name,
        counterparty_account_id=row.counterparty_account_id,
        status=TransactionStatus(row.status),
        created_at=row.created_at,
    )


class TransactionRepository:
    """Append-only store of transaction records.

    Records are never updated or deleted once written.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, record: TransactionRecord) -> TransactionRecord:
        await self._session.execute(
            text("""
                INSERT INTO transactions
                    (id, transfer_id, account_id, type, amount_cents, description,
                     counterparty, counterparty_name, counterparty_account_id,
                     status, created_at)
                VALUES
                    (:id, :transfer_id, :account_id, :type, :amount_cents, :description,
                     :counterparty, :counterparty_name, :counterparty_account_id,
                     :status, :created_at)
            """),
            {
                "id": record.id,
                "transfer_id": record.transfer_id,
                "account_id": record.account_id,
                "type": record.type.value,
                "amount_cents": record.amount_cents,
                "description": record.description,
                "counterparty": record.counterparty,
                "counterparty_name": record.counterparty_name,
                "counterparty_account_id": record.counterparty_account_id,
                "status": record.status.value,
                "created_at": record.created_at,
            },
        )
        return record

    async def get(self, transaction_id: str, account_id: str | None = None) -> TransactionRecord | None:
        query = f"SELECT {_TRANSACTION_COLUMNS} FROM transactions WHERE id = :id"
        params = {"id": transaction_id}
        if account_id is not None:
            query += " AND account_id = :account_id"
            params["account_id"] = account_id
        result = await self._session.execute(text(query), params)
        row = result.fetchone()
        return _to_record(row) if row else None

    async def list_for_account(
        self,
        account_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> list[TransactionRecord]:
        result = await self._session.execute(
            text(f"""
                SELECT {_TRANSACTION_COLUMNS}
                FROM transactions
                WHERE account_id = :account_id
                ORDER BY created_at DESC, id DESC
                LIMIT :limit OFFSET :offset
            """),
            {"account_id": account_id, "limit": limit, "offset": offset},
        )
        return [_to_record(row) for row in result.fetchall()]

    async def frequent_recipients(self, account_id: str, limit: int = 10) -> list[FrequentRecipient]:
        # Grouped by resolved account so 07.. and +2547.. entries for the same
        # person collapse; the most recent identifier and name are shown.
        result = await self._session.execute(
            text("""
                SELECT
                    (array_agg(counterparty ORDER BY created_at DESC))[1] AS identifier,
                    (array_agg(counterparty_name ORDER BY created_at DESC))[1] AS name,
                    COUNT(*) AS count,
                    SUM(amount_cents) AS total_amount_cents
                FROM transactions
                WHERE account_id = :account_id
                  AND type = :type
                  AND status = :status
                GROUP BY COALESCE(counterparty_account_id, counterparty)
                ORDER BY count DESC, total_amount_cents DESC
                LIMIT :limit
            """),
            {
                "account_id": account_id,
                "type": TransactionType.SEND.value,
                "status": TransactionStatus.COMPLETED.value,
                "limit": limit,
            },
        )
        return [
            FrequentRecipient(
                identifier=row.identifier,
                name=row.name,
                count=int(row.count),
                total_amount_cents=int(row.total_amount_cents),
            )
            for row in result.fetchall()
        ]
