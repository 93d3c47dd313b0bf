from sqlalchemy import text
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncSession

from transfer_service.domain.models import Account


_ACCOUNT_COLUMNS = "id, name, phone, email, balance_cents, created_at, updated_at"


def _to_account(row: Row) -> Account:
    return Account(
        id=row.id,
        name=row.name,
        phone=row.phone,
        email=row.email,
        balance_cents=row.balance_cents,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class AccountRepository:
    """Read access to accounts, plus opening new ones.

    Balances are never written here after the account is created; see
    BalanceRepository.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, account_id: str) -> Account | None:
        result = await self._session.execute(
            text(f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE id = :id"),
            {"id": account_id},
        )
        row = result.fetchone()
        return _to_account(row) if row else None

    async def find_by_phone(self, phone: str) -> Account | None:
        result = await self._session.execute(
            text(f"""
                SELECT {_ACCOUNT_COLUMNS}
                FROM accounts
                WHERE phone = :phone
                ORDER BY created_at
                LIMIT 1
            """),
            {"phone": phone},
        )
        row = result.fetchone()
        return _to_account(row) if row else None

    async def find_by_email(self, email: str) -> Account | None:
        result = await self._session.execute(
            text(f"""
                SELECT {_ACCOUNT_COLUMNS}
                FROM accounts
                WHERE email = :email
                ORDER BY created_at
                LIMIT 1
            """),
            {"email": email},
        )
        row = result.fetchone()
        return _to_account(row) if row else None

    async def add(self, account: Account) -> None:
        await self._session.execute(
            text("""
                INSERT INTO accounts (id, name, phone, email, balance_cents, created_at, updated_at)
                VALUES (:id, :name, :phone, :email, :balance_cents, :created_at, :updated_at)
            """),
            {
                "id": account.id,
                "name": account.name,
                "phone": account.phone,
                "email": account.email,
                "balance_cents": account.balance_cents,
                "created_at": account.created_at,
                "updated_at": account.updated_at,
            },
        )
