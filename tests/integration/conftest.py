"""PostgreSQL fixtures for integration tests.

A throwaway PostgreSQL container is started once per session and migrated
with alembic. Tests are skipped when Docker is not available.
"""

from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import text
from testcontainers.postgres import PostgresContainer

from transfer_service.application.services import PaymentService, SendMoneyCommand, SendMoneyResult
from transfer_service.application.unit_of_work import UnitOfWork
from transfer_service.domain.models import Account
from transfer_service.infrastructure.database import Database
from transfer_service.infrastructure.repositories import BalanceRepository


PROJECT_ROOT = Path(__file__).resolve().parents[2]


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """Start PostgreSQL container for tests."""
    container = PostgresContainer("postgres:16-alpine", username="transfer", password="transfer", dbname="transfer")
    try:
        container.start()
    except Exception as exc:
        pytest.skip(f"Docker is not available: {exc}")
    try:
        yield container
    finally:
        container.stop()


@pytest.fixture(scope="session")
def database_url(postgres_container: PostgresContainer) -> str:
    """Migrated database URL for the asyncpg driver."""
    host = postgres_container.get_container_host_ip()
    port = postgres_container.get_exposed_port(5432)
    url = f"postgresql+asyncpg://transfer:transfer@{host}:{port}/transfer"

    config = Config(str(PROJECT_ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    config.set_main_option("sqlalchemy.url", url)
    config.attributes["configure_logger"] = False
    command.upgrade(config, "head")

    return url


@pytest.fixture
async def database(database_url: str) -> AsyncGenerator[Database, None]:
    """Database bound to the test's event loop; tables are emptied afterwards."""
    db = Database(database_url, pool_size=20, max_overflow=20)
    yield db
    async with db.engine.begin() as connection:
        await connection.execute(text("TRUNCATE idempotency_keys, transactions, accounts"))
    await db.close()


async def open_account(
    database: Database,
    name: str,
    phone: str | None = None,
    email: str | None = None,
    balance_cents: int = 0,
) -> Account:
    """Insert an account directly, bypassing normalization."""
    account = Account.open(name=name, phone=phone, email=email, initial_balance_cents=balance_cents)
    async with database.session() as session:
        async with UnitOfWork(session) as uow:
            await uow.accounts.add(account)
            await uow.commit()
    return account


async def balance_of(database: Database, account_id: str) -> int | None:
    async with database.session() as session:
        return await BalanceRepository(session).get_balance(account_id)


async def send(database: Database, cmd: SendMoneyCommand) -> SendMoneyResult:
    """Run one transfer in its own session, as a request would."""
    async with database.session() as session:
        return await PaymentService(UnitOfWork(session)).send_money(cmd)
