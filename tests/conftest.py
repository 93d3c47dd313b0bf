"""Shared pytest fixtures for transfer service tests."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from transfer_service.application.unit_of_work import UnitOfWork
from transfer_service.domain.models import (
    Account,
    IdempotencyRecord,
    IdempotencyStatus,
    TransactionRecord,
    TransactionType,
)


@pytest.fixture
def mock_account_repository() -> AsyncMock:
    """Create mock AccountRepository."""
    repo = AsyncMock()
    repo.get = AsyncMock(return_value=None)
    repo.find_by_phone = AsyncMock(return_value=None)
    repo.find_by_email = AsyncMock(return_value=None)
    repo.add = AsyncMock(return_value=None)
    return repo


@pytest.fixture
def mock_balance_repository() -> AsyncMock:
    """Create mock BalanceRepository."""
    repo = AsyncMock()
    repo.get_balance = AsyncMock(return_value=None)
    repo.lock_accounts = AsyncMock(return_value={})
    repo.adjust_balance = AsyncMock(return_value=0)
    return repo


@pytest.fixture
def mock_transaction_repository() -> AsyncMock:
    """Create mock TransactionRepository."""
    repo = AsyncMock()
    repo.add = AsyncMock(side_effect=lambda record: record)
    repo.get = AsyncMock(return_value=None)
    repo.list_for_account = AsyncMock(return_value=[])
    repo.frequent_recipients = AsyncMock(return_value=[])
    return repo


@pytest.fixture
def mock_idempotency_repository() -> AsyncMock:
    """Create mock IdempotencyRepository."""
    repo = AsyncMock()
    repo.get = AsyncMock(return_value=None)
    repo.claim = AsyncMock(return_value=True)
    repo.mark_completed = AsyncMock(return_value=None)
    return repo


@pytest.fixture
def mock_uow(
    mock_account_repository: AsyncMock,
    mock_balance_repository: AsyncMock,
    mock_transaction_repository: AsyncMock,
    mock_idempotency_repository: AsyncMock,
) -> AsyncMock:
    """Create mock Unit of Work with all repositories."""
    uow = AsyncMock(spec=UnitOfWork)
    uow.accounts = mock_account_repository
    uow.balances = mock_balance_repository
    uow.transactions = mock_transaction_repository
    uow.idempotency = mock_idempotency_repository
    uow.commit = AsyncMock(return_value=None)
    uow.rollback = AsyncMock(return_value=None)

    # Configure async context manager
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock(return_value=None)

    return uow


@pytest.fixture
def sample_sender() -> Account:
    """Create sample sender with KES 1,000.00."""
    return create_account("sender-account-001", name="Wanjiru Kamau", phone="+254712345678", balance_cents=100000)


@pytest.fixture
def sample_recipient() -> Account:
    """Create sample recipient with KES 500.00."""
    return create_account(
        "recipient-account-002",
        name="Otieno Ouma",
        phone="+254723456789",
        email="otieno@example.com",
        balance_cents=50000,
    )


@pytest.fixture
def sample_completed_key() -> IdempotencyRecord:
    """Create sample completed idempotency record."""
    return IdempotencyRecord(
        key="existing-idempotency-key",
        account_id="sender-account-001",
        status=IdempotencyStatus.COMPLETED,
        transaction_id="existing-transaction-id",
        created_at=datetime.now(UTC),
        expires_at=datetime.now(UTC),
    )


def create_account(
    account_id: str,
    name: str = "Test User",
    phone: str | None = None,
    email: str | None = None,
    balance_cents: int = 0,
) -> Account:
    """Helper to create Account with custom values."""
    return Account(
        id=account_id,
        name=name,
        phone=phone,
        email=email,
        balance_cents=balance_cents,
        created_at=datetime.now(UTC),
        updated_at=datetime.now(UTC),
    )


def create_transaction(
    account_id: str = "sender-account-001",
    type: TransactionType = TransactionType.SEND,
    amount_cents: int = 10000,
    counterparty: str = "0723456789",
    counterparty_name: str = "Otieno Ouma",
    description: str = "Transfer to Otieno Ouma",
    transfer_id: str = "transfer-001",
) -> TransactionRecord:
    """Helper to create TransactionRecord with custom values."""
    return TransactionRecord.create(
        transfer_id=transfer_id,
        account_id=account_id,
        type=type,
        amount_cents=amount_cents,
        description=description,
        counterparty=counterparty,
        counterparty_name=counterparty_name,
        counterparty_account_id="recipient-account-002",
    )
