"""Integration tests for transfers against a real PostgreSQL."""

import asyncio
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import text

from tests.integration.conftest import balance_of, open_account, send
from transfer_service.application.services import PaymentService, SendMoneyCommand
from transfer_service.application.unit_of_work import UnitOfWork
from transfer_service.domain.exceptions import (
    DuplicateRequestError,
    IdempotencyKeyReusedError,
    InsufficientFundsError,
    InvalidRecipientError,
    RecipientNotFoundError,
    ValidationFailedError,
)
from transfer_service.domain.models import TransactionType
from transfer_service.infrastructure.database import Database


pytestmark = pytest.mark.integration


def to_phone(sender_id: str, phone: str, amount_cents: int, **kwargs: object) -> SendMoneyCommand:
    return SendMoneyCommand(
        sender_id=sender_id,
        recipient_type="phone",
        recipient_phone=phone,
        amount_cents=amount_cents,
        **kwargs,  # type: ignore[arg-type]
    )


async def count_transactions(database: Database) -> int:
    async with database.session() as session:
        result = await session.execute(text("SELECT COUNT(*) FROM transactions"))
        return int(result.scalar_one())


class TestTransferScenarios:
    """End-to-end transfer behaviour through PaymentService."""

    @pytest.mark.asyncio
    async def test_successful_transfer(self, database: Database) -> None:
        """Funds move, and both parties see one record each."""
        alice = await open_account(database, "Alice", phone="+254712345678", balance_cents=100000)
        bob = await open_account(database, "Bob", phone="+254723456789", balance_cents=0)

        result = await send(database, to_phone(alice.id, "0723456789", 60000, description="Rent share"))

        assert result.new_balance_cents == 40000
        assert result.recipient_name == "Bob"
        assert await balance_of(database, alice.id) == 40000
        assert await balance_of(database, bob.id) == 60000

        async with database.session() as session:
            uow = UnitOfWork(session)
            alice_history = await uow.transactions.list_for_account(alice.id)
            bob_history = await uow.transactions.list_for_account(bob.id)

        assert [t.type for t in alice_history] == [TransactionType.SEND]
        assert [t.type for t in bob_history] == [TransactionType.RECEIVE]
        assert alice_history[0].counterparty == "0723456789"
        assert alice_history[0].description == "Rent share"
        assert bob_history[0].counterparty == "+254712345678"
        assert bob_history[0].counterparty_name == "Alice"
        assert alice_history[0].transfer_id == bob_history[0].transfer_id

    @pytest.mark.asyncio
    async def test_insufficient_funds_changes_nothing(self, database: Database) -> None:
        """A declined transfer leaves balances and history untouched."""
        alice = await open_account(database, "Alice", phone="+254712345678", balance_cents=10000)
        bob = await open_account(database, "Bob", phone="+254723456789", balance_cents=5000)

        with pytest.raises(InsufficientFundsError):
            await send(database, to_phone(alice.id, "0723456789", 20000))

        assert await balance_of(database, alice.id) == 10000
        assert await balance_of(database, bob.id) == 5000
        assert await count_transactions(database) == 0

    @pytest.mark.asyncio
    async def test_unknown_recipient(self, database: Database) -> None:
        """Sending to a number nobody owns fails cleanly."""
        alice = await open_account(database, "Alice", phone="+254712345678", balance_cents=10000)

        with pytest.raises(RecipientNotFoundError):
            await send(database, to_phone(alice.id, "0799999999", 100))

        assert await balance_of(database, alice.id) == 10000

    @pytest.mark.asyncio
    async def test_self_transfer_rejected(self, database: Database) -> None:
        """Any format of your own number resolves to you and is rejected."""
        alice = await open_account(database, "Alice", phone="+254712345678", balance_cents=10000)

        with pytest.raises(InvalidRecipientError):
            await send(database, to_phone(alice.id, "712345678", 100))

        assert await balance_of(database, alice.id) == 10000
        assert await count_transactions(database) == 0

    @pytest.mark.asyncio
    async def test_legacy_stored_phone_format_is_found(self, database: Database) -> None:
        """Accounts stored with a local-format number are still reachable."""
        alice = await open_account(database, "Alice", phone="+254712345678", balance_cents=10000)
        legacy = await open_account(database, "Legacy", phone="0723456789")

        await send(database, to_phone(alice.id, "+254 723 456 789", 2500))

        assert await balance_of(database, legacy.id) == 2500

    @pytest.mark.asyncio
    async def test_email_transfer_is_case_insensitive(self, database: Database) -> None:
        """Emails are matched after lower-casing."""
        alice = await open_account(database, "Alice", phone="+254712345678", balance_cents=10000)
        carol = await open_account(database, "Carol", email="carol@example.com")

        await send(
            database,
            SendMoneyCommand(
                sender_id=alice.id,
                recipient_type="email",
                recipient_email="  Carol@Example.COM",
                amount_cents=1000,
            ),
        )

        assert await balance_of(database, carol.id) == 1000

    @pytest.mark.asyncio
    async def test_failure_after_debit_rolls_back(self, database: Database) -> None:
        """Nothing is persisted when recording fails after balances moved."""
        alice = await open_account(database, "Alice", phone="+254712345678", balance_cents=10000)
        bob = await open_account(database, "Bob", phone="+254723456789", balance_cents=0)

        async with database.session() as session:
            uow = UnitOfWork(session)
            uow.transactions.add = AsyncMock(side_effect=RuntimeError("disk full"))
            with pytest.raises(RuntimeError):
                await PaymentService(uow).send_money(to_phone(alice.id, "0723456789", 4000))

        assert await balance_of(database, alice.id) == 10000
        assert await balance_of(database, bob.id) == 0


class TestConcurrency:
    """Concurrent transfers never overdraw and never lose money."""

    @pytest.mark.asyncio
    async def test_two_concurrent_sends_cannot_overdraw(self, database: Database) -> None:
        """Of two 600 sends from a 1000 balance exactly one succeeds."""
        alice = await open_account(database, "Alice", phone="+254712345678", balance_cents=100000)
        bob = await open_account(database, "Bob", phone="+254723456789", balance_cents=0)

        results = await asyncio.gather(
            send(database, to_phone(alice.id, "0723456789", 60000)),
            send(database, to_phone(alice.id, "0723456789", 60000)),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, Exception)]
        assert len(failures) == 1
        assert isinstance(failures[0], InsufficientFundsError)
        assert await balance_of(database, alice.id) == 40000
        assert await balance_of(database, bob.id) == 60000
        assert await count_transactions(database) == 2

    @pytest.mark.asyncio
    async def test_many_concurrent_sends_drain_exactly(self, database: Database) -> None:
        """Twenty 100-cent sends from a 1500 balance: fifteen succeed, none overdraw."""
        alice = await open_account(database, "Alice", phone="+254712345678", balance_cents=1500)
        bob = await open_account(database, "Bob", phone="+254723456789", balance_cents=0)

        results = await asyncio.gather(
            *(send(database, to_phone(alice.id, "0723456789", 100)) for _ in range(20)),
            return_exceptions=True,
        )

        successes = [r for r in results if not isinstance(r, Exception)]
        failures = [r for r in results if isinstance(r, Exception)]
        assert len(successes) == 15
        assert all(isinstance(f, InsufficientFundsError) for f in failures)
        assert await balance_of(database, alice.id) == 0
        assert await balance_of(database, bob.id) == 1500

    @pytest.mark.asyncio
    async def test_opposing_transfers_do_not_deadlock_and_conserve_total(self, database: Database) -> None:
        """A->B and B->A at the same time complete, and the total is unchanged."""
        alice = await open_account(database, "Alice", phone="+254712345678", balance_cents=50000)
        bob = await open_account(database, "Bob", phone="+254723456789", balance_cents=50000)

        transfers = []
        for i in range(10):
            transfers.append(send(database, to_phone(alice.id, "0723456789", 1000 + i)))
            transfers.append(send(database, to_phone(bob.id, "0712345678", 2000 + i)))

        results = await asyncio.wait_for(asyncio.gather(*transfers, return_exceptions=True), timeout=30)

        assert not [r for r in results if isinstance(r, Exception)]
        alice_balance = await balance_of(database, alice.id)
        bob_balance = await balance_of(database, bob.id)
        assert alice_balance is not None and bob_balance is not None
        assert alice_balance + bob_balance == 100000
        assert alice_balance == 50000 - sum(1000 + i for i in range(10)) + sum(2000 + i for i in range(10))


class TestIdempotency:
    """Client retries with an Idempotency-Key move money once."""

    @pytest.mark.asyncio
    async def test_sequential_retry_is_replayed(self, database: Database) -> None:
        """The second call returns the first call's SEND record."""
        alice = await open_account(database, "Alice", phone="+254712345678", balance_cents=10000)
        await open_account(database, "Bob", phone="+254723456789")

        first = await send(database, to_phone(alice.id, "0723456789", 3000, idempotency_key="pay-bob-1"))
        second = await send(database, to_phone(alice.id, "0723456789", 3000, idempotency_key="pay-bob-1"))

        assert first.replayed is False
        assert second.replayed is True
        assert second.transaction.id == first.transaction.id
        assert await balance_of(database, alice.id) == 7000
        assert await count_transactions(database) == 2

    @pytest.mark.asyncio
    async def test_concurrent_retries_move_money_once(self, database: Database) -> None:
        """Simultaneous retries either replay or report a duplicate."""
        alice = await open_account(database, "Alice", phone="+254712345678", balance_cents=10000)
        await open_account(database, "Bob", phone="+254723456789")

        results = await asyncio.gather(
            *(send(database, to_phone(alice.id, "0723456789", 3000, idempotency_key="pay-bob-2")) for _ in range(5)),
            return_exceptions=True,
        )

        completed = [r for r in results if not isinstance(r, BaseException)]
        errors = [r for r in results if isinstance(r, BaseException)]
        assert len([r for r in completed if not r.replayed]) == 1
        assert all(isinstance(e, DuplicateRequestError) for e in errors)
        assert await balance_of(database, alice.id) == 7000
        assert await count_transactions(database) == 2

    @pytest.mark.asyncio
    async def test_keys_are_scoped_per_sender(self, database: Database) -> None:
        """Two senders may use the same key value independently."""
        alice = await open_account(database, "Alice", phone="+254712345678", balance_cents=10000)
        bob = await open_account(database, "Bob", phone="+254723456789", balance_cents=10000)
        await open_account(database, "Carol", phone="+254734567890")

        a = await send(database, to_phone(alice.id, "0734567890", 1000, idempotency_key="same"))
        b = await send(database, to_phone(bob.id, "0734567890", 1000, idempotency_key="same"))

        assert a.replayed is False
        assert b.replayed is False
        assert await balance_of(database, alice.id) == 9000
        assert await balance_of(database, bob.id) == 9000

    @pytest.mark.asyncio
    async def test_declined_transfer_releases_key(self, database: Database) -> None:
        """A key whose request failed can be retried once funds arrive."""
        alice = await open_account(database, "Alice", phone="+254712345678", balance_cents=0)
        bob = await open_account(database, "Bob", phone="+254723456789", balance_cents=5000)

        with pytest.raises(InsufficientFundsError):
            await send(database, to_phone(alice.id, "0723456789", 1000, idempotency_key="retry-later"))

        await send(database, to_phone(bob.id, "0712345678", 2000))
        result = await send(database, to_phone(alice.id, "0723456789", 1000, idempotency_key="retry-later"))

        assert result.replayed is False
        assert await balance_of(database, alice.id) == 1000

    @pytest.mark.asyncio
    async def test_key_reused_for_different_amount_moves_nothing(self, database: Database) -> None:
        """A second transfer under a used key is refused, not replayed."""
        alice = await open_account(database, "Alice", phone="+254712345678", balance_cents=10000)
        await open_account(database, "Bob", phone="+254723456789")

        await send(database, to_phone(alice.id, "0723456789", 3000, idempotency_key="pay-bob-3"))
        with pytest.raises(IdempotencyKeyReusedError):
            await send(database, to_phone(alice.id, "0723456789", 5000, idempotency_key="pay-bob-3"))

        assert await balance_of(database, alice.id) == 7000
        assert await count_transactions(database) == 2

    @pytest.mark.asyncio
    async def test_malformed_phone_is_rejected_before_lookup(self, database: Database) -> None:
        """Input that cannot be a phone number is a validation error."""
        alice = await open_account(database, "Alice", phone="+254712345678", balance_cents=10000)

        with pytest.raises(ValidationFailedError):
            await send(database, to_phone(alice.id, "hello", 100))

        assert await balance_of(database, alice.id) == 10000
