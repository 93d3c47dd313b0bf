from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum

from ulid import ULID


class TransactionType(Enum):
    SEND = "SEND"
    RECEIVE = "RECEIVE"


class TransactionStatus(Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class IdempotencyStatus(Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"


@dataclass(frozen=True)
class Money:
    amount_cents: int
    currency: str = "KES"

    def __post_init__(self) -> None:
        if self.amount_cents < 0:
            raise ValueError("Amount cannot be negative")
        if len(self.currency) != 3:
            raise ValueError("Currency must be ISO 4217 code (3 characters)")

    @classmethod
    def from_major(cls, amount: Decimal, currency: str = "KES") -> "Money":
        """Convert a major-unit amount (e.g. 12.50 KES) to minor units."""
        cents = amount * 100
        if cents != cents.to_integral_value():
            raise ValueError("Amount cannot have more than two decimal places")
        return cls(amount_cents=int(cents), currency=currency)

    @property
    def major(self) -> Decimal:
        return Decimal(self.amount_cents) / 100


@dataclass
class Account:
    id: str
    name: str
    phone: str | None
    email: str | None
    balance_cents: int
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def open(
        cls,
        name: str,
        phone: str | None,
        email: str | None,
        initial_balance_cents: int = 0,
    ) -> "Account":
        if initial_balance_cents < 0:
            raise ValueError("Initial balance cannot be negative")
        return cls(
            id=str(ULID()),
            name=name,
            phone=phone,
            email=email,
            balance_cents=initial_balance_cents,
        )

    @property
    def contact(self) -> str:
        """Identifier shown to the other side of a transfer."""
        return self.phone or self.email or self.id


@dataclass(frozen=True)
class TransactionRecord:
    id: str
    transfer_id: str
    account_id: str
    type: TransactionType
    amount_cents: int
    description: str
    counterparty: str
    counterparty_name: str
    counterparty_account_id: str | None
    status: TransactionStatus
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def create(
        cls,
        transfer_id: str,
        account_id: str,
        type: TransactionType,
        amount_cents: int,
        description: str,
        counterparty: str,
        counterparty_name: str,
        counterparty_account_id: str | None = None,
        status: TransactionStatus = TransactionStatus.COMPLETED,
    ) -> "TransactionRecord":
        return cls(
            id=str(ULID()),
            transfer_id=transfer_id,
            account_id=account_id,
            type=type,
            amount_cents=amount_cents,
            description=description,
            counterparty=counterparty,
            counterparty_name=counterparty_name,
            counterparty_account_id=counterparty_account_id,
            status=status,
        )


@dataclass
class FrequentRecipient:
    identifier: str
    name: str
    count: int
    total_amount_cents: int


@dataclass
class IdempotencyRecord:
    key: str
    account_id: str
    status: IdempotencyStatus
    transaction_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    expires_at: datetime | None = None
    # Fingerprint of the request that claimed the key; None on rows from before it was stored
    request_hash: str | None = None
