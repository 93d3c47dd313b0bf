from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, StringConstraints
from pydantic.alias_generators import to_camel

from transfer_service.domain.models import FrequentRecipient, Money, TransactionRecord


def to_major(amount_cents: int) -> float:
    return float(Money(amount_cents).major)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VerifyRecipientRequest(BaseModel):
    identifier: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
    type: Literal["phone", "email"]


class VerifyRecipientResponse(BaseModel):
    verified: bool = True
    name: str
    type: Literal["phone", "email"]
    identifier: str


class SendMoneyRequest(CamelModel):
    recipient_type: Literal["phone", "email"]
    recipient_phone: str | None = None
    recipient_email: str | None = None
    amount: Decimal = Field(gt=0, max_digits=14, decimal_places=2)
    description: str | None = Field(default=None, max_length=100)


class TransactionOut(CamelModel):
    id: str
    transfer_id: str
    type: str
    amount: float
    description: str
    counterparty: str
    counterparty_name: str
    status: str
    date: datetime

    @classmethod
    def from_record(cls, record: TransactionRecord) -> "TransactionOut":
        return cls(
            id=record.id,
            transfer_id=record.transfer_id,
            type=record.type.value.lower(),
            amount=to_major(record.amount_cents),
            description=record.description,
            counterparty=record.counterparty,
            counterparty_name=record.counterparty_name,
            status=record.status.value.lower(),
            date=record.created_at,
        )


class SendMoneyResponse(CamelModel):
    message: str
    transaction: TransactionOut
    new_balance: float
    replayed: bool = False


class FrequentRecipientOut(CamelModel):
    identifier: str
    name: str
    count: int
    total_amount: float

    @classmethod
    def from_domain(cls, recipient: FrequentRecipient) -> "FrequentRecipientOut":
        return cls(
            identifier=recipient.identifier,
            name=recipient.name,
            count=recipient.count,
            total_amount=to_major(recipient.total_amount_cents),
        )


class FrequentRecipientsResponse(BaseModel):
    recipients: list[FrequentRecipientOut]


class TransactionListResponse(BaseModel):
    transactions: list[TransactionOut]


class TransactionResponse(BaseModel):
    transaction: TransactionOut


class BalanceResponse(BaseModel):
    balance: float
    currency: str
