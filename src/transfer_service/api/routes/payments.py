from typing import Annotated

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import JSONResponse

from transfer_service.api.auth import get_current_account_id
from transfer_service.api.deps import get_payment_service, rate_limit
from transfer_service.api.errors import status_for
from transfer_service.api.schemas import (
    FrequentRecipientOut,
    FrequentRecipientsResponse,
    SendMoneyRequest,
    SendMoneyResponse,
    TransactionOut,
    VerifyRecipientRequest,
    VerifyRecipientResponse,
    to_major,
)
from transfer_service.application.services import PaymentService, SendMoneyCommand
from transfer_service.domain.exceptions import (
    FieldIssue,
    InvalidRecipientError,
    RecipientNotFoundError,
    ValidationFailedError,
)
from transfer_service.domain.identifiers import RecipientIdentifier
from transfer_service.domain.models import Money


router = APIRouter(prefix="/payments", tags=["payments"])


@router.post(
    "/verify-recipient",
    response_model=VerifyRecipientResponse,
    dependencies=[Depends(rate_limit("verify_recipient"))],
)
async def verify_recipient(
    payload: VerifyRecipientRequest,
    account_id: Annotated[str, Depends(get_current_account_id)],
    service: Annotated[PaymentService, Depends(get_payment_service)],
) -> VerifyRecipientResponse | JSONResponse:
    identifier = RecipientIdentifier.parse(payload.type, payload.identifier)
    try:
        recipient = await service.verify_recipient(account_id, identifier)
    except (RecipientNotFoundError, InvalidRecipientError) as exc:
        return JSONResponse(
            {"verified": False, "error": str(exc), "code": exc.code.value},
            status_code=status_for(exc.code),
        )

    return VerifyRecipientResponse(
        name=recipient.name,
        type=payload.type,
        identifier=payload.identifier,
    )


@router.post(
    "/send",
    response_model=SendMoneyResponse,
    dependencies=[Depends(rate_limit("send"))],
)
async def send_money(
    request: Request,
    payload: SendMoneyRequest,
    account_id: Annotated[str, Depends(get_current_account_id)],
    service: Annotated[PaymentService, Depends(get_payment_service)],
    idempotency_key: Annotated[str | None, Header(alias="Idempotency-Key", max_length=128)] = None,
) -> SendMoneyResponse:
    currency = request.app.state.settings.currency
    try:
        amount = Money.from_major(payload.amount, currency)
    except ValueError as exc:
        raise ValidationFailedError([FieldIssue("amount", str(exc))]) from exc

    result = await service.send_money(
        SendMoneyCommand(
            sender_id=account_id,
            recipient_type=payload.recipient_type,
            recipient_phone=payload.recipient_phone,
            recipient_email=payload.recipient_email,
            amount_cents=amount.amount_cents,
            description=payload.description,
            idempotency_key=idempotency_key,
        )
    )

    transaction = TransactionOut.from_record(result.transaction)
    return SendMoneyResponse(
        message=f"Successfully sent {transaction.amount:,.2f} {amount.currency} to {result.recipient_name}",
        transaction=transaction,
        new_balance=to_major(result.new_balance_cents),
        replayed=result.replayed,
    )


@router.get("/frequent-recipients", response_model=FrequentRecipientsResponse)
async def frequent_recipients(
    request: Request,
    account_id: Annotated[str, Depends(get_current_account_id)],
    service: Annotated[PaymentService, Depends(get_payment_service)],
    limit: Annotated[int | None, Query(ge=1, le=50)] = None,
) -> FrequentRecipientsResponse:
    if limit is None:
        limit = request.app.state.settings.frequent_recipients_limit
    recipients = await service.frequent_recipients(account_id, limit=limit)
    return FrequentRecipientsResponse(
        recipients=[FrequentRecipientOut.from_domain(recipient) for recipient in recipients],
    )
