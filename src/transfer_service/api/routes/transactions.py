from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from transfer_service.api.auth import get_current_account_id
from transfer_service.api.deps import get_payment_service
from transfer_service.api.schemas import (
    BalanceResponse,
    TransactionListResponse,
    TransactionOut,
    TransactionResponse,
    to_major,
)
from transfer_service.application.services import PaymentService


router = APIRouter(tags=["transactions"])


@router.get("/user/balance", response_model=BalanceResponse)
async def get_balance(
    request: Request,
    account_id: Annotated[str, Depends(get_current_account_id)],
    service: Annotated[PaymentService, Depends(get_payment_service)],
) -> BalanceResponse:
    account = await service.get_account(account_id)
    return BalanceResponse(
        balance=to_major(account.balance_cents),
        currency=request.app.state.settings.currency,
    )


@router.get("/transactions", response_model=TransactionListResponse)
async def list_transactions(
    account_id: Annotated[str, Depends(get_current_account_id)],
    service: Annotated[PaymentService, Depends(get_payment_service)],
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> TransactionListResponse:
    records = await service.list_transactions(account_id, limit=limit, offset=offset)
    return TransactionListResponse(transactions=[TransactionOut.from_record(record) for record in records])


@router.get("/transactions/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(
    transaction_id: str,
    account_id: Annotated[str, Depends(get_current_account_id)],
    service: Annotated[PaymentService, Depends(get_payment_service)],
) -> TransactionResponse:
    record = await service.get_transaction(account_id, transaction_id)
    return TransactionResponse(transaction=TransactionOut.from_record(record))
