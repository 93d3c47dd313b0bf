"""Application layer - services and use cases."""

from transfer_service.application.recipients import RecipientResolver
from transfer_service.application.services import (
    PaymentService,
    SendMoneyCommand,
    SendMoneyResult,
)
from transfer_service.application.unit_of_work import UnitOfWork


__all__ = [
    "PaymentService",
    "RecipientResolver",
    "SendMoneyCommand",
    "SendMoneyResult",
    "UnitOfWork",
]
