"""Repository implementations."""

from transfer_service.infrastructure.repositories.account import AccountRepository
from transfer_service.infrastructure.repositories.balances import BalanceRepository
from transfer_service.infrastructure.repositories.idempotency import IdempotencyRepository
from transfer_service.infrastructure.repositories.transactions import TransactionRepository


__all__ = [
    "AccountRepository",
    "BalanceRepository",
    "IdempotencyRepository",
    "TransactionRepository",
]
