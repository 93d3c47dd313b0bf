"""Domain layer - business entities and rules."""

from transfer_service.domain.exceptions import (
    AccountNotFoundError,
    DomainError,
    DuplicateRequestError,
    ErrorCode,
    FieldIssue,
    InsufficientFundsError,
    InvalidRecipientError,
    PersistenceError,
    RecipientNotFoundError,
    TransactionNotFoundError,
    UnauthenticatedError,
    ValidationFailedError,
)
from transfer_service.domain.identifiers import (
    IdentifierKind,
    RecipientIdentifier,
    normalize_email,
    normalize_phone,
    phone_candidates,
)
from transfer_service.domain.models import (
    Account,
    FrequentRecipient,
    IdempotencyRecord,
    IdempotencyStatus,
    Money,
    TransactionRecord,
    TransactionStatus,
    TransactionType,
)


__all__ = [
    "Account",
    "AccountNotFoundError",
    "DomainError",
    "DuplicateRequestError",
    "ErrorCode",
    "FieldIssue",
    "FrequentRecipient",
    "IdempotencyRecord",
    "IdempotencyStatus",
    "IdentifierKind",
    "InsufficientFundsError",
    "InvalidRecipientError",
    "Money",
    "PersistenceError",
    "RecipientIdentifier",
    "RecipientNotFoundError",
    "TransactionNotFoundError",
    "TransactionRecord",
    "TransactionStatus",
    "TransactionType",
    "UnauthenticatedError",
    "ValidationFailedError",
    "normalize_email",
    "normalize_phone",
    "phone_candidates",
]
