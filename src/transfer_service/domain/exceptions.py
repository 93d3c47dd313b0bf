from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    UNAUTHENTICATED = "UNAUTHENTICATED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    RECIPIENT_NOT_FOUND = "RECIPIENT_NOT_FOUND"
    INVALID_RECIPIENT = "INVALID_RECIPIENT"
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
    TRANSACTION_NOT_FOUND = "TRANSACTION_NOT_FOUND"
    DUPLICATE_REQUEST = "DUPLICATE_REQUEST"
    IDEMPOTENCY_KEY_REUSED = "IDEMPOTENCY_KEY_REUSED"
    RATE_LIMITED = "RATE_LIMITED"
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class DomainError(Exception):
    """Base exception for domain errors."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR


class UnauthenticatedError(DomainError):
    """Raised when the caller cannot be tied to an account."""

    code = ErrorCode.UNAUTHENTICATED

    def __init__(self, reason: str = "Not authenticated - please login again") -> None:
        self.reason = reason
        super().__init__(reason)


@dataclass(frozen=True)
class FieldIssue:
    field: str
    message: str


class ValidationFailedError(DomainError):
    """Raised when a request fails business validation."""

    code = ErrorCode.VALIDATION_ERROR

    def __init__(self, issues: list[FieldIssue]) -> None:
        self.issues = issues
        super().__init__("Validation failed: " + "; ".join(f"{i.field}: {i.message}" for i in issues))


class InsufficientFundsError(DomainError):
    """Raised when account has insufficient funds for a transfer."""

    code = ErrorCode.INSUFFICIENT_FUNDS

    def __init__(self, account_id: str, required: int, available: int | None = None) -> None:
        self.account_id = account_id
        self.required = required
        self.available = available
        # Shown to the caller as-is; amounts and ids stay on the attributes for logs
        super().__init__("Insufficient balance")


class RecipientNotFoundError(DomainError):
    """Raised when no account matches a recipient identifier."""

    code = ErrorCode.RECIPIENT_NOT_FOUND

    def __init__(self, kind: str) -> None:
        self.kind = kind
        super().__init__(f"Recipient not found with this {kind}")


class InvalidRecipientError(DomainError):
    """Raised when the recipient resolves to the sender."""

    code = ErrorCode.INVALID_RECIPIENT

    def __init__(self, account_id: str) -> None:
        self.account_id = account_id
        super().__init__("Cannot send money to yourself")


class AccountNotFoundError(DomainError):
    """Raised when an account cannot be found."""

    code = ErrorCode.ACCOUNT_NOT_FOUND

    def __init__(self, account_id: str) -> None:
        self.account_id = account_id
        super().__init__(f"Account {account_id} not found")


class TransactionNotFoundError(DomainError):
    code = ErrorCode.TRANSACTION_NOT_FOUND

    def __init__(self, transaction_id: str) -> None:
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} not found")


class DuplicateRequestError(DomainError):
    """Raised when an idempotency key is held by a request still in flight."""

    code = ErrorCode.DUPLICATE_REQUEST

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"A request with idempotency key {key} is already being processed")


class IdempotencyKeyReusedError(DomainError):
    """Raised when a key comes back with a different transfer than the one it was first used for."""

    code = ErrorCode.IDEMPOTENCY_KEY_REUSED

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Idempotency key {key} was already used for a different transfer")


class PersistenceError(DomainError):
    """Raised when the data store rejects or fails an operation."""

    code = ErrorCode.PERSISTENCE_FAILURE

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Persistence failure during {operation}")
