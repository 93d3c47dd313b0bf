import hashlib
import json
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import structlog
from ulid import ULID

from transfer_service.application.recipients import RecipientResolver
from transfer_service.application.unit_of_work import UnitOfWork
from transfer_service.domain.exceptions import (
    AccountNotFoundError,
    DomainError,
    DuplicateRequestError,
    FieldIssue,
    IdempotencyKeyReusedError,
    InsufficientFundsError,
    InvalidRecipientError,
    PersistenceError,
    TransactionNotFoundError,
    UnauthenticatedError,
    ValidationFailedError,
)
from transfer_service.domain.identifiers import (
    DEFAULT_COUNTRY_CODE,
    IdentifierKind,
    RecipientIdentifier,
    is_valid_email,
    is_valid_phone,
)
from transfer_service.domain.models import (
    Account,
    FrequentRecipient,
    IdempotencyStatus,
    TransactionRecord,
    TransactionType,
)
from transfer_service.infrastructure.metrics import (
    TRANSFER_AMOUNT_CENTS,
    TRANSFERS_TOTAL,
    track_transfer_duration,
)


logger = structlog.get_logger()

MAX_DESCRIPTION_LENGTH = 100
INVALID_PHONE_MESSAGE = "Invalid phone number (e.g., 0712345678, +254712345678)"
INVALID_EMAIL_MESSAGE = "Invalid email address"


@dataclass
class SendMoneyCommand:
    sender_id: str
    recipient_type: str
    amount_cents: int
    recipient_phone: str | None = None
    recipient_email: str | None = None
    description: str | None = None
    idempotency_key: str | None = None


@dataclass
class SendMoneyResult:
    transaction: TransactionRecord
    recipient_name: str
    new_balance_cents: int
    replayed: bool = False


class PaymentService:
    def __init__(
        self,
        uow: UnitOfWork,
        country_code: str = DEFAULT_COUNTRY_CODE,
        idempotency_ttl: timedelta = timedelta(hours=24),
    ) -> None:
        self.uow = uow
        self.resolver = RecipientResolver(uow.accounts, country_code)
        self._country_code = country_code
        self._idempotency_ttl = idempotency_ttl

    @track_transfer_duration
    async def send_money(self, cmd: SendMoneyCommand) -> SendMoneyResult:
        log = logger.bind(
            sender=cmd.sender_id,
            recipient_type=cmd.recipient_type,
            amount_cents=cmd.amount_cents,
            idempotency_key=cmd.idempotency_key,
        )

        try:
            result = await self._send_money(cmd, log)
        except DomainError as exc:
            TRANSFERS_TOTAL.labels(status="declined", error_code=exc.code.value).inc()
            details = (
                {"required_cents": exc.required, "available_cents": exc.available}
                if isinstance(exc, InsufficientFundsError)
                else {}
            )
            log.info("transfer_declined", error_code=exc.code.value, reason=str(exc), **details)
            raise

        if result.replayed:
            TRANSFERS_TOTAL.labels(status="replayed", error_code="").inc()
        else:
            TRANSFERS_TOTAL.labels(status="completed", error_code="").inc()
            TRANSFER_AMOUNT_CENTS.observe(result.transaction.amount_cents)
        return result

    async def _send_money(self, cmd: SendMoneyCommand, log: structlog.stdlib.BoundLogger) -> SendMoneyResult:
        async with self.uow:
            sender = await self._authenticated(cmd.sender_id)
            identifier = self._validate(cmd)

            if cmd.idempotency_key:
                request_hash = self._fingerprint(cmd, identifier)
                replay = await self._claim_idempotency_key(sender, cmd.idempotency_key, request_hash, log)
                if replay is not None:
                    return replay

            # Cheap early exit; the conditional debit below is what actually guards the balance.
            if sender.balance_cents < cmd.amount_cents:
                raise InsufficientFundsError(sender.id, cmd.amount_cents, sender.balance_cents)

            recipient = await self.resolver.resolve(identifier)
            if recipient.id == sender.id:
                raise InvalidRecipientError(sender.id)

            log.info("transfer_validated", step="1/3", recipient=recipient.id, contact=identifier.raw.strip())

            await self.uow.balances.lock_accounts([sender.id, recipient.id])
            sender_balance = await self.uow.balances.adjust_balance(sender.id, -cmd.amount_cents)
            try:
                recipient_balance = await self.uow.balances.adjust_balance(recipient.id, cmd.amount_cents)
            except AccountNotFoundError as exc:
                raise PersistenceError("credit_recipient") from exc

            log.info(
                "transfer_balances_updated",
                step="2/3",
                sender_balance_after=sender_balance,
                recipient_balance_after=recipient_balance,
            )

            sent, _received = await self._record_transfer(cmd, sender, recipient, identifier)

            if cmd.idempotency_key:
                await self.uow.idempotency.mark_completed(sender.id, cmd.idempotency_key, sent.id)

            await self.uow.commit()

            log.info("transfer_completed", step="3/3", transaction_id=sent.id, transfer_id=sent.transfer_id)

            return SendMoneyResult(
                transaction=sent,
                recipient_name=recipient.name,
                new_balance_cents=sender_balance,
            )

    async def _record_transfer(
        self,
        cmd: SendMoneyCommand,
        sender: Account,
        recipient: Account,
        identifier: RecipientIdentifier,
    ) -> tuple[TransactionRecord, TransactionRecord]:
        transfer_id = str(ULID())
        description = (cmd.description or "").strip()

        sent = TransactionRecord.create(
            transfer_id=transfer_id,
            account_id=sender.id,
            type=TransactionType.SEND,
            amount_cents=cmd.amount_cents,
            description=description or f"Transfer to {recipient.name}",
            counterparty=identifier.raw.strip(),
            counterparty_name=recipient.name,
            counterparty_account_id=recipient.id,
        )
        received = TransactionRecord.create(
            transfer_id=transfer_id,
            account_id=recipient.id,
            type=TransactionType.RECEIVE,
            amount_cents=cmd.amount_cents,
            description=description or f"Transfer from {sender.name}",
            counterparty=sender.contact,
            counterparty_name=sender.name,
            counterparty_account_id=sender.id,
        )

        await self.uow.transactions.add(sent)
        await self.uow.transactions.add(received)
        return sent, received

    async def _claim_idempotency_key(
        self,
        sender: Account,
        key: str,
        request_hash: str,
        log: structlog.stdlib.BoundLogger,
    ) -> SendMoneyResult | None:
        existing = await self.uow.idempotency.get(sender.id, key)
        if existing is None:
            expires_at = datetime.now(UTC) + self._idempotency_ttl
            if await self.uow.idempotency.claim(sender.id, key, expires_at, request_hash=request_hash):
                return None
            # Lost the race to a request that has since committed
            existing = await self.uow.idempotency.get(sender.id, key)

        if existing and existing.request_hash is not None and existing.request_hash != request_hash:
            log.warning("idempotency_key_reused")
            raise IdempotencyKeyReusedError(key)

        if existing and existing.status is IdempotencyStatus.COMPLETED and existing.transaction_id:
            record = await self.uow.transactions.get(existing.transaction_id, sender.id)
            if record is not None:
                log.info("idempotent_replay", transaction_id=record.id)
                return SendMoneyResult(
                    transaction=record,
                    recipient_name=record.counterparty_name,
                    new_balance_cents=sender.balance_cents,
                    replayed=True,
                )

        raise DuplicateRequestError(key)

    def _fingerprint(self, cmd: SendMoneyCommand, identifier: RecipientIdentifier) -> str:
        """Hash of what the transfer does, so spelling variants of one recipient match."""
        payload = [
            identifier.kind.value,
            identifier.canonical(self._country_code),
            cmd.amount_cents,
            (cmd.description or "").strip(),
        ]
        return hashlib.sha256(json.dumps(payload).encode()).hexdigest()

    def _validate(self, cmd: SendMoneyCommand) -> RecipientIdentifier:
        issues: list[FieldIssue] = []

        if cmd.amount_cents <= 0:
            issues.append(FieldIssue("amount", "Amount must be positive"))

        if cmd.description and len(cmd.description) > MAX_DESCRIPTION_LENGTH:
            issues.append(FieldIssue("description", "Description too long"))

        phone = (cmd.recipient_phone or "").strip()
        email = (cmd.recipient_email or "").strip()
        value = ""
        try:
            kind = IdentifierKind(cmd.recipient_type)
        except ValueError:
            issues.append(FieldIssue("recipientType", "Recipient type must be 'phone' or 'email'"))
        else:
            if kind is IdentifierKind.PHONE:
                value = phone
                if not phone:
                    issues.append(FieldIssue("recipientPhone", "Phone number is required"))
                elif not is_valid_phone(phone, self._country_code):
                    issues.append(FieldIssue("recipientPhone", INVALID_PHONE_MESSAGE))
                if email:
                    issues.append(FieldIssue("recipientEmail", "Provide only a phone number"))
            else:
                value = email
                if not email:
                    issues.append(FieldIssue("recipientEmail", "Email is required"))
                elif not is_valid_email(email):
                    issues.append(FieldIssue("recipientEmail", INVALID_EMAIL_MESSAGE))
                if phone:
                    issues.append(FieldIssue("recipientPhone", "Provide only an email address"))

        if issues:
            raise ValidationFailedError(issues)
        return RecipientIdentifier(kind=kind, raw=value)

    async def _authenticated(self, account_id: str) -> Account:
        account = await self.uow.accounts.get(account_id)
        if account is None:
            raise UnauthenticatedError()
        return account

    async def verify_recipient(self, caller_id: str, identifier: RecipientIdentifier) -> Account:
        async with self.uow:
            caller = await self._authenticated(caller_id)
            if not identifier.is_well_formed(self._country_code):
                message = INVALID_PHONE_MESSAGE if identifier.kind is IdentifierKind.PHONE else INVALID_EMAIL_MESSAGE
                raise ValidationFailedError([FieldIssue("identifier", message)])
            recipient = await self.resolver.resolve(identifier)
            if recipient.id == caller.id:
                raise InvalidRecipientError(caller.id)
            logger.info("recipient_verified", caller=caller.id, kind=identifier.kind.value)
            return recipient

    async def get_account(self, account_id: str) -> Account:
        async with self.uow:
            return await self._authenticated(account_id)

    async def list_transactions(
        self,
        account_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> list[TransactionRecord]:
        async with self.uow:
            await self._authenticated(account_id)
            return await self.uow.transactions.list_for_account(account_id, limit=limit, offset=offset)

    async def get_transaction(self, account_id: str, transaction_id: str) -> TransactionRecord:
        async with self.uow:
            await self._authenticated(account_id)
            record = await self.uow.transactions.get(transaction_id, account_id)
            if record is None:
                raise TransactionNotFoundError(transaction_id)
            return record

    async def frequent_recipients(self, account_id: str, limit: int = 10) -> list[FrequentRecipient]:
        async with self.uow:
            await self._authenticated(account_id)
            return await self.uow.transactions.frequent_recipients(account_id, limit=limit)
