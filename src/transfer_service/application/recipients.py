import structlog

from transfer_service.domain.exceptions import RecipientNotFoundError
from transfer_service.domain.identifiers import (
    DEFAULT_COUNTRY_CODE,
    IdentifierKind,
    RecipientIdentifier,
)
from transfer_service.domain.models import Account
from transfer_service.infrastructure.metrics import RECIPIENT_LOOKUPS_TOTAL
from transfer_service.infrastructure.repositories import AccountRepository


logger = structlog.get_logger()


class RecipientResolver:
    """Finds the account behind a phone number or email address.

    Phone numbers are tried in every stored format, canonical first, and the
    first hit wins. Which format matched is deliberately not reported.
    """

    def __init__(
        self,
        accounts: AccountRepository,
        country_code: str = DEFAULT_COUNTRY_CODE,
    ) -> None:
        self._accounts = accounts
        self._country_code = country_code

    async def find(self, identifier: RecipientIdentifier) -> Account | None:
        for key in identifier.lookup_keys(self._country_code):
            if identifier.kind is IdentifierKind.PHONE:
                account = await self._accounts.find_by_phone(key)
            else:
                account = await self._accounts.find_by_email(key)
            if account is not None:
                return account
        return None

    async def resolve(self, identifier: RecipientIdentifier) -> Account:
        account = await self.find(identifier)
        kind = identifier.kind.value
        if account is None:
            RECIPIENT_LOOKUPS_TOTAL.labels(kind=kind, result="not_found").inc()
            logger.info("recipient_not_found", kind=kind, contact=identifier.raw.strip())
            raise RecipientNotFoundError(kind)

        RECIPIENT_LOOKUPS_TOTAL.labels(kind=kind, result="found").inc()
        return account
