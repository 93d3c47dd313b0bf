#!/usr/bin/env python3
"""Seed demo wallets for local development.

Opens a handful of accounts with starting balances and logs a session
token for each so the HTTP API can be exercised with curl. Accounts whose
phone number already exists are left untouched.
"""
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import structlog

from transfer_service.api.auth import create_access_token
from transfer_service.application.unit_of_work import UnitOfWork
from transfer_service.config import settings
from transfer_service.domain.identifiers import normalize_email, normalize_phone
from transfer_service.domain.models import Account
from transfer_service.infrastructure.database import Database
from transfer_service.logging import configure_logging


logger = structlog.get_logger()

DEMO_ACCOUNTS: list[tuple[str, str, str | None, int | None]] = [
    ("Wanjiru Kamau", "0712345678", "wanjiru@example.com", 1_000_00),
    ("Otieno Ouma", "0723456789", "otieno@example.com", 500_00),
    ("Akinyi Njeri", "0734567890", "akinyi@example.com", 250_00),
    ("Mwangi Kariuki", "0745678901", None, None),
]


async def seed(database: Database) -> list[Account]:
    accounts: list[Account] = []
    async with database.session() as session:
        async with UnitOfWork(session) as uow:
            for name, phone, email, balance_cents in DEMO_ACCOUNTS:
                if balance_cents is None:
                    balance_cents = settings.initial_balance_cents
                canonical_phone = normalize_phone(phone, settings.phone_country_code)
                existing = await uow.accounts.find_by_phone(canonical_phone)
                if existing is not None:
                    logger.info("account_exists", account_id=existing.id, name=existing.name)
                    accounts.append(existing)
                    continue

                account = Account.open(
                    name=name,
                    phone=canonical_phone,
                    email=normalize_email(email) if email else None,
                    initial_balance_cents=balance_cents,
                )
                await uow.accounts.add(account)
                logger.info("account_opened", account_id=account.id, name=name, balance_cents=balance_cents)
                accounts.append(account)
            await uow.commit()
    return accounts


async def main() -> None:
    configure_logging(level=settings.log_level, log_format=settings.log_format)

    database = Database(settings.database_url)
    try:
        accounts = await seed(database)
    finally:
        await database.close()

    for account in accounts:
        logger.info(
            "session_token",
            account_id=account.id,
            name=account.name,
            phone=account.phone,
            token=create_access_token(account.id, settings.jwt_secret, settings.jwt_algorithm),
        )


if __name__ == "__main__":
    asyncio.run(main())
