"""Recipient identifier normalization.

Phone numbers reach us in whatever shape the user typed them, and older
account rows were stored in several of those shapes too. Everything that
needs to compare phone numbers goes through this module so the rewriting
rules live in one place.

Canonical forms:

- phone: ``+<country code><subscriber number>``, e.g. ``+254712345678``
- email: stripped and lower-cased
"""

import re
from dataclasses import dataclass
from enum import Enum

from email_validator import EmailNotValidError, validate_email


DEFAULT_COUNTRY_CODE = "254"

_NON_DIGITS = re.compile(r"\D")
# Local subscriber numbers without trunk prefix; only 7xx and 1xx are accepted.
_LOCAL_SUBSCRIBER = re.compile(r"^[17]\d{8}$")
# What a typed phone number may contain besides digits
_PHONE_CHARACTERS = re.compile(r"^\+?[\d\s().-]+$")


class IdentifierKind(Enum):
    PHONE = "phone"
    EMAIL = "email"


def normalize_email(raw: str) -> str:
    return raw.strip().lower()


def normalize_phone(raw: str, country_code: str = DEFAULT_COUNTRY_CODE) -> str:
    """Return the canonical ``+<cc>...`` form, or ``raw`` unchanged if unrecognised."""
    digits = _NON_DIGITS.sub("", raw)

    if digits.startswith(country_code) and len(digits) == len(country_code) + 9:
        return f"+{digits}"
    if digits.startswith("0") and len(digits) == 10:
        return f"+{country_code}{digits[1:]}"
    if len(digits) == 9 and _LOCAL_SUBSCRIBER.match(digits):
        return f"+{country_code}{digits}"
    return raw


def phone_candidates(raw: str, country_code: str = DEFAULT_COUNTRY_CODE) -> list[str]:
    """Expand a phone number into every stored format we know about.

    Order matters: the canonical form comes first so that well-formed rows
    win over legacy ones.
    """
    canonical = normalize_phone(raw, country_code)
    candidates: list[str] = []

    prefix = f"+{country_code}"
    if canonical.startswith(prefix):
        subscriber = canonical[len(prefix):]
        candidates.extend([canonical, f"{country_code}{subscriber}", f"0{subscriber}"])

    stripped = raw.strip()
    if stripped:
        candidates.append(stripped)

    return list(dict.fromkeys(candidates))


def is_valid_phone(raw: str, country_code: str = DEFAULT_COUNTRY_CODE) -> bool:
    """True when ``raw`` normalizes to a mobile number in ``country_code``."""
    if not _PHONE_CHARACTERS.match(raw.strip()):
        return False
    canonical = normalize_phone(raw, country_code)
    subscriber = canonical.removeprefix(f"+{country_code}")
    return canonical != subscriber and _LOCAL_SUBSCRIBER.match(subscriber) is not None


def is_valid_email(raw: str) -> bool:
    try:
        validate_email(raw.strip(), check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


@dataclass(frozen=True)
class RecipientIdentifier:
    kind: IdentifierKind
    raw: str

    @classmethod
    def parse(cls, kind: str, raw: str) -> "RecipientIdentifier":
        try:
            identifier_kind = IdentifierKind(kind.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown identifier type: {kind!r}") from None
        return cls(kind=identifier_kind, raw=raw)

    def canonical(self, country_code: str = DEFAULT_COUNTRY_CODE) -> str:
        if self.kind is IdentifierKind.PHONE:
            return normalize_phone(self.raw, country_code)
        return normalize_email(self.raw)

    def lookup_keys(self, country_code: str = DEFAULT_COUNTRY_CODE) -> list[str]:
        if self.kind is IdentifierKind.PHONE:
            return phone_candidates(self.raw, country_code)
        return [normalize_email(self.raw)]

    def is_well_formed(self, country_code: str = DEFAULT_COUNTRY_CODE) -> bool:
        if self.kind is IdentifierKind.PHONE:
            return is_valid_phone(self.raw, country_code)
        return is_valid_email(self.raw)
