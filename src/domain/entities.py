"""
Subscriber domain types.

Value types are constructed through their ``parse`` classmethods, which
validate raw input and raise ``ValidationError``. Once built they are
immutable and always valid.
"""

from __future__ import annotations

import secrets
import string
import unicodedata
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from uuid import UUID

import regex
from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, Field

from src.domain.errors import ValidationError

MAX_NAME_GRAPHEMES = 256
FORBIDDEN_NAME_CHARACTERS = frozenset('/()"<>\\{}')

SUBSCRIPTION_TOKEN_LENGTH = 25
SUBSCRIPTION_TOKEN_ALPHABET = string.ascii_letters + string.digits

EXTENDED_GRAPHEME = regex.compile(r"\X")


def grapheme_length(value: str) -> int:
    """Count extended grapheme clusters (flags, ZWJ emoji and accented letters count once)."""
    return len(EXTENDED_GRAPHEME.findall(value))


# --- Status ---


class SubscriberStatus(Enum):
    """
    Subscriber status.

    pending_confirmation → confirmed (via confirmation link, exactly once)
    """

    PENDING_CONFIRMATION = "pending_confirmation"
    CONFIRMED = "confirmed"


# --- Value Types ---


@dataclass(frozen=True)
class SubscriberName:
    value: str

    @classmethod
    def parse(cls, raw: str) -> SubscriberName:
        """
        Validate a subscriber name.

        Rejects names that are empty after trimming, longer than
        MAX_NAME_GRAPHEMES, or containing a forbidden or control character.
        The original characters are kept as given.
        """
        if not raw.strip():
            raise ValidationError(f"'{raw}' is not a valid subscriber name: empty")
        if grapheme_length(raw) > MAX_NAME_GRAPHEMES:
            raise ValidationError(f"'{raw}' is not a valid subscriber name: too long")
        for ch in raw:
            if ch in FORBIDDEN_NAME_CHARACTERS or unicodedata.category(ch) == "Cc":
                raise ValidationError(
                    f"'{raw}' is not a valid subscriber name: forbidden character {ch!r}"
                )
        return cls(raw)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SubscriberEmail:
    value: str

    @classmethod
    def parse(cls, raw: str) -> SubscriberEmail:
        """Validate mailbox syntax; the stored value is the normalized address."""
        try:
            result = validate_email(raw, check_deliverability=False)
        except EmailNotValidError as e:
            raise ValidationError(f"'{raw}' is not a valid subscriber email.") from e
        return cls(result.normalized)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SubscriptionToken:
    value: str

    @classmethod
    def parse(cls, raw: str) -> SubscriptionToken:
        # Shape check only; generated tokens are always SUBSCRIPTION_TOKEN_LENGTH.
        if not all(ch.isalnum() for ch in raw):
            raise ValidationError("Subscription token must be alphanumeric.")
        return cls(raw)

    @classmethod
    def generate(cls) -> SubscriptionToken:
        return cls(
            "".join(
                secrets.choice(SUBSCRIPTION_TOKEN_ALPHABET)
                for _ in range(SUBSCRIPTION_TOKEN_LENGTH)
            )
        )

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class NewSubscriber:
    """Validated subscription request; never persisted on its own."""

    name: SubscriberName
    email: SubscriberEmail

    @classmethod
    def parse(cls, name: str, email: str) -> NewSubscriber:
        return cls(name=SubscriberName.parse(name), email=SubscriberEmail.parse(email))


# --- Persisted Record ---


class Subscriber(BaseModel):
    id: UUID
    email: str
    name: str
    subscribed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    status: SubscriberStatus = SubscriberStatus.PENDING_CONFIRMATION
