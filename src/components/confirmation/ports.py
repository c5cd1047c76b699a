"""
Confirmation component ports.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from src.domain.entities import SubscriptionToken


class ConfirmationRepoPort(Protocol):
    """Token lookup and status transition, each in its own statement."""

    def resolve_token(self, token: SubscriptionToken) -> UUID | None:
        """Get the subscriber id for a token; None if unknown."""
        ...

    def confirm_subscriber(self, subscriber_id: UUID) -> None:
        """Set status to confirmed (idempotent)."""
        ...
