"""
Confirmation component models.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class ConfirmInput:
    """Raw query parameter; None when absent from the request."""

    subscription_token: str | None


@dataclass(frozen=True)
class ConfirmOutput:
    subscriber_id: UUID
