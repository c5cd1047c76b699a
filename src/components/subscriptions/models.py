"""
Subscription component models.

State machine for a single subscription attempt:
RECEIVED → VALIDATED → PERSISTED → TOKEN_ISSUED → EMAIL_SENT → COMPLETE
with FAILED reachable from every non-terminal state.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from src.domain.entities import SubscriptionToken

# --- State Machine ---


class SubscriptionState(Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    PERSISTED = "persisted"  # Subscriber upserted, transaction still open
    TOKEN_ISSUED = "token_issued"  # Token stored and committed
    EMAIL_SENT = "email_sent"
    COMPLETE = "complete"
    FAILED = "failed"


NEXT_STATE: dict[SubscriptionState, SubscriptionState] = {
    SubscriptionState.RECEIVED: SubscriptionState.VALIDATED,
    SubscriptionState.VALIDATED: SubscriptionState.PERSISTED,
    SubscriptionState.PERSISTED: SubscriptionState.TOKEN_ISSUED,
    SubscriptionState.TOKEN_ISSUED: SubscriptionState.EMAIL_SENT,
    SubscriptionState.EMAIL_SENT: SubscriptionState.COMPLETE,
}

TERMINAL_STATES = frozenset({SubscriptionState.COMPLETE, SubscriptionState.FAILED})


def can_transition(from_state: SubscriptionState, to_state: SubscriptionState) -> bool:
    """Check if a workflow transition is valid."""
    if from_state in TERMINAL_STATES:
        return False
    if to_state is SubscriptionState.FAILED:
        return True
    return NEXT_STATE.get(from_state) is to_state


# --- Input / Output ---


@dataclass(frozen=True)
class SubscribeInput:
    """Raw form fields; either may be missing."""

    name: str | None
    email: str | None


@dataclass(frozen=True)
class SubscribeOutput:
    subscriber_id: UUID
    subscription_token: SubscriptionToken
    state: SubscriptionState = SubscriptionState.COMPLETE


# --- Configuration ---


@dataclass(frozen=True)
class SubscriptionConfig:
    """Confirmation email settings."""

    base_url: str = "http://127.0.0.1:8000"
    confirmation_path: str = "/subscriptions/confirm"
    email_subject: str = "Welcome!"
    html_template: str = "welcome.html"
    text_template: str = "welcome.txt"
