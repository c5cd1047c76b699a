"""
Subscriptions component.

Subscription workflow: validate → persist → issue token → send confirmation.
"""

from src.components.subscriptions.component import (
    build_confirmation_link,
    parse_new_subscriber,
    resend_confirmation,
    run_subscribe,
    send_confirmation_email,
)
from src.components.subscriptions.models import (
    NEXT_STATE,
    TERMINAL_STATES,
    SubscribeInput,
    SubscribeOutput,
    SubscriptionConfig,
    SubscriptionState,
    can_transition,
)
from src.components.subscriptions.ports import (
    SubscriberLookupPort,
    SubscriptionWriteRepoPort,
    UnitOfWorkFactory,
    UnitOfWorkPort,
)

__all__ = [
    # Component
    "run_subscribe",
    "resend_confirmation",
    # Pure functions
    "build_confirmation_link",
    "parse_new_subscriber",
    "send_confirmation_email",
    # Models
    "SubscriptionState",
    "NEXT_STATE",
    "TERMINAL_STATES",
    "can_transition",
    "SubscribeInput",
    "SubscribeOutput",
    "SubscriptionConfig",
    # Ports
    "SubscriptionWriteRepoPort",
    "SubscriberLookupPort",
    "UnitOfWorkPort",
    "UnitOfWorkFactory",
]
