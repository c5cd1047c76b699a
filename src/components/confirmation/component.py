"""
Confirmation workflow component.

Parses the token, resolves it to a subscriber and marks the subscriber
confirmed. Tokens are not consumed: confirming again with the same token
succeeds with no further change.
"""

from __future__ import annotations

import logging

from src.components.confirmation.models import ConfirmInput, ConfirmOutput
from src.components.confirmation.ports import ConfirmationRepoPort
from src.domain.entities import SubscriptionToken
from src.domain.errors import AuthorizationError, StorageError, ValidationError

logger = logging.getLogger(__name__)


def run_confirm(inp: ConfirmInput, *, repo: ConfirmationRepoPort) -> ConfirmOutput:
    """
    Confirm a pending subscriber.

    Raises:
        ValidationError: token missing or not alphanumeric
        AuthorizationError: token well-formed but unknown
        StorageError: lookup or status update failed
    """
    logger.info("Confirm a pending subscriber")
    if inp.subscription_token is None:
        raise ValidationError("Missing query parameter: subscription_token")
    token = SubscriptionToken.parse(inp.subscription_token)

    try:
        subscriber_id = repo.resolve_token(token)
    except StorageError as e:
        raise StorageError("Failed getting subscriber from token.") from e

    if subscriber_id is None:
        logger.info("Confirmation attempted with an unknown subscription token")
        raise AuthorizationError()

    try:
        repo.confirm_subscriber(subscriber_id)
    except StorageError as e:
        raise StorageError("Failed to confirm subscriber.") from e

    logger.info("Subscriber %s confirmed", subscriber_id)
    return ConfirmOutput(subscriber_id=subscriber_id)
