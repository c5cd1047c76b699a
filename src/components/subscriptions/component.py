"""
Subscription workflow component.

Validates a subscription request, persists the subscriber and a fresh
confirmation token in one transaction, then sends the confirmation email.

Key behaviors:
- Validation failures have no side effects
- Upsert + token store are atomic; any failure before commit rolls back both
- The email is sent only after a durable commit, outside the transaction
- An email failure leaves a pending subscriber with a live token
  (EmailDispatchError, so operators can re-send)
- Repeating the workflow for an email keeps one row and one live token,
  and never downgrades a confirmed subscriber
"""

from __future__ import annotations

import logging

from src.components.subscriptions.models import (
    SubscribeInput,
    SubscribeOutput,
    SubscriptionConfig,
    SubscriptionState,
    can_transition,
)
from src.components.subscriptions.ports import SubscriberLookupPort, UnitOfWorkFactory
from src.core.ports.email import EmailError, EmailPort, EmailResult
from src.core.ports.templates import TemplateRendererPort, TemplateRenderError
from src.domain.entities import (
    NewSubscriber,
    SubscriberEmail,
    SubscriberStatus,
    SubscriptionToken,
)
from src.domain.errors import (
    EmailDispatchError,
    StorageError,
    SubscriberNotFoundError,
    SubscriptionServiceError,
    ValidationError,
)

logger = logging.getLogger(__name__)


# --- Pure Functions ---


def build_confirmation_link(
    base_url: str,
    token: SubscriptionToken,
    path: str = "/subscriptions/confirm",
) -> str:
    """Build the link embedded in the confirmation email."""
    base = base_url.rstrip("/")
    return f"{base}{path}?subscription_token={token.value}"


def parse_new_subscriber(inp: SubscribeInput) -> NewSubscriber:
    if inp.name is None:
        raise ValidationError("Missing form field: name")
    if inp.email is None:
        raise ValidationError("Missing form field: email")
    return NewSubscriber.parse(inp.name, inp.email)


def _advance(current: SubscriptionState, target: SubscriptionState) -> SubscriptionState:
    if not can_transition(current, target):
        raise RuntimeError(f"Invalid subscription transition {current.value} -> {target.value}")
    logger.debug("Subscription workflow: %s -> %s", current.value, target.value)
    return target


# --- Email ---


def send_confirmation_email(
    email_sender: EmailPort,
    renderer: TemplateRendererPort,
    new_subscriber: NewSubscriber,
    token: SubscriptionToken,
    config: SubscriptionConfig,
) -> EmailResult:
    """Render both bodies and send the confirmation email."""
    context = {
        "confirmation_link": build_confirmation_link(
            config.base_url, token, config.confirmation_path
        ),
    }
    body_html = renderer.render(config.html_template, context)
    body_text = renderer.render(config.text_template, context)
    return email_sender.send_email(
        new_subscriber.email.value,
        config.email_subject,
        body_html,
        body_text,
    )


# --- Run Handlers ---


def run_subscribe(
    inp: SubscribeInput,
    *,
    uow_factory: UnitOfWorkFactory,
    email_sender: EmailPort,
    renderer: TemplateRendererPort,
    config: SubscriptionConfig | None = None,
) -> SubscribeOutput:
    """
    Handle a subscription request.

    Raises:
        ValidationError: name or email malformed or missing
        StorageError: upsert, token store or commit failed (rolled back)
        EmailDispatchError: send failed after the commit
    """
    cfg = config or SubscriptionConfig()
    state = SubscriptionState.RECEIVED
    logger.info("Adding a new subscriber: email=%s name=%s", inp.email, inp.name)

    try:
        new_subscriber = parse_new_subscriber(inp)
        state = _advance(state, SubscriptionState.VALIDATED)

        with uow_factory() as uow:
            try:
                subscriber_id = uow.subscriptions.upsert_subscriber(new_subscriber)
            except StorageError as e:
                raise StorageError(
                    "Failed to insert a new subscriber in the database."
                ) from e
            state = _advance(state, SubscriptionState.PERSISTED)

            token = SubscriptionToken.generate()
            try:
                uow.subscriptions.store_token(subscriber_id, token)
            except StorageError as e:
                raise StorageError(
                    "Failed to store the confirmation token for a new subscriber."
                ) from e

            try:
                uow.commit()
            except StorageError as e:
                raise StorageError(
                    "Failed to commit SQL transaction to store a new subscriber."
                ) from e
            state = _advance(state, SubscriptionState.TOKEN_ISSUED)

        try:
            send_confirmation_email(email_sender, renderer, new_subscriber, token, cfg)
        except (EmailError, TemplateRenderError) as e:
            logger.warning(
                "Subscriber %s is stored as pending but no confirmation email was sent",
                subscriber_id,
            )
            raise EmailDispatchError("Failed to send a confirmation email.") from e
        state = _advance(state, SubscriptionState.EMAIL_SENT)
    except SubscriptionServiceError as e:
        e.failed_at = state.value
        logger.debug("Subscription workflow: %s -> failed", state.value)
        raise

    state = _advance(state, SubscriptionState.COMPLETE)
    logger.info("New subscriber %s saved; confirmation email sent", subscriber_id)
    return SubscribeOutput(subscriber_id=subscriber_id, subscription_token=token, state=state)


def resend_confirmation(
    email: str,
    *,
    repo: SubscriberLookupPort,
    uow_factory: UnitOfWorkFactory,
    email_sender: EmailPort,
    renderer: TemplateRendererPort,
    config: SubscriptionConfig | None = None,
) -> SubscribeOutput | None:
    """
    Re-run the subscription workflow for a pending subscriber.

    Issues a fresh token (the old one stops resolving) and sends a new
    email. Returns None when the subscriber is already confirmed.
    """
    normalized = SubscriberEmail.parse(email).value
    subscriber = repo.get_by_email(normalized)
    if subscriber is None:
        raise SubscriberNotFoundError(normalized)
    if subscriber.status is SubscriberStatus.CONFIRMED:
        logger.info("Subscriber %s is already confirmed; nothing to resend", subscriber.id)
        return None

    return run_subscribe(
        SubscribeInput(name=subscriber.name, email=subscriber.email),
        uow_factory=uow_factory,
        email_sender=email_sender,
        renderer=renderer,
        config=config,
    )
