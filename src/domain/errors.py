"""
Error taxonomy for the subscription lifecycle.

Each class maps to one outcome at the HTTP boundary:
- ValidationError: client supplied malformed data (400)
- AuthorizationError: well-formed token that resolves to nobody (401)
- StorageError: database, transaction or constraint failure (500)
- EmailDispatchError: transport failure after a durable commit (500)

Lower-level causes are attached with ``raise ... from exc`` so the
full chain can be logged without being returned to the caller.
"""

from __future__ import annotations


class SubscriptionServiceError(Exception):
    """Base error for subscription and confirmation workflows."""

    def __init__(self, message: str, failed_at: str | None = None) -> None:
        self.message = message
        self.failed_at = failed_at
        super().__init__(message)


class ValidationError(SubscriptionServiceError):
    """Subscriber name, email or token is malformed."""


class AuthorizationError(SubscriptionServiceError):
    """Subscription token is well-formed but unknown."""

    def __init__(self, message: str = "Unknown subscription token") -> None:
        super().__init__(message)


class StorageError(SubscriptionServiceError):
    """Persistence failed (connection, transaction, constraint)."""


class EmailDispatchError(SubscriptionServiceError):
    """
    Confirmation email could not be sent.

    Raised only after the subscriber and token were committed, so the
    subscriber is durably pending and can be re-sent a confirmation.
    """


class SubscriberNotFoundError(SubscriptionServiceError):
    """No subscriber exists for the given email."""

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f"No subscriber found for '{email}'")


def format_error_chain(exc: BaseException) -> str:
    """Render an exception followed by every ``__cause__`` in its chain."""
    lines = [f"{exc}\n"]
    current = exc.__cause__
    while current is not None:
        lines.append(f"Caused by:\n\t{type(current).__name__}: {current}")
        current = current.__cause__
    return "\n".join(lines)
