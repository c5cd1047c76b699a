"""
Subscription component ports.

Protocol interfaces for the subscription workflow's dependencies.
"""

from __future__ import annotations

from collections.abc import Callable
from types import TracebackType
from typing import Protocol
from uuid import UUID

from src.domain.entities import NewSubscriber, Subscriber, SubscriptionToken


class SubscriptionWriteRepoPort(Protocol):
    """Writes that must run inside a caller-managed transaction."""

    def upsert_subscriber(self, new_subscriber: NewSubscriber) -> UUID:
        """Insert or reuse the subscriber row for the email; returns its id."""
        ...

    def store_token(self, subscriber_id: UUID, token: SubscriptionToken) -> None:
        """Store the token, replacing the subscriber's previous one."""
        ...


class UnitOfWorkPort(Protocol):
    """
    Transaction scope.

    Writes become durable only on commit(); leaving the context any other
    way rolls them back.
    """

    @property
    def subscriptions(self) -> SubscriptionWriteRepoPort: ...

    def commit(self) -> None: ...

    def __enter__(self) -> UnitOfWorkPort: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None: ...


UnitOfWorkFactory = Callable[[], UnitOfWorkPort]


class SubscriberLookupPort(Protocol):
    """Read access used to re-send confirmation emails."""

    def get_by_email(self, email: str) -> Subscriber | None: ...
