"""
SQLite Subscriber Repository.

Durable storage of subscribers and their subscription tokens.
Uses standard SQL upserts (ON CONFLICT ... DO UPDATE ... RETURNING) so
the same statements run unchanged on Postgres.

Key behaviors:
- Email uniqueness is the subscriber identity key
- Re-subscribing touches only the email column and returns the existing id
- One live token per subscriber (subscriber_id is the conflict target)
- Every driver error is surfaced as StorageError
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from src.domain.entities import (
    NewSubscriber,
    Subscriber,
    SubscriberStatus,
    SubscriptionToken,
)
from src.domain.errors import StorageError

logger = logging.getLogger(__name__)

DEFAULT_BUSY_TIMEOUT_SECONDS = 5.0

# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def connect(db_path: str, busy_timeout: float = DEFAULT_BUSY_TIMEOUT_SECONDS) -> sqlite3.Connection:
    """
    Open a connection in manual transaction mode.

    Transactions are started explicitly (BEGIN IMMEDIATE) by the unit of
    work; single statements outside one autocommit.
    """
    conn = sqlite3.connect(db_path, timeout=busy_timeout, isolation_level=None)
    conn.row_factory = dict_factory
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


# -----------------------------------------------------------------------------
# Base SQLite Repository
# -----------------------------------------------------------------------------


class SQLiteRepoBase:
    """Base class for SQLite repositories."""

    def __init__(
        self,
        db_path: str,
        connection: sqlite3.Connection | None = None,
        busy_timeout: float = DEFAULT_BUSY_TIMEOUT_SECONDS,
    ):
        self.db_path = db_path
        self.busy_timeout = busy_timeout
        self._external_conn = connection

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn
        return connect(self.db_path, self.busy_timeout)

    def _should_close(self) -> bool:
        """Whether to close connection after use."""
        return self._external_conn is None


# -----------------------------------------------------------------------------
# Subscription Repository
# -----------------------------------------------------------------------------


class SQLiteSubscriptionRepo(SQLiteRepoBase):
    """
    Subscriber and token storage.

    When bound to a unit of work connection, writes join the caller's
    transaction and are never committed here.
    """

    def upsert_subscriber(
        self,
        new_subscriber: NewSubscriber,
        now: datetime | None = None,
    ) -> UUID:
        """
        Insert a pending subscriber, or reuse the row that owns the email.

        Returns the id of the surviving row, which on conflict is the
        pre-existing id rather than the freshly generated candidate.
        """
        candidate_id = uuid4()
        subscribed_at = now or datetime.now(UTC)
        conn = self._get_conn()
        try:
            row = conn.execute(
                """
                INSERT INTO subscriptions (id, email, name, subscribed_at, status)
                VALUES (?, ?, ?, ?, 'pending_confirmation')
                ON CONFLICT (email)
                DO UPDATE SET email = excluded.email
                RETURNING id
                """,
                (
                    str(candidate_id),
                    new_subscriber.email.value,
                    new_subscriber.name.value,
                    subscribed_at.isoformat(),
                ),
            ).fetchone()
            return UUID(row["id"])
        except sqlite3.Error as e:
            logger.error("Failed to execute query: %r", e)
            raise StorageError("Failed to upsert subscriber row.") from e
        finally:
            if self._should_close():
                conn.close()

    def store_token(self, subscriber_id: UUID, token: SubscriptionToken) -> None:
        """Store a token, replacing any previous token for the subscriber."""
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO subscription_tokens (subscription_token, subscriber_id)
                VALUES (?, ?)
                ON CONFLICT (subscriber_id)
                DO UPDATE SET subscription_token = excluded.subscription_token
                """,
                (token.value, str(subscriber_id)),
            )
        except sqlite3.Error as e:
            logger.error("Failed to execute query: %r", e)
            raise StorageError("Failed to store subscription token row.") from e
        finally:
            if self._should_close():
                conn.close()

    def resolve_token(self, token: SubscriptionToken) -> UUID | None:
        """Get the subscriber id a token belongs to; None if unknown."""
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT subscriber_id FROM subscription_tokens WHERE subscription_token = ?",
                (token.value,),
            ).fetchone()
            return UUID(row["subscriber_id"]) if row else None
        except sqlite3.Error as e:
            logger.error("Failed to execute query: %r", e)
            raise StorageError("Failed to look up subscription token.") from e
        finally:
            if self._should_close():
                conn.close()

    def confirm_subscriber(self, subscriber_id: UUID) -> None:
        """Mark subscriber as confirmed. Confirming twice is a no-op."""
        conn = self._get_conn()
        try:
            conn.execute(
                "UPDATE subscriptions SET status = 'confirmed' WHERE id = ?",
                (str(subscriber_id),),
            )
        except sqlite3.Error as e:
            logger.error("Failed to execute query: %r", e)
            raise StorageError("Failed to update subscriber status.") from e
        finally:
            if self._should_close():
                conn.close()

    # --- Reads ---

    def get_by_id(self, subscriber_id: UUID) -> Subscriber | None:
        return self._fetch_one("SELECT * FROM subscriptions WHERE id = ?", str(subscriber_id))

    def get_by_email(self, email: str) -> Subscriber | None:
        return self._fetch_one("SELECT * FROM subscriptions WHERE email = ?", email)

    def get_token_for(self, subscriber_id: UUID) -> SubscriptionToken | None:
        """Get the live token for a subscriber."""
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT subscription_token FROM subscription_tokens WHERE subscriber_id = ?",
                (str(subscriber_id),),
            ).fetchone()
            return SubscriptionToken(row["subscription_token"]) if row else None
        except sqlite3.Error as e:
            raise StorageError("Failed to read subscription token.") from e
        finally:
            if self._should_close():
                conn.close()

    def _fetch_one(self, query: str, param: str) -> Subscriber | None:
        conn = self._get_conn()
        try:
            row = conn.execute(query, (param,)).fetchone()
            return self._map_row(row) if row else None
        except sqlite3.Error as e:
            raise StorageError("Failed to read subscriber.") from e
        finally:
            if self._should_close():
                conn.close()

    def _map_row(self, row: dict[str, Any]) -> Subscriber:
        return Subscriber(
            id=UUID(row["id"]),
            email=row["email"],
            name=row["name"],
            subscribed_at=datetime.fromisoformat(row["subscribed_at"]),
            status=SubscriberStatus(row["status"]),
        )


# -----------------------------------------------------------------------------
# Unit of Work
# -----------------------------------------------------------------------------


class SQLiteUnitOfWork:
    """
    SQLite Unit of Work implementation.

    Opens a connection and an immediate (write-locking) transaction on
    enter. Only an explicit commit() makes the writes durable; every other
    way out of the block, including exceptions and cancellation, rolls back.
    """

    def __init__(self, db_path: str, busy_timeout: float = DEFAULT_BUSY_TIMEOUT_SECONDS):
        self.db_path = db_path
        self.busy_timeout = busy_timeout
        self._conn: sqlite3.Connection | None = None
        self._committed = False
        self._subscriptions: SQLiteSubscriptionRepo | None = None

    def __enter__(self) -> SQLiteUnitOfWork:
        try:
            self._conn = connect(self.db_path, self.busy_timeout)
            self._conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as e:
            self._close()
            raise StorageError("Failed to acquire a database connection.") from e
        self._committed = False
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        try:
            if not self._committed:
                self.rollback()
        finally:
            self._close()

    def commit(self) -> None:
        if self._conn is None:
            raise StorageError("No open transaction to commit.")
        try:
            self._conn.commit()
        except sqlite3.Error as e:
            raise StorageError("Database refused to commit the transaction.") from e
        self._committed = True

    def rollback(self) -> None:
        if self._conn is None:
            return
        try:
            self._conn.rollback()
        except sqlite3.Error:
            # The connection is closed right after; nothing was committed.
            logger.exception("Rollback failed")

    def _close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            self._subscriptions = None

    @property
    def subscriptions(self) -> SQLiteSubscriptionRepo:
        if self._conn is None:
            raise StorageError("Unit of work is not active.")
        if self._subscriptions is None:
            self._subscriptions = SQLiteSubscriptionRepo(
                self.db_path, self._conn, self.busy_timeout
            )
        return self._subscriptions
