"""
Unit tests for the public subscription API endpoints.

- POST /subscriptions: 200 on valid form, 400 on malformed or missing fields
- GET /subscriptions/confirm: 200 on known token, 400 on malformed, 401 on unknown
- Failures after validation map to 500 with an empty body
"""

import re
import sqlite3
from collections.abc import Callable, Generator
from functools import partial

import pytest
from fastapi.testclient import TestClient

from src.adapters.dev_email import DevEmailAdapter
from src.adapters.jinja_templates import JinjaTemplateRenderer
from src.adapters.sqlite_db import SQLiteSubscriptionRepo, SQLiteUnitOfWork
from src.api.deps import (
    get_email_adapter,
    get_subscription_config,
    get_subscription_repo,
    get_template_renderer,
    get_unit_of_work_factory,
)
from src.api.main import app
from src.components.subscriptions import SubscriptionConfig
from src.core.ports.email import EmailResult, EmailSendError
from src.domain.entities import SubscriberStatus

VALID_FORM = {"name": "le guin", "email": "ursula_le_guin@gmail.com"}
TOKEN_IN_LINK = re.compile(r"subscription_token=([A-Za-z0-9]+)")


def token_from_email(body: str) -> str:
    match = TOKEN_IN_LINK.search(body)
    assert match is not None, f"no confirmation link in: {body!r}"
    return match.group(1)


class FailingEmailAdapter:
    """Email adapter whose transport is always down."""

    def __init__(self) -> None:
        self.attempts = 0

    def send_email(
        self, recipient: str, subject: str, body_html: str, body_text: str
    ) -> EmailResult:
        self.attempts += 1
        raise EmailSendError(recipient, "connection refused")


@pytest.fixture
def client(
    repo: SQLiteSubscriptionRepo,
    uow_factory: Callable[[], SQLiteUnitOfWork],
    email_adapter: DevEmailAdapter,
    renderer: JinjaTemplateRenderer,
    subscription_config: SubscriptionConfig,
) -> Generator[TestClient, None, None]:
    """Create test client with dependency overrides."""
    app.dependency_overrides[get_subscription_repo] = lambda: repo
    app.dependency_overrides[get_unit_of_work_factory] = lambda: uow_factory
    app.dependency_overrides[get_email_adapter] = lambda: email_adapter
    app.dependency_overrides[get_template_renderer] = lambda: renderer
    app.dependency_overrides[get_subscription_config] = lambda: subscription_config

    yield TestClient(app)

    app.dependency_overrides.clear()


def subscribe(client: TestClient, form: dict[str, str] | None = None):
    return client.post("/subscriptions", data=form if form is not None else VALID_FORM)


def confirm(client: TestClient, token: str):
    return client.get("/subscriptions/confirm", params={"subscription_token": token})


# --- Subscribe Endpoint ---


class TestSubscribeEndpoint:
    def test_valid_form_returns_200(self, client: TestClient) -> None:
        response = subscribe(client)
        assert response.status_code == 200

    def test_valid_form_persists_pending_subscriber(
        self, client: TestClient, repo: SQLiteSubscriptionRepo
    ) -> None:
        subscribe(client)

        saved = repo.get_by_email("ursula_le_guin@gmail.com")
        assert saved is not None
        assert saved.name == "le guin"
        assert saved.status == SubscriberStatus.PENDING_CONFIRMATION

    def test_valid_form_stores_one_token(
        self, client: TestClient, repo: SQLiteSubscriptionRepo, count_rows
    ) -> None:
        subscribe(client)

        saved = repo.get_by_email("ursula_le_guin@gmail.com")
        assert saved is not None
        token = repo.get_token_for(saved.id)
        assert token is not None
        assert len(token.value) == 25
        assert token.value.isalnum()
        assert count_rows("subscription_tokens") == 1

    def test_sends_confirmation_email_with_link(
        self, client: TestClient, email_adapter: DevEmailAdapter, repo: SQLiteSubscriptionRepo
    ) -> None:
        subscribe(client)

        assert email_adapter.email_count == 1
        sent = email_adapter.get_last_email()
        assert sent is not None
        assert sent.recipient == "ursula_le_guin@gmail.com"
        assert sent.subject == "Welcome!"

        saved = repo.get_by_email("ursula_le_guin@gmail.com")
        assert saved is not None
        stored_token = repo.get_token_for(saved.id)
        assert stored_token is not None

        expected_link = (
            f"http://test.local/subscriptions/confirm?subscription_token={stored_token.value}"
        )
        assert expected_link in sent.body_text
        assert expected_link in sent.body_html

    @pytest.mark.parametrize(
        "form",
        [
            {"name": "le guin"},
            {"email": "ursula_le_guin@gmail.com"},
            {},
        ],
        ids=["missing email", "missing name", "missing both"],
    )
    def test_missing_fields_return_400(self, client: TestClient, form: dict[str, str]) -> None:
        response = subscribe(client, form)
        assert response.status_code == 400

    @pytest.mark.parametrize(
        "form",
        [
            {"name": "", "email": "ursula_le_guin@gmail.com"},
            {"name": "   ", "email": "ursula_le_guin@gmail.com"},
            {"name": "Ursula", "email": ""},
            {"name": "Ursula", "email": "definitely-not-an-email"},
            {"name": "<script>", "email": "ursula_le_guin@gmail.com"},
            {"name": "a" * 257, "email": "ursula_le_guin@gmail.com"},
        ],
        ids=[
            "empty name",
            "whitespace name",
            "empty email",
            "invalid email",
            "forbidden characters",
            "name too long",
        ],
    )
    def test_invalid_fields_return_400(self, client: TestClient, form: dict[str, str]) -> None:
        response = subscribe(client, form)
        assert response.status_code == 400

    def test_invalid_fields_have_no_side_effects(
        self, client: TestClient, email_adapter: DevEmailAdapter, count_rows
    ) -> None:
        subscribe(client, {"name": "Ursula", "email": "definitely-not-an-email"})

        assert count_rows("subscriptions") == 0
        assert count_rows("subscription_tokens") == 0
        assert email_adapter.email_count == 0

    def test_validation_detail_is_returned(self, client: TestClient) -> None:
        response = subscribe(client, {"name": "Ursula", "email": "definitely-not-an-email"})
        assert response.status_code == 400
        assert response.headers["content-type"] == "application/json"
        assert response.json() == {
            "detail": "'definitely-not-an-email' is not a valid subscriber email."
        }

    def test_missing_field_detail_is_returned(self, client: TestClient) -> None:
        response = subscribe(client, {"name": "Ursula"})
        assert response.status_code == 400
        assert response.json() == {"detail": "Missing form field: email"}

    def test_subscribing_twice_keeps_one_row_and_one_live_token(
        self, client: TestClient, email_adapter: DevEmailAdapter, count_rows
    ) -> None:
        assert subscribe(client).status_code == 200
        first_token = token_from_email(email_adapter.sent_emails[0].body_text)
        assert subscribe(client).status_code == 200
        second_token = token_from_email(email_adapter.sent_emails[1].body_text)

        assert first_token != second_token
        assert count_rows("subscriptions") == 1
        assert count_rows("subscription_tokens") == 1
        assert confirm(client, first_token).status_code == 401
        assert confirm(client, second_token).status_code == 200

    def test_resubscribing_does_not_downgrade_confirmed(
        self, client: TestClient, email_adapter: DevEmailAdapter, repo: SQLiteSubscriptionRepo
    ) -> None:
        subscribe(client)
        token = token_from_email(email_adapter.get_last_email().body_text)
        assert confirm(client, token).status_code == 200

        assert subscribe(client).status_code == 200

        saved = repo.get_by_email("ursula_le_guin@gmail.com")
        assert saved is not None
        assert saved.status == SubscriberStatus.CONFIRMED

    def test_email_failure_returns_500_and_keeps_pending_subscriber(
        self, client: TestClient, repo: SQLiteSubscriptionRepo
    ) -> None:
        failing = FailingEmailAdapter()
        app.dependency_overrides[get_email_adapter] = lambda: failing

        response = subscribe(client)

        assert response.status_code == 500
        assert response.content == b""
        assert failing.attempts == 1

        saved = repo.get_by_email("ursula_le_guin@gmail.com")
        assert saved is not None
        assert saved.status == SubscriberStatus.PENDING_CONFIRMATION
        assert repo.get_token_for(saved.id) is not None

    def test_token_store_failure_returns_500_and_persists_nothing(
        self, client: TestClient, db_path: str, email_adapter: DevEmailAdapter, count_rows
    ) -> None:
        conn = sqlite3.connect(db_path)
        conn.execute("DROP TABLE subscription_tokens")
        conn.commit()
        conn.close()

        response = subscribe(client)

        assert response.status_code == 500
        assert count_rows("subscriptions") == 0
        assert email_adapter.email_count == 0

    def test_unreachable_database_returns_500(self, client: TestClient, tmp_path) -> None:
        missing = str(tmp_path / "no-such-dir" / "newsletter.db")
        app.dependency_overrides[get_unit_of_work_factory] = lambda: partial(
            SQLiteUnitOfWork, missing
        )

        response = subscribe(client)

        assert response.status_code == 500


# --- Confirm Endpoint ---


class TestConfirmEndpoint:
    def test_missing_token_returns_400(self, client: TestClient) -> None:
        response = client.get("/subscriptions/confirm")
        assert response.status_code == 400
        assert response.json() == {"detail": "Missing query parameter: subscription_token"}

    def test_non_alphanumeric_token_returns_400(self, client: TestClient) -> None:
        response = confirm(client, "abc!23")
        assert response.status_code == 400
        assert response.json() == {"detail": "Subscription token must be alphanumeric."}

    def test_unknown_token_returns_401(self, client: TestClient) -> None:
        response = confirm(client, "a" * 25)
        assert response.status_code == 401
        assert response.content == b""

    def test_empty_token_returns_401(self, client: TestClient) -> None:
        response = confirm(client, "")
        assert response.status_code == 401

    def test_link_from_email_confirms_subscriber(
        self, client: TestClient, email_adapter: DevEmailAdapter, repo: SQLiteSubscriptionRepo
    ) -> None:
        subscribe(client)
        token = token_from_email(email_adapter.get_last_email().body_text)

        response = confirm(client, token)

        assert response.status_code == 200
        saved = repo.get_by_email("ursula_le_guin@gmail.com")
        assert saved is not None
        assert saved.status == SubscriberStatus.CONFIRMED

    def test_confirming_twice_is_idempotent(
        self, client: TestClient, email_adapter: DevEmailAdapter, repo: SQLiteSubscriptionRepo
    ) -> None:
        subscribe(client)
        token = token_from_email(email_adapter.get_last_email().body_text)

        assert confirm(client, token).status_code == 200
        assert confirm(client, token).status_code == 200

        saved = repo.get_by_email("ursula_le_guin@gmail.com")
        assert saved is not None
        assert saved.status == SubscriberStatus.CONFIRMED

    def test_storage_failure_returns_500(self, client: TestClient, db_path: str) -> None:
        conn = sqlite3.connect(db_path)
        conn.execute("DROP TABLE subscription_tokens")
        conn.commit()
        conn.close()

        response = confirm(client, "a" * 25)

        assert response.status_code == 500


# --- Health ---


def test_health_check() -> None:
    response = TestClient(app).get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "api"}
