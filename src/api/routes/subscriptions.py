"""
Public subscription endpoints.

Endpoints:
- POST /subscriptions - Subscribe (form fields: name, email)
- GET /subscriptions/confirm - Confirm (query: subscription_token)

Validation errors return {"detail": <message>}; 401 and 500 have empty
bodies and their causes are only logged.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Annotated

from fastapi import APIRouter, Depends, Form, Response, status
from fastapi.responses import JSONResponse

from src.adapters.jinja_templates import JinjaTemplateRenderer
from src.adapters.sqlite_db import SQLiteSubscriptionRepo, SQLiteUnitOfWork
from src.api.deps import (
    get_email_adapter,
    get_subscription_config,
    get_subscription_repo,
    get_template_renderer,
    get_unit_of_work_factory,
)
from src.components.confirmation import ConfirmInput, run_confirm
from src.components.subscriptions import SubscribeInput, SubscriptionConfig, run_subscribe
from src.core.ports.email import EmailPort
from src.domain.errors import (
    AuthorizationError,
    EmailDispatchError,
    SubscriptionServiceError,
    ValidationError,
    format_error_chain,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def error_response(exc: SubscriptionServiceError) -> Response:
    """Translate a workflow error into a response, logging server-side causes."""
    if isinstance(exc, ValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST, content={"detail": exc.message}
        )
    if isinstance(exc, AuthorizationError):
        return Response(status_code=status.HTTP_401_UNAUTHORIZED)

    if isinstance(exc, EmailDispatchError):
        logger.error(
            "Subscriber committed but confirmation email failed (state=%s):\n%s",
            exc.failed_at,
            format_error_chain(exc),
        )
    else:
        logger.error("Unexpected failure (state=%s):\n%s", exc.failed_at, format_error_chain(exc))
    return Response(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


# --- Subscribe Endpoint ---


@router.post(
    "/subscriptions",
    status_code=status.HTTP_200_OK,
    summary="Subscribe to the newsletter",
    description="Store a pending subscriber and send a confirmation email.",
)
def subscribe(
    name: Annotated[str | None, Form()] = None,
    email: Annotated[str | None, Form()] = None,
    uow_factory: Callable[[], SQLiteUnitOfWork] = Depends(get_unit_of_work_factory),
    email_sender: EmailPort = Depends(get_email_adapter),
    renderer: JinjaTemplateRenderer = Depends(get_template_renderer),
    config: SubscriptionConfig = Depends(get_subscription_config),
) -> Response:
    try:
        run_subscribe(
            SubscribeInput(name=name, email=email),
            uow_factory=uow_factory,
            email_sender=email_sender,
            renderer=renderer,
            config=config,
        )
    except SubscriptionServiceError as e:
        return error_response(e)
    return Response(status_code=status.HTTP_200_OK)


# --- Confirm Endpoint ---


@router.get(
    "/subscriptions/confirm",
    status_code=status.HTTP_200_OK,
    summary="Confirm a pending subscription",
)
def confirm(
    subscription_token: str | None = None,
    repo: SQLiteSubscriptionRepo = Depends(get_subscription_repo),
) -> Response:
    try:
        run_confirm(ConfirmInput(subscription_token=subscription_token), repo=repo)
    except SubscriptionServiceError as e:
        return error_response(e)
    return Response(status_code=status.HTTP_200_OK)
