"""
PayHere payment notification endpoint (v1).

Mounted under /api/v1/webhooks/payhere. PayHere posts here (``notify_url``)
and retries until it gets a 2xx, so every branch answers with a definite
plain-text status.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from ...core.config import settings
from ...schemas.payhere import PayHereNotification
from ...services.dependencies import get_provisioning_runner
from ...services.session_provisioning_service import (
    NotificationOutcome,
    ProvisioningRunner,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks"])

_RESPONSES: dict[NotificationOutcome, tuple[int, str]] = {
    NotificationOutcome.PROCESSED: (status.HTTP_200_OK, "OK"),
    NotificationOutcome.PAYMENT_NOT_SUCCESSFUL: (status.HTTP_200_OK, "OK"),
    NotificationOutcome.DUPLICATE: (status.HTTP_200_OK, "OK (Duplicate)"),
    # Another delivery holds the claim; a non-2xx keeps the gateway retrying
    NotificationOutcome.IN_PROGRESS: (
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "Processing In Progress",
    ),
    NotificationOutcome.ALREADY_COMPLETED: (status.HTTP_200_OK, "OK (Already Completed)"),
    NotificationOutcome.REJECTED: (status.HTTP_400_BAD_REQUEST, "Invalid Signature"),
    NotificationOutcome.NOT_FOUND: (status.HTTP_404_NOT_FOUND, "Pending booking not found"),
    NotificationOutcome.MISCONFIGURED: (
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal Server Error",
    ),
}


async def _read_body(request: Request) -> dict[str, Any]:
    content_type = request.headers.get("content-type", "").lower()
    if "application/json" in content_type:
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return {}
        return body if isinstance(body, dict) else {}
    form = await request.form()
    return {key: value for key, value in form.items() if isinstance(value, str)}


@router.post("", response_class=PlainTextResponse)
async def payhere_notification(
    request: Request,
    runner: ProvisioningRunner = Depends(get_provisioning_runner),
) -> PlainTextResponse:
    """Handle a PayHere payment notification."""
    raw = await _read_body(request)
    try:
        notification = PayHereNotification.model_validate(raw)
    except ValidationError:
        logger.warning("Malformed PayHere notification body")
        return PlainTextResponse("Invalid Signature", status_code=status.HTTP_400_BAD_REQUEST)

    logger.info(
        "Received webhook for order: %s, status: %s",
        notification.order_id,
        notification.status_code,
    )

    try:
        result = await asyncio.wait_for(
            asyncio.to_thread(runner.process_notification, notification),
            timeout=settings.pipeline_timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.error("Processing timed out for order %s", notification.order_id)
        return PlainTextResponse(
            "Service Unavailable", status_code=status.HTTP_503_SERVICE_UNAVAILABLE
        )
    except Exception as exc:
        logger.error(
            "Error processing webhook for order %s: %s",
            notification.order_id,
            exc,
            exc_info=True,
        )
        return PlainTextResponse(
            "Internal Server Error", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    status_code, text = _RESPONSES[result.outcome]
    return PlainTextResponse(text, status_code=status_code)
