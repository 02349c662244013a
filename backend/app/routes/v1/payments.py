"""
Payments routes - API v1

PayHere helper endpoints under /api/v1/payments.

Endpoints:
    POST /payhere/hash     → Checkout hash for the PayHere payment form
    POST /payhere/verify   → Poll PayHere for an order's payment status
"""

import asyncio
import logging
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, status

from ...core.exceptions import DomainException
from ...schemas.payhere import (
    PayHereHashRequest,
    PayHereHashResponse,
    PayHereVerifyRequest,
    PayHereVerifyResponse,
)
from ...services.dependencies import get_payhere_status_service
from ...services.payhere_status_service import PayHereStatusService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["payments-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post("/payhere/hash", response_model=PayHereHashResponse)
async def generate_payhere_hash(
    body: PayHereHashRequest,
    service: PayHereStatusService = Depends(get_payhere_status_service),
) -> PayHereHashResponse:
    try:
        value = service.issue_checkout_hash(body.order_id, body.amount, body.currency)
    except DomainException as exc:
        handle_domain_exception(exc)
    return PayHereHashResponse(hash=value)


@router.post("/payhere/verify", response_model=PayHereVerifyResponse)
async def verify_payhere_payment(
    body: PayHereVerifyRequest,
    service: PayHereStatusService = Depends(get_payhere_status_service),
) -> PayHereVerifyResponse:
    """Read-only reconciliation for when the notification is delayed."""
    try:
        result = await asyncio.to_thread(service.verify_payment, body.order_id)
    except DomainException as exc:
        logger.warning("PayHere verification failed for %s: %s", body.order_id, exc.message)
        handle_domain_exception(exc)
    return PayHereVerifyResponse(success=result.success, status=result.status, data=result.data)
