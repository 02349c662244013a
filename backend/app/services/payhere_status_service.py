"""Read-only PayHere reconciliation: checkout hashes and payment status polling."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Optional

from fastapi import status

from app.core.config import settings
from app.core.constants import PAYHERE_SUCCESS_SEARCH_STATUSES
from app.core.exceptions import (
    DomainException,
    NotFoundException,
    ServiceException,
    UnauthorizedException,
    ValidationException,
)
from app.domain.payhere_signature import checkout_hash
from app.integrations.payhere_client import PayHereClient, PayHereError
from app.services.base import BaseService

logger = logging.getLogger(__name__)


class PaymentLookupFailed(DomainException):
    """PayHere accepted our token but the payment search failed."""

    default_code = "bad-gateway"
    status_code = status.HTTP_502_BAD_GATEWAY


@dataclass
class PaymentStatusResult:
    success: bool
    status: Optional[str]
    data: dict[str, Any] = field(default_factory=dict)


class PayHereStatusService:
    """
    Checkout hash issuance and payment status lookups.

    Holds no database session; both operations only talk to configuration
    and the PayHere merchant API.
    """

    def __init__(
        self,
        *,
        client: Optional[PayHereClient] = None,
        merchant_id: Optional[str] = None,
        merchant_secret: Optional[str] = None,
    ) -> None:
        self.client = client
        self.merchant_id = (merchant_id if merchant_id is not None else settings.payhere_merchant_id) or ""
        self.merchant_secret = (
            merchant_secret if merchant_secret is not None else settings.merchant_secret_value()
        )
        self.logger = logging.getLogger(self.__class__.__name__)

    @BaseService.measure_operation("payhere.issue_checkout_hash")
    def issue_checkout_hash(self, order_id: str, amount: str, currency: str) -> str:
        if not order_id or not amount or not currency:
            raise ValidationException("Missing required parameters")
        if not self.merchant_id or not self.merchant_secret:
            self.logger.error("PayHere merchant credentials not set")
            raise ServiceException("Merchant credentials not set")
        return checkout_hash(self.merchant_id, order_id, amount, currency, self.merchant_secret)

    @BaseService.measure_operation("payhere.verify_payment")
    def verify_payment(self, order_id: str) -> PaymentStatusResult:
        """
        Look up the latest PayHere record for ``order_id``.

        Raises:
            ValidationException: order id missing
            ServiceException: app credentials not configured
            UnauthorizedException: OAuth token exchange failed
            PaymentLookupFailed: payment search failed
            NotFoundException: PayHere has no payment for the order
        """
        if not order_id:
            raise ValidationException("Missing required parameter: orderId")
        if self.client is None:
            self.logger.error("PayHere App credentials not configured")
            raise ServiceException("Payment service configuration missing (App ID/Secret)")

        try:
            token = self.client.get_access_token()
            body = self.client.search_payments(order_id, access_token=token)
        except PayHereError as exc:
            details = {"provider_status": exc.status_code}
            if exc.stage == "token":
                raise UnauthorizedException(
                    "Failed to authenticate with PayHere", details=details
                ) from exc
            raise PaymentLookupFailed(
                "Failed to retrieve payment details", details=details
            ) from exc

        records = body.get("data")
        if body.get("status") != 1 or not isinstance(records, list) or not records:
            raise NotFoundException(
                "Order not found in PayHere",
                details={"order_id": order_id, "msg": body.get("msg")},
            )

        record = records[0] if isinstance(records[0], dict) else {}
        payment_status = record.get("status")
        return PaymentStatusResult(
            success=payment_status in PAYHERE_SUCCESS_SEARCH_STATUSES,
            status=payment_status,
            data=record,
        )
