"""Direct booking schemas for ``POST /api/v1/sessions``."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..core.constants import DEFAULT_SESSION_DURATION
from ..models.therapy_session import SessionType
from ._strict_base import StrictModel, StrictRequestModel


class BookingData(StrictRequestModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    therapist_id: str = Field(alias="therapistId", min_length=1)
    session_time: datetime = Field(alias="sessionTime")
    session_type: SessionType = Field(default=SessionType.VIDEO, alias="sessionType")
    duration: int = Field(default=DEFAULT_SESSION_DURATION, gt=0, le=480)


class PaymentData(BaseModel):
    """Receipt fields from the checkout page; unknown keys are kept on the receipt."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    booking_id: Optional[str] = Field(default=None, alias="bookingId")
    order_id: Optional[str] = Field(default=None, alias="orderId")
    payment_id: Optional[str] = Field(default=None, alias="paymentId")
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    payment_method: Optional[str] = Field(default=None, alias="paymentMethod")
    coupon_code: Optional[str] = Field(default=None, alias="couponCode")
    discount_amount: Optional[Decimal] = Field(default=None, alias="discountAmount")

    @model_validator(mode="after")
    def _require_reference(self) -> "PaymentData":
        if not (self.booking_id or self.order_id):
            raise ValueError("paymentData requires bookingId or orderId")
        return self

    @property
    def reference(self) -> str:
        return self.booking_id or self.order_id or ""

    def receipt_extras(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class CreateSessionRequest(StrictRequestModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    booking_data: BookingData = Field(alias="bookingData")
    payment_data: PaymentData = Field(alias="paymentData")


class CreateSessionResponse(StrictModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    session_id: str = Field(alias="sessionId")
    success: bool = True
