"""PayHere request/response schemas.

The notification model is permissive: PayHere posts optional card and
custom fields that we store in the ledger payload but never interpret.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ._strict_base import StrictModel, StrictRequestModel


class PayHereNotification(BaseModel):
    """Form fields posted to ``notify_url``."""

    model_config = ConfigDict(extra="allow", str_strip_whitespace=True)

    merchant_id: str = ""
    order_id: str = ""
    payment_id: Optional[str] = None
    payhere_amount: str = ""
    payhere_currency: str = ""
    status_code: str = ""
    md5sig: Optional[str] = None
    custom_1: Optional[str] = None
    custom_2: Optional[str] = None
    method: Optional[str] = None
    status_message: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_scalars(cls, value: Any) -> Any:
        # JSON bodies may carry numbers where the form would carry strings
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    def ledger_payload(self) -> dict[str, Any]:
        """Payload stored on the webhook log (signature excluded)."""
        return self.model_dump(exclude={"md5sig"}, exclude_none=True)


class PayHereHashRequest(StrictRequestModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    order_id: str = Field(default="", alias="orderId")
    amount: str = ""
    currency: str = ""

    @field_validator("amount", "order_id", "currency", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class PayHereHashResponse(StrictModel):
    hash: str


class PayHereVerifyRequest(StrictRequestModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    order_id: str = Field(default="", alias="orderId")


class PayHereVerifyResponse(StrictModel):
    success: bool
    status: Optional[str] = None
    data: dict[str, Any] = Field(default_factory=dict)
