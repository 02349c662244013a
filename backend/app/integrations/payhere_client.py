"""PayHere Merchant API client.

Used only for read-side reconciliation: exchanging the business app
credentials for an OAuth token, then searching payments by order id.
"""

from __future__ import annotations

import base64
import logging
from typing import Any

import httpx
from pydantic import SecretStr

logger = logging.getLogger(__name__)


class PayHereError(RuntimeError):
    """Raised when the PayHere merchant API fails.

    ``stage`` is ``"token"`` for the OAuth exchange and ``"search"`` for the
    payment lookup so callers can map each to its own HTTP status.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        *,
        stage: str,
        details: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.stage = stage
        self.details = details


def _json_object(response: httpx.Response, *, stage: str) -> dict[str, Any]:
    """Decode a 2xx body that must be a JSON object."""
    try:
        body = response.json()
    except ValueError as exc:
        logger.error("PayHere %s response is not JSON: %s", stage, response.text[:500])
        raise PayHereError(
            "Malformed PayHere response",
            status_code=response.status_code,
            stage=stage,
            details=response.text[:500],
        ) from exc
    if not isinstance(body, dict):
        logger.error("PayHere %s response is not an object: %s", stage, type(body).__name__)
        raise PayHereError(
            "Malformed PayHere response",
            status_code=response.status_code,
            stage=stage,
        )
    return body


class PayHereClient:
    """HTTP client for the PayHere merchant API (``/merchant/v1``)."""

    def __init__(
        self,
        *,
        app_id: str,
        app_secret: str | SecretStr,
        base_url: str,
        referer: str,
        timeout: float = 10.0,
    ) -> None:
        self._app_id = app_id
        self._app_secret = (
            app_secret.get_secret_value() if isinstance(app_secret, SecretStr) else app_secret
        )
        self._base_url = base_url.rstrip("/")
        self._referer = referer
        self._timeout = timeout

    def _basic_credentials(self) -> str:
        raw = f"{self._app_id}:{self._app_secret}".encode("utf-8")
        return base64.b64encode(raw).decode("ascii")

    def get_access_token(self) -> str:
        url = f"{self._base_url}/merchant/v1/oauth/token"
        headers = {
            "Authorization": f"Basic {self._basic_credentials()}",
            "Content-Type": "application/x-www-form-urlencoded",
        }
        try:
            with httpx.Client(timeout=self._timeout) as client:
                response = client.post(
                    url, headers=headers, data={"grant_type": "client_credentials"}
                )
        except httpx.TransportError as exc:
            logger.error("PayHere token endpoint unreachable: %s", exc)
            raise PayHereError(f"PayHere unreachable: {exc}", stage="token") from exc

        if response.status_code >= 400:
            logger.error(
                "PayHere token exchange failed %s: %s",
                response.status_code,
                response.text[:500],
            )
            raise PayHereError(
                "Failed to get access token",
                status_code=response.status_code,
                stage="token",
                details=response.text[:500],
            )

        token = _json_object(response, stage="token").get("access_token")
        if not token:
            raise PayHereError("Token response missing access_token", stage="token")
        return str(token)

    def search_payments(self, order_id: str, *, access_token: str) -> dict[str, Any]:
        """Return the raw search body: ``{"status": 1, "msg": ..., "data": [...]}``."""
        url = f"{self._base_url}/merchant/v1/payment/search"
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
            "Referer": self._referer,
        }
        try:
            with httpx.Client(timeout=self._timeout) as client:
                response = client.get(url, headers=headers, params={"order_id": order_id})
        except httpx.TransportError as exc:
            logger.error("PayHere search unreachable for order %s: %s", order_id, exc)
            raise PayHereError(f"PayHere unreachable: {exc}", stage="search") from exc

        if response.status_code >= 400:
            logger.error(
                "PayHere payment search failed %s for order %s: %s",
                response.status_code,
                order_id,
                response.text[:500],
            )
            raise PayHereError(
                "Failed to verify payment",
                status_code=response.status_code,
                stage="search",
                details=response.text[:500],
            )

        return _json_object(response, stage="search")
