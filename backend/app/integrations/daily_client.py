"""Daily.co Video Platform Integration Client.

Creates the private call rooms used by video and audio therapy sessions.
Room teardown belongs to the session lifecycle code and is not exposed here.
"""

from __future__ import annotations

import logging
from typing import Any, cast
import uuid

import httpx
from pydantic import SecretStr

logger = logging.getLogger(__name__)


class DailyError(RuntimeError):
    """Raised when the Daily.co API responds with an error or is unreachable."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        *,
        details: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details


class DailyClient:
    """HTTP client for the Daily.co REST API."""

    def __init__(
        self,
        *,
        api_key: str | SecretStr,
        base_url: str = "https://api.daily.co/v1",
        timeout: float = 10.0,
    ) -> None:
        self._api_key = api_key.get_secret_value() if isinstance(api_key, SecretStr) else api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = f"{self._base_url}/{path.lstrip('/')}"
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

        try:
            with httpx.Client(timeout=self._timeout) as client:
                response = client.request(method, url, headers=headers, json=json_body)
        except httpx.TransportError as exc:
            logger.error("Daily API unreachable for %s %s: %s", method, path, exc)
            raise DailyError(message=f"Daily API unreachable: {exc}") from exc

        if response.status_code >= 400:
            try:
                parsed = response.json()
                error_body = parsed if isinstance(parsed, dict) else {"raw": response.text[:500]}
            except ValueError:
                error_body = {"raw": response.text[:500]}

            message = error_body.get("info") or error_body.get("error") or response.text
            logger.error(
                "Daily API error %s for %s %s: %s",
                response.status_code,
                method,
                path,
                response.text[:500],
            )
            raise DailyError(
                message=message,
                status_code=response.status_code,
                details=error_body,
            )

        return cast(dict[str, Any], response.json())

    def create_room(self, *, name: str, properties: dict[str, Any]) -> dict[str, Any]:
        """Create a room; the response carries ``url`` and ``name``."""
        return self._request(
            "POST",
            "rooms",
            json_body={"name": name, "privacy": "private", "properties": properties},
        )


class FakeDailyClient:
    """In-memory stub for testing/non-production environments."""

    def __init__(self, **kwargs: Any) -> None:
        self._calls: list[dict[str, Any]] = []
        self._errors: dict[str, DailyError] = {}

    def set_error(self, method: str, error: DailyError) -> None:
        """Inject a method-specific error for deterministic failure testing."""
        self._errors[method] = error

    def clear_errors(self) -> None:
        self._errors.clear()

    def create_room(self, *, name: str, properties: dict[str, Any]) -> dict[str, Any]:
        self._calls.append({"method": "create_room", "name": name, "properties": properties})
        error = self._errors.get("create_room")
        if error is not None:
            raise error
        return {
            "id": str(uuid.uuid4()),
            "name": name,
            "url": f"https://kalm.daily.co/{name}",
            "privacy": "private",
            "config": properties,
        }
