# backend/app/services/dependencies.py
"""
Dependency injection functions for services.

Usage in routes:
    runner: ProvisioningRunner = Depends(get_provisioning_runner)
"""

import logging
from typing import Callable, Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from ..core.config import settings
from ..database import SessionLocal
from ..integrations.daily_client import DailyClient, FakeDailyClient
from ..integrations.payhere_client import PayHereClient
from .payhere_status_service import PayHereStatusService
from .room_provisioning_service import RoomProvisioningService
from .session_provisioning_service import ProvisioningRunner

logger = logging.getLogger(__name__)


def get_daily_client() -> Optional[DailyClient | FakeDailyClient]:
    """Return the Daily.co client, a fake when disabled, or None when misconfigured."""
    if not settings.daily_enabled:
        return FakeDailyClient()
    api_key = (
        settings.daily_api_key.get_secret_value().strip() if settings.daily_api_key else ""
    )
    if not api_key:
        logger.error("DAILY_ENABLED is set but DAILY_API_KEY is missing")
        return None
    return DailyClient(
        api_key=api_key,
        base_url=settings.daily_base_url,
        timeout=settings.external_http_timeout_seconds,
    )


def get_room_provisioning_service(
    client: Optional[DailyClient | FakeDailyClient] = Depends(get_daily_client),
) -> RoomProvisioningService:
    return RoomProvisioningService(client)


def get_session_factory() -> Callable[[], Session]:
    """Factory each provisioning worker opens its own session from."""
    return SessionLocal


def get_provisioning_runner(
    session_factory: Callable[[], Session] = Depends(get_session_factory),
    rooms: RoomProvisioningService = Depends(get_room_provisioning_service),
) -> ProvisioningRunner:
    return ProvisioningRunner(session_factory, room_provisioner=rooms)


def get_payhere_client() -> Optional[PayHereClient]:
    app_id = (settings.payhere_app_id or "").strip()
    app_secret = (
        settings.payhere_app_secret.get_secret_value().strip()
        if settings.payhere_app_secret
        else ""
    )
    if not app_id or not app_secret:
        return None
    return PayHereClient(
        app_id=app_id,
        app_secret=app_secret,
        base_url=settings.payhere_base_url,
        referer=settings.payhere_referer,
        timeout=settings.external_http_timeout_seconds,
    )


def get_payhere_status_service(
    client: Optional[PayHereClient] = Depends(get_payhere_client),
) -> PayHereStatusService:
    return PayHereStatusService(client=client)
