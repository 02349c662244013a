# backend/app/routes/v1/health.py
"""
Health check endpoint for monitoring and load balancer health checks.
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging

from fastapi import APIRouter
from pydantic import BaseModel

from app.core.config import settings
from app.core.constants import BRAND_NAME

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    service: str
    environment: str
    timestamp: str


@router.get("", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Liveness check; does not touch the database."""
    return HealthResponse(
        status="healthy",
        service=f"{BRAND_NAME.lower()}-api",
        environment=settings.environment,
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    )
