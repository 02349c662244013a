# backend/app/main.py
from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware

from .core.config import settings
from .core.constants import BRAND_NAME
from .database import init_db
from .errors import register_error_handlers
from .monitoring.prometheus_metrics import prometheus_metrics
from .routes.v1 import health as health_v1
from .routes.v1 import payments as payments_v1
from .routes.v1 import sessions as sessions_v1
from .routes.v1 import webhooks_payhere as webhooks_payhere_v1

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info("Starting %s API (environment=%s)", BRAND_NAME, settings.environment)
    if not settings.is_testing:
        init_db()
    if not settings.merchant_secret_value():
        logger.warning("PAYHERE_MERCHANT_SECRET is not set; notifications will be refused")
    if settings.daily_enabled and settings.daily_api_key is None:
        logger.warning("DAILY_ENABLED without DAILY_API_KEY; video rooms cannot be created")
    yield
    logger.info("Shutting down %s API", BRAND_NAME)


app = FastAPI(
    title=f"{BRAND_NAME} API",
    description="Payment-confirmed session provisioning for the Kalm therapy platform",
    version="0.1.0",
    lifespan=app_lifespan,
)

register_error_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

# Create API v1 router
api_v1 = APIRouter(prefix="/api/v1")

api_v1.include_router(health_v1.router, prefix="/health")
api_v1.include_router(sessions_v1.router, prefix="/sessions")
api_v1.include_router(payments_v1.router, prefix="/payments")
api_v1.include_router(webhooks_payhere_v1.router, prefix="/webhooks/payhere")

app.include_router(api_v1)


@app.get("/metrics", include_in_schema=False)
def metrics_endpoint() -> Response:
    """Prometheus scrape endpoint."""
    return Response(
        content=prometheus_metrics.get_metrics(),
        media_type=prometheus_metrics.get_content_type(),
    )
