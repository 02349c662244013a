"""
Sessions routes - API v1

Direct booking endpoint under /api/v1/sessions.
All business logic delegated to SessionProvisioningService via ProvisioningRunner.

Endpoints:
    POST /    → Provision a session + payment for the authenticated client
"""

import asyncio
import logging
from typing import Any, Dict, NoReturn

from fastapi import APIRouter, Body, Depends, HTTPException, status
from pydantic import ValidationError

from ...auth import get_current_user_id
from ...core.config import settings
from ...core.exceptions import DomainException, ServiceException, ValidationException
from ...schemas.session_booking import CreateSessionRequest, CreateSessionResponse
from ...services.dependencies import get_provisioning_runner
from ...services.session_provisioning_service import ProvisioningRunner

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["sessions-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post(
    "",
    response_model=CreateSessionResponse,
    responses={
        400: {"description": "invalid-argument or failed-precondition"},
        401: {"description": "unauthenticated"},
        404: {"description": "not-found"},
        500: {"description": "internal"},
    },
)
async def create_session(
    payload: Dict[str, Any] = Body(...),
    client_id: str = Depends(get_current_user_id),
    runner: ProvisioningRunner = Depends(get_provisioning_runner),
) -> CreateSessionResponse:
    """Create a scheduled session and its payment receipt after checkout."""
    try:
        request = CreateSessionRequest.model_validate(payload)
    except ValidationError as exc:
        handle_domain_exception(
            ValidationException(
                "Missing booking or payment data.",
                details={"errors": exc.errors(include_url=False, include_context=False)},
            )
        )

    logger.info("Starting session creation for user: %s", client_id)
    try:
        session_id = await asyncio.wait_for(
            asyncio.to_thread(runner.create_session, client_id, request),
            timeout=settings.pipeline_timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.error("Session creation timed out for user %s", client_id)
        handle_domain_exception(ServiceException("Session creation timed out."))
    except DomainException as exc:
        handle_domain_exception(exc)

    return CreateSessionResponse(session_id=session_id, success=True)
