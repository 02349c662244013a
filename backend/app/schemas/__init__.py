# backend/app/schemas/__init__.py
"""Pydantic schemas for the Kalm backend."""

from .payhere import (
    PayHereHashRequest,
    PayHereHashResponse,
    PayHereNotification,
    PayHereVerifyRequest,
    PayHereVerifyResponse,
)
from .session_booking import BookingData, CreateSessionRequest, CreateSessionResponse, PaymentData

__all__ = [
    "BookingData",
    "CreateSessionRequest",
    "CreateSessionResponse",
    "PayHereHashRequest",
    "PayHereHashResponse",
    "PayHereNotification",
    "PayHereVerifyRequest",
    "PayHereVerifyResponse",
    "PaymentData",
]
