"""
Database models for the Kalm platform.

- Users (clients and therapists)
- Booking staging and the webhook idempotency ledger
- Sessions and their payment receipts
- Therapist availability calendars
"""

from .payment import Payment, PaymentStatus, PayoutStatus
from .pending_booking import PendingBooking, PendingBookingStatus
from .therapist_availability import TherapistAvailability
from .therapy_session import SessionStatus, SessionType, TherapySession
from .user import User, UserRole
from .webhook_log import WebhookLog, WebhookLogStatus

__all__ = [
    "Payment",
    "PaymentStatus",
    "PayoutStatus",
    "PendingBooking",
    "PendingBookingStatus",
    "SessionStatus",
    "SessionType",
    "TherapistAvailability",
    "TherapySession",
    "User",
    "UserRole",
    "WebhookLog",
    "WebhookLogStatus",
]
