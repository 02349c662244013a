# backend/app/repositories/__init__.py
"""
Repository Pattern Implementation for the Kalm platform

This package provides the repository layer for data access,
separating business logic from database queries. Repositories
flush but never commit; services own the transaction.

Usage:
    from app.repositories import PendingBookingRepository

    repo = PendingBookingRepository(db)
    won = repo.mark_completed(order_id, session_id)
"""

from .availability_repository import AvailabilityRepository
from .base_repository import BaseRepository
from .pending_booking_repository import PendingBookingRepository
from .session_repository import PaymentRepository
from .user_repository import UserRepository
from .webhook_log_repository import WebhookLogRepository

__all__ = [
    "AvailabilityRepository",
    "BaseRepository",
    "PaymentRepository",
    "PendingBookingRepository",
    "UserRepository",
    "WebhookLogRepository",
]
