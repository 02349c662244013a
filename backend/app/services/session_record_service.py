# backend/app/services/session_record_service.py
"""
Session Record Service for the Kalm platform.

Writes the Session and its Payment receipt in one transaction. Either both
rows exist afterwards or neither does.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
import ulid

from ..core.constants import DEFAULT_SESSION_DURATION, DEFAULT_SESSION_TYPE
from ..core.exceptions import DuplicateRecordError, PersistenceFailure
from ..models.payment import Payment, PaymentStatus, PayoutStatus
from ..models.therapy_session import SessionStatus, TherapySession
from ..repositories.session_repository import PaymentRepository
from .base import BaseService

logger = logging.getLogger(__name__)

_SESSION_FIELDS = frozenset(
    {
        "booking_id",
        "therapist_id",
        "client_id",
        "session_type",
        "scheduled_time",
        "duration_minutes",
        "daily_room_url",
        "daily_room_name",
        "payment_status",
        "amount",
        "currency",
        "notes",
    }
)

_PAYMENT_FIELDS = frozenset(
    {
        "booking_id",
        "order_id",
        "payment_id",
        "client_id",
        "therapist_id",
        "amount",
        "currency",
        "payment_method",
        "coupon_code",
        "discount_amount",
    }
)


class SessionRecordService(BaseService):
    """Atomic writer for session + payment pairs."""

    def __init__(self, db: Session):
        super().__init__(db)
        self.payment_repository = PaymentRepository(db)

    @staticmethod
    def _session_values(session_fields: Mapping[str, Any]) -> dict[str, Any]:
        values = {k: v for k, v in session_fields.items() if k in _SESSION_FIELDS and v is not None}
        values.setdefault("session_type", DEFAULT_SESSION_TYPE)
        values.setdefault("duration_minutes", DEFAULT_SESSION_DURATION)
        values.setdefault("daily_room_url", "")
        values.setdefault("daily_room_name", "")
        values["status"] = SessionStatus.SCHEDULED.value
        return values

    @staticmethod
    def _payment_values(payment_fields: Mapping[str, Any], session_id: str) -> dict[str, Any]:
        values = {k: v for k, v in payment_fields.items() if k in _PAYMENT_FIELDS and v is not None}
        extra = {
            k: v
            for k, v in payment_fields.items()
            if k not in _PAYMENT_FIELDS
            and k not in {"session_id", "payment_status", "payout_status"}
            and v is not None
        }
        if extra:
            values["receipt_details"] = extra
        values["session_id"] = session_id
        values["payment_status"] = PaymentStatus.COMPLETED.value
        # Payouts are scheduled by finance later, never by the caller
        values["payout_status"] = PayoutStatus.PENDING.value
        return values

    @BaseService.measure_operation("session_record.write")
    def write(self, session_fields: Mapping[str, Any], payment_fields: Mapping[str, Any]) -> str:
        """
        Create the session and its payment; return the new session id.

        Raises:
            DuplicateRecordError: a payment for the same order id already exists
            PersistenceFailure: the write failed and nothing was stored
        """
        session_id = str(ulid.ULID())
        session_values = self._session_values(session_fields)
        payment_values = self._payment_values(payment_fields, session_id)
        order_id = payment_values.get("order_id")

        try:
            self.db.add(TherapySession(id=session_id, **session_values))
            self.db.add(Payment(**payment_values))
            self.db.flush()
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            existing = self.payment_repository.get_by_order_id(order_id) if order_id else None
            if existing is not None:
                self.logger.info(
                    "Payment for order %s already recorded on session %s",
                    order_id,
                    existing.session_id,
                )
                raise DuplicateRecordError(order_id, existing.session_id) from exc
            self.logger.error("Integrity error writing session records: %s", exc)
            raise PersistenceFailure("Failed to record session and payment") from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            self.logger.error("Failed to write session records: %s", exc, exc_info=True)
            raise PersistenceFailure("Failed to record session and payment") from exc

        self.logger.info(
            "Recorded session %s (order=%s)",
            session_id,
            order_id,
            extra={"session_id": session_id, "order_id": order_id},
        )
        return session_id
