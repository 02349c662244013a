# backend/app/services/session_provisioning_service.py
"""
Session Provisioning Service for the Kalm platform.

Turns a confirmed payment into a scheduled session. Two entry points share
the same steps:

- ``process_notification``: PayHere's server-to-server callback. Authenticates
  the signature itself, collapses redeliveries through the webhook ledger and
  never loses a successful payment over a video-room failure.
- ``create_session``: the authenticated client call made right after
  checkout. Gated on the therapist being bookable; a room failure aborts it.

Everything before the session/payment write aborts the request. Everything
after it (calendar update, ledger finalization on the direct path) is
best-effort and only logged and counted.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
import logging
from typing import Any, Callable, Optional, TypeVar

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import PAYHERE_STATUS_SUCCESS, PAYMENT_METHOD_PAYHERE
from ..core.exceptions import DuplicateRecordError, NotFoundException, PreconditionFailure
from ..domain.payhere_signature import verify_notification
from ..models.pending_booking import PendingBooking
from ..models.webhook_log import WebhookLogStatus
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.pending_booking_repository import PendingBookingRepository
from ..repositories.user_repository import UserRepository
from ..schemas.payhere import PayHereNotification
from ..schemas.session_booking import CreateSessionRequest
from .availability_update_service import AvailabilityUpdateService
from .base import BaseService
from .room_provisioning_service import (
    RoomProvisioningError,
    RoomProvisioningService,
    RoomReference,
    room_expiry,
)
from .session_record_service import SessionRecordService
from .webhook_log_service import WebhookLogService

logger = logging.getLogger(__name__)

ENTRY_NOTIFICATION = "notification"
ENTRY_DIRECT = "direct"

T = TypeVar("T")


class NotificationOutcome(str, Enum):
    PROCESSED = "processed"
    PAYMENT_NOT_SUCCESSFUL = "payment_not_successful"
    DUPLICATE = "duplicate"
    IN_PROGRESS = "in_progress"
    ALREADY_COMPLETED = "already_completed"
    REJECTED = "rejected"
    NOT_FOUND = "not_found"
    MISCONFIGURED = "misconfigured"


@dataclass(frozen=True)
class NotificationResult:
    outcome: NotificationOutcome
    order_id: str
    session_id: Optional[str] = None


def _parse_amount(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


class SessionProvisioningService(BaseService):
    """Sequences signature check, ledger, room, records and calendar update."""

    def __init__(
        self,
        db: Session,
        *,
        room_provisioner: RoomProvisioningService,
        merchant_secret: Optional[str] = None,
        timezone_name: Optional[str] = None,
    ):
        super().__init__(db)
        self.rooms = room_provisioner
        self.merchant_secret = (
            merchant_secret if merchant_secret is not None else settings.merchant_secret_value()
        )
        self.users = UserRepository(db)
        self.pending_bookings = PendingBookingRepository(db)
        self.ledger = WebhookLogService(db)
        self.records = SessionRecordService(db)
        self.availability = AvailabilityUpdateService(db, timezone_name=timezone_name)

    def _result(
        self,
        outcome: NotificationOutcome,
        order_id: str,
        session_id: Optional[str] = None,
    ) -> NotificationResult:
        prometheus_metrics.record_provisioning_outcome(ENTRY_NOTIFICATION, outcome.value)
        return NotificationResult(outcome=outcome, order_id=order_id, session_id=session_id)

    # Gateway notification path

    @BaseService.measure_operation("provisioning.process_notification")
    def process_notification(self, notification: PayHereNotification) -> NotificationResult:
        order_id = notification.order_id
        payload = notification.ledger_payload()

        if not self.merchant_secret:
            self.logger.error("PayHere merchant secret not configured")
            return self._result(NotificationOutcome.MISCONFIGURED, order_id)

        authenticated = verify_notification(
            merchant_id=notification.merchant_id,
            order_id=order_id,
            amount=notification.payhere_amount,
            currency=notification.payhere_currency,
            status_code=notification.status_code,
            md5sig=notification.md5sig,
            secret=self.merchant_secret,
        )
        if not authenticated or not order_id:
            self.logger.warning("Invalid PayHere signature for order %s", order_id or "<missing>")
            return self._result(NotificationOutcome.REJECTED, order_id)

        if self.ledger.already_processed(order_id):
            self.logger.info("Order %s already processed, skipping", order_id)
            return self._result(NotificationOutcome.DUPLICATE, order_id)

        if not self.ledger.claim(order_id, notification.payment_id, payload):
            # The other delivery may have finished between the two checks
            if self.ledger.already_processed(order_id):
                return self._result(NotificationOutcome.DUPLICATE, order_id)
            self.logger.info("Order %s is being processed by another delivery", order_id)
            return self._result(NotificationOutcome.IN_PROGRESS, order_id)

        try:
            return self._process_claimed(notification, payload)
        except Exception:
            self.db.rollback()
            self._release_claim(order_id)
            raise

    def _release_claim(self, order_id: str) -> None:
        try:
            self.ledger.release(order_id)
        except Exception:
            # The claim will expire after the TTL; the original error is what surfaces
            self.logger.error("Failed to release webhook claim for %s", order_id, exc_info=True)

    def _process_claimed(
        self, notification: PayHereNotification, payload: dict[str, Any]
    ) -> NotificationResult:
        order_id = notification.order_id
        payment_id = notification.payment_id

        if notification.status_code != PAYHERE_STATUS_SUCCESS:
            self.logger.info(
                "Payment not successful for order %s (status %s)",
                order_id,
                notification.status_code,
            )
            self.ledger.record(
                order_id, payment_id, WebhookLogStatus.OTHER, payload, notification.status_code
            )
            return self._result(NotificationOutcome.PAYMENT_NOT_SUCCESSFUL, order_id)

        pending = self.pending_bookings.get_by_order_id(order_id)
        if pending is None:
            self.logger.error("Pending booking not found for order %s", order_id)
            self.ledger.release(order_id)
            return self._result(NotificationOutcome.NOT_FOUND, order_id)

        if pending.is_completed:
            self.logger.info("Booking %s already completed", order_id)
            self.ledger.record(
                order_id, payment_id, WebhookLogStatus.SUCCESS, payload, notification.status_code
            )
            return self._result(
                NotificationOutcome.ALREADY_COMPLETED, order_id, session_id=pending.session_id
            )

        session_id = self._provision_from_pending(pending, notification)
        self.ledger.record(
            order_id, payment_id, WebhookLogStatus.SUCCESS, payload, notification.status_code
        )
        self.logger.info(
            "Provisioned session %s for order %s",
            session_id,
            order_id,
            extra={"order_id": order_id, "session_id": session_id},
        )
        return self._result(NotificationOutcome.PROCESSED, order_id, session_id=session_id)

    def _provision_from_pending(
        self, pending: PendingBooking, notification: PayHereNotification
    ) -> str:
        room: Optional[RoomReference] = None
        try:
            room = self.rooms.create_room(
                pending.session_type,
                therapist_id=pending.therapist_id,
                client_id=pending.client_id,
                expires_at=room_expiry(pending.scheduled_time),
            )
        except RoomProvisioningError as exc:
            # Payment already succeeded; the session is created without a room
            prometheus_metrics.record_room_failure(ENTRY_NOTIFICATION, fatal=False)
            self.logger.error(
                "Room creation failed for order %s, continuing without room: %s",
                pending.order_id,
                exc.message,
            )

        amount = _parse_amount(notification.payhere_amount)
        if amount is None:
            amount = pending.amount
        currency = notification.payhere_currency or pending.currency

        session_fields = {
            "booking_id": pending.order_id,
            "therapist_id": pending.therapist_id,
            "client_id": pending.client_id,
            "session_type": pending.session_type,
            "scheduled_time": pending.scheduled_time,
            "duration_minutes": pending.duration_minutes,
            "daily_room_url": room.url if room else "",
            "daily_room_name": room.name if room else "",
            "payment_status": "paid",
            "amount": amount,
            "currency": currency,
        }
        payment_fields = {
            "booking_id": pending.order_id,
            "order_id": pending.order_id,
            "payment_id": notification.payment_id,
            "client_id": pending.client_id,
            "therapist_id": pending.therapist_id,
            "amount": amount,
            "currency": currency,
            "payment_method": PAYMENT_METHOD_PAYHERE,
            "coupon_code": pending.coupon_code,
            "discount_amount": pending.discount_amount,
            "card_method": notification.method,
            "status_message": notification.status_message,
        }

        order_id = pending.order_id
        therapist_id = pending.therapist_id
        scheduled_time = pending.scheduled_time

        try:
            session_id = self.records.write(session_fields, payment_fields)
        except DuplicateRecordError as dup:
            # Another handler recorded this order first; converge on its session
            self.logger.info("Order %s already recorded as session %s", order_id, dup.session_id)
            with self.transaction():
                self.pending_bookings.mark_completed(order_id, dup.session_id or "")
            return dup.session_id or ""

        with self.transaction():
            won = self.pending_bookings.mark_completed(order_id, session_id)
        if not won:
            self.logger.warning("Pending booking %s was completed concurrently", order_id)

        outcome = self.availability.mark_slot_booked(therapist_id, scheduled_time)
        self.logger.info("Availability update for order %s: %s", order_id, outcome.value)
        return session_id

    # Direct booking path

    @BaseService.measure_operation("provisioning.create_session")
    def create_session(self, client_id: str, request: CreateSessionRequest) -> str:
        """
        Provision a session for an authenticated client.

        Raises:
            NotFoundException: therapist does not exist
            PreconditionFailure: therapist is inactive
            RoomProvisioningError: room could not be created (nothing written)
            PersistenceFailure: session/payment write failed
        """
        booking = request.booking_data
        payment = request.payment_data

        therapist = self.users.get_therapist(booking.therapist_id)
        if therapist is None or not therapist.is_therapist:
            raise NotFoundException("Therapist not found.")
        if not therapist.is_active:
            raise PreconditionFailure("Therapist is not active.")

        scheduled_time: datetime = booking.session_time
        try:
            room = self.rooms.create_room(
                booking.session_type,
                therapist_id=therapist.id,
                client_id=client_id,
                expires_at=room_expiry(scheduled_time),
            )
        except RoomProvisioningError:
            prometheus_metrics.record_room_failure(ENTRY_DIRECT, fatal=True)
            prometheus_metrics.record_provisioning_outcome(ENTRY_DIRECT, "room_failed")
            self.logger.error("Failed to setup video room for client %s", client_id)
            raise

        session_fields = {
            "booking_id": payment.reference,
            "therapist_id": therapist.id,
            "client_id": client_id,
            "session_type": booking.session_type.value,
            "scheduled_time": scheduled_time,
            "duration_minutes": booking.duration,
            "daily_room_url": room.url if room else "",
            "daily_room_name": room.name if room else "",
        }
        payment_fields: dict[str, Any] = {
            **payment.receipt_extras(),
            "booking_id": payment.booking_id,
            "order_id": payment.order_id,
            "payment_id": payment.payment_id,
            "client_id": client_id,
            "therapist_id": therapist.id,
            "amount": payment.amount,
            "currency": payment.currency,
            "payment_method": payment.payment_method,
            "coupon_code": payment.coupon_code,
            "discount_amount": payment.discount_amount,
        }

        try:
            session_id = self.records.write(session_fields, payment_fields)
        except DuplicateRecordError as dup:
            self.logger.info(
                "Order %s already provisioned as session %s", dup.order_id, dup.session_id
            )
            prometheus_metrics.record_provisioning_outcome(ENTRY_DIRECT, "duplicate")
            return dup.session_id or ""

        self.logger.info("Session %s created successfully.", session_id)
        outcome = self.availability.mark_slot_booked(therapist.id, scheduled_time)
        self.logger.info("Availability update for session %s: %s", session_id, outcome.value)
        prometheus_metrics.record_provisioning_outcome(ENTRY_DIRECT, "created")
        return session_id


class ProvisioningRunner:
    """
    Runs one provisioning call on its own database session.

    Routes hand these calls to a worker thread under a deadline. The session
    is opened and closed inside that thread, so a request that times out
    never shares a Session with the work still running behind it.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        room_provisioner: RoomProvisioningService,
    ):
        self.session_factory = session_factory
        self.rooms = room_provisioner

    def _run(self, operation: Callable[[SessionProvisioningService], T]) -> T:
        db = self.session_factory()
        try:
            result = operation(SessionProvisioningService(db, room_provisioner=self.rooms))
            db.commit()
            return result
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def process_notification(self, notification: PayHereNotification) -> NotificationResult:
        return self._run(lambda service: service.process_notification(notification))

    def create_session(self, client_id: str, request: CreateSessionRequest) -> str:
        return self._run(lambda service: service.create_session(client_id, request))
