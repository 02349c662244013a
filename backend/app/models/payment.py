# backend/app/models/payment.py
"""
Payment receipt model.

Each payment is created in the same transaction as its session. The
unique ``order_id`` constraint is what stops two provisioning attempts
for one order from both writing a receipt.
"""

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PayoutStatus(str, Enum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    PAID = "paid"


class Payment(Base):
    """Financial receipt linked to exactly one therapy session."""

    __tablename__ = "payments"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    session_id = Column(
        String(26),
        ForeignKey("sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    booking_id = Column(String(64), nullable=True)
    order_id = Column(String(64), nullable=True)
    payment_id = Column(String(64), nullable=True)  # PayHere payment id
    client_id = Column(String(26), nullable=False, index=True)
    therapist_id = Column(String(26), nullable=True, index=True)

    amount = Column(Numeric(10, 2), nullable=True)
    currency = Column(String(3), nullable=True)
    payment_method = Column(String(20), nullable=True)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.COMPLETED.value)
    payout_status = Column(String(20), nullable=False, default=PayoutStatus.PENDING.value)

    coupon_code = Column(String(50), nullable=True)
    discount_amount = Column(Numeric(10, 2), nullable=False, default=0)
    # Remaining caller-supplied receipt fields
    receipt_details = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc, onupdate=_now_utc)

    session = relationship("TherapySession", back_populates="payments")

    __table_args__ = (UniqueConstraint("order_id", name="uq_payments_order_id"),)

    def __repr__(self) -> str:
        return f"<Payment session={self.session_id} order={self.order_id} status={self.payment_status}>"
