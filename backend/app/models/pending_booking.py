"""Pending booking staged by the booking flow before payment."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from sqlalchemy import DateTime, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.constants import DEFAULT_SESSION_DURATION, DEFAULT_SESSION_TYPE
from app.database import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class PendingBookingStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class PendingBooking(Base):
    """Booking request keyed by the PayHere order id."""

    __tablename__ = "pending_bookings"

    order_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    therapist_id: Mapped[str] = mapped_column(String(26), nullable=False, index=True)
    client_id: Mapped[str] = mapped_column(String(26), nullable=False, index=True)
    session_type: Mapped[str] = mapped_column(
        String(10), nullable=False, default=DEFAULT_SESSION_TYPE
    )
    scheduled_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(
        Integer, nullable=False, default=DEFAULT_SESSION_DURATION
    )
    amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    currency: Mapped[str | None] = mapped_column(String(3), nullable=True)
    coupon_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PendingBookingStatus.PENDING.value
    )
    session_id: Mapped[str | None] = mapped_column(String(26), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_now_utc,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, onupdate=_now_utc
    )

    @property
    def is_completed(self) -> bool:
        return self.status == PendingBookingStatus.COMPLETED.value

    def __repr__(self) -> str:
        return f"<PendingBooking {self.order_id} status={self.status}>"
