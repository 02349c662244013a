# backend/app/models/therapy_session.py
"""
Therapy session model for the Kalm platform.

A session is the bookable unit created once payment is confirmed.
Its lifecycle after creation (joining, ending, no-shows) is driven by
the session room code; the provisioning pipeline only creates it.
"""

from datetime import datetime, timezone
from enum import Enum
import logging

from sqlalchemy import Column, DateTime, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.constants import DEFAULT_SESSION_DURATION
from ..database import Base

logger = logging.getLogger(__name__)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class SessionStatus(str, Enum):
    """Session lifecycle statuses."""

    SCHEDULED = "scheduled"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    MISSED = "missed"


class SessionType(str, Enum):
    VIDEO = "video"
    AUDIO = "audio"
    CHAT = "chat"

    @property
    def needs_room(self) -> bool:
        return self in (SessionType.VIDEO, SessionType.AUDIO)


class TherapySession(Base):
    """Scheduled session between a client and a therapist."""

    __tablename__ = "sessions"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    booking_id = Column(String(64), nullable=True, index=True)
    therapist_id = Column(String(26), nullable=False, index=True)
    client_id = Column(String(26), nullable=False, index=True)
    session_type = Column(String(10), nullable=False, default=SessionType.VIDEO.value)
    status = Column(String(20), nullable=False, default=SessionStatus.SCHEDULED.value)
    scheduled_time = Column(DateTime(timezone=True), nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=DEFAULT_SESSION_DURATION)

    # Empty strings when no room was provisioned (chat, or degraded webhook path)
    daily_room_url = Column(String(255), nullable=False, default="")
    daily_room_name = Column(String(128), nullable=False, default="")

    payment_status = Column(String(20), nullable=True)
    amount = Column(Numeric(10, 2), nullable=True)
    currency = Column(String(3), nullable=True)
    notes = Column(Text, nullable=True)

    started_at = Column(DateTime(timezone=True), nullable=True)
    ended_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc, onupdate=_now_utc)

    payments = relationship("Payment", back_populates="session")

    __table_args__ = (
        Index("ix_sessions_therapist_scheduled", "therapist_id", "scheduled_time"),
    )

    @property
    def has_room(self) -> bool:
        return bool(self.daily_room_url)

    def __repr__(self) -> str:
        return f"<TherapySession {self.id} {self.session_type} status={self.status}>"
