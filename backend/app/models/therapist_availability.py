"""Therapist availability calendar.

Two independent representations live on one row: date-specific
``special_dates`` overrides and the recurring ``weekly_schedule``. Both are
JSON arrays written by the therapist's calendar editor.

Slot shape::

    {"id": "...", "startTime": "14:00", "endTime": "15:00",
     "isAvailable": true, "isBooked": false, "isRecurring": true}
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from app.database import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


_JSON_ARRAY = JSONB(astext_type=Text()).with_variant(JSON(), "sqlite")


class TherapistAvailability(Base):
    __tablename__ = "therapist_availability"

    therapist_id: Mapped[str] = mapped_column(String(26), primary_key=True)
    special_dates: Mapped[list[dict[str, Any]]] = mapped_column(
        _JSON_ARRAY, nullable=False, default=list
    )
    weekly_schedule: Mapped[list[dict[str, Any]]] = mapped_column(
        _JSON_ARRAY, nullable=False, default=list
    )
    timezone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now_utc
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now_utc, onupdate=_now_utc
    )
