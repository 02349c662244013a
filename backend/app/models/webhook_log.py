"""Idempotency ledger for PayHere payment notifications."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

import sqlalchemy as sa
from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from app.database import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class WebhookLogStatus(str, Enum):
    PROCESSING = "processing"
    SUCCESS = "success"
    OTHER = "other"


FINAL_STATUSES = frozenset({WebhookLogStatus.SUCCESS.value, WebhookLogStatus.OTHER.value})


class WebhookLog(Base):
    """One row per order id; its existence gates reprocessing."""

    __tablename__ = "webhook_logs"

    __table_args__ = (sa.Index("ix_webhook_logs_status", "status"),)

    order_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    payment_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=WebhookLogStatus.PROCESSING.value
    )
    gateway_status_code: Mapped[str | None] = mapped_column(String(8), nullable=True)
    payload: Mapped[dict[str, Any]] = mapped_column(
        JSONB(astext_type=Text()).with_variant(JSON(), "sqlite"),
        nullable=False,
    )
    claimed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now_utc
    )
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_now_utc,
        server_default=func.now(),
    )
