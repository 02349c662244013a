"""Idempotency ledger for PayHere payment notifications."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import RepositoryException
from app.models.webhook_log import WebhookLogStatus
from app.repositories.webhook_log_repository import WebhookLogRepository
from app.services.base import BaseService


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class WebhookLogService(BaseService):
    """
    Records which order ids have been processed.

    A row moves ``processing`` -> ``success`` | ``other``. The INSERT of the
    ``processing`` row is the gate: whoever inserts it owns the order id until
    it is finalized, released, or goes stale.
    """

    def __init__(self, db: Session, *, claim_ttl_seconds: int | None = None) -> None:
        super().__init__(db)
        self.repository = WebhookLogRepository(db)
        self.claim_ttl_seconds = claim_ttl_seconds or settings.webhook_claim_ttl_seconds

    @BaseService.measure_operation("webhook_log.already_processed")
    def already_processed(self, order_id: str) -> bool:
        return self.repository.has_final_entry(order_id)

    @BaseService.measure_operation("webhook_log.claim")
    def claim(self, order_id: str, payment_id: str | None, payload: dict[str, Any]) -> bool:
        """Create-if-absent the ``processing`` row; True when this caller owns the order."""
        try:
            self.repository.insert_claim(order_id=order_id, payment_id=payment_id, payload=payload)
        except RepositoryException as exc:
            if not isinstance(exc.__cause__, IntegrityError):
                raise
            # Routine redelivery: the row already exists
            self.logger.info("Webhook log entry for order %s already exists", order_id)
        else:
            self.db.commit()
            return True

        cutoff = _now_utc() - timedelta(seconds=self.claim_ttl_seconds)
        with self.transaction():
            taken = self.repository.take_over_stale_claim(order_id, cutoff=cutoff)
        if taken:
            self.logger.warning("Took over stale webhook claim for order %s", order_id)
        return taken

    @BaseService.measure_operation("webhook_log.record")
    def record(
        self,
        order_id: str,
        payment_id: str | None,
        outcome: WebhookLogStatus,
        payload: dict[str, Any],
        status_code: str | None = None,
    ) -> None:
        """Finalize the ledger row for ``order_id``."""
        now = _now_utc()
        with self.transaction():
            entry = self.repository.get_by_order_id(order_id)
            if entry is None:
                self.repository.create(
                    order_id=order_id,
                    payment_id=payment_id,
                    status=outcome.value,
                    gateway_status_code=status_code,
                    payload=payload,
                    claimed_at=now,
                    processed_at=now,
                )
                return
            entry.status = outcome.value
            entry.payment_id = payment_id or entry.payment_id
            entry.gateway_status_code = status_code
            entry.payload = payload
            entry.processed_at = now
            self.repository.flush()

    @BaseService.measure_operation("webhook_log.release")
    def release(self, order_id: str) -> None:
        """Drop an unfinished claim so the gateway's retry can redo the work."""
        with self.transaction():
            removed = self.repository.delete_claim(order_id)
        if removed:
            self.logger.info("Released webhook claim for order %s", order_id)
