"""Repository helpers for the PayHere webhook ledger."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import RepositoryException
from app.models.webhook_log import FINAL_STATUSES, WebhookLog, WebhookLogStatus
from app.repositories.base_repository import BaseRepository

logger = logging.getLogger(__name__)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class WebhookLogRepository(BaseRepository[WebhookLog]):
    """Repository for webhook ledger rows keyed by order id."""

    def __init__(self, db: Session) -> None:
        super().__init__(db, WebhookLog)

    def get_by_order_id(self, order_id: str) -> WebhookLog | None:
        return self.get_by_id(order_id)

    def has_final_entry(self, order_id: str) -> bool:
        try:
            query = self._build_query().filter(
                WebhookLog.order_id == order_id,
                WebhookLog.status.in_(FINAL_STATUSES),
            )
            return query.first() is not None
        except SQLAlchemyError as exc:
            self.logger.error("Failed to check webhook log %s: %s", order_id, str(exc))
            raise RepositoryException("Failed to check webhook log") from exc

    def insert_claim(
        self,
        *,
        order_id: str,
        payment_id: str | None,
        payload: dict[str, Any],
    ) -> WebhookLog:
        """INSERT a processing row; raises RepositoryException on duplicate order id."""
        return self.create(
            order_id=order_id,
            payment_id=payment_id,
            status=WebhookLogStatus.PROCESSING.value,
            payload=payload,
            claimed_at=_now_utc(),
        )

    def take_over_stale_claim(self, order_id: str, *, cutoff: datetime) -> bool:
        """Atomically re-claim a processing row claimed before ``cutoff``."""
        try:
            updated = (
                self._build_query()
                .filter(
                    WebhookLog.order_id == order_id,
                    WebhookLog.status == WebhookLogStatus.PROCESSING.value,
                    WebhookLog.claimed_at < cutoff,
                )
                .update({"claimed_at": _now_utc()}, synchronize_session=False)
            )
        except SQLAlchemyError as exc:
            self.logger.error("Failed to take over webhook claim %s: %s", order_id, str(exc))
            raise RepositoryException("Failed to take over webhook claim") from exc
        return int(updated or 0) == 1

    def delete_claim(self, order_id: str) -> int:
        try:
            deleted = (
                self._build_query()
                .filter(
                    WebhookLog.order_id == order_id,
                    WebhookLog.status == WebhookLogStatus.PROCESSING.value,
                )
                .delete(synchronize_session=False)
            )
        except SQLAlchemyError as exc:
            self.logger.error("Failed to release webhook claim %s: %s", order_id, str(exc))
            raise RepositoryException("Failed to release webhook claim") from exc
        return int(deleted or 0)
