"""Repository for staged (pre-payment) bookings."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import RepositoryException
from app.models.pending_booking import PendingBooking, PendingBookingStatus
from app.repositories.base_repository import BaseRepository


class PendingBookingRepository(BaseRepository[PendingBooking]):
    def __init__(self, db: Session) -> None:
        super().__init__(db, PendingBooking)

    def get_by_order_id(self, order_id: str) -> PendingBooking | None:
        return self.get_by_id(order_id)

    def mark_completed(self, order_id: str, session_id: str) -> bool:
        """
        Transition ``pending`` -> ``completed`` and link the session.

        Conditional on the current status, so only one caller can win the
        transition for a given order id. Returns True for the winner.
        """
        try:
            updated = (
                self._build_query()
                .filter(
                    PendingBooking.order_id == order_id,
                    PendingBooking.status == PendingBookingStatus.PENDING.value,
                )
                .update(
                    {
                        "status": PendingBookingStatus.COMPLETED.value,
                        "session_id": session_id,
                        "updated_at": datetime.now(timezone.utc),
                    },
                    synchronize_session=False,
                )
            )
        except SQLAlchemyError as exc:
            self.logger.error("Failed to complete pending booking %s: %s", order_id, str(exc))
            raise RepositoryException("Failed to complete pending booking") from exc
        return int(updated or 0) == 1
