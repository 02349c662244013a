# backend/app/repositories/availability_repository.py
"""
Availability Repository for the Kalm platform.

Reads and writes the per-therapist availability row. The slot arrays are
replaced wholesale; there is no row lock, so concurrent writers follow
last-writer-wins.
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import RepositoryException
from app.models.therapist_availability import TherapistAvailability
from app.repositories.base_repository import BaseRepository

logger = logging.getLogger(__name__)


class AvailabilityRepository(BaseRepository[TherapistAvailability]):
    def __init__(self, db: Session) -> None:
        super().__init__(db, TherapistAvailability)

    def get_for_therapist(self, therapist_id: str) -> TherapistAvailability | None:
        return self.get_by_id(therapist_id)

    def replace_schedules(
        self,
        therapist_id: str,
        *,
        special_dates: list[dict[str, Any]],
        weekly_schedule: list[dict[str, Any]],
    ) -> bool:
        """Write both slot arrays back in a single UPDATE statement."""
        try:
            updated = (
                self._build_query()
                .filter(TherapistAvailability.therapist_id == therapist_id)
                .update(
                    {
                        "special_dates": special_dates,
                        "weekly_schedule": weekly_schedule,
                        "updated_at": datetime.now(timezone.utc),
                    },
                    synchronize_session=False,
                )
            )
        except SQLAlchemyError as exc:
            self.logger.error("Failed to write availability for %s: %s", therapist_id, str(exc))
            raise RepositoryException("Failed to write therapist availability") from exc
        return int(updated or 0) == 1
