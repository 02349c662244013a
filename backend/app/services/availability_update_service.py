"""Marks the booked slot unavailable on a therapist's calendar.

Both calendar representations are checked on every call: the date-specific
``special_dates`` overrides and the recurring ``weekly_schedule``. A match in
one does not stop the search in the other.
"""

from __future__ import annotations

import copy
from datetime import datetime
from enum import Enum
import logging
import re
from typing import Any

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.timezone_utils import LocalSlot, parse_iso_datetime, to_schedule_slot
from app.monitoring.prometheus_metrics import prometheus_metrics
from app.repositories.availability_repository import AvailabilityRepository
from app.services.base import BaseService

logger = logging.getLogger(__name__)

_HHMM = re.compile(r"^\d{2}:\d{2}$")


class AvailabilityUpdateOutcome(str, Enum):
    UPDATED = "updated"
    NO_MATCHING_SLOT = "no_matching_slot"
    AVAILABILITY_MISSING = "availability_missing"
    FAILED = "failed"


def _slot_local_time(start: Any, tz_name: str) -> str | None:
    """Return a slot's start as ``HH:MM`` in ``tz_name``; None if unreadable."""
    if not isinstance(start, str) or not start:
        return None
    if _HHMM.match(start):
        return start
    # Legacy slots stored a full ISO datetime
    try:
        return to_schedule_slot(parse_iso_datetime(start), tz_name).time
    except ValueError:
        return None


def _book_matching_slots(slots: list[dict[str, Any]], target: str, tz_name: str) -> int:
    flipped = 0
    for slot in slots:
        if not isinstance(slot, dict):
            continue
        if _slot_local_time(slot.get("startTime"), tz_name) == target:
            slot["isAvailable"] = False
            slot["isBooked"] = True
            flipped += 1
    return flipped


class AvailabilityUpdateService(BaseService):
    def __init__(self, db: Session, *, timezone_name: str | None = None):
        super().__init__(db)
        self.repository = AvailabilityRepository(db)
        self.timezone_name = timezone_name or settings.availability_timezone

    def _apply(
        self,
        special_dates: list[dict[str, Any]],
        weekly_schedule: list[dict[str, Any]],
        local: LocalSlot,
    ) -> int:
        flipped = 0
        for entry in special_dates:
            if isinstance(entry, dict) and entry.get("date") == local.date:
                flipped += _book_matching_slots(
                    entry.get("timeSlots") or [], local.time, self.timezone_name
                )
        for day in weekly_schedule:
            if isinstance(day, dict) and day.get("dayOfWeek") == local.day_of_week:
                flipped += _book_matching_slots(
                    day.get("timeSlots") or [], local.time, self.timezone_name
                )
        return flipped

    @BaseService.measure_operation("availability.mark_slot_booked")
    def mark_slot_booked(self, therapist_id: str, scheduled_time: datetime) -> AvailabilityUpdateOutcome:
        """
        Flip the slot at ``scheduled_time`` to booked. Never raises.

        The outcome is for logging and metrics only; a missing slot or a
        failed write must not affect the already-recorded session.
        """
        try:
            outcome = self._mark_slot_booked(therapist_id, scheduled_time)
        except Exception as exc:
            self.db.rollback()
            self.logger.error(
                "Availability update failed for therapist %s: %s",
                therapist_id,
                exc,
                exc_info=True,
            )
            outcome = AvailabilityUpdateOutcome.FAILED
        prometheus_metrics.record_availability_update(outcome.value)
        return outcome

    def _mark_slot_booked(self, therapist_id: str, scheduled_time: datetime) -> AvailabilityUpdateOutcome:
        local = to_schedule_slot(scheduled_time, self.timezone_name)
        availability = self.repository.get_for_therapist(therapist_id)
        if availability is None:
            self.logger.warning("No availability found for therapist %s, skipping update", therapist_id)
            return AvailabilityUpdateOutcome.AVAILABILITY_MISSING

        special_dates = copy.deepcopy(list(availability.special_dates or []))
        weekly_schedule = copy.deepcopy(list(availability.weekly_schedule or []))

        if not self._apply(special_dates, weekly_schedule, local):
            self.logger.warning(
                "No matching slot for therapist %s at %s %s (weekday %s)",
                therapist_id,
                local.date,
                local.time,
                local.day_of_week,
            )
            return AvailabilityUpdateOutcome.NO_MATCHING_SLOT

        with self.transaction():
            self.repository.replace_schedules(
                therapist_id, special_dates=special_dates, weekly_schedule=weekly_schedule
            )
        self.logger.info(
            "Marked slot booked for therapist %s at %s %s", therapist_id, local.date, local.time
        )
        return AvailabilityUpdateOutcome.UPDATED
