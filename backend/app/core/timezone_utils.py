"""
Timezone utilities for the Kalm platform.

All conversion from an absolute instant to a therapist's local calendar
position goes through :func:`to_schedule_slot`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import pytz


@dataclass(frozen=True)
class LocalSlot:
    """An instant expressed on the therapist's calendar."""

    date: str  # YYYY-MM-DD
    time: str  # HH:MM
    day_of_week: int  # 0 = Sunday .. 6 = Saturday


def get_timezone(name: str) -> pytz.BaseTzInfo:
    return pytz.timezone(name)


def ensure_utc(dt: datetime) -> datetime:
    """Return ``dt`` as an aware UTC datetime (naive values are treated as UTC)."""
    if dt.tzinfo is None:
        return pytz.UTC.localize(dt)
    return dt.astimezone(pytz.UTC)


def to_schedule_slot(instant: datetime, tz_name: str) -> LocalSlot:
    """
    Resolve an instant to local date, time-of-day and weekday in ``tz_name``.

    Args:
        instant: Datetime to convert; naive values are assumed to be UTC
        tz_name: IANA zone of the therapist's schedule

    Returns:
        LocalSlot with weekday numbered from Sunday = 0
    """
    local = ensure_utc(instant).astimezone(get_timezone(tz_name))
    # isoweekday(): Monday=1 .. Sunday=7
    return LocalSlot(
        date=local.strftime("%Y-%m-%d"),
        time=local.strftime("%H:%M"),
        day_of_week=local.isoweekday() % 7,
    )


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 string, accepting a trailing ``Z`` for UTC."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)
