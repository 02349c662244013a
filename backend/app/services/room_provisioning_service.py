"""Video room provisioning for real-time therapy sessions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
import time
from typing import Any

from app.core.constants import ROOM_EXPIRY_HOURS, ROOM_MAX_PARTICIPANTS, ROOM_NAME_PREFIX
from app.core.exceptions import ProvisioningFailure
from app.core.timezone_utils import ensure_utc
from app.integrations.daily_client import DailyClient, DailyError, FakeDailyClient
from app.models.therapy_session import SessionType
from app.services.base import BaseService

logger = logging.getLogger(__name__)


class RoomProvisioningError(ProvisioningFailure):
    """The video provider could not create a room (down, rejected, or not configured)."""


@dataclass(frozen=True)
class RoomReference:
    url: str
    name: str


def room_expiry(scheduled_time: datetime) -> datetime:
    return ensure_utc(scheduled_time) + timedelta(hours=ROOM_EXPIRY_HOURS)


def build_room_name(therapist_id: str, client_id: str, *, now_ms: int | None = None) -> str:
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{ROOM_NAME_PREFIX}-{therapist_id}-{client_id}-{stamp}"


class RoomProvisioningService:
    """
    Creates private Daily.co rooms for video and audio sessions.

    ``client`` is None when the real provider is enabled but not configured;
    every room request then fails with RoomProvisioningError and the caller
    decides whether that is fatal.
    """

    def __init__(self, client: DailyClient | FakeDailyClient | None) -> None:
        self.client = client
        self.logger = logging.getLogger(self.__class__.__name__)

    @staticmethod
    def room_properties(
        session_type: SessionType,
        *,
        expires_at: datetime,
        participants: int = ROOM_MAX_PARTICIPANTS,
    ) -> dict[str, Any]:
        return {
            "max_participants": participants,
            "enable_chat": False,
            "enable_screenshare": session_type == SessionType.VIDEO,
            "start_video_off": True,
            "start_audio_off": True,
            "exp": int(ensure_utc(expires_at).timestamp()),
        }

    @BaseService.measure_operation("room.create")
    def create_room(
        self,
        session_type: SessionType | str,
        *,
        therapist_id: str,
        client_id: str,
        expires_at: datetime,
        participants: int = ROOM_MAX_PARTICIPANTS,
    ) -> RoomReference | None:
        """
        Create a call room for the session.

        Returns None for session types that do not use a room (chat).

        Raises:
            RoomProvisioningError: provider error, unreachable, or unconfigured
        """
        kind = SessionType(session_type)
        if not kind.needs_room:
            return None

        if self.client is None:
            raise RoomProvisioningError(
                "Video provider is not configured",
                details={"session_type": kind.value},
            )

        name = build_room_name(therapist_id, client_id)
        properties = self.room_properties(kind, expires_at=expires_at, participants=participants)
        try:
            room = self.client.create_room(name=name, properties=properties)
        except DailyError as exc:
            self.logger.error(
                "Daily room creation failed for %s: %s",
                name,
                exc.message,
                extra={"status_code": exc.status_code},
            )
            raise RoomProvisioningError(
                "Failed to create video room",
                details={"provider_status": exc.status_code},
            ) from exc

        url = room.get("url")
        if not url:
            raise RoomProvisioningError(
                "Video provider returned no room url", details={"room_name": name}
            )
        return RoomReference(url=str(url), name=str(room.get("name") or name))
