"""External service integrations for the Kalm platform."""

from .daily_client import DailyClient, DailyError, FakeDailyClient
from .payhere_client import PayHereClient, PayHereError

__all__ = ["DailyClient", "DailyError", "FakeDailyClient", "PayHereClient", "PayHereError"]
