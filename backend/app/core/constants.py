"""Application-wide constants for the Kalm platform."""

from __future__ import annotations

BRAND_NAME = "Kalm"

# Session defaults
DEFAULT_SESSION_DURATION = 60  # minutes
DEFAULT_SESSION_TYPE = "video"

# Video rooms expire this long after the scheduled start
ROOM_EXPIRY_HOURS = 4
ROOM_MAX_PARTICIPANTS = 2
ROOM_NAME_PREFIX = "kalm-session"

# PayHere notification status codes
PAYHERE_STATUS_SUCCESS = "2"
PAYHERE_STATUS_PENDING = "0"
PAYHERE_STATUS_CANCELLED = "-1"
PAYHERE_STATUS_FAILED = "-2"
PAYHERE_STATUS_CHARGEDBACK = "-3"

# Payment search statuses that count as a settled payment
PAYHERE_SUCCESS_SEARCH_STATUSES = frozenset({"RECEIVED", "SUCCESS", "AUTHORIZED"})

PAYMENT_METHOD_PAYHERE = "payhere"
