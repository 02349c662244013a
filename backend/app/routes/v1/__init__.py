# backend/app/routes/v1/__init__.py
"""
API v1 Routes

Versioned API endpoints under /api/v1.
"""

from . import health, payments, sessions, webhooks_payhere

__all__ = ["health", "payments", "sessions", "webhooks_payhere"]
