# backend/tests/conftest.py
"""
Pytest configuration for the Kalm backend.

Every test gets a fresh in-memory SQLite schema. Settings are pinned
through environment variables before any ``app`` import so the module-level
``settings`` object sees test values.
"""

import os

# Set testing mode BEFORE any app imports
os.environ["IS_TESTING"] = "true"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["PAYHERE_MERCHANT_ID"] = "M1"
os.environ["PAYHERE_MERCHANT_SECRET"] = "test-merchant-secret"
os.environ["DAILY_ENABLED"] = "false"
os.environ["AVAILABILITY_TIMEZONE"] = "Asia/Colombo"
os.environ["SECRET_KEY"] = "test-secret-key-for-jwt-signing-0123456789"

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, Optional

from fastapi.testclient import TestClient
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.auth import create_access_token
from app.core.config import settings
from app.database import Base
from app.integrations.daily_client import FakeDailyClient
from app.main import app
from app.models.pending_booking import PendingBooking
from app.models.therapist_availability import TherapistAvailability
from app.models.user import User, UserRole
from app.services.dependencies import get_daily_client, get_session_factory

test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture
def db() -> Session:
    Base.metadata.create_all(bind=test_engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def fake_daily() -> FakeDailyClient:
    return FakeDailyClient()


@pytest.fixture
def client(db: Session, fake_daily: FakeDailyClient) -> TestClient:
    # Route workers open their own sessions on the shared in-memory connection
    app.dependency_overrides[get_session_factory] = lambda: TestSessionLocal
    app.dependency_overrides[get_daily_client] = lambda: fake_daily
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def therapist(db: Session) -> User:
    user = User(
        email="therapist@kalm.lk",
        display_name="Dr. Perera",
        role=UserRole.THERAPIST.value,
        is_active=True,
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def client_user(db: Session) -> User:
    user = User(email="client@example.com", display_name="Client", role=UserRole.CLIENT.value)
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def auth_headers(client_user: User) -> Dict[str, str]:
    token = create_access_token({"sub": client_user.id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_pending_booking(db: Session) -> Callable[..., PendingBooking]:
    def _make(
        order_id: str = "O1",
        *,
        therapist_id: str = "T1",
        client_id: str = "C1",
        session_type: str = "chat",
        scheduled_time: datetime = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc),
        **overrides: Any,
    ) -> PendingBooking:
        booking = PendingBooking(
            order_id=order_id,
            therapist_id=therapist_id,
            client_id=client_id,
            session_type=session_type,
            scheduled_time=scheduled_time,
            amount=Decimal("1500.00"),
            currency="LKR",
            **overrides,
        )
        db.add(booking)
        db.commit()
        return booking

    return _make


@pytest.fixture
def make_availability(db: Session) -> Callable[..., TherapistAvailability]:
    def _make(
        therapist_id: str = "T1",
        *,
        weekly_schedule: Optional[list] = None,
        special_dates: Optional[list] = None,
    ) -> TherapistAvailability:
        availability = TherapistAvailability(
            therapist_id=therapist_id,
            weekly_schedule=weekly_schedule or [],
            special_dates=special_dates or [],
            timezone=settings.availability_timezone,
        )
        db.add(availability)
        db.commit()
        return availability

    return _make

