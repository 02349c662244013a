from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from app.core.exceptions import DuplicateRecordError
from app.models.payment import Payment
from app.models.therapy_session import TherapySession
from app.services.session_record_service import SessionRecordService

SCHEDULED = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


def _session_fields(**overrides):
    fields = {
        "booking_id": "O1",
        "therapist_id": "T1",
        "client_id": "C1",
        "session_type": "chat",
        "scheduled_time": SCHEDULED,
        "duration_minutes": 50,
        "daily_room_url": "",
        "daily_room_name": "",
    }
    fields.update(overrides)
    return fields


def _payment_fields(**overrides):
    fields = {
        "booking_id": "O1",
        "order_id": "O1",
        "payment_id": "P1",
        "client_id": "C1",
        "therapist_id": "T1",
        "amount": Decimal("1500.00"),
        "currency": "LKR",
        "payment_method": "payhere",
    }
    fields.update(overrides)
    return fields


def test_write_creates_session_and_linked_payment(db):
    session_id = SessionRecordService(db).write(_session_fields(), _payment_fields())

    session = db.get(TherapySession, session_id)
    assert session is not None
    assert session.status == "scheduled"
    assert session.duration_minutes == 50
    assert session.daily_room_url == ""

    payments = db.query(Payment).filter(Payment.session_id == session_id).all()
    assert len(payments) == 1
    assert payments[0].order_id == "O1"
    assert payments[0].amount == Decimal("1500.00")
    assert payments[0].payment_status == "completed"


def test_write_applies_session_defaults(db):
    fields = _session_fields()
    for key in ("session_type", "duration_minutes", "daily_room_url", "daily_room_name"):
        fields.pop(key)

    session_id = SessionRecordService(db).write(fields, _payment_fields())

    session = db.get(TherapySession, session_id)
    assert session.session_type == "video"
    assert session.duration_minutes == 60
    assert session.daily_room_name == ""


def test_payout_status_is_always_pending(db):
    session_id = SessionRecordService(db).write(
        _session_fields(),
        _payment_fields(payout_status="paid", payment_status="refunded"),
    )

    payment = db.query(Payment).filter(Payment.session_id == session_id).one()
    assert payment.payout_status == "pending"
    assert payment.payment_status == "completed"
    assert payment.receipt_details is None


def test_unknown_payment_fields_are_kept_on_receipt(db):
    session_id = SessionRecordService(db).write(
        _session_fields(),
        _payment_fields(card_method="VISA", status_message="Successfully completed"),
    )

    payment = db.query(Payment).filter(Payment.session_id == session_id).one()
    assert payment.receipt_details == {
        "card_method": "VISA",
        "status_message": "Successfully completed",
    }


def test_second_write_for_same_order_reports_existing_session(db):
    service = SessionRecordService(db)
    first = service.write(_session_fields(), _payment_fields())

    with pytest.raises(DuplicateRecordError) as exc_info:
        service.write(_session_fields(), _payment_fields())

    assert exc_info.value.order_id == "O1"
    assert exc_info.value.session_id == first
    assert db.query(TherapySession).count() == 1
    assert db.query(Payment).count() == 1


def test_different_orders_create_separate_records(db):
    service = SessionRecordService(db)
    first = service.write(_session_fields(), _payment_fields())
    second = service.write(
        _session_fields(booking_id="O2"), _payment_fields(booking_id="O2", order_id="O2")
    )

    assert first != second
    assert db.query(Payment).count() == 2
