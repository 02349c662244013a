from __future__ import annotations

import asyncio
from unittest.mock import patch

from app.core.constants import PAYHERE_STATUS_CANCELLED
from app.models.payment import Payment
from app.models.therapy_session import TherapySession
from app.models.webhook_log import WebhookLog
from app.services.session_record_service import SessionRecordService
from app.services.webhook_log_service import WebhookLogService
from tests._utils.builders import signed_notification

URL = "/api/v1/webhooks/payhere"


def test_successful_notification_returns_ok(client, db, make_pending_booking):
    make_pending_booking()

    response = client.post(URL, data=signed_notification())

    assert response.status_code == 200
    assert response.text == "OK"
    assert db.query(TherapySession).count() == 1


def test_redelivery_returns_duplicate(client, db, make_pending_booking):
    make_pending_booking()
    client.post(URL, data=signed_notification())

    response = client.post(URL, data=signed_notification())

    assert response.status_code == 200
    assert response.text == "OK (Duplicate)"
    assert db.query(Payment).count() == 1


def test_delivery_during_unfinished_claim_asks_for_retry(client, db, make_pending_booking):
    make_pending_booking()
    WebhookLogService(db).claim("O1", "320025071234", {})

    response = client.post(URL, data=signed_notification())

    assert response.status_code == 503
    assert response.text == "Processing In Progress"
    assert db.query(TherapySession).count() == 0


def test_json_body_is_accepted(client, db, make_pending_booking):
    make_pending_booking()

    response = client.post(URL, json=signed_notification())

    assert response.status_code == 200
    assert response.text == "OK"


def test_failed_payment_is_acknowledged(client, db, make_pending_booking):
    make_pending_booking()

    response = client.post(URL, data=signed_notification(status_code=PAYHERE_STATUS_CANCELLED))

    assert response.status_code == 200
    assert response.text == "OK"
    assert db.query(TherapySession).count() == 0


def test_invalid_signature(client, db, make_pending_booking):
    make_pending_booking()
    body = signed_notification()
    body["md5sig"] = "0" * 32

    response = client.post(URL, data=body)

    assert response.status_code == 400
    assert response.text == "Invalid Signature"
    assert db.query(WebhookLog).count() == 0


def test_non_ascii_signature_is_rejected(client, db, make_pending_booking):
    make_pending_booking()
    body = signed_notification()
    body["md5sig"] = "ÄBC"

    response = client.post(URL, data=body)

    assert response.status_code == 400
    assert response.text == "Invalid Signature"
    assert db.query(WebhookLog).count() == 0


def test_empty_body_is_rejected(client):
    response = client.post(URL, data={})

    assert response.status_code == 400
    assert response.text == "Invalid Signature"


def test_unknown_order(client):
    response = client.post(URL, data=signed_notification(order_id="O-unknown"))

    assert response.status_code == 404
    assert response.text == "Pending booking not found"


def test_already_completed_booking(client, make_pending_booking):
    make_pending_booking(status="completed", session_id="S-prev")

    response = client.post(URL, data=signed_notification())

    assert response.status_code == 200
    assert response.text == "OK (Already Completed)"


def test_processing_error_returns_500_and_releases_claim(client, db, make_pending_booking):
    make_pending_booking()

    with patch.object(SessionRecordService, "write", side_effect=RuntimeError("boom")):
        response = client.post(URL, data=signed_notification())

    assert response.status_code == 500
    assert response.text == "Internal Server Error"
    db.expire_all()
    assert db.get(WebhookLog, "O1") is None


def test_timeout_returns_503(client, make_pending_booking):
    make_pending_booking()

    async def _time_out(awaitable, timeout):
        awaitable.close()
        raise asyncio.TimeoutError

    with patch("app.routes.v1.webhooks_payhere.asyncio.wait_for", new=_time_out):
        response = client.post(URL, data=signed_notification())

    assert response.status_code == 503
    assert response.text == "Service Unavailable"


def test_get_is_not_allowed(client):
    response = client.get(URL)

    assert response.status_code == 405
