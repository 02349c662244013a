from __future__ import annotations

from app.integrations.daily_client import DailyError
from app.models.payment import Payment
from app.models.therapy_session import TherapySession

URL = "/api/v1/sessions"


def _payload(therapist_id, **booking_overrides):
    booking = {
        "therapistId": therapist_id,
        "sessionTime": "2024-05-01T08:30:00Z",
        "sessionType": "video",
        "duration": 60,
    }
    booking.update(booking_overrides)
    return {
        "bookingData": booking,
        "paymentData": {
            "bookingId": "B1",
            "amount": 2500,
            "currency": "LKR",
            "paymentMethod": "card",
        },
    }


def test_requires_authentication(client, therapist):
    response = client.post(URL, json=_payload(therapist.id))

    assert response.status_code == 401
    assert response.json()["code"] == "unauthenticated"


def test_rejects_invalid_token(client, therapist):
    response = client.post(
        URL, json=_payload(therapist.id), headers={"Authorization": "Bearer not-a-jwt"}
    )

    assert response.status_code == 401


def test_creates_session(client, db, therapist, client_user, auth_headers, fake_daily):
    response = client.post(URL, json=_payload(therapist.id), headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    session = db.get(TherapySession, body["sessionId"])
    assert session.client_id == client_user.id
    assert session.daily_room_name == fake_daily._calls[0]["name"]
    assert db.query(Payment).filter(Payment.booking_id == "B1").count() == 1


def test_missing_payment_data_is_invalid_argument(client, therapist, auth_headers):
    payload = _payload(therapist.id)
    del payload["paymentData"]

    response = client.post(URL, json=payload, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["code"] == "invalid-argument"
    assert response.json()["detail"] == "Missing booking or payment data."


def test_payment_without_reference_is_invalid_argument(client, therapist, auth_headers):
    payload = _payload(therapist.id)
    del payload["paymentData"]["bookingId"]

    response = client.post(URL, json=payload, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["code"] == "invalid-argument"


def test_unknown_therapist_is_not_found(client, auth_headers, client_user):
    response = client.post(URL, json=_payload("T-missing"), headers=auth_headers)

    assert response.status_code == 404
    assert response.json()["code"] == "not-found"


def test_inactive_therapist_is_failed_precondition(client, db, therapist, auth_headers):
    therapist.is_active = False
    db.commit()

    response = client.post(URL, json=_payload(therapist.id), headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["code"] == "failed-precondition"


def test_room_failure_is_internal_and_writes_nothing(
    client, db, therapist, auth_headers, fake_daily
):
    fake_daily.set_error("create_room", DailyError("unavailable", status_code=503))

    response = client.post(URL, json=_payload(therapist.id), headers=auth_headers)

    assert response.status_code == 500
    assert response.json()["code"] == "internal"
    assert db.query(TherapySession).count() == 0


def test_chat_session_without_room(client, db, therapist, auth_headers, fake_daily):
    response = client.post(
        URL, json=_payload(therapist.id, sessionType="chat"), headers=auth_headers
    )

    assert response.status_code == 200
    assert fake_daily._calls == []
