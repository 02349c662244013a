from __future__ import annotations

from unittest.mock import MagicMock, patch

import httpx
import pytest

from app.domain.payhere_signature import checkout_hash
from app.integrations.payhere_client import PayHereClient
from app.main import app
from app.services.dependencies import get_payhere_client
from tests._utils.builders import MERCHANT_ID, MERCHANT_SECRET

HASH_URL = "/api/v1/payments/payhere/hash"
VERIFY_URL = "/api/v1/payments/payhere/verify"


@pytest.fixture
def payhere_client(client):
    mock = MagicMock()
    mock.get_access_token.return_value = "tok_1"
    app.dependency_overrides[get_payhere_client] = lambda: mock
    return mock


def test_hash_for_checkout(client):
    response = client.post(
        HASH_URL, json={"orderId": "O1", "amount": "1500.00", "currency": "LKR"}
    )

    assert response.status_code == 200
    assert response.json() == {
        "hash": checkout_hash(MERCHANT_ID, "O1", "1500.00", "LKR", MERCHANT_SECRET)
    }


def test_hash_requires_all_parameters(client):
    response = client.post(HASH_URL, json={"orderId": "O1", "currency": "LKR"})

    assert response.status_code == 400
    assert response.json()["code"] == "invalid-argument"


def test_verify_without_app_credentials(client):
    response = client.post(VERIFY_URL, json={"orderId": "O1"})

    assert response.status_code == 500
    assert response.json()["code"] == "internal"


def test_verify_reports_payment_status(client, payhere_client):
    payhere_client.search_payments.return_value = {
        "status": 1,
        "msg": "Payments found",
        "data": [{"order_id": "O1", "status": "RECEIVED"}],
    }

    response = client.post(VERIFY_URL, json={"orderId": "O1"})

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "status": "RECEIVED",
        "data": {"order_id": "O1", "status": "RECEIVED"},
    }


def test_verify_unknown_order(client, payhere_client):
    payhere_client.search_payments.return_value = {"status": -1, "msg": "No payments found"}

    response = client.post(VERIFY_URL, json={"orderId": "O1"})

    assert response.status_code == 404
    assert response.json()["code"] == "not-found"


def test_verify_malformed_search_body_is_bad_gateway(client):
    payhere = PayHereClient(
        app_id="app_1",
        app_secret="app_secret_1",
        base_url="https://sandbox.payhere.lk",
        referer="https://www.kalm.lk",
    )
    app.dependency_overrides[get_payhere_client] = lambda: payhere
    http = MagicMock()
    http.post.return_value = httpx.Response(200, json={"access_token": "tok_1"})
    http.get.return_value = httpx.Response(200, json=["not", "an", "object"])

    with patch("app.integrations.payhere_client.httpx.Client") as mock_client_cls:
        mock_client_cls.return_value.__enter__.return_value = http
        response = client.post(VERIFY_URL, json={"orderId": "O1"})

    assert response.status_code == 502
    assert response.json()["code"] == "bad-gateway"
