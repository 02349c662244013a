from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from app.core.exceptions import (
    NotFoundException,
    ServiceException,
    UnauthorizedException,
    ValidationException,
)
from app.domain.payhere_signature import checkout_hash
from app.integrations.payhere_client import PayHereError
from app.services.payhere_status_service import PayHereStatusService, PaymentLookupFailed


def _client(search_body=None, *, token_error=None, search_error=None):
    client = MagicMock()
    if token_error is not None:
        client.get_access_token.side_effect = token_error
    else:
        client.get_access_token.return_value = "tok_1"
    if search_error is not None:
        client.search_payments.side_effect = search_error
    else:
        client.search_payments.return_value = search_body
    return client


class TestIssueCheckoutHash:
    def test_hash_uses_configured_merchant(self):
        service = PayHereStatusService(merchant_id="M1", merchant_secret="S")

        value = service.issue_checkout_hash("O1", "1500.00", "LKR")

        assert value == checkout_hash("M1", "O1", "1500.00", "LKR", "S")

    def test_missing_parameters(self):
        service = PayHereStatusService(merchant_id="M1", merchant_secret="S")
        with pytest.raises(ValidationException):
            service.issue_checkout_hash("O1", "", "LKR")

    def test_missing_credentials(self):
        service = PayHereStatusService(merchant_id="", merchant_secret="")
        with pytest.raises(ServiceException):
            service.issue_checkout_hash("O1", "1500.00", "LKR")


class TestVerifyPayment:
    def test_received_payment_is_success(self):
        record = {"order_id": "O1", "status": "RECEIVED", "amount": 1500}
        client = _client({"status": 1, "msg": "Found", "data": [record]})

        result = PayHereStatusService(client=client).verify_payment("O1")

        assert result.success is True
        assert result.status == "RECEIVED"
        assert result.data == record
        client.search_payments.assert_called_once_with("O1", access_token="tok_1")

    def test_latest_record_with_failed_status(self):
        client = _client({"status": 1, "data": [{"status": "FAILED"}, {"status": "RECEIVED"}]})

        result = PayHereStatusService(client=client).verify_payment("O1")

        assert result.success is False
        assert result.status == "FAILED"

    def test_missing_order_id(self):
        with pytest.raises(ValidationException):
            PayHereStatusService(client=_client()).verify_payment("")

    def test_unconfigured_client(self):
        with pytest.raises(ServiceException):
            PayHereStatusService(client=None).verify_payment("O1")

    def test_token_failure_is_unauthenticated(self):
        client = _client(token_error=PayHereError("nope", status_code=401, stage="token"))

        with pytest.raises(UnauthorizedException):
            PayHereStatusService(client=client).verify_payment("O1")

    def test_search_failure_is_bad_gateway(self):
        client = _client(search_error=PayHereError("nope", status_code=500, stage="search"))

        with pytest.raises(PaymentLookupFailed) as exc_info:
            PayHereStatusService(client=client).verify_payment("O1")

        assert exc_info.value.status_code == 502

    def test_malformed_search_body_is_bad_gateway(self):
        error = PayHereError("Malformed PayHere response", status_code=200, stage="search")
        client = _client(search_error=error)

        with pytest.raises(PaymentLookupFailed) as exc_info:
            PayHereStatusService(client=client).verify_payment("O1")

        assert exc_info.value.details == {"provider_status": 200}

    @pytest.mark.parametrize(
        "body",
        [
            {"status": 1, "data": []},
            {"status": -1, "msg": "No payments found"},
            {"status": 1, "data": None},
        ],
    )
    def test_no_payment_is_not_found(self, body):
        with pytest.raises(NotFoundException):
            PayHereStatusService(client=_client(body)).verify_payment("O1")
