from __future__ import annotations

import hashlib

import pytest

from app.domain.payhere_signature import (
    checkout_hash,
    merchant_secret_hash,
    notification_signature,
    verify_notification,
)


def _md5(value: str) -> str:
    return hashlib.md5(value.encode("utf-8")).hexdigest().upper()


def _notification_kwargs(**overrides):
    values = {
        "merchant_id": "M1",
        "order_id": "O1",
        "amount": "1500.00",
        "currency": "LKR",
        "status_code": "2",
        "secret": "S",
    }
    values.update(overrides)
    return values


def test_merchant_secret_hash_is_uppercase_md5():
    assert merchant_secret_hash("S") == _md5("S")
    assert merchant_secret_hash("S").isupper()


def test_notification_signature_concatenates_fields_then_secret_hash():
    expected = _md5("M1O11500.00LKR2" + _md5("S"))
    assert notification_signature("M1", "O1", "1500.00", "LKR", "2", "S") == expected


def test_checkout_hash_omits_status_code():
    expected = _md5("M1O11500.00LKR" + _md5("S"))
    assert checkout_hash("M1", "O1", "1500.00", "LKR", "S") == expected


def test_verify_accepts_matching_signature():
    kwargs = _notification_kwargs()
    sig = notification_signature(**kwargs)
    assert verify_notification(md5sig=sig, **kwargs) is True


def test_verify_is_case_insensitive_on_supplied_signature():
    kwargs = _notification_kwargs()
    sig = notification_signature(**kwargs).lower()
    assert verify_notification(md5sig=f" {sig} ", **kwargs) is True


def test_verify_rejects_tampered_amount():
    sig = notification_signature(**_notification_kwargs())
    assert verify_notification(md5sig=sig, **_notification_kwargs(amount="15.00")) is False


def test_verify_rejects_signature_made_with_other_secret():
    sig = notification_signature(**_notification_kwargs(secret="other"))
    assert verify_notification(md5sig=sig, **_notification_kwargs()) is False


def test_verify_rejects_missing_signature():
    assert verify_notification(md5sig=None, **_notification_kwargs()) is False
    assert verify_notification(md5sig="", **_notification_kwargs()) is False


def test_verify_rejects_when_secret_missing():
    sig = notification_signature(**_notification_kwargs(secret=""))
    assert verify_notification(md5sig=sig, **_notification_kwargs(secret="")) is False


@pytest.mark.parametrize("md5sig", ["é" * 32, "ÄBC", "ß" + "A" * 31])
def test_verify_rejects_non_ascii_signature(md5sig):
    assert verify_notification(md5sig=md5sig, **_notification_kwargs()) is False
