"""PayHere MD5 signature helpers shared by the webhook and checkout routes."""

from __future__ import annotations

import hashlib
import hmac


def _md5_upper(value: str) -> str:
    return hashlib.md5(value.encode("utf-8")).hexdigest().upper()


def merchant_secret_hash(secret: str) -> str:
    """Uppercase hex MD5 of the merchant secret."""
    return _md5_upper(secret)


def checkout_hash(
    merchant_id: str,
    order_id: str,
    amount: str,
    currency: str,
    secret: str,
) -> str:
    """Outbound hash the checkout form submits to PayHere before payment."""
    return _md5_upper(
        f"{merchant_id}{order_id}{amount}{currency}{merchant_secret_hash(secret)}"
    )


def notification_signature(
    merchant_id: str,
    order_id: str,
    amount: str,
    currency: str,
    status_code: str,
    secret: str,
) -> str:
    """Expected ``md5sig`` for an inbound payment notification."""
    return _md5_upper(
        f"{merchant_id}{order_id}{amount}{currency}{status_code}{merchant_secret_hash(secret)}"
    )


def verify_notification(
    *,
    merchant_id: str,
    order_id: str,
    amount: str,
    currency: str,
    status_code: str,
    md5sig: str | None,
    secret: str,
) -> bool:
    """Return True when ``md5sig`` matches the recomputed signature.

    The supplied value is normalized to uppercase before a constant-time
    comparison of the encoded bytes. A missing, non-ASCII or otherwise
    malformed signature is a rejection, not an error.
    """
    if not md5sig or not secret:
        return False
    expected = notification_signature(
        merchant_id, order_id, amount, currency, status_code, secret
    )
    supplied = md5sig.strip().upper().encode("utf-8")
    return hmac.compare_digest(expected.encode("ascii"), supplied)
