from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging

from app.models.webhook_log import WebhookLog, WebhookLogStatus
from app.services.webhook_log_service import WebhookLogService


def _row(db, order_id="O1"):
    db.expire_all()
    return db.get(WebhookLog, order_id)


def _age_claim(db, order_id, seconds):
    db.query(WebhookLog).filter(WebhookLog.order_id == order_id).update(
        {"claimed_at": datetime.now(timezone.utc) - timedelta(seconds=seconds)},
        synchronize_session=False,
    )
    db.commit()


def test_claim_creates_processing_row(db):
    service = WebhookLogService(db)

    assert service.claim("O1", "P1", {"order_id": "O1"}) is True

    row = _row(db)
    assert row is not None
    assert row.status == WebhookLogStatus.PROCESSING.value
    assert row.payment_id == "P1"
    assert row.payload == {"order_id": "O1"}
    assert row.processed_at is None


def test_second_claim_for_same_order_loses(db):
    service = WebhookLogService(db)
    assert service.claim("O1", "P1", {}) is True

    assert service.claim("O1", "P1", {}) is False
    assert db.query(WebhookLog).count() == 1


def test_losing_claim_logs_below_warning(db, caplog):
    service = WebhookLogService(db)
    service.claim("O1", "P1", {})
    caplog.clear()
    caplog.set_level(logging.DEBUG)

    assert service.claim("O1", "P1", {}) is False

    assert caplog.records
    assert all(record.levelno < logging.WARNING for record in caplog.records)
    assert any(
        record.levelno == logging.INFO and "already exists" in record.getMessage()
        for record in caplog.records
    )


def test_processing_row_is_not_already_processed(db):
    service = WebhookLogService(db)
    service.claim("O1", "P1", {})

    assert service.already_processed("O1") is False


def test_stale_claim_can_be_taken_over(db):
    service = WebhookLogService(db, claim_ttl_seconds=60)
    service.claim("O1", "P1", {})
    _age_claim(db, "O1", 600)

    assert service.claim("O1", "P1", {}) is True
    # The fresh claim is not stale any more
    assert service.claim("O1", "P1", {}) is False


def test_fresh_claim_is_not_taken_over(db):
    service = WebhookLogService(db, claim_ttl_seconds=600)
    service.claim("O1", "P1", {})
    _age_claim(db, "O1", 30)

    assert service.claim("O1", "P1", {}) is False


def test_record_finalizes_claimed_row(db):
    service = WebhookLogService(db)
    service.claim("O1", "P1", {"status_code": "2"})

    service.record("O1", "P1", WebhookLogStatus.SUCCESS, {"status_code": "2"}, "2")

    row = _row(db)
    assert row.status == WebhookLogStatus.SUCCESS.value
    assert row.gateway_status_code == "2"
    assert row.processed_at is not None
    assert service.already_processed("O1") is True


def test_record_without_claim_creates_final_row(db):
    service = WebhookLogService(db)

    service.record("O2", None, WebhookLogStatus.OTHER, {"status_code": "-2"}, "-2")

    row = _row(db, "O2")
    assert row.status == WebhookLogStatus.OTHER.value
    assert service.already_processed("O2") is True


def test_final_row_cannot_be_claimed_even_when_old(db):
    service = WebhookLogService(db, claim_ttl_seconds=1)
    service.claim("O1", "P1", {})
    service.record("O1", "P1", WebhookLogStatus.SUCCESS, {}, "2")
    _age_claim(db, "O1", 600)

    assert service.claim("O1", "P1", {}) is False


def test_release_drops_unfinished_claim(db):
    service = WebhookLogService(db)
    service.claim("O1", "P1", {})

    service.release("O1")

    assert _row(db) is None
    assert service.claim("O1", "P1", {}) is True


def test_release_keeps_final_rows(db):
    service = WebhookLogService(db)
    service.record("O1", "P1", WebhookLogStatus.SUCCESS, {}, "2")

    service.release("O1")

    assert _row(db) is not None
