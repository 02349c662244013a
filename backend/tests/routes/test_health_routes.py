from tests._utils.builders import signed_notification


def test_health(client):
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["service"] == "kalm-api"
    assert body["timestamp"].endswith("Z")


def test_metrics_exposes_provisioning_counters(client, make_pending_booking):
    make_pending_booking()
    client.post("/api/v1/webhooks/payhere", data=signed_notification())

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "kalm_provisioning_outcomes_total" in response.text
    assert 'entry_point="notification"' in response.text
