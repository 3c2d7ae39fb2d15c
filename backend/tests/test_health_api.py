import pytest

from app.api import health


@pytest.mark.parametrize(("api_key", "configured"), [("drx-key", True), (None, False)])
def test_health_reports_pharmacy_key_state(client, monkeypatch, api_key, configured):
    monkeypatch.setattr(health.settings, "pharmacy_api_key", api_key)

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "healthy",
        "service": "pharmacy-sync-api",
        "pharmacy_api_configured": configured,
    }


def test_health_needs_no_upstream_call(client, fake_session):
    client.get("/health")

    assert fake_session.calls == []


def test_root_points_at_docs_and_health(client):
    body = client.get("/").json()

    assert body["message"] == "Welcome to Pharmacy Sync API"
    assert (body["docs"], body["health"]) == ("/docs", "/health")
