#!/usr/bin/env python3
"""
Basic health endpoint tests for CI/CD pipeline.
Tests fundamental application functionality without external dependencies.
"""

import pytest
from fastapi.testclient import TestClient


def test_health_endpoint():
    """Health endpoint returns 200 and {"ok": true}"""
    from telepsy.main import app

    client = TestClient(app)
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_ready_endpoint():
    """Ready endpoint runs a trivial query against the configured database"""
    from telepsy.main import app

    client = TestClient(app)
    response = client.get("/readyz")

    assert response.status_code == 200
    assert response.json() == {"db": "ok"}


def test_api_key_protection(monkeypatch):
    """With a key configured, everything except health checks needs X-API-Key"""
    from telepsy.core.config import settings
    from telepsy.main import app

    monkeypatch.setattr(settings, "TELEPSY_API_KEY", "s3cret")
    client = TestClient(app)

    assert client.get("/healthz").status_code == 200

    response = client.get("/appointments/1", headers={"X-Actor-Role": "staff", "X-Actor-Id": "1"})
    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHORIZED"

    response = client.get("/errors", headers={"X-API-Key": "wrong"})
    assert response.status_code == 401


def test_cors_headers():
    """CORS preflight is answered without an API key"""
    from telepsy.main import app

    client = TestClient(app)
    response = client.options(
        "/slots/search",
        headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "POST"},
    )

    assert response.status_code == 200
    assert "access-control-allow-origin" in response.headers


def test_errors_summary():
    from telepsy.main import app

    client = TestClient(app)
    data = client.get("/errors").json()

    assert set(data) == {"total_unique_errors", "total_error_count", "by_type", "top_errors"}


@pytest.mark.asyncio
async def test_app_startup():
    """The app exposes health checks and the scheduling routes"""
    from telepsy.main import app

    assert app.url_path_for("healthz") == "/healthz"
    assert app.url_path_for("readyz") == "/readyz"
    assert app.url_path_for("search_slots_ep") == "/slots/search"
    assert app.url_path_for("book_appointment_ep") == "/appointments"
    assert app.url_path_for("search_appointments_ep") == "/appointments/search"
    assert app.url_path_for("user_upcoming_ep") == "/users/me/appointments"
    assert app.url_path_for("psychologist_agenda_ep") == "/psychologists/me/appointments"
    assert (
        app.url_path_for("create_recurring_slot_ep", psychologist_id=7)
        == "/psychologists/7/availability/recurring"
    )
