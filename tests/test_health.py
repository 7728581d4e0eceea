"""
tests/test_health.py -- Integration tests for GET /api/health.

Covers:
  - 200 response with status, version, and components fields
  - No authentication required
  - A database that does not answer reports 'degraded'
"""

from __future__ import annotations

from sqlalchemy.exc import OperationalError

from api.main import __version__


def test_health_returns_200_with_components(api_client):
    client, _, _ = api_client
    resp = client.get("/api/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["version"] == __version__
    assert data["components"] == {"app": "ok", "database": "ok"}


def test_health_no_auth_required(api_client):
    """No cookie and no Authorization header is still a 200."""
    client, _, _ = api_client
    client.cookies.clear()
    resp = client.get("/api/health", headers={})
    assert resp.status_code == 200


def test_health_reports_degraded_database(api_client, monkeypatch):
    client, store, _ = api_client

    def _down():
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    monkeypatch.setattr(store, "ping", _down)
    resp = client.get("/api/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "degraded"
    assert data["components"]["database"] == "error"
