"""
tests/test_health.py -- Integration tests for GET /health.

Covers:
  - 200 response with status "ok" and a current ISO 8601 timestamp
  - No session required
  - Requests for hosts outside ALLOWED_HOSTS are refused
"""

from __future__ import annotations

from datetime import datetime, timezone


def test_health_returns_ok_with_current_timestamp(web_client):
    before = datetime.now(timezone.utc)
    resp = web_client.get("/health")
    after = datetime.now(timezone.utc)

    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    stamp = datetime.fromisoformat(data["timestamp"])
    assert before <= stamp <= after


def test_health_no_auth_required(web_client):
    """Health endpoint answers without any session cookie."""
    web_client.cookies.clear()
    resp = web_client.get("/health")
    assert resp.status_code == 200
    assert set(resp.json()) == {"status", "timestamp"}


def test_unexpected_host_is_rejected(web_client):
    resp = web_client.get("/health", headers={"host": "evil.example"})
    assert resp.status_code == 400
