"""Tests for the /health endpoint."""

import time

from trackmint_api import __version__
from trackmint_api.routers import health


def test_health_without_supabase_config_is_degraded(client, monkeypatch):
    for name in ("SB_SECRET_KEY", "SUPABASE_SERVICE_ROLE_KEY", "SUPABASE_SERVICE_KEY"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(health, "check_supabase", lambda: "down: config error - missing")

    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "degraded"
    assert body["version"] == __version__
    assert body["services"]["api"] == "up"
    assert body["services"]["supabase_key"] == "missing"
    assert "redis" not in body["services"]


def test_health_healthy(client, monkeypatch):
    monkeypatch.setenv("SB_SECRET_KEY", "secret")
    monkeypatch.setattr(health, "check_supabase", lambda: "up")

    body = client.get("/health").json()

    assert body["status"] == "healthy"
    assert body["services"]["supabase_key"] == "SB_SECRET_KEY"


def test_health_reports_redis_when_selected(client, monkeypatch):
    monkeypatch.setenv("SB_SECRET_KEY", "secret")
    monkeypatch.setenv("DEDUP_BACKEND", "redis")
    monkeypatch.setattr(health, "check_supabase", lambda: "up")
    monkeypatch.setattr(health, "check_redis", lambda: "down: connection refused")

    body = client.get("/health").json()

    assert body["services"]["redis"] == "down: connection refused"
    assert body["status"] == "degraded"


def test_invalid_dedup_backend_is_degraded(client, monkeypatch):
    monkeypatch.setenv("SB_SECRET_KEY", "secret")
    monkeypatch.setenv("DEDUP_BACKEND", "memcached")
    monkeypatch.setattr(health, "check_supabase", lambda: "up")

    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "degraded"
    assert body["services"]["dedup"].startswith("down: config error - ")
    assert "redis" not in body["services"]


def test_health_reports_dedup_backend(client, monkeypatch):
    monkeypatch.setenv("SB_SECRET_KEY", "secret")
    monkeypatch.setattr(health, "check_supabase", lambda: "up")

    body = client.get("/health").json()

    assert body["services"]["dedup"] == "memory"


def test_slow_check_times_out(client, monkeypatch):
    def slow_check() -> str:
        time.sleep(0.5)
        return "up"

    monkeypatch.setattr(health, "HEALTH_CHECK_TIMEOUT_SECONDS", 0.05)
    monkeypatch.setattr(health, "check_supabase", slow_check)

    body = client.get("/health").json()

    assert body["services"]["supabase"].startswith("down: timeout")
    assert body["status"] == "degraded"
