"""Unit tests for the dirmon REST API."""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import MagicMock, PropertyMock

from fastapi.testclient import TestClient

from dirmon.api.app import create_app
from dirmon.monitor.controller import MonitorState

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_monitor(state: MonitorState = MonitorState.RUNNING) -> MagicMock:
    monitor = MagicMock()
    monitor.state = state
    monitor.source_name = "ldap://dc.example.test"
    monitor.refresh_period = 20.0
    monitor.ignore_fields = frozenset({"logonCount", "lastLogon"})
    monitor.cycles_completed = 7
    monitor.consecutive_failures = 0
    monitor.last_poll_at = datetime(2026, 1, 15, 10, 30, tzinfo=UTC)
    monitor.baseline_size = 42
    monitor.queue_depth = 3
    monitor.events_dispatched = 11
    monitor.listener_names = ["console", "webhook"]
    return monitor


def _client(monitor: MagicMock | None = None) -> TestClient:
    return TestClient(create_app(monitor=monitor or _make_monitor()), raise_server_exceptions=False)


# ---------------------------------------------------------------------------
# /health
# ---------------------------------------------------------------------------


class TestHealth:
    def test_running_monitor_is_healthy(self) -> None:
        response = _client().get("/api/v1/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "monitor_state": "running"}

    def test_closed_monitor_is_unavailable(self) -> None:
        response = _client(_make_monitor(MonitorState.CLOSED)).get("/api/v1/health")
        assert response.status_code == 503
        assert response.json()["status"] == "unavailable"


# ---------------------------------------------------------------------------
# /status and /listeners
# ---------------------------------------------------------------------------


class TestStatus:
    def test_status_reports_monitor_fields(self) -> None:
        body = _client().get("/api/v1/status").json()
        assert body["source"] == "ldap://dc.example.test"
        assert body["monitor_state"] == "running"
        assert body["ignore_fields"] == ["lastLogon", "logonCount"]
        assert body["cycles_completed"] == 7
        assert body["baseline_entities"] == 42
        assert body["queue_depth"] == 3
        assert body["events_dispatched"] == 11
        assert body["last_poll_at"] == "2026-01-15T10:30:00+00:00"
        assert body["listeners"] == ["console", "webhook"]

    def test_status_before_first_poll(self) -> None:
        monitor = _make_monitor(MonitorState.CREATED)
        monitor.last_poll_at = None
        body = _client(monitor).get("/api/v1/status").json()
        assert body["last_poll_at"] is None
        assert body["monitor_state"] == "created"

    def test_listeners(self) -> None:
        assert _client().get("/api/v1/listeners").json() == {"listeners": ["console", "webhook"]}


class TestMetrics:
    def test_metrics_exposed_in_prometheus_format(self) -> None:
        response = _client().get("/metrics")
        assert response.status_code == 200
        assert "dirmon_poll_cycles_total" in response.text


class TestErrors:
    def test_unexpected_error_uses_envelope(self) -> None:
        monitor = _make_monitor()
        type(monitor).listener_names = PropertyMock(side_effect=RuntimeError("boom"))
        response = _client(monitor).get("/api/v1/listeners")
        assert response.status_code == 500
        assert response.json() == {"error": "INTERNAL_ERROR", "detail": "An unexpected error occurred."}
