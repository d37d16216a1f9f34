"""
Unit tests for the metrics collector and MetricsServer HTTP endpoints.

Uses ``aiohttp.test_utils`` to drive the server's aiohttp application
without binding the configured port.
"""

from unittest.mock import patch

import pytest
from aiohttp.test_utils import TestClient, TestServer

from warden_operator.observability.metrics import (
    MetricsServer,
    get_metrics_registry,
    metrics_collector,
)


@pytest.fixture
def metrics_server():
    """Create a fresh MetricsServer instance per test."""
    return MetricsServer(port=0)


@pytest.fixture
async def client(metrics_server):
    """Create an aiohttp TestClient from the MetricsServer app."""
    server = TestServer(metrics_server.app)
    async with TestClient(server) as cli:
        yield cli


def _sample(name: str, labels: dict[str, str]) -> float | None:
    return get_metrics_registry().get_sample_value(name, labels)


class TestMetricsEndpoint:
    """Tests for ``GET /metrics``."""

    @pytest.mark.asyncio
    async def test_metrics_returns_200(self, client):
        metrics_collector.record_apply("Deployment", "created")

        resp = await client.get("/metrics")

        assert resp.status == 200
        body = await resp.text()
        assert "warden_operator_applied_objects_total" in body

    @pytest.mark.asyncio
    async def test_metrics_error_returns_500(self, client):
        with patch(
            "warden_operator.observability.metrics.generate_latest",
            side_effect=RuntimeError("boom"),
        ):
            resp = await client.get("/metrics")
        assert resp.status == 500
        body = await resp.text()
        assert "RuntimeError" in body


class TestHealthzEndpoint:
    """Tests for ``GET /healthz``."""

    @pytest.mark.asyncio
    async def test_healthz_returns_200_ok(self, client):
        resp = await client.get("/healthz")
        assert resp.status == 200
        assert await resp.text() == "ok"


class TestMetricsCollector:
    """Tests for MetricsCollector."""

    @pytest.mark.asyncio
    async def test_track_reconciliation_counts_errors(self):
        labels = {
            "resource_type": "test",
            "namespace": "metrics-ns",
            "error_type": "ValueError",
            "retryable": "false",
        }
        before = _sample("warden_operator_reconciliation_errors_total", labels) or 0

        with pytest.raises(ValueError):
            async with metrics_collector.track_reconciliation(
                resource_type="test", namespace="metrics-ns", name="warden"
            ):
                raise ValueError("failed")

        after = _sample("warden_operator_reconciliation_errors_total", labels)
        assert after == before + 1

    def test_update_resource_status_sets_one_phase(self):
        metrics_collector.update_resource_status("test", "phase-ns", "Ready")

        assert _sample(
            "warden_operator_resource_phase",
            {"resource_type": "test", "namespace": "phase-ns", "phase": "Ready"},
        ) == 1
        assert _sample(
            "warden_operator_resource_phase",
            {"resource_type": "test", "namespace": "phase-ns", "phase": "Failed"},
        ) == 0

    def test_record_serving_cert_secret(self):
        metrics_collector.record_serving_cert_secret("cert-ns", "serving", False)

        assert _sample(
            "warden_operator_serving_cert_secret_present",
            {"namespace": "cert-ns", "secret_name": "serving"},
        ) == 0
