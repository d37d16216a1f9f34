"""
Prometheus metrics for the Warden operator.

This module provides metrics collection for monitoring reconciliation
of the admission subsystem and the trust material it depends on.
"""

import logging
import time
from contextlib import asynccontextmanager

# aiohttp is provided transitively by kopf, which serves probes with it.
from aiohttp.web import Application, AppRunner, Request, Response, TCPSite
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

logger = logging.getLogger(__name__)

# Global metrics registry
_metrics_registry: CollectorRegistry | None = None

RECONCILIATION_TOTAL = Counter(
    "warden_operator_reconciliation_total",
    "Total number of reconciliation attempts",
    ["resource_type", "namespace", "name", "result"],
    registry=None,  # Will be set during initialization
)

RECONCILIATION_DURATION = Histogram(
    "warden_operator_reconciliation_duration_seconds",
    "Time spent on reconciliation operations",
    ["resource_type", "namespace", "operation"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
    registry=None,
)

RECONCILIATION_ERRORS = Counter(
    "warden_operator_reconciliation_errors_total",
    "Total number of reconciliation errors",
    ["resource_type", "namespace", "error_type", "retryable"],
    registry=None,
)

RESOURCE_PHASE = Gauge(
    "warden_operator_resource_phase",
    "Phase of reconciled resources (1 for the current phase)",
    ["resource_type", "namespace", "phase"],
    registry=None,
)

CA_INJECTIONS_TOTAL = Counter(
    "warden_operator_ca_injections_total",
    "Total number of passes that injected CA bundles into admission objects",
    ["namespace", "webhook_count"],
    registry=None,
)

SERVING_CERT_SECRET_PRESENT = Gauge(
    "warden_operator_serving_cert_secret_present",
    "Whether the admission serving certificate secret was found (1=found, 0=missing)",
    ["namespace", "secret_name"],
    registry=None,
)

APPLIED_OBJECTS_TOTAL = Counter(
    "warden_operator_applied_objects_total",
    "Total number of objects applied, by outcome",
    ["kind", "result"],
    registry=None,
)


def get_metrics_registry() -> CollectorRegistry:
    """Get or create the global metrics registry."""
    global _metrics_registry

    if _metrics_registry is None:
        _metrics_registry = CollectorRegistry()

        for metric in [
            RECONCILIATION_TOTAL,
            RECONCILIATION_DURATION,
            RECONCILIATION_ERRORS,
            RESOURCE_PHASE,
            CA_INJECTIONS_TOTAL,
            SERVING_CERT_SECRET_PRESENT,
            APPLIED_OBJECTS_TOTAL,
        ]:
            _metrics_registry.register(metric)

    return _metrics_registry


class MetricsCollector:
    """Collects and manages metrics for the Warden operator."""

    def __init__(self):
        self.registry = get_metrics_registry()

    @asynccontextmanager
    async def track_reconciliation(
        self,
        resource_type: str,
        namespace: str,
        name: str,
        operation: str = "reconcile",
    ):
        """
        Context manager to track reconciliation operations.

        Args:
            resource_type: Type of resource being reconciled
            namespace: Namespace of the resource
            name: Name of the resource
            operation: Type of operation being performed
        """
        start_time = time.time()
        result = "unknown"

        try:
            yield
            result = "success"
        except Exception as e:
            result = "error"

            error_type = type(e).__name__
            retryable = "true" if getattr(e, "retryable", False) else "false"

            RECONCILIATION_ERRORS.labels(
                resource_type=resource_type,
                namespace=namespace,
                error_type=error_type,
                retryable=retryable,
            ).inc()

            raise
        finally:
            duration = time.time() - start_time

            RECONCILIATION_TOTAL.labels(
                resource_type=resource_type,
                namespace=namespace,
                name=name,
                result=result,
            ).inc()

            RECONCILIATION_DURATION.labels(
                resource_type=resource_type, namespace=namespace, operation=operation
            ).observe(duration)

    def update_resource_status(self, resource_type: str, namespace: str, phase: str):
        """Mark the given phase as current for a resource type."""
        for candidate in ("Reconciling", "Ready", "Failed"):
            RESOURCE_PHASE.labels(
                resource_type=resource_type, namespace=namespace, phase=candidate
            ).set(1 if candidate == phase else 0)

    def record_ca_injection(self, namespace: str, webhook_count: int):
        CA_INJECTIONS_TOTAL.labels(
            namespace=namespace, webhook_count=str(webhook_count)
        ).inc()

    def record_serving_cert_secret(
        self, namespace: str, secret_name: str, present: bool
    ):
        SERVING_CERT_SECRET_PRESENT.labels(
            namespace=namespace, secret_name=secret_name
        ).set(1 if present else 0)

    def record_apply(self, kind: str, result: str):
        APPLIED_OBJECTS_TOTAL.labels(kind=kind, result=result).inc()


class MetricsServer:
    """HTTP server for exposing Prometheus metrics."""

    def __init__(self, port: int = 8081, host: str = "0.0.0.0"):
        """
        Initialize metrics server.

        Args:
            port: Port to serve metrics on
            host: Host interface to bind to
        """
        self.port = port
        self.host = host
        self.app = Application()
        self.runner: AppRunner | None = None
        self.site: TCPSite | None = None
        self._setup_routes()

    def _setup_routes(self) -> None:
        self.app.router.add_get("/metrics", self._metrics_handler)
        self.app.router.add_get("/healthz", self._healthz_handler)

    async def _metrics_handler(self, request: Request) -> Response:
        """Handle /metrics endpoint for Prometheus scraping."""
        try:
            metrics_data = generate_latest(get_metrics_registry())
            # aiohttp rejects a charset inside content_type, so split it off
            content_type, _, charset = CONTENT_TYPE_LATEST.partition("; charset=")
            return Response(
                body=metrics_data, content_type=content_type, charset=charset or None
            )
        except Exception as e:
            logger.error(f"Failed to generate metrics: {e}")
            return Response(
                text=f"Error generating metrics: {type(e).__name__}. Check logs for details.",
                status=500,
            )

    async def _healthz_handler(self, request: Request) -> Response:
        return Response(text="ok")

    async def start(self) -> None:
        """Start the metrics server."""
        try:
            self.runner = AppRunner(self.app)
            await self.runner.setup()

            self.site = TCPSite(self.runner, self.host, self.port)
            await self.site.start()

            logger.info(f"Metrics server started on {self.host}:{self.port}")
        except Exception as e:
            logger.error(f"Failed to start metrics server: {e}")
            raise

    async def stop(self) -> None:
        """Stop the metrics server."""
        try:
            if self.site:
                await self.site.stop()
                self.site = None

            if self.runner:
                await self.runner.cleanup()
                self.runner = None

            logger.info("Metrics server stopped")
        except Exception as e:
            logger.error(f"Error stopping metrics server: {e}")


# Global metrics collector instance
metrics_collector = MetricsCollector()
