#!/usr/bin/env python3
"""
Warden Operator - Main entry point for the Kopf-based Warden operator.

This operator provisions the Warden admission subsystem:
- Deploys the admission server, its Service, RBAC and ServiceAccount
- Registers the aggregated APIService and validating webhooks
- Injects trust material on clusters that do not inject service CAs
- Rolls the admission pods when their certificates change

Usage:
    python -m warden_operator.operator
    # Or with kopf directly:
    kopf run -m warden_operator.operator --all-namespaces

Environment Variables:
    WARDEN_CONFIG_NAME: Name of the WardenConfig to act on (default: warden)
    WARDEN_NAMESPACE: Default namespace of the admission subsystem
    LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
"""

import logging
import sys

import kopf
from kubernetes import client, config
from kubernetes.client.rest import ApiException

from warden_operator.constants import WARDEN_GROUP, WARDEN_PLURAL

# Import all handler modules to register them with kopf
from warden_operator.handlers import warden  # noqa: F401
from warden_operator.observability.logging import setup_structured_logging
from warden_operator.observability.metrics import MetricsServer
from warden_operator.settings import settings as operator_settings
from warden_operator.utils.environment import EnvironmentDetector

# Global reference to metrics server for cleanup
_global_metrics_server: MetricsServer | None = None


def configure_logging() -> None:
    """Configure structured logging for the operator based on operator_settings."""
    setup_structured_logging(
        log_level=operator_settings.log_level.upper(),
        enable_json_formatting=operator_settings.json_logs,
        correlation_id_enabled=operator_settings.correlation_ids,
    )


@kopf.on.startup()
async def startup_handler(settings: kopf.OperatorSettings, **_) -> None:
    """
    Operator startup configuration.

    This handler runs once when the operator starts up and configures:
    - Kubernetes client configuration
    - Watch and peering behavior
    - Metrics and health check endpoints
    """
    logging.info("Starting Warden Operator...")
    settings.watching.reconnect_backoff = 1.0  # Reconnect delay

    # A single replica acts on a single WardenConfig, no peering required
    settings.peering.standalone = True

    # Load Kubernetes configuration if not already loaded
    try:
        config.load_incluster_config()
        logging.info("Loaded in-cluster Kubernetes configuration")
    except config.ConfigException:
        try:
            config.load_kube_config()
            logging.info("Loaded kubeconfig configuration")
        except config.ConfigException:
            logging.error("Failed to load Kubernetes configuration")
            raise

    logging.info(
        f"Managing WardenConfig {operator_settings.config_name}, "
        f"default target namespace {operator_settings.target_namespace}"
    )

    # Start metrics server for Prometheus scraping and health checks
    try:
        metrics_server = MetricsServer(
            port=operator_settings.metrics_port, host=operator_settings.metrics_host
        )
        await metrics_server.start()
        logging.info(
            f"Metrics and health endpoints available on {operator_settings.metrics_host}:{operator_settings.metrics_port}"
        )

        global _global_metrics_server
        _global_metrics_server = metrics_server

    except Exception as e:
        logging.error(f"Failed to start metrics server: {e}")
        # Don't fail operator startup if metrics server fails
        logging.warning("Continuing without metrics server")

    # Informational only, every reconcile pass probes the cluster again
    try:
        tier = await EnvironmentDetector().detect_tier()
        logging.info(f"Detected cluster capability tier: {tier.value}")
    except Exception as e:
        logging.warning(f"Could not detect cluster capability tier at startup: {e}")


@kopf.on.cleanup()
async def cleanup_handler(settings: kopf.OperatorSettings, **_) -> None:
    """Stop the metrics server on shutdown."""
    logging.info("Shutting down Warden Operator...")

    global _global_metrics_server
    if _global_metrics_server:
        await _global_metrics_server.stop()
        _global_metrics_server = None


@kopf.on.probe(id="healthz")
async def health_check(**_) -> dict[str, str]:
    """
    Health check probe for Kubernetes liveness checks.

    Returns:
        Dictionary indicating operator health status
    """
    try:
        version = client.VersionApi().get_code()
        return {
            "status": "healthy",
            "operator": "warden-operator",
            "kubernetes": version.git_version,
        }
    except (ApiException, OSError) as e:
        logging.error(f"Health check failed: {e}")
        return {"status": "unhealthy", "operator": "warden-operator", "error": str(e)}


@kopf.on.probe(id="ready")
async def readiness_check(**_) -> dict[str, str]:
    """
    Readiness check probe - indicates if the WardenConfig CRD is served.

    Returns:
        Dictionary indicating operator readiness
    """
    crd_name = f"{WARDEN_PLURAL}.{WARDEN_GROUP}"
    try:
        client.ApiextensionsV1Api().read_custom_resource_definition(name=crd_name)
        return {"status": "ready", "operator": "warden-operator"}
    except (ApiException, OSError) as e:
        logging.error(f"Readiness check failed: {e}")
        return {"status": "not_ready", "operator": "warden-operator", "error": str(e)}


def main() -> None:
    """
    Main entry point for the operator.

    This function:
    1. Configures logging
    2. Runs the kopf operator cluster-wide (WardenConfig is cluster-scoped)
    """
    configure_logging()

    settings_obj = kopf.OperatorSettings()
    settings_obj.admission.server = None
    settings_obj.admission.managed = None

    try:
        kopf.run(
            clusterwide=True,
            liveness_endpoint="http://0.0.0.0:8080/healthz",
            settings=settings_obj,
        )
    except KeyboardInterrupt:
        logging.info("Received shutdown signal")
        sys.exit(0)
    except Exception as e:
        logging.error(f"Operator failed with error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
