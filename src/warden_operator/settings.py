"""Centralized operator settings using pydantic-settings.

This module provides a single source of truth for all operator configuration
loaded from environment variables. Uses pydantic for automatic validation,
type coercion, and documentation.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Operator configuration loaded from environment variables.

    All settings have sensible defaults for production use. Override via
    environment variables as documented per field.
    """

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Operator identification
    config_name: str = Field(
        default="warden",
        description="Name of the single WardenConfig resource the operator acts on",
        validation_alias="WARDEN_CONFIG_NAME",
    )

    # Admission subsystem
    target_namespace: str = Field(
        default="warden",
        description="Namespace the admission subsystem is deployed to when the WardenConfig does not set one",
        validation_alias="WARDEN_NAMESPACE",
    )
    admission_image: str = Field(
        default="",
        description="Image override for the admission deployment (empty = keep manifest image)",
        validation_alias="WARDEN_ADMISSION_IMAGE",
    )
    admission_image_pull_policy: Literal["", "Always", "IfNotPresent", "Never"] = Field(
        default="",
        description="Image pull policy override for the admission deployment (empty = keep manifest policy)",
        validation_alias="WARDEN_ADMISSION_IMAGE_PULL_POLICY",
    )

    # Cluster capability probes
    platform_version_crd: str = Field(
        default="clusterversions.config.openshift.io",
        description="CRD that only exists on current managed platform releases",
        validation_alias="PLATFORM_VERSION_CRD",
    )
    platform_api_group: str = Field(
        default="route.openshift.io",
        description="API group whose presence marks a managed platform",
        validation_alias="PLATFORM_API_GROUP",
    )

    # Reconciliation behavior
    resync_interval_seconds: float = Field(
        default=600.0,
        validation_alias="RESYNC_INTERVAL_SECONDS",
        description="Interval in seconds between periodic reconciliations",
    )

    # Logging configuration
    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=True,
        validation_alias="JSON_LOGS",
        description="Enable JSON formatted logging for structured log aggregation",
    )
    correlation_ids: bool = Field(
        default=True,
        validation_alias="CORRELATION_IDS",
        description="Enable correlation IDs in logs for request tracing",
    )

    # Metrics and observability
    metrics_port: int = Field(
        default=8081,
        validation_alias="METRICS_PORT",
        description="Port for Prometheus metrics endpoint",
    )
    metrics_host: str = Field(
        default="0.0.0.0",
        validation_alias="METRICS_HOST",
        description="Host address to bind metrics server",
    )


# Global settings instance - initialized once at module import
settings = Settings()
