"""
Error handling module for the Warden operator.

This module provides a comprehensive error hierarchy that integrates with kopf
and provides clear categorization for different types of failures.
"""

from .operator_errors import (
    AssetError,
    ConfigurationError,
    EnvironmentDetectionError,
    ExternalServiceError,
    KubernetesAPIError,
    MissingKeyError,
    OperatorError,
    ReconciliationError,
    TemporaryError,
    TrustBundleNotFoundError,
)

__all__ = [
    "OperatorError",
    "TemporaryError",
    "ExternalServiceError",
    "KubernetesAPIError",
    "EnvironmentDetectionError",
    "ConfigurationError",
    "AssetError",
    "ReconciliationError",
    "TrustBundleNotFoundError",
    "MissingKeyError",
]
