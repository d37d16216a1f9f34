"""
Kubernetes utilities for the Warden operator.

This module provides helper functions for interacting with the Kubernetes API:
- Kubernetes client management and configuration
- Owner references for garbage collection
- Decoding of secret payloads into raw bytes
"""

import base64
import logging
from typing import Any

from kubernetes import client, config

from warden_operator.models import OwnerReference

logger = logging.getLogger(__name__)


def get_kubernetes_client() -> client.ApiClient:
    """
    Get configured Kubernetes API client.

    Handles both in-cluster and local development configurations.

    Returns:
        Configured Kubernetes API client
    """
    try:
        # Try in-cluster config first (when running in a pod)
        config.load_incluster_config()
        logger.debug("Loaded in-cluster Kubernetes configuration")
    except config.ConfigException:
        try:
            # Fall back to local kubeconfig (for development)
            config.load_kube_config()
            logger.debug("Loaded kubeconfig from local environment")
        except config.ConfigException as e:
            logger.error(f"Failed to load Kubernetes configuration: {e}")
            raise

    return client.ApiClient()


def set_owner_reference(manifest: dict[str, Any], owner: OwnerReference) -> None:
    """
    Set owner reference for garbage collection.

    An existing reference to the same owner UID is replaced rather than
    duplicated, so the manifest stays stable across passes.

    Args:
        manifest: Manifest dictionary to set the owner reference on
        owner: Owner resource
    """
    metadata = manifest.setdefault("metadata", {})
    owner_refs = [
        ref
        for ref in metadata.get("ownerReferences") or []
        if ref.get("uid") != owner.uid
    ]
    owner_refs.append(owner.to_manifest())
    metadata["ownerReferences"] = owner_refs


def decode_secret_data(data: dict[str, str] | None) -> dict[str, bytes]:
    """
    Decode the base64 values of a secret's data field.

    Args:
        data: The secret's data mapping as returned by the API

    Returns:
        Mapping of key to raw bytes (empty when the secret has no data)
    """
    return {key: base64.b64decode(value or "") for key, value in (data or {}).items()}
