"""
Manifest assets bundled with the operator.

The admission subsystem is described by YAML manifests shipped inside the
``warden_operator.assets`` package. Every load returns a fresh dictionary so
callers can mutate it freely during a reconcile pass.
"""

import logging
from importlib import resources
from typing import Any

import yaml

from ..errors import AssetError

logger = logging.getLogger(__name__)

ASSETS_PACKAGE = "warden_operator.assets"


def load_asset(path: str) -> dict[str, Any]:
    """
    Load and decode a bundled manifest.

    Args:
        path: File name relative to the assets package

    Returns:
        The decoded manifest

    Raises:
        AssetError: If the asset is missing, is not valid YAML, or is not a
            Kubernetes object
    """
    try:
        raw = resources.files(ASSETS_PACKAGE).joinpath(path).read_text("utf-8")
    except (FileNotFoundError, IsADirectoryError) as e:
        raise AssetError(path, "not found") from e

    try:
        manifest = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise AssetError(path, f"invalid YAML: {e}") from e

    if not isinstance(manifest, dict) or not {"apiVersion", "kind"} <= manifest.keys():
        raise AssetError(path, "not a Kubernetes object (apiVersion/kind missing)")

    logger.debug(f"Loaded asset {path}", extra={"asset": path, "kind": manifest["kind"]})
    return manifest


def load_assets(paths: list[str]) -> list[dict[str, Any]]:
    """Load several manifests, preserving order."""
    return [load_asset(path) for path in paths]
